# qhybrid/utils/expectation.py

from typing import Mapping, Sequence, Union

import numpy as np

CountsKey = Union[str, int]


def _bit(outcome: CountsKey, qubit: int) -> int:
    """
    Reads the measured value of ``qubit`` from a counts key.

    String keys are bitstrings whose character ``i`` is qubit ``i``.
    Integer keys store qubit ``i`` in bit ``i``.
    """
    if isinstance(outcome, (int, np.integer)):
        return (int(outcome) >> qubit) & 1
    outcome = outcome.replace(" ", "")
    if qubit >= len(outcome):
        raise ValueError(f"Outcome '{outcome}' does not contain a bit for qubit {qubit}.")
    bit = outcome[qubit]
    if bit not in "01":
        raise ValueError(f"Invalid character '{bit}' in outcome '{outcome}'.")
    return int(bit)


def is_counts(result) -> bool:
    return isinstance(result, Mapping)


def expectation_from_counts(counts: Mapping[CountsKey, int], qubits: Sequence[int]) -> float:
    """
    Computes the Z-product expectation value <Z_q1 ... Z_qk> from shot counts.

    The executor is expected to have rotated X and Y factors into the Z basis
    before measuring, so only the parity of the measured bits matters.

    Args:
        counts: Mapping of measurement outcome to number of shots.
        qubits: Qubits whose parity is measured. Empty means identity.

    Returns:
        The expectation value in [-1, 1].
    """
    if not qubits:
        return 1.0

    total = 0
    signed = 0
    for outcome, shots in counts.items():
        if shots < 0:
            raise ValueError(f"Negative shot count {shots} for outcome '{outcome}'.")
        parity = sum(_bit(outcome, q) for q in qubits) % 2
        signed += -shots if parity else shots
        total += shots

    if total == 0:
        raise ValueError("Cannot compute an expectation value from zero shots.")
    return signed / total
