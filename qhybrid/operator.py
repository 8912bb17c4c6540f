from __future__ import annotations

from dataclasses import dataclass
from numbers import Real
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Sequence, Tuple

from .errors import ConfigurationError

PAULI_AXES = ("X", "Y", "Z")

Basis = Tuple[Tuple[int, str], ...]


def _normalize_basis(basis: Iterable[Tuple[int, str]]) -> Basis:
    seen = set()
    ops = []
    for entry in basis:
        try:
            qubit, axis = entry
        except (TypeError, ValueError):
            raise ConfigurationError(f"Basis entries must be (qubit, axis) pairs, got {entry!r}.")
        if isinstance(qubit, bool) or not isinstance(qubit, int) or qubit < 0:
            raise ConfigurationError(f"Qubit index must be a non-negative integer, got {qubit!r}.")
        axis = str(axis).upper()
        if axis not in PAULI_AXES:
            raise ConfigurationError(f"Invalid Pauli axis '{axis}'. Must be X, Y, or Z.")
        if qubit in seen:
            raise ConfigurationError(f"Qubit {qubit} appears more than once in a single term.")
        seen.add(qubit)
        ops.append((qubit, axis))
    return tuple(sorted(ops))


@dataclass(frozen=True)
class ObservableTerm:
    """A weighted Pauli product, e.g. -2.1433 * X0 X1.

    An empty ``basis`` is the identity and contributes ``coefficient``
    directly to the energy.
    """
    coefficient: float
    basis: Basis = ()

    def __post_init__(self):
        if isinstance(self.coefficient, bool) or not isinstance(self.coefficient, Real):
            raise ConfigurationError(f"Coefficient must be a real number, got {self.coefficient!r}.")
        object.__setattr__(self, "coefficient", float(self.coefficient))
        object.__setattr__(self, "basis", _normalize_basis(self.basis))

    @property
    def is_identity(self) -> bool:
        return not self.basis

    @property
    def qubits(self) -> Tuple[int, ...]:
        return tuple(q for q, _ in self.basis)

    def to_string(self) -> str:
        if self.is_identity:
            return f"{self.coefficient} * I"
        return f"{self.coefficient} * " + " ".join(f"{axis}{qubit}" for qubit, axis in self.basis)


def parse_pauli_string(pauli_str: str) -> Basis:
    """Parses "X0 Y1" style strings. "I" tokens are dropped; "" and "I" give the identity."""
    if not isinstance(pauli_str, str):
        raise ConfigurationError("Pauli string must be a string.")
    ops = []
    for comp in pauli_str.strip().upper().split():
        pauli_char = comp[0]
        if pauli_char not in "IXYZ":
            raise ConfigurationError(f"Invalid Pauli type '{pauli_char}' in '{comp}'. Must be I, X, Y, or Z.")
        if pauli_char == "I" and len(comp) == 1:
            continue
        try:
            qubit_idx = int(comp[1:])
        except ValueError:
            raise ConfigurationError(f"Invalid qubit index in '{comp}'. Must be an integer.")
        if qubit_idx < 0:
            raise ConfigurationError(f"Qubit index cannot be negative in '{comp}'.")
        if pauli_char != "I":
            ops.append((qubit_idx, pauli_char))
    return _normalize_basis(ops)


class Observable:
    """An immutable, ordered decomposition of a Hamiltonian into measurement terms.

    Terms keep their definition order so executor calls are issued in a
    reproducible sequence. An observable with no terms is valid and has a
    constant offset of zero.
    """

    def __init__(self, terms: Iterable[ObservableTerm] = ()):
        terms = tuple(terms)
        for term in terms:
            if not isinstance(term, ObservableTerm):
                raise ConfigurationError(f"Observable terms must be ObservableTerm instances, got {type(term)}.")
        self._terms = terms
        self._measured = tuple(t for t in terms if not t.is_identity)
        self._offset = sum(t.coefficient for t in terms if t.is_identity)

    @classmethod
    def from_terms(cls, pairs: Iterable[Tuple[float, Iterable[Tuple[int, str]]]]) -> "Observable":
        """Builds an observable from ``(coefficient, basis)`` pairs."""
        return cls(ObservableTerm(coeff, tuple(basis)) for coeff, basis in pairs)

    @classmethod
    def from_pauli_dict(cls, terms: Mapping[str, float]) -> "Observable":
        """Builds an observable from ``{"X0 X1": coeff, "I": offset}`` mappings."""
        if not isinstance(terms, Mapping):
            raise ConfigurationError("Pauli terms must be given as a mapping of strings to coefficients.")
        return cls(ObservableTerm(coeff, parse_pauli_string(pauli_str)) for pauli_str, coeff in terms.items())

    def terms(self) -> Tuple[ObservableTerm, ...]:
        return self._terms

    def measured_terms(self) -> Tuple[ObservableTerm, ...]:
        """Terms that require an executor call, in definition order."""
        return self._measured

    def term_count(self) -> int:
        return len(self._terms)

    def constant_offset(self) -> float:
        return self._offset

    @property
    def num_qubits(self) -> int:
        qubits = [q for t in self._measured for q in t.qubits]
        return max(qubits) + 1 if qubits else 0

    def __len__(self) -> int:
        return len(self._terms)

    def __iter__(self) -> Iterator[ObservableTerm]:
        return iter(self._terms)

    def __eq__(self, other):
        if not isinstance(other, Observable):
            return NotImplemented
        return self._terms == other._terms

    def __hash__(self):
        return hash(self._terms)

    def __repr__(self):
        if not self._terms:
            return "Observable(Empty)"
        return "Observable(" + "\n+ ".join(t.to_string() for t in self._terms) + "\n)"


def as_observable(value) -> Observable:
    if isinstance(value, Observable):
        return value
    if isinstance(value, Mapping):
        return Observable.from_pauli_dict(value)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return Observable.from_terms(value)
    raise ConfigurationError(f"Cannot interpret {type(value).__name__} as an Observable.")


def frozen_term_values(values: Mapping[ObservableTerm, float]) -> Mapping[ObservableTerm, float]:
    return MappingProxyType(dict(values))
