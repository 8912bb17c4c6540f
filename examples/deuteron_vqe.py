# Copyright (C) 2024 Advanced Micro Devices, Inc. All rights reserved.
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
# THE SOFTWARE.

"""
VQE for the Deuteron (N=2)

This script runs the deuteron N=2 experiment with the qhybrid VQE driver,
using two quantum kernels of differing input argument structure:

1. ``ansatz(q, x)`` takes a single angle.
2. ``ansatz_vec(q, x)`` takes a list of angles and builds the state with an
   exp(i theta (X0 Y1 - Y0 X1)) rotation. It is run asynchronously.
3. ``ansatz`` again, started at x = 0.55 with a gradient-based optimizer
   and central-difference gradients; afterwards every parameter set seen
   during the run is listed.

Kernels run on a small NumPy state-vector executor defined below. Any object
implementing ``qhybrid.Executor`` (a hardware client, a GPU simulator) can be
dropped in instead.

Expected result: <H> ~= -1.74886.
"""

import logging
import math
import os
import sys

import numpy as np

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from qhybrid import VQE, ConfigurationError, Executor, Observable, create_optimizer

_PAULI = {
    'I': np.identity(2, dtype=complex),
    'X': np.array([[0, 1], [1, 0]], dtype=complex),
    'Y': np.array([[0, -1j], [1j, 0]], dtype=complex),
    'Z': np.array([[1, 0], [0, -1]], dtype=complex),
}


class StateVectorRegister:
    """A tiny dense state-vector register exposing the gates the kernels use."""

    def __init__(self, num_qubits: int):
        self.num_qubits = num_qubits
        self.psi = np.zeros(2 ** num_qubits, dtype=complex)
        self.psi[0] = 1.0

    def _apply(self, matrix: np.ndarray, target: int):
        n = self.num_qubits
        psi = self.psi.reshape([2] * n)
        axes = list(range(n))
        axes[0], axes[target] = axes[target], axes[0]
        psi = np.transpose(psi, axes).reshape(2, -1)
        psi = (matrix @ psi).reshape([2] * n)
        self.psi = np.transpose(psi, axes).flatten()

    def _kron(self, factors: dict) -> np.ndarray:
        op = np.array([[1.0 + 0j]])
        for q in range(self.num_qubits):
            op = np.kron(op, factors.get(q, _PAULI['I']))
        return op

    def _operator(self, paulis: dict) -> np.ndarray:
        return self._kron({q: _PAULI[axis] for q, axis in paulis.items()})

    def x(self, target: int):
        self._apply(_PAULI['X'], target)

    def ry(self, target: int, theta: float):
        c, s = math.cos(theta / 2.0), math.sin(theta / 2.0)
        self._apply(np.array([[c, -s], [s, c]], dtype=complex), target)

    def cx(self, control: int, target: int):
        proj0 = np.diag([1.0, 0.0]).astype(complex)
        proj1 = np.diag([0.0, 1.0]).astype(complex)
        full = self._kron({control: proj0}) + self._kron({control: proj1, target: _PAULI['X']})
        self.psi = full @ self.psi

    def exp_i_theta(self, theta: float, terms):
        """Applies exp(i theta sum_k c_k P_k) for mutually commuting Pauli products P_k."""
        for coeff, paulis in terms:
            p = self._operator(paulis)
            angle = theta * coeff
            self.psi = (math.cos(angle) * np.identity(len(self.psi)) + 1j * math.sin(angle) * p) @ self.psi

    def expectation(self, basis) -> float:
        p_psi = self._operator({q: axis for q, axis in basis}) @ self.psi
        return float(np.vdot(self.psi, p_psi).real)


class StateVectorExecutor(Executor):
    def __init__(self, num_qubits: int):
        self.num_qubits = num_qubits

    def execute(self, kernel, params, basis):
        register = StateVectorRegister(self.num_qubits)
        kernel(register, params)
        return register.expectation(basis)


# Define one quantum kernel that takes a single angle
def ansatz(q, x: float):
    q.x(0)
    q.ry(1, x)
    q.cx(1, 0)


# Define another quantum kernel that takes a vector argument; only the first
# entry is used
def ansatz_vec(q, x: list):
    q.x(0)
    q.exp_i_theta(x[0], [(1.0, {0: 'X', 1: 'Y'}), (-1.0, {0: 'Y', 1: 'X'})])


def main():
    logging.basicConfig(level=os.getenv("QHYBRID_LOG_LEVEL", "WARNING"))

    H = Observable.from_pauli_dict({
        "I": 5.907,
        "X0 X1": -2.1433,
        "Y0 Y1": -2.1433,
        "Z0": 0.21829,
        "Z1": -6.125,
    })
    executor = StateVectorExecutor(num_qubits=H.num_qubits)

    # Synchronous run with the default derivative-free optimizer
    vqe = VQE(ansatz, H, executor=executor)
    energy, params = vqe.execute(0.0)
    print(f"<H>({params[0]}) = {energy}")
    assert abs(energy + 1.74886) < 0.1

    # Same problem with the vector kernel, through the async interface
    vqe_vec = VQE(ansatz_vec, H, executor=executor)
    handle = vqe_vec.execute_async([0.0])
    energy_vec, params_vec = handle.get()
    print(f"<H>({params_vec[0]}) = {energy_vec}")
    assert abs(energy_vec + 1.74886) < 0.1

    # Gradient-based optimizer with central-difference gradients
    try:
        optimizer = create_optimizer("nlopt", {"nlopt-optimizer": "l-bfgs", "nlopt-maxeval": 20})
    except ConfigurationError as e:
        print(f"nlopt unavailable ({e}); using scipy L-BFGS-B instead.")
        optimizer = create_optimizer("scipy", {"scipy-optimizer": "l-bfgs", "scipy-maxeval": 20})
    vqe_grad = VQE(ansatz, H, {"gradient-strategy": "central"}, executor=executor)
    energy_grad, params_grad = vqe_grad.execute(optimizer, 0.55)
    print(f"<H>({params_grad[0]}) = {energy_grad}")
    assert abs(energy_grad + 1.74886) < 0.1

    # Query every parameter set executed and the corresponding energies
    all_params = vqe_grad.get_unique_parameters()
    print(f"{len(all_params)} unique parameter sets evaluated.")
    print("All Energies and Parameters:")
    for e, pset in vqe_grad.get_unique_energies():
        print(f"E: Pvec = {e}: [ " + " ".join(str(p) for p in pset) + " ]")


if __name__ == "__main__":
    main()
