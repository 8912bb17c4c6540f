"""
Observable parsing and validation tests.

    python -m unittest tests.test_observable -v
"""

import os
import sys
import unittest

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from qhybrid import ConfigurationError, Observable, ObservableTerm
from qhybrid.operator import as_observable, parse_pauli_string


class TestPauliStringParsing(unittest.TestCase):
    def test_terms_are_sorted_by_qubit(self):
        self.assertEqual(parse_pauli_string("X1 Z0"), ((0, "Z"), (1, "X")))

    def test_identity_forms(self):
        self.assertEqual(parse_pauli_string("I"), ())
        self.assertEqual(parse_pauli_string(""), ())
        self.assertEqual(parse_pauli_string("I0 Z1"), ((1, "Z"),))

    def test_lowercase_is_accepted(self):
        self.assertEqual(parse_pauli_string("y2"), ((2, "Y"),))

    def test_invalid_inputs(self):
        for bad in ("Q0", "Xa", "X-1", "X0 Z0"):
            with self.subTest(pauli=bad):
                with self.assertRaises(ConfigurationError):
                    parse_pauli_string(bad)


class TestObservableTerm(unittest.TestCase):
    def test_identity_term(self):
        term = ObservableTerm(5.907)
        self.assertTrue(term.is_identity)
        self.assertEqual(term.qubits, ())
        self.assertEqual(term.to_string(), "5.907 * I")

    def test_basis_is_normalized(self):
        term = ObservableTerm(-2.0, [(1, "x"), (0, "y")])
        self.assertEqual(term.basis, ((0, "Y"), (1, "X")))
        self.assertEqual(term.to_string(), "-2.0 * Y0 X1")

    def test_rejects_bad_coefficients_and_bases(self):
        with self.assertRaises(ConfigurationError):
            ObservableTerm(True, ((0, "Z"),))
        with self.assertRaises(ConfigurationError):
            ObservableTerm("1.0", ((0, "Z"),))
        with self.assertRaises(ConfigurationError):
            ObservableTerm(1.0, ((0, "W"),))
        with self.assertRaises(ConfigurationError):
            ObservableTerm(1.0, ((-1, "Z"),))
        with self.assertRaises(ConfigurationError):
            ObservableTerm(1.0, ((0, "Z"), (0, "X")))

    def test_terms_are_immutable(self):
        term = ObservableTerm(1.0, ((0, "Z"),))
        with self.assertRaises(AttributeError):
            term.coefficient = 2.0


class TestObservable(unittest.TestCase):
    def setUp(self):
        self.h = Observable.from_pauli_dict({
            "I": 5.907,
            "X0 X1": -2.1433,
            "Y0 Y1": -2.1433,
            "Z0": 0.21829,
            "Z1": -6.125,
        })

    def test_decomposition(self):
        self.assertEqual(self.h.term_count(), 5)
        self.assertEqual(len(self.h.measured_terms()), 4)
        self.assertAlmostEqual(self.h.constant_offset(), 5.907)
        self.assertEqual(self.h.num_qubits, 2)

    def test_definition_order_is_kept(self):
        bases = [t.basis for t in self.h.measured_terms()]
        self.assertEqual(bases, [((0, "X"), (1, "X")), ((0, "Y"), (1, "Y")), ((0, "Z"),), ((1, "Z"),)])

    def test_multiple_identity_terms_add_up(self):
        h = Observable.from_terms([(1.5, ()), (0.5, ()), (2.0, [(0, "Z")])])
        self.assertAlmostEqual(h.constant_offset(), 2.0)
        self.assertEqual(len(h.measured_terms()), 1)

    def test_empty_observable(self):
        h = Observable()
        self.assertEqual(h.term_count(), 0)
        self.assertEqual(h.constant_offset(), 0.0)
        self.assertEqual(h.num_qubits, 0)
        self.assertEqual(repr(h), "Observable(Empty)")

    def test_equality_and_hash(self):
        other = Observable.from_terms([
            (5.907, ()),
            (-2.1433, [(0, "X"), (1, "X")]),
            (-2.1433, [(0, "Y"), (1, "Y")]),
            (0.21829, [(0, "Z")]),
            (-6.125, [(1, "Z")]),
        ])
        self.assertEqual(self.h, other)
        self.assertEqual(hash(self.h), hash(other))

    def test_rejects_foreign_terms(self):
        with self.assertRaises(ConfigurationError):
            Observable([("X0", 1.0)])

    def test_as_observable(self):
        self.assertIs(as_observable(self.h), self.h)
        self.assertEqual(as_observable({"Z0": 1.0}), Observable.from_terms([(1.0, [(0, "Z")])]))
        self.assertEqual(as_observable([(1.0, [(0, "Z")])]).term_count(), 1)
        with self.assertRaises(ConfigurationError):
            as_observable("Z0")


if __name__ == "__main__":
    unittest.main()
