"""
ExpectationEvaluator tests: memoization, result reduction, executor failure
handling and gradient estimation.

    python -m unittest tests.test_evaluator -v
"""

import math
import os
import sys
import threading
import unittest

_TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_TESTS_DIR)
for _path in (_PROJECT_ROOT, _TESTS_DIR):
    if _path not in sys.path:
        sys.path.insert(0, _path)

from qhybrid import (
    ConfigurationError,
    EvaluationCache,
    Executor,
    ExecutorFailure,
    ExpectationEvaluator,
    KernelBinding,
    Observable,
    ParameterVector,
    RunCancelled,
)

from deuteron_stub import (
    AnalyticExecutor,
    ansatz,
    deuteron_hamiltonian,
    exact_energy,
    exact_gradient,
)


def _evaluator(executor=None, **kwargs):
    return ExpectationEvaluator(
        KernelBinding(ansatz),
        deuteron_hamiltonian(),
        executor if executor is not None else AnalyticExecutor(),
        **kwargs,
    )


class _BatchedExecutor(AnalyticExecutor):
    batched = True

    def __init__(self, drop_last=False):
        super().__init__()
        self.batch_calls = 0
        self.drop_last = drop_last

    def execute_batch(self, kernel, params, bases):
        self.batch_calls += 1
        results = [self.execute(kernel, params, basis) for basis in bases]
        return results[:-1] if self.drop_last else results


class _ConstantExecutor(Executor):
    def __init__(self, value):
        self.value = value

    def execute(self, kernel, params, basis):
        return self.value


# ===================================================================
# 1. Energy evaluation and memoization
# ===================================================================
class TestEvaluation(unittest.TestCase):
    def test_energy_matches_closed_form(self):
        evaluator = _evaluator()
        for x in (0.0, 0.3, 0.5944, -1.2):
            with self.subTest(x=x):
                self.assertAlmostEqual(evaluator.energy(x), exact_energy(x), places=10)

    def test_term_values(self):
        evaluator = _evaluator()
        energy, values = evaluator.evaluate(0.4)
        by_label = {t.to_string(): v for t, v in values.items()}
        self.assertEqual(by_label["5.907 * I"], 1.0)
        self.assertAlmostEqual(by_label["-2.1433 * X0 X1"], math.sin(0.4))
        self.assertAlmostEqual(by_label["0.21829 * Z0"], -math.cos(0.4))
        self.assertAlmostEqual(energy, exact_energy(0.4))

    def test_each_point_is_executed_once(self):
        executor = AnalyticExecutor()
        evaluator = _evaluator(executor)
        first = evaluator.energy(0.25)
        calls = executor.total_calls
        self.assertEqual(calls, evaluator.bases_per_evaluation)
        self.assertEqual(evaluator.energy([0.25]), first)
        self.assertEqual(evaluator.energy(ParameterVector([0.25])), first)
        self.assertEqual(executor.total_calls, calls)
        self.assertEqual(len(evaluator.cache), 1)

    def test_shared_bases_are_measured_once(self):
        h = Observable.from_terms([(1.0, [(0, "Z")]), (2.0, [(0, "Z")]), (0.5, [(1, "Z")])])
        executor = AnalyticExecutor()
        evaluator = ExpectationEvaluator(KernelBinding(ansatz), h, executor)
        energy = evaluator.energy(0.7)
        self.assertEqual(evaluator.bases_per_evaluation, 2)
        self.assertEqual(executor.total_calls, 2)
        self.assertAlmostEqual(energy, -3.0 * math.cos(0.7) + 0.5 * math.cos(0.7))

    def test_shared_cache(self):
        cache = EvaluationCache()
        executor = AnalyticExecutor()
        _evaluator(executor, cache=cache).energy(0.1)
        _evaluator(executor, cache=cache).energy(0.1)
        self.assertEqual(executor.total_calls, 4)

    def test_identity_only_observable_never_executes(self):
        executor = AnalyticExecutor()
        evaluator = ExpectationEvaluator(KernelBinding(ansatz), Observable.from_pauli_dict({"I": 2.5}), executor)
        self.assertEqual(evaluator.energy(0.3), 2.5)
        self.assertEqual(executor.total_calls, 0)
        self.assertEqual(len(evaluator.cache), 1)

    def test_arity_is_checked_before_execution(self):
        executor = AnalyticExecutor()
        evaluator = _evaluator(executor)
        with self.assertRaises(ConfigurationError):
            evaluator.energy([0.1, 0.2])
        self.assertEqual(executor.total_calls, 0)
        self.assertEqual(len(evaluator.cache), 0)

    def test_plain_callable_executor(self):
        def execute(kernel, params, basis):
            return 0.5

        evaluator = ExpectationEvaluator(KernelBinding(ansatz), Observable.from_pauli_dict({"Z0": 2.0}), execute)
        self.assertEqual(evaluator.energy(0.0), 1.0)


# ===================================================================
# 2. Executor results
# ===================================================================
class TestExecutorResults(unittest.TestCase):
    def test_counts_are_reduced_to_parity(self):
        h = Observable.from_pauli_dict({"Z0 Z1": 1.0, "Z1": 2.0})
        counts = {"00": 30, "01": 10, "11": 60}
        evaluator = ExpectationEvaluator(KernelBinding(ansatz), h, _ConstantExecutor(counts))
        # <Z0Z1> = (30 - 10 + 60) / 100, <Z1> = (30 - 10 - 60) / 100
        self.assertAlmostEqual(evaluator.energy(0.0), 0.8 + 2.0 * -0.4)

    def test_unusable_results_raise_executor_failure(self):
        for bad in (float("nan"), float("inf"), "abc", None, {"x0": 1}, {"0": 0}):
            with self.subTest(result=bad):
                evaluator = ExpectationEvaluator(
                    KernelBinding(ansatz), Observable.from_pauli_dict({"Z0": 1.0}), _ConstantExecutor(bad)
                )
                with self.assertRaises(ExecutorFailure):
                    evaluator.energy(0.0)
                self.assertEqual(len(evaluator.cache), 0)

    def test_out_of_range_value_is_logged_not_rejected(self):
        evaluator = ExpectationEvaluator(
            KernelBinding(ansatz), Observable.from_pauli_dict({"Z0": 1.0}), _ConstantExecutor(1.5)
        )
        with self.assertLogs("qhybrid.evaluator", level="WARNING"):
            self.assertEqual(evaluator.energy(0.0), 1.5)

    def test_executor_exceptions_are_wrapped(self):
        def broken(kernel, params, basis):
            raise RuntimeError("device offline")

        evaluator = _evaluator(broken)
        with self.assertRaises(ExecutorFailure) as ctx:
            evaluator.energy(0.1)
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)
        self.assertIn("device offline", str(ctx.exception))
        self.assertEqual(len(evaluator.cache), 0)

    def test_batched_executor_gets_one_call_per_point(self):
        executor = _BatchedExecutor()
        evaluator = _evaluator(executor)
        self.assertAlmostEqual(evaluator.energy(0.2), exact_energy(0.2))
        self.assertEqual(executor.batch_calls, 1)
        self.assertEqual(evaluator.executor_calls, 1)

    def test_batched_executor_result_count_is_checked(self):
        evaluator = _evaluator(_BatchedExecutor(drop_last=True))
        with self.assertRaises(ExecutorFailure):
            evaluator.energy(0.2)

    def test_cancel_event_stops_before_execution(self):
        executor = AnalyticExecutor()
        evaluator = _evaluator(executor)
        evaluator.cancel_event = threading.Event()
        evaluator.cancel_event.set()
        with self.assertRaises(RunCancelled):
            evaluator.energy(0.1)
        self.assertEqual(executor.total_calls, 0)


# ===================================================================
# 3. Gradients
# ===================================================================
class TestGradients(unittest.TestCase):
    def test_forward_difference(self):
        grad = _evaluator(gradient_strategy="forward").gradient(0.3)
        self.assertEqual(grad.shape, (1,))
        self.assertAlmostEqual(grad[0], exact_gradient(0.3), delta=1e-3)

    def test_central_difference(self):
        grad = _evaluator(gradient_strategy="central").gradient(0.3)
        self.assertAlmostEqual(grad[0], exact_gradient(0.3), delta=1e-6)

    def test_central_difference_error_is_second_order(self):
        errors = []
        for h in (1e-2, 5e-3):
            grad = _evaluator(gradient_strategy="central", step_size=h).gradient(0.3)
            errors.append(abs(grad[0] - exact_gradient(0.3)))
        # Halving h divides the truncation error h^2 E'''/6 by four.
        self.assertGreater(errors[1], 0.0)
        self.assertAlmostEqual(errors[0] / errors[1], 4.0, delta=0.1)

    def test_forward_difference_error_is_first_order(self):
        errors = []
        for h in (1e-2, 5e-3):
            grad = _evaluator(gradient_strategy="forward", step_size=h).gradient(0.3)
            errors.append(abs(grad[0] - exact_gradient(0.3)))
        self.assertAlmostEqual(errors[0] / errors[1], 2.0, delta=0.1)

    def test_parameter_shift_is_exact(self):
        for x in (0.0, 0.3, 2.0):
            with self.subTest(x=x):
                grad = _evaluator(gradient_strategy="parameter-shift").gradient(x)
                self.assertAlmostEqual(grad[0], exact_gradient(x), places=9)

    def test_parameter_shift_with_custom_angle(self):
        grad = _evaluator(gradient_strategy="parameter-shift", shift=0.4).gradient(0.3)
        self.assertAlmostEqual(grad[0], exact_gradient(0.3), places=9)

    def test_gradient_points_go_through_the_cache(self):
        executor = AnalyticExecutor()
        evaluator = _evaluator(executor, gradient_strategy="central", step_size=1e-3)
        evaluator.gradient(0.3)
        self.assertEqual(len(evaluator.cache), 2)
        self.assertIn(ParameterVector([0.3 + 1e-3]), evaluator.cache)
        calls = executor.total_calls
        evaluator.gradient(0.3)
        self.assertEqual(executor.total_calls, calls)
        self.assertTrue(all(n == 1 for n in executor.calls.values()))

    def test_forward_difference_reuses_the_base_point(self):
        executor = AnalyticExecutor()
        evaluator = _evaluator(executor, gradient_strategy="forward")
        evaluator.energy(0.3)
        evaluator.gradient(0.3)
        self.assertEqual(len(evaluator.cache), 2)

    def test_no_gradient_configured(self):
        evaluator = _evaluator()
        self.assertFalse(evaluator.has_gradient)
        with self.assertRaises(ConfigurationError):
            evaluator.gradient(0.3)

    def test_invalid_gradient_settings(self):
        with self.assertRaises(ConfigurationError):
            _evaluator(gradient_strategy="backward")
        with self.assertRaises(ConfigurationError):
            _evaluator(gradient_strategy="central", step_size=0.0)
        with self.assertRaises(ConfigurationError):
            _evaluator(gradient_strategy="parameter-shift", shift=0.0)


if __name__ == "__main__":
    unittest.main()
