"""
Packaging tests: public imports and source file license headers.

    python -m unittest tests.test_packaging -v
"""

import os
import sys
import unittest

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)


class TestPublicImports(unittest.TestCase):
    """Core symbols must be importable from the top-level package."""

    def test_import_driver(self):
        from qhybrid import VQE, ExecutionHandle, RunState
        self.assertIsNotNone(VQE)
        self.assertIsNotNone(ExecutionHandle)
        self.assertIsNotNone(RunState)

    def test_import_optimizers(self):
        from qhybrid.optimizers import Optimizer, OptimizerResult, SciPyOptimizer
        self.assertTrue(issubclass(SciPyOptimizer, Optimizer))
        self.assertIsNotNone(OptimizerResult)

    def test_version(self):
        import qhybrid
        self.assertEqual(qhybrid.__version__, "0.1.0")


class TestLicenseHeaders(unittest.TestCase):
    """Files derived from the rocQuantum VQE solver keep its MIT header."""

    _FILES = (
        "qhybrid/solvers/vqe.py",
        "qhybrid/optimizers/base.py",
        "qhybrid/optimizers/scipy_optimizer.py",
    )

    def _head(self, relpath):
        with open(os.path.join(_PROJECT_ROOT, relpath), "r", encoding="utf-8") as f:
            return f.read(400)

    def test_rocquantum_header(self):
        for relpath in self._FILES:
            with self.subTest(path=relpath):
                head = self._head(relpath)
                self.assertTrue(head.startswith("# Copyright (c) 2025-2026, rocQuantum Developers."))
                self.assertIn("MIT license", head)

    def test_example_header(self):
        head = self._head("examples/deuteron_vqe.py")
        self.assertTrue(head.startswith("# Copyright (C) 2024 Advanced Micro Devices, Inc."))
        self.assertIn("Permission is hereby granted", head)


if __name__ == "__main__":
    unittest.main()
