# setup.py

from setuptools import find_packages, setup

setup(
    name="qhybrid",
    version="0.1.0",
    description="Hybrid quantum-classical optimization engine (VQE driver)",
    long_description=(
        "This package provides a Variational Quantum Eigensolver driver with pluggable "
        "classical optimizers, memoized expectation-value evaluation and gradient "
        "estimation on top of any quantum kernel executor."
    ),
    packages=find_packages(exclude=["tests", "tests.*", "examples", "examples.*"]),
    zip_safe=False,
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "scipy>=1.7",
    ],
    extras_require={
        "nlopt": ["nlopt"],
        "test": ["pytest"],
    },
)
