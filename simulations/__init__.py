# simulations/__init__.py
"""
Monte Carlo ISE study for the density-ise repo.

Run via:
    python -m simulations.compare illustrate [--n ...] [--seed ...] [--output ...]
    python -m simulations.compare study [--trials ...] [--sizes ...] [--scenarios ...] [--output ...]
"""
