"""
Hes1 Bayes — Test Suite
=======================

Test modules:
- test_core.py: ODE model, guarded integrator, simulation
- test_uncertainty.py: credible-interval aggregation
- test_bayesian.py: priors, model specification, PyMC estimator
- test_data.py: synthetic observations and CSV files
- test_plotting.py: figure smoke tests
- test_workflow.py: end-to-end workflow (slow)
"""

__version__ = '0.1.0'
