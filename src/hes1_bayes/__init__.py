"""
Hes1 Bayes - Bayesian parameter estimation for the Hes1 oscillator

A compact workflow around the Hes1 transcription-translation feedback loop:
ODE simulation with a non-negativity guard, credible-interval aggregation
over parameter samples, and MCMC inference through PyMC.
"""

__version__ = "0.1.0"

# Core simulation
from .core import (
    KD,
    EPSILON,
    NOMINAL_THETA,
    Hes1Params,
    SimulationConfig,
    Trajectory,
    ParameterDomainError,
    IntegrationError,
    hes1_rhs,
    integrate,
    simulate,
    steady_state,
)

# Uncertainty quantification
from .uncertainty import (
    CredibleBand,
    credible_interval_band,
    make_trajectory_fn,
    make_noisy_trajectory_fn,
    NoisyTrajectoryFn,
)

# Data
from .data import generate_synthetic_data, load_observations, save_observations

# Bayesian inference (PyMC is optional)
from .bayesian import (
    PriorSpec,
    Hes1Model,
    BayesianConfig,
    BayesianEstimator,
    get_default_priors,
    PYMC_AVAILABLE,
)

__all__ = [
    "KD",
    "EPSILON",
    "NOMINAL_THETA",
    "Hes1Params",
    "SimulationConfig",
    "Trajectory",
    "ParameterDomainError",
    "IntegrationError",
    "hes1_rhs",
    "integrate",
    "simulate",
    "steady_state",
    "CredibleBand",
    "credible_interval_band",
    "make_trajectory_fn",
    "make_noisy_trajectory_fn",
    "NoisyTrajectoryFn",
    "generate_synthetic_data",
    "load_observations",
    "save_observations",
    "PriorSpec",
    "Hes1Model",
    "BayesianConfig",
    "BayesianEstimator",
    "get_default_priors",
]
