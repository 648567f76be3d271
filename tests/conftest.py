"""
Pytest configuration and fixtures for reproducible testing.

Randomness is never seeded globally: tests that need random numbers take the
``rng`` fixture, a fresh seeded numpy Generator per test function.
"""
import pytest
import numpy as np

from hes1_bayes.core import NOMINAL_THETA, SimulationConfig, simulate


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: MCMC runs (deselect with '-m \"not slow\"')")


@pytest.fixture
def rng():
    """Fresh seeded generator for each test function."""
    return np.random.default_rng(42)


@pytest.fixture(scope="session")
def sim_config():
    return SimulationConfig()


@pytest.fixture(scope="session")
def short_config():
    """Coarse, short grid for tests that simulate many times."""
    return SimulationConfig(t_span=(0.0, 10000.0), dt=1000.0)


@pytest.fixture(scope="session")
def nominal_trajectory(sim_config):
    return simulate(NOMINAL_THETA, sim_config)
