"""
Tests for Bayesian inference framework
"""

import pytest
import numpy as np
from scipy import integrate as sp_integrate

from hes1_bayes.core import NOMINAL_THETA, PARAMETER_NAMES, ParameterDomainError, simulate
from hes1_bayes.data import generate_synthetic_data
from hes1_bayes.bayesian import (
    NOISE_NAME, PYMC_AVAILABLE, BayesianConfig, Hes1Model, PriorSpec,
    get_default_priors,
)

if PYMC_AVAILABLE:
    import arviz as az
    import pytensor.tensor as pt
    from hes1_bayes.bayesian import BayesianEstimator, Hes1SimulatorOp

TRUE_ROW = list(NOMINAL_THETA) + [0.8]


@pytest.fixture
def short_model(short_config):
    data = generate_synthetic_data(config=short_config, sigma=0.8, seed=1)
    return Hes1Model(observed=data['observed'].values, sim_config=short_config)


@pytest.fixture
def fake_trace(short_model, rng):
    """Prior draws shaped as a 2-chain posterior, no MCMC needed."""
    draws = short_model.sample_prior(100, rng=rng)
    return az.from_dict(posterior={
        name: draws[:, i].reshape(2, 50)
        for i, name in enumerate(short_model.variable_names)
    })


class TestPriorSpec:
    """Test prior specification."""

    def test_lognormal_centred_on_exp_mu(self):
        prior = PriorSpec('k1', 'lognormal', {'mu': np.log(1.66e-4), 'sigma': 0.3})
        assert prior.to_scipy().median() == pytest.approx(1.66e-4)

    @pytest.mark.parametrize("distribution,params", [
        ('normal', {'mu': 0.0, 'sigma': 1.0}),
        ('lognormal', {'mu': 0.0, 'sigma': 0.5}),
        ('uniform', {'lower': 0.0, 'upper': 2.0}),
        ('halfnormal', {'sigma': 1.0}),
        ('gamma', {'alpha': 2.0, 'beta': 1.0}),
    ])
    def test_supported_distributions(self, distribution, params, rng):
        prior = PriorSpec('x', distribution, params)
        draws = prior.sample(rng, size=20)
        assert draws.shape == (20,)
        assert np.all(np.isfinite([prior.logpdf(x) for x in draws]))

    def test_unknown_distribution(self):
        with pytest.raises(ValueError):
            PriorSpec('x', 'cauchy', {}).to_scipy()

    def test_truncated_sampling_respects_bounds(self, rng):
        prior = PriorSpec('h', 'normal', {'mu': 7.0, 'sigma': 10.0}, bounds=(1.0, 20.0))
        draws = prior.sample(rng, size=1000)
        assert draws.min() >= 1.0
        assert draws.max() <= 20.0

    def test_truncated_logpdf(self):
        prior = PriorSpec('h', 'normal', {'mu': 7.0, 'sigma': 1.5}, bounds=(1.0, 20.0))
        assert prior.logpdf(0.5) == -np.inf
        assert prior.logpdf(25.0) == -np.inf

        mass, _ = sp_integrate.quad(lambda x: np.exp(prior.logpdf(x)), 1.0, 20.0)
        assert mass == pytest.approx(1.0, abs=1e-6)

    def test_sampling_reproducible(self):
        prior = get_default_priors()[0]
        a = prior.sample(np.random.default_rng(3), size=5)
        b = prior.sample(np.random.default_rng(3), size=5)
        assert np.array_equal(a, b)


class TestHes1Model:
    """Test the explicit model specification."""

    def test_default_priors_cover_all_variables(self, short_model):
        assert short_model.variable_names == list(PARAMETER_NAMES) + [NOISE_NAME]
        assert [p.name for p in short_model.ordered_priors] == short_model.variable_names

    def test_observed_shape_must_match_grid(self, short_config):
        with pytest.raises(ValueError, match="shape"):
            Hes1Model(observed=np.zeros(5), sim_config=short_config)

    def test_unknown_likelihood(self, short_model):
        with pytest.raises(ValueError):
            Hes1Model(observed=short_model.observed, likelihood='poisson',
                      sim_config=short_model.sim_config)

    def test_unknown_observable(self, short_model):
        with pytest.raises(ValueError):
            Hes1Model(observed=short_model.observed, observable='p3',
                      sim_config=short_model.sim_config)

    def test_missing_prior(self, short_model):
        priors = [p for p in get_default_priors() if p.name != 'h']
        with pytest.raises(ValueError, match="h"):
            Hes1Model(observed=short_model.observed, priors=priors,
                      sim_config=short_model.sim_config)

    def test_log_posterior_finite_at_truth(self, short_model):
        assert np.isfinite(short_model.log_prior(TRUE_ROW))
        assert np.isfinite(short_model.log_posterior(TRUE_ROW))

    def test_likelihood_prefers_truth(self, short_model):
        perturbed = list(TRUE_ROW)
        perturbed[2] = 2.0 * perturbed[2]
        assert short_model.log_likelihood(TRUE_ROW) > short_model.log_likelihood(perturbed)

    def test_student_t_likelihood(self, short_model):
        model = Hes1Model(observed=short_model.observed, likelihood='t',
                          sim_config=short_model.sim_config)
        assert np.isfinite(model.log_likelihood(TRUE_ROW))

    def test_outside_prior_support(self, short_model):
        row = list(TRUE_ROW)
        row[3] = 25.0
        assert short_model.log_posterior(row) == -np.inf

    def test_non_positive_sigma(self, short_model):
        row = list(NOMINAL_THETA) + [0.0]
        with pytest.raises(ParameterDomainError):
            short_model.log_likelihood(row)

    def test_sample_prior(self, short_model):
        draws = short_model.sample_prior(50, seed=0)
        assert draws.shape == (50, 5)
        assert np.all(draws > 0)
        assert np.all((draws[:, 3] >= 1.0) & (draws[:, 3] <= 20.0))
        assert np.array_equal(draws, short_model.sample_prior(50, seed=0))

    def test_sample_prior_rejects_zero(self, short_model):
        with pytest.raises(ValueError):
            short_model.sample_prior(0)


class TestBayesianConfig:
    """Test configuration validation."""

    def test_defaults(self):
        config = BayesianConfig()
        assert config.n_chains == 4
        assert config.ode_backend == 'scipy'
        assert config.resolved_sampler == 'Slice'

    def test_pymc_backend_defaults_to_nuts(self):
        assert BayesianConfig(ode_backend='pymc').resolved_sampler == 'NUTS'

    def test_explicit_sampler(self):
        assert BayesianConfig(sampler='DEMetropolisZ').resolved_sampler == 'DEMetropolisZ'

    def test_nuts_requires_gradients(self):
        with pytest.raises(ValueError, match="gradients"):
            BayesianConfig(sampler='NUTS', ode_backend='scipy')

    def test_unknown_options(self):
        with pytest.raises(ValueError):
            BayesianConfig(sampler='HMC')
        with pytest.raises(ValueError):
            BayesianConfig(ode_backend='jax')


@pytest.mark.skipif(not PYMC_AVAILABLE, reason="PyMC not installed")
class TestBayesianEstimator:
    """Test PyMC model construction and posterior tooling."""

    def test_simulator_op_matches_simulate(self, short_config):
        op = Hes1SimulatorOp(short_config)
        states = op(pt.as_tensor_variable(np.asarray(NOMINAL_THETA, dtype=float))).eval()
        assert np.allclose(states, simulate(NOMINAL_THETA, short_config).states)

    def test_build_model(self, short_model):
        bayes = BayesianEstimator(short_model, BayesianConfig(), verbose=False)
        model = bayes.build_model()

        assert {rv.name for rv in model.free_RVs} == set(short_model.variable_names)
        assert [rv.name for rv in model.observed_RVs] == ['Y_obs']
        logp = model.compile_logp()(model.initial_point())
        assert np.isfinite(logp)

    def test_build_model_pymc_backend(self, short_model):
        bayes = BayesianEstimator(short_model, BayesianConfig(ode_backend='pymc'),
                                  verbose=False)
        model = bayes.build_model()
        assert len(model.free_RVs) == 5

    def test_requires_trace(self, short_model):
        bayes = BayesianEstimator(short_model, verbose=False)
        with pytest.raises(ValueError):
            bayes.posterior_samples()
        with pytest.raises(ValueError):
            bayes.save_trace('unused.nc')

    def test_posterior_samples(self, short_model, fake_trace):
        bayes = BayesianEstimator(short_model, verbose=False)
        assert bayes.posterior_samples(fake_trace).shape == (100, 5)

        subset = bayes.posterior_samples(fake_trace, n_samples=10, seed=0)
        assert subset.shape == (10, 5)
        assert np.array_equal(subset, bayes.posterior_samples(fake_trace, n_samples=10, seed=0))

        with pytest.raises(ValueError, match="exceeds"):
            bayes.posterior_samples(fake_trace, n_samples=101)

    def test_summary_and_correlations(self, short_model, fake_trace):
        bayes = BayesianEstimator(short_model, verbose=False)
        summary = bayes.summarize_posterior(fake_trace)
        assert set(summary) == set(short_model.variable_names)
        for stats in summary.values():
            assert stats['ci_lower'] <= stats['mean'] <= stats['ci_upper']

        corr = bayes.posterior_correlations(fake_trace)
        assert list(corr.columns) == short_model.variable_names
        assert np.allclose(np.diag(corr.values), 1.0)
        assert np.allclose(corr.values, corr.values.T)

    def test_convergence_report(self, short_model, fake_trace):
        bayes = BayesianEstimator(short_model, verbose=False)
        report = bayes.check_convergence(fake_trace)
        assert set(report) == {'rhat', 'ess', 'converged'}
        assert set(report['rhat']) == set(short_model.variable_names)

    def test_single_chain_skips_rhat(self, short_model, fake_trace):
        single = fake_trace.sel(chain=[0])
        bayes = BayesianEstimator(short_model, verbose=False)
        with pytest.warns(UserWarning, match="two chains"):
            report = bayes.check_convergence(single)
        assert report['rhat'] == {}

    def test_posterior_bands(self, short_model, fake_trace):
        bayes = BayesianEstimator(short_model, verbose=False)
        clean = bayes.posterior_predictive_band(fake_trace, n_samples=8, noise=False, seed=0)
        noisy = bayes.posterior_predictive_band(fake_trace, n_samples=8, noise=True, seed=0)

        assert clean.times.size == short_model.times.size
        assert clean.n_samples == noisy.n_samples == 8
        assert np.all(noisy.width > 0)

    def test_prior_predictive_band(self, short_model):
        bayes = BayesianEstimator(short_model, verbose=False)
        band = bayes.prior_predictive_band(n_samples=10, seed=0)
        assert band.n_samples == 10
        assert np.all(band.lower <= band.upper)

    def test_trace_roundtrip(self, short_model, fake_trace, tmp_path):
        bayes = BayesianEstimator(short_model, verbose=False)
        bayes.trace = fake_trace
        path = str(tmp_path / 'trace.nc')
        bayes.save_trace(path)

        loaded = BayesianEstimator.load_trace(path)
        assert np.allclose(loaded.posterior['k1'].values, fake_trace.posterior['k1'].values)


@pytest.mark.skipif(not PYMC_AVAILABLE, reason="PyMC not installed")
@pytest.mark.slow
class TestMCMC:
    """Short MCMC runs (slow)."""

    @pytest.fixture
    def quick_config(self):
        return BayesianConfig(n_chains=2, n_draws=20, n_tune=20, cores=1,
                              progressbar=False, random_seed=1)

    def test_slice_sampling(self, short_model, quick_config):
        bayes = BayesianEstimator(short_model, quick_config, verbose=False)
        trace = bayes.estimate_parameters()

        for name in short_model.variable_names:
            assert trace.posterior[name].shape == (2, 20)
        assert bayes.convergence is not None
        assert np.all(trace.posterior['h'].values >= 1.0)

    def test_prior_predictive_sampling(self, short_model, quick_config):
        bayes = BayesianEstimator(short_model, quick_config, verbose=False)
        prior = bayes.sample_prior_predictive(n_samples=10)
        assert 'k1' in prior.prior
        assert prior.prior_predictive['Y_obs'].shape[-1] == short_model.times.size
