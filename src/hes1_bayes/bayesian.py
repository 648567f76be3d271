"""
Hes1 Bayes — Bayesian Inference Framework
=========================================
Posterior estimation of the Hes1 kinetic parameters θ = (k1, ν, P0, h) and
the observation noise σ via MCMC.

Mathematical Framework:
    Bayes' Theorem: P(θ, σ | D) ∝ P(D | θ, σ) × P(θ) × P(σ)

    P(D | θ, σ) = Π_t  Normal(D_t | g(x(t; θ)), σ)

    x(t; θ) = Hes1 ODE solution, g = observed projection (e.g. p1 + p2)

The model is kept as an explicit data structure (Hes1Model): a list of
PriorSpec entries plus a likelihood reference. It can be evaluated directly
in NumPy (log_prior / log_likelihood / log_posterior) or compiled into a
PyMC model by BayesianEstimator.

ODE backends:
    'scipy' — PyTensor Op around core.simulate (domain-guarded LSODA).
              No gradients: Slice / Metropolis / DEMetropolisZ samplers.
    'pymc'  — pymc.ode.DifferentialEquation with forward sensitivities.
              Differentiable: NUTS.

Usage:
    from hes1_bayes.bayesian import Hes1Model, BayesianEstimator, BayesianConfig
    from hes1_bayes.data import generate_synthetic_data

    data = generate_synthetic_data(seed=1)
    model = Hes1Model(observed=data['observed'].values)
    bayes = BayesianEstimator(model, BayesianConfig(n_chains=4, n_draws=1000))

    trace = bayes.estimate_parameters()
    summary = bayes.summarize_posterior(trace)
    band = bayes.posterior_predictive_band(trace, n_samples=200, seed=0)

License: MIT
"""

import numpy as np
import pandas as pd
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
import warnings

from scipy import stats

try:
    import pymc as pm
    import arviz as az
    import pytensor.tensor as pt
    from pytensor.graph.op import Op
    PYMC_AVAILABLE = True
except ImportError:
    PYMC_AVAILABLE = False
    pm = None
    az = None
    pt = None
    warnings.warn("[WARNING] PyMC not installed. Install with: pip install 'hes1-bayes[bayesian]'")

from .core import (
    EPSILON, PARAMETER_NAMES, SimulationConfig, ParameterDomainError,
    resolve_projection, simulate,
)
from .uncertainty import (
    CredibleBand, credible_interval_band, make_noisy_trajectory_fn,
    make_trajectory_fn,
)


NOISE_NAME = 'sigma'


# ═══════════════════════════════════════════════════════════════
# Priors
# ═══════════════════════════════════════════════════════════════

@dataclass
class PriorSpec:
    """Specification for a single parameter prior distribution."""
    name: str
    distribution: str  # 'normal', 'lognormal', 'uniform', 'halfnormal', 'gamma'
    params: Dict       # Distribution parameters (e.g., {'mu': 7.0, 'sigma': 1.5})
    bounds: Optional[Tuple[float, float]] = None  # Hard bounds (truncation)

    def to_scipy(self):
        """Frozen scipy.stats distribution, before truncation."""
        p = self.params
        if self.distribution == 'normal':
            return stats.norm(loc=p['mu'], scale=p['sigma'])
        elif self.distribution == 'lognormal':
            return stats.lognorm(s=p['sigma'], scale=np.exp(p['mu']))
        elif self.distribution == 'uniform':
            return stats.uniform(loc=p['lower'], scale=p['upper'] - p['lower'])
        elif self.distribution == 'halfnormal':
            return stats.halfnorm(scale=p['sigma'])
        elif self.distribution == 'gamma':
            return stats.gamma(a=p['alpha'], scale=1.0 / p['beta'])
        raise ValueError(f"Unknown distribution: {self.distribution}")

    def _mass(self, dist) -> float:
        lower, upper = self.bounds
        return float(dist.cdf(upper) - dist.cdf(lower))

    def logpdf(self, x: float) -> float:
        dist = self.to_scipy()
        if self.bounds is None:
            return float(dist.logpdf(x))
        lower, upper = self.bounds
        if x < lower or x > upper:
            return -np.inf
        return float(dist.logpdf(x) - np.log(self._mass(dist)))

    def sample(self, rng: np.random.Generator, size: int = 1) -> np.ndarray:
        """Draw from the (truncated) prior by inverse-CDF sampling."""
        dist = self.to_scipy()
        if self.bounds is None:
            return np.asarray(dist.rvs(size=size, random_state=rng), dtype=float)
        lower, upper = self.bounds
        u = rng.uniform(dist.cdf(lower), dist.cdf(upper), size=size)
        return np.clip(dist.ppf(u), lower, upper)

    def to_pymc(self):
        """Create the PyMC random variable (must be called inside a model context)."""
        p = self.params
        if self.distribution == 'normal':
            if self.bounds:
                lower, upper = self.bounds
                return pm.TruncatedNormal(self.name, mu=p['mu'], sigma=p['sigma'],
                                          lower=lower, upper=upper)
            return pm.Normal(self.name, mu=p['mu'], sigma=p['sigma'])

        if self.distribution == 'uniform':
            return pm.Uniform(self.name, lower=p['lower'], upper=p['upper'])

        if self.distribution == 'lognormal':
            dist_cls, kwargs = pm.LogNormal, {'mu': p['mu'], 'sigma': p['sigma']}
        elif self.distribution == 'halfnormal':
            dist_cls, kwargs = pm.HalfNormal, {'sigma': p['sigma']}
        elif self.distribution == 'gamma':
            dist_cls, kwargs = pm.Gamma, {'alpha': p['alpha'], 'beta': p['beta']}
        else:
            raise ValueError(f"Unknown distribution: {self.distribution}")

        if self.bounds:
            lower, upper = self.bounds
            return pm.Truncated(self.name, dist_cls.dist(**kwargs), lower=lower, upper=upper)
        return dist_cls(self.name, **kwargs)


def get_default_priors() -> List[PriorSpec]:
    """Default priors for θ and σ.

    Log-normal priors centred on the nominal oscillatory parameter set keep
    rates positive; the Hill coefficient is truncated to a physically
    plausible cooperativity range.
    """
    return [
        PriorSpec(
            name='k1',
            distribution='lognormal',
            params={'mu': np.log(1.66e-4), 'sigma': 0.3},
        ),
        PriorSpec(
            name='nu',
            distribution='lognormal',
            params={'mu': np.log(3.33e-3), 'sigma': 0.3},
        ),
        PriorSpec(
            name='P0',
            distribution='lognormal',
            params={'mu': np.log(0.5), 'sigma': 0.3},
        ),
        PriorSpec(
            name='h',
            distribution='normal',
            params={'mu': 7.0, 'sigma': 1.5},
            bounds=(1.0, 20.0)
        ),
        PriorSpec(
            name=NOISE_NAME,
            distribution='halfnormal',
            params={'sigma': 1.0},
        ),
    ]


# ═══════════════════════════════════════════════════════════════
# Likelihoods
# ═══════════════════════════════════════════════════════════════

STUDENT_T_NU = 4.0


def gaussian_log_likelihood(observed: np.ndarray, predicted: np.ndarray,
                            sigma: float) -> float:
    return float(np.sum(stats.norm.logpdf(observed, loc=predicted, scale=sigma)))


def student_t_log_likelihood(observed: np.ndarray, predicted: np.ndarray,
                             sigma: float) -> float:
    """Heavy-tailed alternative, robust to outliers."""
    return float(np.sum(stats.t.logpdf(observed, df=STUDENT_T_NU, loc=predicted, scale=sigma)))


LIKELIHOODS: Dict[str, Callable[[np.ndarray, np.ndarray, float], float]] = {
    'normal': gaussian_log_likelihood,
    't': student_t_log_likelihood,
}


def _pymc_likelihood(kind: str, name: str, mu, sigma, observed):
    if kind == 'normal':
        return pm.Normal(name, mu=mu, sigma=sigma, observed=observed)
    elif kind == 't':
        return pm.StudentT(name, nu=STUDENT_T_NU, mu=mu, sigma=sigma, observed=observed)
    raise ValueError(f"Unknown likelihood: {kind}")


# ═══════════════════════════════════════════════════════════════
# Model specification
# ═══════════════════════════════════════════════════════════════

@dataclass
class Hes1Model:
    """Explicit Bayesian model: priors, likelihood and observed data.

    ``observed`` is sampled on ``sim_config.times``; ``observable`` names the
    projection of the state that was measured.
    """
    observed: np.ndarray
    priors: List[PriorSpec] = field(default_factory=get_default_priors)
    observable: str = 'protein_total'
    likelihood: str = 'normal'   # key of LIKELIHOODS
    sim_config: SimulationConfig = field(default_factory=SimulationConfig)

    def __post_init__(self):
        self.observed = np.asarray(self.observed, dtype=float)
        n_times = self.sim_config.times.size
        if self.observed.shape != (n_times,):
            raise ValueError(f"Observed data must have shape ({n_times},) to match the "
                             f"simulation grid, got {self.observed.shape}")
        if self.likelihood not in LIKELIHOODS:
            raise ValueError(f"Unknown likelihood: {self.likelihood}. "
                             f"Available: {list(LIKELIHOODS.keys())}")
        resolve_projection(self.observable)

        names = [p.name for p in self.priors]
        missing = [n for n in self.variable_names if n not in names]
        if missing:
            raise ValueError(f"No prior specified for: {missing}")

    @property
    def variable_names(self) -> List[str]:
        return list(PARAMETER_NAMES) + [NOISE_NAME]

    @property
    def times(self) -> np.ndarray:
        return self.sim_config.times

    def prior(self, name: str) -> PriorSpec:
        return next(p for p in self.priors if p.name == name)

    @property
    def ordered_priors(self) -> List[PriorSpec]:
        """Priors in sample-row order: k1, nu, P0, h, sigma."""
        return [self.prior(name) for name in self.variable_names]

    def log_prior(self, row: Sequence[float]) -> float:
        return float(sum(spec.logpdf(x) for spec, x in zip(self.ordered_priors, row)))

    def log_likelihood(self, row: Sequence[float]) -> float:
        """Log-likelihood of the observed data for a [k1, nu, P0, h, sigma] row.

        Raises:
            ParameterDomainError: θ outside the model domain
            IntegrationError: propagated from the simulator
        """
        row = np.asarray(row, dtype=float)
        sigma = row[4]
        if sigma <= 0:
            raise ParameterDomainError(f"Noise scale must be positive, got {sigma}")
        predicted = simulate(row[:4], self.sim_config).project(self.observable)
        return LIKELIHOODS[self.likelihood](self.observed, predicted, sigma)

    def log_posterior(self, row: Sequence[float]) -> float:
        """Unnormalised log posterior; -inf outside the prior support."""
        lp = self.log_prior(row)
        if not np.isfinite(lp):
            return -np.inf
        return lp + self.log_likelihood(row)

    def sample_prior(self, n_samples: int,
                     rng: Optional[np.random.Generator] = None,
                     seed: Optional[int] = None) -> np.ndarray:
        """[n_samples, 5] matrix of prior draws in row order."""
        if n_samples < 1:
            raise ValueError(f"n_samples must be >= 1, got {n_samples}")
        if rng is None:
            rng = np.random.default_rng(seed)
        return np.column_stack([spec.sample(rng, n_samples) for spec in self.ordered_priors])


# ═══════════════════════════════════════════════════════════════
# ODE backends
# ═══════════════════════════════════════════════════════════════

if PYMC_AVAILABLE:

    class Hes1SimulatorOp(Op):
        """PyTensor Op: θ vector → [T, 3] state matrix via core.simulate.

        Gradient-free; use with Slice, Metropolis or DEMetropolisZ.
        """
        itypes = [pt.dvector]
        otypes = [pt.dmatrix]

        def __init__(self, config: SimulationConfig):
            self.config = config

        def perform(self, node, inputs, outputs):
            theta, = inputs
            outputs[0][0] = simulate(theta, self.config).states


def _pymc_ode_states(theta, config: SimulationConfig):
    """Differentiable [T, 3] solution via pymc.ode.DifferentialEquation."""
    k_d = config.k_d

    def rhs(y, t, p):
        return [
            -k_d * y[0] + 1.0 / (1.0 + ((y[2] + EPSILON) / p[2]) ** p[3]),
            -k_d * y[1] + p[1] * y[0] - p[0] * y[1],
            -k_d * y[2] + p[0] * y[1],
        ]

    times = config.times
    ode = pm.ode.DifferentialEquation(
        func=rhs,
        times=times[1:],
        n_states=3,
        n_theta=4,
        t0=times[0],
    )
    y0 = [float(v) for v in config.y0]
    solution = ode(y0=y0, theta=list(theta))
    return pt.concatenate([pt.as_tensor_variable(np.asarray(y0))[None, :], solution], axis=0)


# ═══════════════════════════════════════════════════════════════
# Configuration
# ═══════════════════════════════════════════════════════════════

SAMPLERS = ('auto', 'NUTS', 'Metropolis', 'Slice', 'DEMetropolisZ')
ODE_BACKENDS = ('scipy', 'pymc')


@dataclass
class BayesianConfig:
    """Configuration for Bayesian MCMC inference."""
    n_chains: int = 4              # Number of MCMC chains
    n_draws: int = 1000            # Samples per chain (post-tuning)
    n_tune: int = 1000             # Tuning steps
    target_accept: float = 0.9     # Target acceptance rate (NUTS)
    sampler: str = 'auto'          # 'auto', 'NUTS', 'Metropolis', 'Slice', 'DEMetropolisZ'
    ode_backend: str = 'scipy'     # 'scipy' (domain-guarded, no gradients) or 'pymc'

    # Computational
    cores: int = 1                 # Parallel chains
    progressbar: bool = True       # Show progress bar
    random_seed: Optional[int] = 42

    # Diagnostics
    check_convergence: bool = True
    rhat_threshold: float = 1.01   # R-hat convergence threshold
    min_ess_ratio: float = 0.1     # ESS / total draws below this is flagged
    credible_interval: float = 0.95

    def __post_init__(self):
        if self.sampler not in SAMPLERS:
            raise ValueError(f"Unknown sampler: {self.sampler}. Available: {SAMPLERS}")
        if self.ode_backend not in ODE_BACKENDS:
            raise ValueError(f"Unknown ODE backend: {self.ode_backend}. Available: {ODE_BACKENDS}")
        if self.sampler == 'NUTS' and self.ode_backend == 'scipy':
            raise ValueError("NUTS needs gradients; use ode_backend='pymc' or a gradient-free sampler")

    @property
    def resolved_sampler(self) -> str:
        if self.sampler != 'auto':
            return self.sampler
        return 'NUTS' if self.ode_backend == 'pymc' else 'Slice'


# ═══════════════════════════════════════════════════════════════
# Bayesian Estimator — Main Class
# ═══════════════════════════════════════════════════════════════

class BayesianEstimator:
    """Bayesian parameter estimation via MCMC for the Hes1 oscillator.

    Wraps the full workflow around a Hes1Model:
    1. build_model()                — compile priors + ODE + likelihood in PyMC
    2. sample_prior_predictive()    — prior predictive check
    3. estimate_parameters()        — MCMC
    4. check_convergence()          — R-hat / ESS
    5. posterior_correlations()     — parameter correlation matrix
    6. posterior_predictive_band()  — credible ribbons for the observable
    """

    def __init__(self,
                 model: Hes1Model,
                 config: Optional[BayesianConfig] = None,
                 verbose: bool = True):
        """
        Args:
            model: Hes1Model with priors and observed data
            config: Bayesian MCMC configuration
            verbose: Print progress messages
        """
        if not PYMC_AVAILABLE:
            raise ImportError("PyMC required. Install with: pip install 'hes1-bayes[bayesian]'")

        self.hes1 = model
        self.config = config or BayesianConfig()
        self.verbose = verbose

        # Model and trace (populated later)
        self.model = None
        self.trace = None
        self.convergence = None

        self._log(f"Initialized with {len(self.hes1.priors)} priors, observable '{self.hes1.observable}'")
        self._log(f"Sampler: {self.config.resolved_sampler}, ODE backend: {self.config.ode_backend}, "
                  f"Chains: {self.config.n_chains}")

    def _log(self, message: str):
        if self.verbose:
            print(f"[Bayesian] {message}")

    # ── Model ──

    def build_model(self) -> 'pm.Model':
        """Build the PyMC model from the Hes1Model specification."""
        projection = resolve_projection(self.hes1.observable)

        with pm.Model() as model:
            params = [self.hes1.prior(name).to_pymc() for name in PARAMETER_NAMES]
            sigma = self.hes1.prior(NOISE_NAME).to_pymc()

            if self.config.ode_backend == 'scipy':
                theta = pt.cast(pt.stack(params), 'float64')
                states = Hes1SimulatorOp(self.hes1.sim_config)(theta)
            else:
                states = _pymc_ode_states(params, self.hes1.sim_config)

            _pymc_likelihood(self.hes1.likelihood, 'Y_obs', projection(states), sigma,
                             self.hes1.observed)

        self.model = model
        return model

    def _ensure_model(self) -> 'pm.Model':
        if self.model is None:
            self.build_model()
        return self.model

    def _step(self):
        sampler = self.config.resolved_sampler
        if sampler == 'NUTS':
            return pm.NUTS(target_accept=self.config.target_accept)
        elif sampler == 'Metropolis':
            return pm.Metropolis()
        elif sampler == 'Slice':
            return pm.Slice()
        elif sampler == 'DEMetropolisZ':
            return pm.DEMetropolisZ()
        raise ValueError(f"Unknown sampler: {sampler}")

    # ── Sampling ──

    def sample_prior_predictive(self, n_samples: int = 500) -> 'az.InferenceData':
        """Draw parameters and simulated observations from the prior."""
        model = self._ensure_model()
        self._log(f"Sampling prior predictive ({n_samples} draws)...")
        with model:
            return pm.sample_prior_predictive(n_samples, random_seed=self.config.random_seed)

    def estimate_parameters(self) -> 'az.InferenceData':
        """Perform Bayesian parameter estimation via MCMC.

        Returns:
            arviz.InferenceData with posterior samples and sampler statistics

        Raises:
            IntegrationError: propagated from the ODE solver
        """
        model = self._ensure_model()

        with model:
            self._log("Starting MCMC sampling...")
            self._log(f"  Chains: {self.config.n_chains}, Draws per chain: {self.config.n_draws}, "
                      f"Tuning steps: {self.config.n_tune}")

            self.trace = pm.sample(
                draws=self.config.n_draws,
                tune=self.config.n_tune,
                chains=self.config.n_chains,
                step=self._step(),
                cores=self.config.cores,
                progressbar=self.config.progressbar,
                return_inferencedata=True,
                random_seed=self.config.random_seed,
            )

        if self.config.check_convergence:
            self.convergence = self.check_convergence(self.trace)

        self._log("Sampling complete!")
        return self.trace

    def _resolve_trace(self, trace):
        if trace is None:
            trace = self.trace
        if trace is None:
            raise ValueError("No trace available. Run estimate_parameters() first.")
        return trace

    # ── Diagnostics ──

    def check_convergence(self, trace: Optional['az.InferenceData'] = None) -> Dict:
        """Check MCMC convergence using R-hat and effective sample size.

        Returns:
            Dict with 'rhat', 'ess' (per variable) and overall 'converged'
        """
        trace = self._resolve_trace(trace)
        names = self.hes1.variable_names
        n_chains = trace.posterior.sizes['chain']
        total_samples = n_chains * trace.posterior.sizes['draw']

        ess = az.ess(trace, var_names=names)
        ess_values = {v: float(ess[v].values) for v in names}

        rhat_values = {}
        if n_chains < 2:
            warnings.warn("R-hat needs at least two chains; skipping R-hat check")
        else:
            rhat = az.rhat(trace, var_names=names)
            rhat_values = {v: float(rhat[v].values) for v in names}

        self._log("Convergence Diagnostics:")
        failing = []
        for var in names:
            r = rhat_values.get(var)
            ess_ratio = ess_values[var] / total_samples
            rhat_ok = r is None or r < self.config.rhat_threshold
            ess_ok = ess_ratio >= self.config.min_ess_ratio
            r_text = f"{r:.4f}" if r is not None else "n/a"
            self._log(f"  {var}: R-hat={r_text} | ESS={ess_values[var]:.0f} "
                      f"({ess_ratio:.1%} of {total_samples})")
            if not (rhat_ok and ess_ok):
                failing.append(var)

        if failing:
            warnings.warn(f"Poor convergence for {failing} "
                          f"(R-hat >= {self.config.rhat_threshold} or "
                          f"ESS ratio < {self.config.min_ess_ratio})")

        return {
            'rhat': rhat_values,
            'ess': ess_values,
            'converged': not failing,
        }

    def summarize_posterior(self,
                            trace: Optional['az.InferenceData'] = None,
                            credible_interval: Optional[float] = None) -> Dict:
        """Generate summary statistics from posterior.

        Returns:
            Dict with mean, median, std, HDI bounds, r_hat, ess per variable
        """
        trace = self._resolve_trace(trace)
        credible_interval = credible_interval or self.config.credible_interval
        names = self.hes1.variable_names

        az_summary = az.summary(trace, var_names=names, hdi_prob=credible_interval)
        lower_col = f'hdi_{(1 - credible_interval) / 2:.1%}'
        upper_col = f'hdi_{(1 + credible_interval) / 2:.1%}'

        summary = {}
        for var_name in names:
            row = az_summary.loc[var_name]
            summary[var_name] = {
                'mean': float(row['mean']),
                'median': float(trace.posterior[var_name].median()),
                'std': float(row['sd']),
                'ci_lower': float(row[lower_col]),
                'ci_upper': float(row[upper_col]),
                'rhat': float(row['r_hat']) if 'r_hat' in az_summary.columns else None,
                'ess': float(row['ess_bulk']) if 'ess_bulk' in az_summary.columns else None,
            }

        return summary

    def posterior_correlations(self, trace: Optional['az.InferenceData'] = None) -> pd.DataFrame:
        """Pearson correlation matrix of the posterior draws."""
        trace = self._resolve_trace(trace)
        posterior = trace.posterior.stack(sample=('chain', 'draw'))
        frame = pd.DataFrame({v: posterior[v].values for v in self.hes1.variable_names})
        return frame.corr()

    def posterior_samples(self,
                          trace: Optional['az.InferenceData'] = None,
                          n_samples: Optional[int] = None,
                          rng: Optional[np.random.Generator] = None,
                          seed: Optional[int] = None) -> np.ndarray:
        """[S, 5] matrix of posterior rows (k1, nu, P0, h, sigma).

        A random subset of ``n_samples`` draws is taken without replacement
        when requested.
        """
        trace = self._resolve_trace(trace)
        posterior = trace.posterior.stack(sample=('chain', 'draw'))
        matrix = np.column_stack([posterior[v].values for v in self.hes1.variable_names])

        if n_samples is None:
            return matrix
        if n_samples > matrix.shape[0]:
            raise ValueError(f"n_samples ({n_samples}) exceeds available draws ({matrix.shape[0]})")
        if rng is None:
            rng = np.random.default_rng(seed)
        idx = np.sort(rng.choice(matrix.shape[0], size=n_samples, replace=False))
        return matrix[idx]

    # ── Predictive bands ──

    def _band(self, samples: np.ndarray, noise: bool, sigma: Optional[float],
              rng: np.random.Generator, projection, n_jobs: int) -> CredibleBand:
        trajectory_fn = make_trajectory_fn(self.hes1.sim_config)
        if noise:
            trajectory_fn = make_noisy_trajectory_fn(trajectory_fn, sigma=sigma, rng=rng)
        return credible_interval_band(
            samples,
            trajectory_fn,
            projection=projection or self.hes1.observable,
            n_jobs=n_jobs,
        )

    def prior_predictive_band(self,
                              n_samples: int = 200,
                              noise: bool = False,
                              sigma: Optional[float] = None,
                              projection=None,
                              rng: Optional[np.random.Generator] = None,
                              seed: Optional[int] = None,
                              n_jobs: int = 1) -> CredibleBand:
        """Credible band of trajectories simulated from prior draws."""
        if rng is None:
            rng = np.random.default_rng(seed)
        samples = self.hes1.sample_prior(n_samples, rng=rng)
        self._log(f"Prior predictive band from {n_samples} draws")
        return self._band(samples, noise, sigma, rng, projection, n_jobs)

    def posterior_predictive_band(self,
                                  trace: Optional['az.InferenceData'] = None,
                                  n_samples: int = 200,
                                  noise: bool = True,
                                  sigma: Optional[float] = None,
                                  projection=None,
                                  rng: Optional[np.random.Generator] = None,
                                  seed: Optional[int] = None,
                                  n_jobs: int = 1) -> CredibleBand:
        """Posterior band of the observable.

        With ``noise=True`` the observable of each simulated trajectory is
        perturbed with N(0, σ²), σ taken from the posterior draw unless ``sigma`` is given
        (posterior predictive check). With ``noise=False`` the band reflects
        parameter uncertainty only.
        """
        if rng is None:
            rng = np.random.default_rng(seed)
        samples = self.posterior_samples(trace, n_samples=n_samples, rng=rng)
        self._log(f"Posterior {'predictive ' if noise else ''}band from {n_samples} draws")
        return self._band(samples, noise, sigma, rng, projection, n_jobs)

    # ── I/O ──

    def save_trace(self, filepath: str):
        """Save MCMC trace to NetCDF."""
        if self.trace is None:
            raise ValueError("No trace to save")

        az.to_netcdf(self.trace, filepath)
        self._log(f"Trace saved to {filepath}")

    @staticmethod
    def load_trace(filepath: str) -> 'az.InferenceData':
        """Load saved MCMC trace."""
        if not PYMC_AVAILABLE:
            raise ImportError("ArviZ required. Install with: pip install 'hes1-bayes[bayesian]'")
        trace = az.from_netcdf(filepath)
        print(f"[Bayesian] Trace loaded from {filepath}")
        return trace
