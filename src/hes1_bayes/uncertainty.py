"""
Hes1 Bayes — Credible-Interval Aggregation
==========================================
Turns a set of parameter samples into a per-time-point uncertainty band.

For S samples the aggregator runs S simulations, stacks the chosen scalar
projection into a [T, S] matrix and reduces across samples:

    mean   = average over samples
    lower  = 2.5th percentile   (linear interpolation between order statistics)
    upper  = 97.5th percentile

Two modes share the same aggregator and differ only in the trajectory
function passed in:
    - make_trajectory_fn        → credible band of the model trajectory
    - make_noisy_trajectory_fn  → posterior predictive band (adds N(0, σ²)
                                  noise to the projected observable)

With a single sample the band is degenerate: lower == upper == mean.

License: MIT
"""

import numpy as np
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from joblib import Parallel, delayed
from tqdm import tqdm

from .core import (
    Projection, SimulationConfig, Trajectory, resolve_projection, simulate,
)

TrajectoryFn = Callable[[np.ndarray], Trajectory]


@dataclass
class CredibleBand:
    """Mean and percentile bounds of a projection across sampled trajectories."""
    times: np.ndarray          # [T]
    mean: np.ndarray           # [T]
    lower: np.ndarray          # [T]
    upper: np.ndarray          # [T]
    lower_pct: float = 2.5
    upper_pct: float = 97.5
    n_samples: int = 0

    @property
    def width(self) -> np.ndarray:
        return self.upper - self.lower

    def contains(self, values: Sequence[float]) -> np.ndarray:
        """Boolean mask of values falling inside [lower, upper]."""
        v = np.asarray(values, dtype=float)
        return (v >= self.lower) & (v <= self.upper)

    def coverage(self, values: Sequence[float]) -> float:
        """Fraction of time points where ``values`` lie inside the band."""
        return float(np.mean(self.contains(values)))

    def to_dict(self) -> dict:
        return {
            'time': self.times,
            'mean': self.mean,
            f'p{self.lower_pct:g}': self.lower,
            f'p{self.upper_pct:g}': self.upper,
        }


# ═══════════════════════════════════════════════════════════════
# Trajectory functions
# ═══════════════════════════════════════════════════════════════

def make_trajectory_fn(config: Optional[SimulationConfig] = None) -> TrajectoryFn:
    """Deterministic simulator of one parameter row (σ column ignored)."""
    config = config or SimulationConfig()

    def trajectory_fn(row: np.ndarray) -> Trajectory:
        return simulate(row, config)

    return trajectory_fn


class NoisyTrajectoryFn:
    """Posterior predictive variant of a trajectory function.

    Each call simulates the row and attaches i.i.d. N(0, σ²) measurement noise
    to the trajectory, one draw per time point. The noise enters every scalar
    projection once, so the observable (e.g. p1 + p2) carries variance σ²,
    matching the likelihood. The scale is ``sigma`` when given, otherwise the
    fifth entry of the parameter row.

    Randomness comes only from ``rng``. The aggregator draws the noise in the
    calling process in sample order, so bands are identical for any ``n_jobs``.
    """

    def __init__(self, trajectory_fn: TrajectoryFn,
                 sigma: Optional[float] = None,
                 rng: Optional[np.random.Generator] = None):
        if sigma is not None and sigma < 0:
            raise ValueError(f"Noise scale must be non-negative, got {sigma}")
        self.trajectory_fn = trajectory_fn
        self.sigma = sigma
        self.rng = rng if rng is not None else np.random.default_rng()

    def noise_scale(self, row: np.ndarray) -> float:
        if self.sigma is not None:
            return float(self.sigma)
        row = np.asarray(row, dtype=float)
        if row.size < 5:
            raise ValueError("Parameter row has no noise scale; pass sigma explicitly")
        scale = float(row[4])
        if scale < 0:
            raise ValueError(f"Noise scale must be non-negative, got {scale}")
        return scale

    def perturb(self, traj: Trajectory, scale: float) -> Trajectory:
        noise = self.rng.normal(0.0, scale, size=np.shape(traj.times))
        return Trajectory(times=traj.times, states=traj.states, theta=traj.theta, noise=noise)

    def __call__(self, row: np.ndarray) -> Trajectory:
        scale = self.noise_scale(row)
        return self.perturb(self.trajectory_fn(row), scale)


def make_noisy_trajectory_fn(trajectory_fn: TrajectoryFn,
                             sigma: Optional[float] = None,
                             rng: Optional[np.random.Generator] = None,
                             seed: Optional[int] = None) -> NoisyTrajectoryFn:
    """Wrap ``trajectory_fn`` with observation noise (see NoisyTrajectoryFn).

    Reusing the same seed reproduces the same noisy trajectories, provided the
    samples are given in the same order.
    """
    if rng is None:
        rng = np.random.default_rng(seed)
    return NoisyTrajectoryFn(trajectory_fn, sigma=sigma, rng=rng)


# ═══════════════════════════════════════════════════════════════
# Aggregator
# ═══════════════════════════════════════════════════════════════

def _as_sample_matrix(samples) -> np.ndarray:
    matrix = np.asarray(samples, dtype=float)
    if matrix.ndim == 1:
        matrix = matrix[np.newaxis, :]
    if matrix.ndim != 2 or matrix.size == 0:
        raise ValueError(f"Samples must be a non-empty [S, k] array, got shape {matrix.shape}")
    return matrix


def simulate_samples(samples,
                     trajectory_fn: TrajectoryFn,
                     n_jobs: int = 1,
                     progressbar: bool = False) -> list:
    """Run ``trajectory_fn`` once per sample row, preserving sample order.

    Simulations may run in joblib workers; observation noise of a
    NoisyTrajectoryFn is always drawn here, row by row, from its generator.
    """
    matrix = _as_sample_matrix(samples)
    noisy = trajectory_fn if isinstance(trajectory_fn, NoisyTrajectoryFn) else None
    if noisy is not None:
        scales = [noisy.noise_scale(row) for row in matrix]
        trajectory_fn = noisy.trajectory_fn

    if n_jobs == 1:
        rows = tqdm(matrix, desc="Simulating", disable=not progressbar)
        trajectories = [trajectory_fn(row) for row in rows]
    else:
        trajectories = Parallel(n_jobs=n_jobs)(delayed(trajectory_fn)(row) for row in matrix)

    if noisy is not None:
        trajectories = [noisy.perturb(traj, scale) for traj, scale in zip(trajectories, scales)]
    return trajectories


def stack_projection(trajectories: Sequence[Trajectory],
                     projection: Projection) -> tuple:
    """Collect a [T, S] matrix of one projection across trajectories.

    Raises:
        ValueError: no trajectories, or trajectories on different time grids
    """
    if len(trajectories) == 0:
        raise ValueError("No trajectories to aggregate")

    resolve_projection(projection)
    times = np.asarray(trajectories[0].times, dtype=float)
    columns = []
    for i, traj in enumerate(trajectories):
        t = np.asarray(traj.times, dtype=float)
        if t.shape != times.shape or not np.allclose(t, times):
            raise ValueError(f"Trajectory {i} has a different time grid "
                             f"({t.size} points vs {times.size})")
        column = traj.project(projection)
        if column.shape != times.shape:
            raise ValueError(f"Projection of trajectory {i} has shape {column.shape}, "
                             f"expected {times.shape}")
        columns.append(column)

    return times, np.column_stack(columns)


def band_from_matrix(times: np.ndarray, values: np.ndarray,
                     lower_pct: float = 2.5,
                     upper_pct: float = 97.5) -> CredibleBand:
    """Reduce a [T, S] matrix to mean and percentile bounds along samples."""
    if not 0.0 <= lower_pct < upper_pct <= 100.0:
        raise ValueError(f"Invalid percentiles: {lower_pct}, {upper_pct}")
    lower, upper = np.percentile(values, [lower_pct, upper_pct], axis=1, method='linear')
    return CredibleBand(
        times=times,
        mean=values.mean(axis=1),
        lower=lower,
        upper=upper,
        lower_pct=lower_pct,
        upper_pct=upper_pct,
        n_samples=values.shape[1],
    )


def credible_interval_band(samples,
                           trajectory_fn: TrajectoryFn,
                           projection: Projection = 'protein_total',
                           lower_pct: float = 2.5,
                           upper_pct: float = 97.5,
                           n_jobs: int = 1,
                           progressbar: bool = False) -> CredibleBand:
    """Per-time-point mean and credible interval across sampled trajectories.

    Args:
        samples: [S, k] parameter rows (θ, optionally followed by σ)
        trajectory_fn: row -> Trajectory (deterministic or noisy)
        projection: name in core.PROJECTIONS or callable on [T, 3] states
        lower_pct, upper_pct: percentile bounds
        n_jobs: joblib workers for the per-sample simulations
        progressbar: show a tqdm bar (serial mode)

    Returns:
        CredibleBand; degenerate (zero width) when S == 1

    Raises:
        ValueError: empty samples or mismatched trajectory grids
        ParameterDomainError / IntegrationError: propagated from simulation
    """
    trajectories = simulate_samples(samples, trajectory_fn, n_jobs=n_jobs,
                                    progressbar=progressbar)
    times, values = stack_projection(trajectories, projection)
    return band_from_matrix(times, values, lower_pct, upper_pct)
