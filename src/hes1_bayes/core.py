"""
Hes1 Bayes — Core Oscillator Model
==================================
Deterministic model of the Hes1 transcription-translation feedback loop:

    dm/dt  = -k_d·m  + 1 / (1 + ((p2 + ε) / P0)^h)
    dp1/dt = -k_d·p1 + ν·m - k1·p1
    dp2/dt = -k_d·p2 + k1·p1

State:
    m   Hes1 mRNA
    p1  cytoplasmic Hes1 protein
    p2  nuclear Hes1 protein (represses its own transcription)

Parameters θ = (k1, ν, P0, h):
    k1  nuclear transport rate (1/s)
    ν   translation rate (1/s)
    P0  repression threshold (concentration)
    h   Hill coefficient

The degradation rate k_d is shared by all species and held fixed.

Numerical integration is delegated to SciPy's ODE solvers. The integrator
wrapper here only adds an out-of-domain policy: a step that leaves the
non-negative orthant is rejected and retried with half the step size.

Usage:
    from hes1_bayes.core import simulate, NOMINAL_THETA

    traj = simulate(NOMINAL_THETA)
    total_protein = traj.project('protein_total')

License: MIT
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

from scipy.integrate import BDF, DOP853, LSODA, RK23, RK45, Radau
from scipy.optimize import brentq


# ═══════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════

KD = 5.0e-4          # Shared degradation rate (1/s), not estimated
EPSILON = 1e-3       # Offset on p2 keeping the Hill term finite at p2 = 0

PARAMETER_NAMES = ('k1', 'nu', 'P0', 'h')
STATE_NAMES = ('m', 'p1', 'p2')

# Reference parameter set, oscillatory for y0 = (1, 1, 1)
NOMINAL_THETA = (1.66e-4, 3.33e-3, 0.5, 7.0)


class ParameterDomainError(ValueError):
    """Raised when θ lies outside the model's parameter domain."""


class IntegrationError(RuntimeError):
    """Raised when the ODE solver fails or cannot stay inside the state domain."""


# ═══════════════════════════════════════════════════════════════
# Parameters & Configuration
# ═══════════════════════════════════════════════════════════════

@dataclass
class Hes1Params:
    """Kinetic parameters of the Hes1 model (the estimated vector θ)."""
    k1: float = 1.66e-4    # Cytoplasm → nucleus transport (1/s)
    nu: float = 3.33e-3    # Translation rate (1/s)
    P0: float = 0.5        # Repression threshold
    h: float = 7.0         # Hill coefficient (cooperativity)

    def to_vector(self) -> np.ndarray:
        return np.array([self.k1, self.nu, self.P0, self.h], dtype=float)

    @classmethod
    def from_vector(cls, vec: Sequence[float]) -> 'Hes1Params':
        validate_params(vec)
        return cls(*[float(v) for v in vec[:4]])


@dataclass
class SimulationConfig:
    """Settings shared by every simulation of a workflow."""
    y0: Tuple[float, float, float] = (1.0, 1.0, 1.0)
    t_span: Tuple[float, float] = (0.0, 30000.0)   # seconds
    dt: float = 1000.0                             # Output sampling step (s)
    k_d: float = KD

    # Solver
    method: str = 'LSODA'
    rtol: float = 1e-6
    atol: float = 1e-8
    max_rejections: int = 50       # Consecutive out-of-domain rejections allowed

    @property
    def times(self) -> np.ndarray:
        """Output time grid implied by t_span and dt."""
        return output_times(self.t_span, self.dt)


def validate_params(theta: Sequence[float]) -> np.ndarray:
    """Check θ = (k1, ν, P0, h) before any simulation.

    Extra trailing entries (e.g. a noise scale σ) are ignored.

    Raises:
        ParameterDomainError: wrong length, non-finite or non-positive entry
    """
    vec = np.asarray(theta, dtype=float).ravel()
    if vec.size < 4:
        raise ParameterDomainError(
            f"Expected 4 parameters {PARAMETER_NAMES}, got {vec.size}")
    vec = vec[:4]
    for name, value in zip(PARAMETER_NAMES, vec):
        if not np.isfinite(value) or value <= 0:
            raise ParameterDomainError(f"Parameter {name} must be positive and finite, got {value}")
    return vec


# ═══════════════════════════════════════════════════════════════
# Right-hand side
# ═══════════════════════════════════════════════════════════════

def hes1_rhs(t: float, y: Sequence[float], theta: Sequence[float],
             k_d: float = KD) -> np.ndarray:
    """Instantaneous derivatives of (m, p1, p2).

    The system is autonomous; ``t`` is accepted for solver compatibility.
    The caller guarantees P0 > 0.
    """
    m, p1, p2 = y[0], y[1], y[2]
    k1, nu, P0, h = theta[0], theta[1], theta[2], theta[3]

    dm = -k_d * m + 1.0 / (1.0 + ((p2 + EPSILON) / P0) ** h)
    dp1 = -k_d * p1 + nu * m - k1 * p1
    dp2 = -k_d * p2 + k1 * p1

    return np.array([dm, dp1, dp2], dtype=float)


def steady_state(theta: Sequence[float], k_d: float = KD) -> np.ndarray:
    """Fixed point of the Hes1 system for a given θ.

    At equilibrium p1 = ν·m / (k_d + k1) and p2 = k1·p1 / k_d, so the
    problem reduces to a monotone 1-D root in m on [0, 1/k_d].
    """
    k1, nu, P0, h = validate_params(theta)

    def proteins(m):
        p1 = nu * m / (k_d + k1)
        return p1, k1 * p1 / k_d

    def residual(m):
        return hes1_rhs(0.0, (m, *proteins(m)), (k1, nu, P0, h), k_d)[0]

    m_star = brentq(residual, 0.0, 1.0 / k_d, xtol=1e-14, rtol=1e-12)
    p1_star, p2_star = proteins(m_star)
    return np.array([m_star, p1_star, p2_star])


# ═══════════════════════════════════════════════════════════════
# Integration
# ═══════════════════════════════════════════════════════════════

SOLVERS = {
    'RK23': RK23,
    'RK45': RK45,
    'DOP853': DOP853,
    'Radau': Radau,
    'BDF': BDF,
    'LSODA': LSODA,
}


def nonnegative(y: np.ndarray) -> bool:
    """Default state-domain predicate: every component >= 0."""
    return bool(np.all(y >= 0.0))


def output_times(t_span: Tuple[float, float], dt: float) -> np.ndarray:
    t0, t1 = float(t_span[0]), float(t_span[1])
    if t1 <= t0:
        raise ValueError(f"t_span must be increasing, got {t_span}")
    if dt <= 0:
        raise ValueError(f"Output step must be positive, got {dt}")
    n_out = int(np.floor((t1 - t0) / dt + 1e-9)) + 1
    return t0 + dt * np.arange(n_out)


def integrate(fun: Callable[[float, np.ndarray], np.ndarray],
              y0: Sequence[float],
              t_span: Tuple[float, float],
              dt: float,
              method: str = 'LSODA',
              rtol: float = 1e-6,
              atol: float = 1e-8,
              in_domain: Callable[[np.ndarray], bool] = nonnegative,
              max_rejections: int = 50,
              min_step: float = 1e-10) -> Tuple[np.ndarray, np.ndarray]:
    """Integrate ``fun(t, y)`` and sample the solution every ``dt``.

    Step-size control, error estimation and stiffness handling belong to the
    SciPy solver. After each accepted step the new state is tested with
    ``in_domain``; an out-of-domain step is discarded and the solver is
    restarted from the last valid state with half the rejected step.

    Args:
        fun: Right-hand side f(t, y)
        y0: Initial state (must satisfy ``in_domain``)
        t_span: (t0, t1)
        dt: Output sampling interval
        method: Key of ``SOLVERS``
        in_domain: Predicate on a state vector
        max_rejections: Consecutive rejections tolerated before giving up
        min_step: Smallest retry step before giving up

    Returns:
        times: [T] output grid
        states: [T, n] solution sampled on the grid

    Raises:
        IntegrationError: solver failure or unrecoverable domain violation
    """
    if method not in SOLVERS:
        raise ValueError(f"Unknown solver: {method}. Available: {list(SOLVERS)}")

    times = output_times(t_span, dt)
    t0, t1 = float(t_span[0]), float(t_span[1])
    y0 = np.asarray(y0, dtype=float)
    if not in_domain(y0):
        raise ValueError(f"Initial state {y0} is outside the state domain")

    states = np.empty((times.size, y0.size))
    states[0] = y0
    next_idx = 1

    solver_cls = SOLVERS[method]
    solver = solver_cls(fun, t0, y0, t1, rtol=rtol, atol=atol)
    rejections = 0

    while solver.status == 'running':
        t_prev, y_prev = solver.t, solver.y.copy()
        message = solver.step()

        if solver.status == 'failed':
            raise IntegrationError(f"{method} failed at t = {t_prev:.6g}: {message}")

        if not in_domain(solver.y):
            rejections += 1
            retry_step = 0.5 * (solver.t - t_prev)
            if rejections > max_rejections or retry_step < min_step:
                raise IntegrationError(
                    f"State left the domain at t = {t_prev:.6g} "
                    f"after {rejections} step reductions")
            solver = solver_cls(fun, t_prev, y_prev, t1, rtol=rtol, atol=atol,
                                first_step=retry_step)
            continue

        rejections = 0
        if next_idx < times.size and times[next_idx] <= solver.t:
            interpolant = solver.dense_output()
            while next_idx < times.size and times[next_idx] <= solver.t:
                states[next_idx] = interpolant(times[next_idx])
                next_idx += 1

    # Grid points lost to floating-point rounding at t1
    states[next_idx:] = solver.y
    return times, states


# ═══════════════════════════════════════════════════════════════
# Trajectories
# ═══════════════════════════════════════════════════════════════

PROJECTIONS: Dict[str, Callable[[np.ndarray], np.ndarray]] = {
    'm': lambda s: s[:, 0],
    'p1': lambda s: s[:, 1],
    'p2': lambda s: s[:, 2],
    'protein_total': lambda s: s[:, 1] + s[:, 2],
}

Projection = Union[str, Callable[[np.ndarray], np.ndarray]]


def resolve_projection(projection: Projection) -> Callable[[np.ndarray], np.ndarray]:
    if callable(projection):
        return projection
    if projection not in PROJECTIONS:
        raise ValueError(f"Unknown projection: {projection}. "
                         f"Available: {list(PROJECTIONS.keys())}")
    return PROJECTIONS[projection]


@dataclass
class Trajectory:
    """Solution of one simulation sampled on a fixed grid.

    ``noise`` is an optional measurement-noise series added to every scalar
    projection; the states themselves stay noise-free.
    """
    times: np.ndarray                 # [T]
    states: np.ndarray                # [T, 3] columns m, p1, p2
    theta: Optional[np.ndarray] = field(default=None, repr=False)
    noise: Optional[np.ndarray] = field(default=None, repr=False)   # [T]

    @property
    def m(self) -> np.ndarray:
        return self.states[:, 0]

    @property
    def p1(self) -> np.ndarray:
        return self.states[:, 1]

    @property
    def p2(self) -> np.ndarray:
        return self.states[:, 2]

    def project(self, projection: Projection) -> np.ndarray:
        """Scalar time series: a name from ``PROJECTIONS`` or a callable on states."""
        values = np.asarray(resolve_projection(projection)(self.states), dtype=float)
        if self.noise is not None:
            values = values + self.noise
        return values

    def to_dict(self) -> Dict[str, np.ndarray]:
        out = {'time': self.times}
        out.update({name: self.project(name) for name in PROJECTIONS})
        return out


def simulate(theta: Union[Sequence[float], Hes1Params],
             config: Optional[SimulationConfig] = None) -> Trajectory:
    """Simulate the Hes1 model for one parameter vector.

    Args:
        theta: (k1, ν, P0, h) or Hes1Params; trailing entries are ignored
        config: SimulationConfig (defaults if None)

    Returns:
        Trajectory on ``config.times``

    Raises:
        ParameterDomainError: θ outside the domain (before integrating)
        IntegrationError: propagated from the integrator
    """
    config = config or SimulationConfig()
    if isinstance(theta, Hes1Params):
        theta = theta.to_vector()
    vec = validate_params(theta)

    times, states = integrate(
        lambda t, y: hes1_rhs(t, y, vec, config.k_d),
        config.y0,
        config.t_span,
        config.dt,
        method=config.method,
        rtol=config.rtol,
        atol=config.atol,
        max_rejections=config.max_rejections,
    )
    return Trajectory(times=times, states=states, theta=vec)


# ═══════════════════════════════════════════════════════════════
# Oscillation analysis
# ═══════════════════════════════════════════════════════════════

def find_local_extrema(values: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    """Indices of strict interior local maxima and minima."""
    v = np.asarray(values, dtype=float)
    if v.size < 3:
        return np.array([], dtype=int), np.array([], dtype=int)
    left, mid, right = v[:-2], v[1:-1], v[2:]
    maxima = np.where((mid > left) & (mid > right))[0] + 1
    minima = np.where((mid < left) & (mid < right))[0] + 1
    return maxima, minima


def is_oscillatory(values: Sequence[float]) -> bool:
    """True when two local maxima enclose a local minimum."""
    maxima, minima = find_local_extrema(values)
    if maxima.size < 2:
        return False
    return bool(np.any((minima > maxima[0]) & (minima < maxima[-1])))


def demo():
    """Print a short summary of the nominal trajectory."""
    print("[Hes1] Simulating nominal parameter set...")
    traj = simulate(NOMINAL_THETA)
    total = traj.project('protein_total')
    maxima, minima = find_local_extrema(total)
    print(f"  θ = {dict(zip(PARAMETER_NAMES, NOMINAL_THETA))}")
    print(f"  Time points: {traj.times.size} ({traj.times[0]:.0f} - {traj.times[-1]:.0f} s)")
    print(f"  Protein maxima at t = {traj.times[maxima]}")
    print(f"  Protein minima at t = {traj.times[minima]}")
    print(f"  Steady state (m, p1, p2): {steady_state(NOMINAL_THETA)}")
    print(f"  Oscillatory: {is_oscillatory(total)}")


if __name__ == '__main__':
    demo()
