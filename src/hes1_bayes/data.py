"""
Observation utilities for Hes1 Bayes.

Synthetic observations are generated by simulating the model at a known θ
and adding Gaussian measurement noise to one projection of the state.

CSV format:
    time,m,p1,p2,protein_total,observed
    0.0,1.0,1.0,1.0,2.0,2.41
    1000.0,0.42,2.87,1.35,4.22,3.95
    ...

The noise-free columns are kept for validation; only ``observed`` is used
for inference.
"""
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .core import NOMINAL_THETA, PROJECTIONS, SimulationConfig, simulate

SYNTHETIC_NOISE_SIGMA = 0.8     # Measurement noise of the synthetic data set
PREDICTIVE_NOISE_SIGMA = 1.5    # Fixed-σ predictive demo scale (see DESIGN.md)

REQUIRED_COLUMNS = ('time', 'observed')


def generate_synthetic_data(theta: Sequence[float] = NOMINAL_THETA,
                            config: Optional[SimulationConfig] = None,
                            sigma: float = SYNTHETIC_NOISE_SIGMA,
                            observable: str = 'protein_total',
                            rng: Optional[np.random.Generator] = None,
                            seed: Optional[int] = None,
                            verbose: bool = False) -> pd.DataFrame:
    """Simulate θ and add N(0, σ²) noise to the chosen observable.

    Args:
        theta: (k1, ν, P0, h) ground-truth parameters
        config: SimulationConfig (defaults if None)
        sigma: Measurement noise standard deviation
        observable: Projection that is "measured"
        rng / seed: Explicit randomness source

    Returns:
        DataFrame with time, noise-free projections and the noisy 'observed' column
    """
    if sigma < 0:
        raise ValueError(f"Noise scale must be non-negative, got {sigma}")
    if observable not in PROJECTIONS:
        raise ValueError(f"Unknown observable: {observable}. "
                         f"Available: {list(PROJECTIONS.keys())}")
    if rng is None:
        rng = np.random.default_rng(seed)

    traj = simulate(theta, config)
    df = pd.DataFrame(traj.to_dict())
    df['observed'] = df[observable] + rng.normal(0.0, sigma, size=len(df))
    df.attrs['observable'] = observable
    df.attrs['sigma'] = sigma

    if verbose:
        print(f"[Data] Generated {len(df)} synthetic observations of '{observable}' (σ = {sigma})")
    return df


def save_observations(df: pd.DataFrame, filepath: str) -> Path:
    """Write observations to CSV."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(filepath, index=False)
    print(f"[Data] Saved {len(df)} observations to {filepath}")
    return filepath


def load_observations(filepath: str,
                      time_col: str = 'time',
                      value_col: str = 'observed',
                      delimiter: str = ',') -> pd.DataFrame:
    """Load observations from CSV.

    Raises:
        FileNotFoundError: file does not exist
        ValueError: required columns missing, NaNs, or non-increasing time
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Observation file not found: {filepath}")

    df = pd.read_csv(filepath, sep=delimiter)
    for col in (time_col, value_col):
        if col not in df.columns:
            raise ValueError(f"Column '{col}' not found in {filepath.name}")

    df = df.rename(columns={time_col: 'time', value_col: 'observed'})

    if df[['time', 'observed']].isna().any().any():
        raise ValueError(f"Missing values in {filepath.name}")
    if not np.all(np.diff(df['time'].values) > 0):
        raise ValueError(f"Time column in {filepath.name} must be strictly increasing")

    print(f"[Data] Loaded {len(df)} observations")
    print(f"  Time range: {df['time'].iloc[0]:.1f} - {df['time'].iloc[-1]:.1f} s")
    return df


def observations_for_config(df: pd.DataFrame,
                            config: SimulationConfig) -> Tuple[np.ndarray, np.ndarray]:
    """Check that observations lie on the simulation grid and return (times, values)."""
    times = config.times
    obs_times = df['time'].values.astype(float)
    if obs_times.shape != times.shape or not np.allclose(obs_times, times):
        raise ValueError(f"Observation times do not match the simulation grid "
                         f"({obs_times.size} vs {times.size} points)")
    return times, df['observed'].values.astype(float)
