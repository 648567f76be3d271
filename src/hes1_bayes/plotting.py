"""
Plotting helpers for Hes1 Bayes.

Consumers only: credible ribbons, trajectories and ArviZ diagnostics.
"""
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from typing import Dict, List, Optional, Sequence

from .uncertainty import CredibleBand

sns.set_style('whitegrid')

VAR_LABELS = {
    'k1': 'Transport rate k1 (1/s)',
    'nu': 'Translation rate ν (1/s)',
    'P0': 'Repression threshold P0',
    'h': 'Hill coefficient h',
    'sigma': 'Noise σ',
}


def _save_or_show(fig, save_path: Optional[str], show: bool):
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
    if show:
        plt.show()


def plot_credible_band(band: CredibleBand,
                       observed: Optional[Sequence[float]] = None,
                       truth: Optional[Sequence[float]] = None,
                       ax=None,
                       label: str = 'Posterior',
                       color: str = 'tab:blue',
                       ylabel: str = 'Hes1 protein (p1 + p2)',
                       title: Optional[str] = None,
                       save_path: Optional[str] = None,
                       show: bool = False):
    """Mean line with a shaded percentile ribbon, optional data overlay."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(7, 4))
    else:
        fig = ax.figure

    ax.fill_between(band.times, band.lower, band.upper, color=color, alpha=0.25,
                    label=f'{label} {band.lower_pct:g}-{band.upper_pct:g}%')
    ax.plot(band.times, band.mean, color=color, lw=2, label=f'{label} mean')

    if truth is not None:
        ax.plot(band.times, truth, color='black', lw=1.5, ls='--', label='True trajectory')
    if observed is not None:
        ax.plot(band.times, observed, 'o', color='black', markersize=4, label='Observed')

    ax.set_xlabel('Time (s)')
    ax.set_ylabel(ylabel)
    if title:
        ax.set_title(title)
    ax.legend(fontsize=9)

    _save_or_show(fig, save_path, show)
    return ax


def plot_trajectories(trajectories: List, projection: str = 'protein_total',
                      ax=None, color: str = 'grey', alpha: float = 0.1,
                      save_path: Optional[str] = None, show: bool = False):
    """Overlay individual sampled trajectories (spaghetti plot)."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(7, 4))
    else:
        fig = ax.figure

    for traj in trajectories:
        ax.plot(traj.times, traj.project(projection), '-', color=color, alpha=alpha)
    ax.set_xlabel('Time (s)')
    ax.set_ylabel(projection)

    _save_or_show(fig, save_path, show)
    return ax


def plot_trace(trace, var_names: Optional[List[str]] = None,
               var_names_map: Optional[Dict[str, str]] = None,
               save_path: Optional[str] = None, show: bool = False):
    """ArviZ trace plot with readable titles."""
    import arviz as az

    var_names = var_names or list(VAR_LABELS.keys())
    var_names_map = var_names_map or VAR_LABELS
    axes = az.plot_trace(trace, var_names=var_names, compact=True,
                         figsize=(12, 2.2 * len(var_names)))
    for row, name in zip(axes, var_names):
        for ax in row:
            ax.set_title(var_names_map.get(name, name), fontsize=10)
    fig = np.asarray(axes).flat[0].figure
    fig.tight_layout()

    _save_or_show(fig, save_path, show)
    return axes


def plot_posterior_pairs(trace, var_names: Optional[List[str]] = None,
                         kind: str = 'kde', divergences: bool = False,
                         save_path: Optional[str] = None, show: bool = False):
    """Pairwise posterior scatter/KDE plot for correlation diagnostics."""
    import arviz as az

    var_names = var_names or list(VAR_LABELS.keys())
    axes = az.plot_pair(trace, var_names=var_names, kind=kind,
                        divergences=divergences, marginals=True,
                        figsize=(2.5 * len(var_names), 2.5 * len(var_names)))
    fig = np.asarray(axes).flat[0].figure

    _save_or_show(fig, save_path, show)
    return axes


def plot_correlation_matrix(corr, ax=None, save_path: Optional[str] = None,
                            show: bool = False):
    """Heatmap of a posterior correlation DataFrame."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(5, 4))
    else:
        fig = ax.figure
    sns.heatmap(corr, annot=True, fmt='.2f', cmap='coolwarm', vmin=-1, vmax=1,
                square=True, ax=ax)
    ax.set_title('Posterior correlations')

    _save_or_show(fig, save_path, show)
    return ax
