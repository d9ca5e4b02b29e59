"""
Lattice visualization for nanohmm.

Heatmaps of the three profile-state layers of a filled Viterbi lattice
(events down, kmers across) with the best alignment overlaid.

Functions:
    - lattice_layers: Split a lattice into per-state (rows, kmers) arrays
    - plot_lattice: Three-panel heatmap with the alignment path
"""

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from typing import Dict, List, Optional, Tuple

from ..aligners import AlignmentResult
from ..dp_core import HMMInputData
from ..lattice import Lattice, PS_EVENT_SPLIT, PS_KMER_SKIP, PS_MATCH, PS_NUM_STATES
from .colors import NT_COLOR, STATE_COLORS, HEATMAP_COLORMAPS

STATE_PANELS = [
    (PS_MATCH, "M", "Match"),
    (PS_EVENT_SPLIT, "E", "Event split"),
    (PS_KMER_SKIP, "K", "Kmer skip"),
]


def lattice_layers(lattice: Lattice) -> Dict[str, np.ndarray]:
    """
    Per-state views of a lattice without the terminal blocks.

    Returns
    -------
    dict
        'M', 'E', 'K' -> (n_rows, num_kmers) float arrays.
    """
    arr = np.asarray(lattice.as_array(), dtype=float)
    num_blocks = lattice.n_cols // PS_NUM_STATES
    return {
        name: arr[:, PS_NUM_STATES + state:PS_NUM_STATES * (num_blocks - 1):PS_NUM_STATES]
        for state, name, _ in STATE_PANELS
    }


def plot_lattice(
    result: AlignmentResult,
    sequence: str,
    data: HMMInputData,
    nt_color_map: Optional[Dict[str, str]] = None,
    figsize: Tuple[int, int] = (14, 6),
    marker_size: int = 12,
    marker_width: int = 2,
    marker_alpha: float = 0.9,
    show_bg_path: bool = True,
    marker_bg_color: str = "black",
    colormap: str = HEATMAP_COLORMAPS['sequential'],
    annotate: bool = False,
    tick_fontsize: float = 9.0,
) -> plt.Figure:
    """
    Plot the Match, EventSplit and KmerSkip layers as heatmaps with the
    Viterbi alignment overlaid.

    Parameters
    ----------
    result : AlignmentResult
        Result from profile_hmm_align with return_data=True.
    sequence : str
        Candidate sequence the events were aligned to.
    data : HMMInputData
        Event window of the alignment (maps event indices to rows).
    annotate : bool, default False
        Write cell values into the heatmap.

    Returns
    -------
    fig : matplotlib.figure.Figure
        The figure object with three panels (M, E, K).
    """
    if result.data is None:
        raise ValueError(
            "plot_lattice requires result.data (LatticeData). "
            "Run profile_hmm_align with return_data=True."
        )
    if nt_color_map is None:
        nt_color_map = NT_COLOR

    layers = lattice_layers(result.data.lattice)
    k = data.pore_model.k
    kmers = [sequence[i:i + k] for i in range(layers["M"].shape[1])]

    finite_vals = np.concatenate([m[np.isfinite(m)] for m in layers.values()])
    vmin, vmax = (finite_vals.min(), finite_vals.max()) if finite_vals.size else (-1.0, 0.0)

    cmap = sns.color_palette(colormap, as_cmap=True)
    cmap.set_bad(color="grey")

    yticklabels = ["start"] + [str(data.event_index(i)) for i in range(data.num_events)]

    fig, axes = plt.subplots(1, 3, figsize=figsize, sharex=True, sharey=True)

    for ax, (_, name, title) in zip(axes, STATE_PANELS):
        mat_plot = layers[name].copy()
        mat_plot[~np.isfinite(mat_plot)] = np.nan
        sns.heatmap(
            mat_plot,
            ax=ax,
            cmap=cmap,
            vmin=vmin,
            vmax=vmax,
            cbar=False,
            annot=annotate,
            fmt=".1f",
            xticklabels=kmers,
            yticklabels=yticklabels,
        )
        ax.set_title(title)
        ax.set_xlabel("kmer")
        ax.tick_params(top=True, bottom=False, labeltop=True, labelbottom=False)
        ax.xaxis.set_label_position("top")

        for tick, kmer in zip(ax.get_xticklabels(), kmers):
            tick.set_rotation(90)
            tick.set_color(nt_color_map.get(kmer[:1], "black"))
            tick.set_fontweight("bold")
            tick.set_fontsize(tick_fontsize)

    axes[0].set_ylabel("event")
    for tick in axes[0].get_yticklabels():
        tick.set_rotation(0)
        tick.set_fontsize(tick_fontsize)

    state_to_ax = {name: ax for ax, (_, name, _) in zip(axes, STATE_PANELS)}

    path_xy: List[Tuple[float, float, str]] = []
    for s in result.states:
        row = (s.event_idx - data.event_start_idx) * data.event_stride + 1
        path_xy.append((s.kmer_idx + 0.5, row + 0.5, s.state))

    for x, y, state in path_xy:
        if show_bg_path:
            for ax in axes:
                ax.plot(
                    x, y,
                    marker="s",
                    markersize=marker_size,
                    markeredgecolor=marker_bg_color,
                    markerfacecolor="none",
                    alpha=marker_alpha * marker_alpha,
                    markeredgewidth=marker_width,
                )
        state_to_ax[state].plot(
            x, y,
            marker="s",
            markersize=marker_size,
            markeredgecolor=STATE_COLORS[state],
            markerfacecolor="none",
            alpha=marker_alpha,
            markeredgewidth=marker_width,
        )

    fig.tight_layout()
    return fig
