#!/usr/bin/env python3
"""
simulate_and_align.py — Simulate a read for a random sequence and align it

Draws events for a random sequence under a pore model, scores the read
with the Forward fill, aligns it with Viterbi and writes the lattice
heatmap with the alignment overlaid.

Output (default):
  figures/lattice.pdf
"""

import argparse
import logging
import sys
from pathlib import Path

# Use Agg backend by default for headless generation
import matplotlib
matplotlib.use('Agg')

import numpy as np
import matplotlib.pyplot as plt

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from nanohmm.aligners import profile_hmm_align, profile_hmm_score
from nanohmm.dp_core import HMMInputData
from nanohmm.log import setup_logging
from nanohmm.parameters import TransitionParameters, load_parameters
from nanohmm.plot import plot_lattice
from nanohmm.pore_model import PoreModel, SquiggleRead
from nanohmm.validation import simulate_events


# =============================================================================
# CONFIGURATION
# =============================================================================

# 1-mer levels used when no model file is given (A, C, G, T)
DEMO_LEVEL_MEAN = [60.0, 70.0, 62.0, 85.0]
DEMO_LEVEL_STDV = [2.0, 2.5, 2.0, 3.0]

FIGURE = {
    'dpi': 300,
    'format': 'pdf',
}


# =============================================================================
# CLI
# =============================================================================

def main():
    parser = argparse.ArgumentParser(description='Simulate a nanopore read and align it with the profile HMM')
    parser.add_argument('--length', '-n', type=int, default=12,
                        help='Length of the random sequence (default: 12)')
    parser.add_argument('--seed', type=int, default=0,
                        help='Random seed (default: 0)')
    parser.add_argument('--model', '-m', type=str, default=None,
                        help='Pore model TSV (default: built-in 1-mer model)')
    parser.add_argument('--params', '-p', type=str, default=None,
                        help='Transition parameters JSON (default: built-in defaults)')
    parser.add_argument('--global', dest='global_alignment', action='store_true',
                        help='Require every event to be aligned')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help='Output file path (default: figures/lattice.pdf)')
    parser.add_argument('--trace', action='store_true',
                        help='Log every lattice cell as it is filled')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Log at DEBUG level')
    args = parser.parse_args()

    logger = setup_logging(logging.DEBUG if args.verbose else logging.INFO, trace_fill=args.trace)

    if args.model:
        pore_model = PoreModel.from_file(args.model)
    else:
        pore_model = PoreModel(k=1, level_mean=DEMO_LEVEL_MEAN, level_stdv=DEMO_LEVEL_STDV)
    parameters = load_parameters(args.params) if args.params else TransitionParameters()

    rng = np.random.default_rng(args.seed)
    sequence = "".join(rng.choice(list("ACGT"), size=args.length))
    events = simulate_events(sequence, pore_model, rng)
    logger.info("Simulated %d events for %s", len(events), sequence)

    read = SquiggleRead(events=[events], pore_model=[pore_model], parameters=[parameters])
    data = HMMInputData(read, strand=0, event_start_idx=0,
                        event_stop_idx=len(events) - 1, event_stride=1)

    forward = profile_hmm_score(sequence, data, global_alignment=args.global_alignment)
    result = profile_hmm_align(sequence, data, global_alignment=args.global_alignment,
                               return_data=True)
    logger.info("Forward %.3f  Viterbi %.3f", forward, result.score)
    for s in result.states:
        logger.info("  event %3d  kmer %3d  %s  %.3f", s.event_idx, s.kmer_idx, s.state, s.l_fm)

    output_path = Path(args.output) if args.output else Path(__file__).parent.parent / 'figures' / 'lattice.pdf'
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig = plot_lattice(result, sequence, data)
    fig.savefig(output_path, dpi=FIGURE['dpi'], format=output_path.suffix.lstrip('.') or FIGURE['format'],
                bbox_inches='tight')
    plt.close(fig)
    logger.info("Saved lattice figure to: %s", output_path)


if __name__ == '__main__':
    main()
