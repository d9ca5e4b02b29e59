"""
kmers.py — kmer ranking over the DNA alphabet

A kmer is a length-k window of the candidate sequence.  Its rank is the
base-4 number spelled by the window (A=0, C=1, G=2, T=3, most significant
base first), which indexes the per-kmer tables of a PoreModel.

When a strand is read in the opposite orientation to the candidate
sequence, the model is indexed by the reverse complement of the window;
rc_kmer_rank computes that rank directly without building the string.
"""
from __future__ import annotations

from typing import List

from .default import ALPHABET_TO_INDEX, COMPLEMENT

ALPHABET_SIZE = len(ALPHABET_TO_INDEX)


def _base_rank(base: str) -> int:
    try:
        return ALPHABET_TO_INDEX[base]
    except KeyError:
        raise ValueError(f"Invalid base {base!r}: expected one of A, C, G, T") from None


def kmer_rank(kmer: str) -> int:
    """Rank of a kmer read in its own orientation."""
    rank = 0
    for base in kmer:
        rank = rank * ALPHABET_SIZE + _base_rank(base)
    return rank


def rc_kmer_rank(kmer: str) -> int:
    """Rank of the reverse complement of a kmer."""
    rank = 0
    for base in reversed(kmer):
        rank = rank * ALPHABET_SIZE + (ALPHABET_SIZE - 1 - _base_rank(base))
    return rank


def reverse_complement(sequence: str) -> str:
    """Reverse complement of a DNA string."""
    try:
        return "".join(COMPLEMENT[b] for b in reversed(sequence))
    except KeyError as exc:
        raise ValueError(f"Invalid base {exc.args[0]!r}: expected one of A, C, G, T") from None


def num_kmers_in(sequence: str, k: int) -> int:
    """Number of length-k windows in sequence (0 if it is shorter than k)."""
    return max(len(sequence) - k + 1, 0)


def sequence_ranks(sequence: str, k: int, rc: bool = False) -> List[int]:
    """
    Ranks of every length-k window of sequence, in sequence order.

    Parameters
    ----------
    sequence : str
        Candidate nucleotide sequence.
    k : int
        Kmer length of the pore model.
    rc : bool, default False
        If True, rank the reverse complement of each window.
    """
    rank = rc_kmer_rank if rc else kmer_rank
    return [rank(sequence[i:i + k]) for i in range(num_kmers_in(sequence, k))]
