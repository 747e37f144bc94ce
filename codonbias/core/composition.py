"""Nucleotide composition: GC, GC3s and GC4d content."""

from collections.abc import Mapping

import numpy as np
import pandas as pd

from codonbias.core.codons import (
    as_count_matrix,
    codon_families,
    get_codon_table,
    normalize_sequence,
)


def _compute_gc(sequence: str) -> float:
    """GC fraction over unambiguous bases; NaN if there are none."""
    seq = normalize_sequence(sequence)
    n_acgt = sum(seq.count(b) for b in "ACGT")
    if n_acgt == 0:
        return float("nan")
    return (seq.count("G") + seq.count("C")) / n_acgt


def get_gc(sequences: Mapping[str, str]) -> pd.Series:
    """GC content of each sequence.

    Args:
        sequences: {seq_id: nucleotide sequence}.

    Returns:
        Series of GC fractions (0.0–1.0) indexed by sequence id.
    """
    return pd.Series(
        {seq_id: _compute_gc(seq) for seq_id, seq in sequences.items()},
        dtype=np.float64,
        name="gc",
    )


def _third_position_gc(counts: pd.DataFrame, codons: list[str], name: str) -> pd.Series:
    gc_codons = [c for c in codons if c[2] in ("G", "C")]
    total = counts[codons].sum(axis=1)
    gc = counts[gc_codons].sum(axis=1)
    return (gc / total).where(total > 0).astype(np.float64).rename(name)


def get_gc3s(
    counts: pd.DataFrame | Mapping[str, str],
    codon_table: pd.DataFrame | None = None,
) -> pd.Series:
    """GC content at synonymous third codon positions.

    Codons of amino acids with a single codon (Met, Trp in the standard
    code) and stop codons are left out.

    Returns:
        Series indexed by gene id; NaN where no synonymous codon is used.
    """
    counts = as_count_matrix(counts)
    if codon_table is None:
        codon_table = get_codon_table()
    codons = [
        c
        for fam in codon_families(codon_table, level="amino_acid").values()
        if len(fam) > 1
        for c in fam
    ]
    return _third_position_gc(counts, codons, "gc3s")


def get_gc4d(
    counts: pd.DataFrame | Mapping[str, str],
    codon_table: pd.DataFrame | None = None,
) -> pd.Series:
    """GC content at third positions of four-fold degenerate subfamilies.

    Returns:
        Series indexed by gene id; NaN where no four-fold codon is used.
    """
    counts = as_count_matrix(counts)
    if codon_table is None:
        codon_table = get_codon_table()
    codons = [
        c
        for fam in codon_families(codon_table, level="subfam").values()
        if len(fam) == 4
        for c in fam
    ]
    return _third_position_gc(counts, codons, "gc4d")
