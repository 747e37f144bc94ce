"""Codon Adaptation Index (CAI) — Sharp & Li 1987.

Relative adaptiveness weights come from the RSCU of a reference gene set
(typically highly expressed genes); per-gene CAI is the geometric mean of
the weights of the codons a gene uses.
"""

import logging
import warnings
from collections.abc import Mapping

import numpy as np
import pandas as pd

from codonbias.core.codons import (
    as_count_matrix,
    check_level,
    get_codon_table,
    sense_codons,
)
from codonbias.errors import UndefinedRatio

logger = logging.getLogger(__name__)


def select_reference_genes(
    expression: Mapping[str, float] | pd.Series,
    top_fraction: float = 0.05,
    min_genes: int = 10,
) -> list[str]:
    """Pick the most highly expressed genes as a CAI reference set.

    Args:
        expression: {gene: expression level} (e.g. TPM).
        top_fraction: Fraction of genes to keep (default 5%).
        min_genes: Lower bound on the reference set size.

    Returns:
        Gene ids ordered by decreasing expression.
    """
    expr = pd.Series(expression, dtype=np.float64).dropna()
    n_ref = min(len(expr), max(min_genes, int(len(expr) * top_fraction)))
    ref_genes = expr.sort_values(ascending=False, kind="stable").index[:n_ref].tolist()
    logger.info(
        "CAI reference set: %d genes (top %.1f%% by expression)",
        n_ref, top_fraction * 100,
    )
    return ref_genes


def cai_weights(
    rscu: pd.DataFrame | Mapping[str, float] | pd.Series,
    codon_table: pd.DataFrame | None = None,
    level: str = "subfam",
) -> pd.Series:
    """Relative adaptiveness of each codon: RSCU over the family maximum.

    Args:
        rscu: Table from est_rscu(), or {codon: rscu}.
        codon_table: Table from get_codon_table(); standard code if None.
        level: Synonymous grouping, "subfam" or "amino_acid".

    Returns:
        Series {codon: w} for codons of multi-codon families. Codons whose
        family has undefined or all-zero RSCU are NaN.
    """
    check_level(level)
    if codon_table is None:
        codon_table = get_codon_table()

    if isinstance(rscu, pd.DataFrame):
        values = rscu.set_index("codon")["rscu"]
    else:
        values = pd.Series(rscu, dtype=np.float64)

    table = sense_codons(codon_table)[["codon", level]].copy()
    table["rscu"] = values.reindex(table["codon"]).to_numpy(dtype=np.float64)
    grouped = table.groupby(level, sort=False)
    table = table[grouped["codon"].transform("count") > 1]
    fam_max = table.groupby(level, sort=False)["rscu"].transform("max")
    all_zero = sorted(set(table.loc[fam_max == 0, level]))
    if all_zero:
        logger.warning(
            "CAI weights undefined for families with zero RSCU: %s",
            ", ".join(all_zero),
        )
        warnings.warn(
            f"CAI weights undefined for families with zero RSCU: {', '.join(all_zero)}",
            UndefinedRatio,
            stacklevel=2,
        )
    w = (table["rscu"] / fam_max).where(fam_max > 0)
    return pd.Series(w.to_numpy(), index=table["codon"].to_numpy(), name="w")


def weighted_geometric_mean(
    counts: pd.DataFrame,
    weights: pd.Series,
    name: str,
) -> pd.Series:
    """Geometric mean of codon weights over each gene's codons.

    Codons are counted with multiplicity; codons with NaN or no weight
    are not scored. A gene using any zero-weight codon scores 0.

    Returns:
        Series indexed by gene id; NaN for genes with no scored codon.
    """
    weights = weights.dropna()
    x = counts[weights.index].to_numpy(dtype=np.float64)
    w = weights.to_numpy(dtype=np.float64)

    zero = w <= 0
    log_w = np.log(np.where(zero, 1.0, w))
    n_scored = x.sum(axis=1)
    uses_zero = (x[:, zero] > 0).any(axis=1)

    with np.errstate(divide="ignore", invalid="ignore"):
        score = np.exp((x @ log_w) / n_scored)
    score = np.where(uses_zero, 0.0, score)
    score = np.where(n_scored > 0, score, np.nan)

    n_zero = int(uses_zero.sum())
    if n_zero:
        logger.warning("%s is 0 for %d genes using zero-weight codons", name, n_zero)
    return pd.Series(score, index=counts.index, name=name)


def get_cai(
    counts: pd.DataFrame | Mapping[str, str],
    rscu: pd.DataFrame | Mapping[str, float] | pd.Series,
    codon_table: pd.DataFrame | None = None,
    level: str = "subfam",
) -> pd.Series:
    """Compute per-gene CAI.

    Args:
        counts: Codon count matrix from count_codons(), or sequences.
        rscu: Reference RSCU from est_rscu() (or {codon: rscu}).
        codon_table: Table from get_codon_table(); standard code if None.
        level: Synonymous grouping, "subfam" or "amino_acid".

    Returns:
        Series of CAI values in [0, 1] indexed by gene id. 0 where a gene
        uses a codon with zero reference RSCU; NaN where a gene has no
        codon from a scored family.
    """
    counts = as_count_matrix(counts)
    weights = cai_weights(rscu, codon_table=codon_table, level=level)
    return weighted_geometric_mean(counts, weights, name="cai")
