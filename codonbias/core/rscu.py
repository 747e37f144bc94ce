"""Relative synonymous codon usage (RSCU).

RSCU is the observed count of a codon divided by the count expected if all
codons of its synonymous family were used equally (Sharp & Li 1987).
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


def _gene_weights(
    weight: float | Mapping[str, float] | pd.Series,
    index: pd.Index,
) -> pd.Series:
    """Per-gene weights aligned to a count matrix index."""
    if np.isscalar(weight):
        return pd.Series(float(weight), index=index)
    weight = pd.Series(weight, dtype=np.float64)
    missing = index.difference(weight.index)
    if len(missing) > 0:
        raise ValueError(f"No weight given for {len(missing)} genes, e.g. {missing[0]!r}")
    return weight.reindex(index)


def est_rscu(
    counts: pd.DataFrame | Mapping[str, str],
    weight: float | Mapping[str, float] | pd.Series = 1.0,
    pseudo_cnt: float = 0.0,
    codon_table: pd.DataFrame | None = None,
    level: str = "subfam",
) -> pd.DataFrame:
    """Estimate RSCU from codon counts pooled over a set of genes.

    Args:
        counts: Codon count matrix from count_codons(), or sequences.
            Restrict it to a reference subset (e.g. highly expressed genes)
            to obtain CAI reference weights.
        weight: Scalar or {gene: weight} multiplying each gene's counts
            before pooling (e.g. expression levels).
        pseudo_cnt: Added to every pooled codon count.
        codon_table: Table from get_codon_table(); standard code if None.
        level: Synonymous grouping, "subfam" or "amino_acid".

    Returns:
        DataFrame, one row per sense codon, with columns codon, aa_code,
        amino_acid, subfam, cts (pooled count), prop (fraction within the
        family), rscu, w_cai (rscu / max rscu of the family).
        Families with zero pooled usage get NaN prop, rscu and w_cai.
    """
    counts = as_count_matrix(counts)
    if codon_table is None:
        codon_table = get_codon_table()
    check_level(level)

    gene_w = _gene_weights(weight, counts.index)
    pooled = counts.mul(gene_w, axis=0).sum(axis=0)

    rscu = (
        sense_codons(codon_table)[["codon", "aa_code", "amino_acid", "subfam"]]
        .reset_index(drop=True)
    )
    rscu["cts"] = pooled.reindex(rscu["codon"]).to_numpy(dtype=np.float64) + pseudo_cnt

    grouped = rscu.groupby(level, sort=False)["cts"]
    fam_total = grouped.transform("sum")
    fam_size = grouped.transform("count")

    defined = fam_total > 0
    rscu["prop"] = (rscu["cts"] / fam_total).where(defined)
    rscu["rscu"] = rscu["prop"] * fam_size
    fam_max = rscu.groupby(level, sort=False)["rscu"].transform("max")
    rscu["w_cai"] = rscu["rscu"] / fam_max

    undefined = rscu.loc[~defined, level].unique()
    if len(undefined) > 0:
        logger.warning(
            "RSCU undefined for %d unused families: %s",
            len(undefined), ", ".join(undefined),
        )
        warnings.warn(
            f"RSCU undefined for unused families: {', '.join(undefined)}",
            UndefinedRatio,
            stacklevel=2,
        )

    logger.info(
        "RSCU estimated from %d genes (%d codons pooled)",
        len(counts), int(counts.to_numpy().sum()),
    )
    return rscu
