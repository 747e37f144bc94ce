"""Optimal codon estimation and the fraction of optimal codons (Fop).

A codon is called optimal when its usage rises as codon bias rises across
genes, i.e. its usage fraction within the synonymous family regresses
negatively on ENC, and the association survives FDR correction.
"""

import logging
import warnings
from collections.abc import Iterable, Mapping

import numpy as np
import pandas as pd

from codonbias.core.codons import (
    as_count_matrix,
    codon_families,
    get_codon_table,
    normalize_sequence,
    sense_codons,
)
from codonbias.core.enc import get_enc
from codonbias.core.statistics import (
    MIN_OBSERVATIONS,
    benjamini_hochberg,
    usage_regression,
)
from codonbias.errors import InsufficientData, UndefinedRatio

logger = logging.getLogger(__name__)

MIN_GENES = MIN_OBSERVATIONS

OPTIMAL_COLUMNS = [
    "codon", "aa_code", "amino_acid", "subfam",
    "coef", "pvalue", "qvalue", "optimal",
]


def est_optimal_codons(
    counts: pd.DataFrame | Mapping[str, str],
    codon_table: pd.DataFrame | None = None,
    level: str = "subfam",
    method: str = "ols",
    alpha: float = 0.01,
    enc: pd.Series | Mapping[str, float] | None = None,
    min_genes: int = MIN_GENES,
) -> pd.DataFrame:
    """Identify optimal codons by regressing codon usage on ENC.

    For every family with two or more codons, each codon's per-gene usage
    (its count over the family count, genes not using the family skipped)
    is regressed on gene ENC. P-values are BH-corrected across all tested
    codons.

    Args:
        counts: Codon count matrix from count_codons(), or sequences.
        codon_table: Table from get_codon_table(); standard code if None.
        level: Synonymous grouping, "subfam" or "amino_acid".
        method: "ols" (usage fraction, least squares) or "binomial"
            (codon counts, binomial GLM).
        alpha: q-value cutoff for calling a codon optimal.
        enc: Precomputed {gene: ENC}; computed with get_enc() if None.
            Genes with NaN ENC are left out.
        min_genes: Minimum number of genes using a family; at least
            MIN_GENES, the fewest a regression p-value needs.

    Returns:
        DataFrame with columns codon, aa_code, amino_acid, subfam, coef,
        pvalue, qvalue, optimal. ``optimal`` is True where coef < 0 and
        qvalue < alpha.

    Raises:
        InsufficientData: If a family is used by fewer than *min_genes*
            genes, or ENC does not vary across the genes using it.
        ValueError: If *min_genes* is below MIN_GENES.
    """
    if min_genes < MIN_GENES:
        raise ValueError(f"min_genes must be at least {MIN_GENES}, got {min_genes}")
    counts = as_count_matrix(counts)
    if codon_table is None:
        codon_table = get_codon_table()
    if enc is None:
        enc = get_enc(counts, codon_table, level=level)
    else:
        enc = pd.Series(enc, dtype=np.float64).reindex(counts.index)

    usable = enc.notna().to_numpy()
    if not usable.all():
        logger.info("Leaving out %d genes with undefined ENC", int((~usable).sum()))
    x_enc = enc.to_numpy()[usable]
    counts = counts.loc[usable]

    info = sense_codons(codon_table).set_index("codon")
    rows = []
    for family, codons in codon_families(codon_table, level).items():
        if len(codons) < 2:
            continue
        x = counts[codons].to_numpy(dtype=np.float64)
        totals = x.sum(axis=1)
        used = totals > 0
        n_used = int(used.sum())
        if n_used < min_genes:
            raise InsufficientData(
                f"Family {family} is used by {n_used} genes; "
                f"at least {min_genes} are needed"
            )
        for j, codon in enumerate(codons):
            try:
                coef, p_value = usage_regression(
                    x[used, j], totals[used], x_enc[used], method=method,
                )
            except InsufficientData as exc:
                raise InsufficientData(f"Family {family}: {exc}") from exc
            rows.append({
                "codon": codon,
                "aa_code": info.at[codon, "aa_code"],
                "amino_acid": info.at[codon, "amino_acid"],
                "subfam": info.at[codon, "subfam"],
                "coef": coef,
                "pvalue": p_value,
            })

    result = pd.DataFrame(rows, columns=OPTIMAL_COLUMNS[:6])
    result["qvalue"] = benjamini_hochberg(result["pvalue"].to_numpy())
    result["optimal"] = (result["coef"] < 0) & (result["qvalue"] < alpha)

    logger.info(
        "Optimal codons: %d of %d tested codons (%s, q < %g, %d genes)",
        int(result["optimal"].sum()), len(result), method, alpha, len(counts),
    )
    return result


def _optimal_set(optimal_codons: Iterable[str] | pd.DataFrame) -> set[str]:
    if isinstance(optimal_codons, pd.DataFrame):
        return set(optimal_codons.loc[optimal_codons["optimal"], "codon"])
    return {normalize_sequence(c) for c in optimal_codons}


def get_fop(
    counts: pd.DataFrame | Mapping[str, str],
    optimal_codons: Iterable[str] | pd.DataFrame | None = None,
    codon_table: pd.DataFrame | None = None,
    level: str = "subfam",
    **kwargs,
) -> pd.Series:
    """Fraction of optimal codons per gene (Ikemura 1981).

    Args:
        counts: Codon count matrix from count_codons(), or sequences.
        optimal_codons: Codons considered optimal, or the DataFrame
            returned by est_optimal_codons(). Estimated from *counts* when
            None, with *kwargs* passed to est_optimal_codons().
        codon_table: Table from get_codon_table(); standard code if None.
        level: Synonymous grouping, "subfam" or "amino_acid".

    Returns:
        Series of Fop values indexed by gene id: optimal codon count over
        the count of all codons in families that have an optimal codon.
        NaN for genes using none of those families.
    """
    counts = as_count_matrix(counts)
    if codon_table is None:
        codon_table = get_codon_table()
    if optimal_codons is None:
        optimal_codons = est_optimal_codons(counts, codon_table, level=level, **kwargs)
    optimal = _optimal_set(optimal_codons)

    family_codons: list[str] = []
    for codons in codon_families(codon_table, level).values():
        if len(codons) > 1 and optimal.intersection(codons):
            family_codons.extend(codons)
    ignored = optimal.difference(family_codons)
    if ignored:
        logger.warning(
            "Ignoring codons outside multi-codon families: %s",
            ", ".join(sorted(ignored)),
        )
    if not family_codons:
        logger.warning("No optimal codons given; Fop is undefined")

    opt_codons = [c for c in family_codons if c in optimal]
    denom = counts[family_codons].sum(axis=1)
    numer = counts[opt_codons].sum(axis=1)
    undefined = counts.index[(denom == 0).to_numpy()]
    if len(undefined):
        logger.warning("Fop undefined for %d genes without scored codons", len(undefined))
        warnings.warn(
            f"Fop undefined for {len(undefined)} genes without scored codons",
            UndefinedRatio,
            stacklevel=2,
        )
    fop = (numer / denom).where(denom > 0)
    return fop.astype(np.float64).rename("fop")
