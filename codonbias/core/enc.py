"""Effective number of codons (ENC).

ENC ranges from the number of synonymous families (one codon used per
family, maximal bias) to the number of sense codons (uniform usage).

Two estimators of the per-family homozygosity F are available:

  "wright"  Wright 1990: F = (n * sum(p_i^2) - 1) / (n - 1), families
            with fewer than two observed codons are skipped, F averaged
            without weights within each degeneracy class.
  "sun"     Sun, Chen & Kwong 2013: pseudocount-corrected proportions
            p_i = (c_i + 1) / (n + k), F = sum(p_i^2), averaged with
            weights n within each degeneracy class.

ENC = N_1 + sum over degeneracy classes k of N_k / F_k, where N_k is the
number of k-codon families in the codon table.  Classes with no usable
family in a gene are left out of that gene's sum.
"""

import logging
from collections.abc import Mapping

import numpy as np
import pandas as pd

from codonbias.core.codons import as_count_matrix, codon_families, get_codon_table

logger = logging.getLogger(__name__)

METHODS = ("wright", "sun")


def _family_homozygosity(
    x: np.ndarray,
    k: int,
    method: str,
) -> tuple[np.ndarray, np.ndarray]:
    """Per-gene F for one family and the weight it carries in the class mean.

    Args:
        x: shape (n_genes, k) codon counts of the family.

    Returns:
        (F, weight) arrays of shape (n_genes,). weight is 0 where F is
        undefined.
    """
    n = x.sum(axis=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        if method == "wright":
            p = x / n[:, None]
            f = (n * (p**2).sum(axis=1) - 1.0) / (n - 1.0)
            weight = (n >= 2).astype(np.float64)
        else:
            p = (x + 1.0) / (n + k)[:, None]
            f = (p**2).sum(axis=1)
            weight = n.astype(np.float64)
    return np.where(weight > 0, f, 0.0), weight


def get_enc(
    counts: pd.DataFrame | Mapping[str, str],
    codon_table: pd.DataFrame | None = None,
    level: str = "subfam",
    method: str = "wright",
) -> pd.Series:
    """Compute the effective number of codons per gene.

    Args:
        counts: Codon count matrix from count_codons(), or sequences.
        codon_table: Table from get_codon_table(); standard code if None.
        level: Synonymous grouping, "subfam" or "amino_acid".
        method: "wright" or "sun".

    Returns:
        Series of ENC values indexed by gene id. NaN for genes with no
        usable multi-codon family.
    """
    if method not in METHODS:
        raise ValueError(f"method must be one of {METHODS}, got {method!r}")
    counts = as_count_matrix(counts)
    if codon_table is None:
        codon_table = get_codon_table()

    families = codon_families(codon_table, level)
    by_size: dict[int, list[list[str]]] = {}
    for codons in families.values():
        by_size.setdefault(len(codons), []).append(codons)

    n_genes = len(counts)
    enc = np.full(n_genes, float(len(by_size.get(1, []))))
    has_class = np.zeros(n_genes, dtype=bool)

    for k, fams in sorted(by_size.items()):
        if k == 1:
            continue
        f_sum = np.zeros(n_genes)
        w_sum = np.zeros(n_genes)
        for codons in fams:
            f, w = _family_homozygosity(counts[codons].to_numpy(dtype=np.float64), k, method)
            f_sum += f * w
            w_sum += w

        present = w_sum > 0
        with np.errstate(divide="ignore", invalid="ignore"):
            f_mean = np.where(present, f_sum / w_sum, 1.0)
        # Below 1/k the class would count more codons than it has.
        f_mean = np.maximum(f_mean, 1.0 / k)
        enc += np.where(present, len(fams) / f_mean, 0.0)
        has_class |= present
        logger.debug(
            "ENC %d-fold class: %d families, defined in %d/%d genes",
            k, len(fams), int(present.sum()), n_genes,
        )

    enc[~has_class] = np.nan
    n_undefined = int((~has_class).sum())
    if n_undefined:
        logger.warning("ENC undefined for %d genes with no usable family", n_undefined)

    return pd.Series(enc, index=counts.index, name="enc")
