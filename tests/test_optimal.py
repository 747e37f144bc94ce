"""Tests for optimal codon estimation and Fop."""

import numpy as np
import pandas as pd
import pytest

from codonbias.core.codons import (
    ALL_CODONS,
    codon_families,
    count_codons,
    get_codon_table,
)
from codonbias.core.enc import get_enc
from codonbias.core.optimal import est_optimal_codons, get_fop
from codonbias.errors import InsufficientData, UndefinedRatio


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(scope="module")
def table():
    return get_codon_table()


@pytest.fixture(scope="module")
def graded_counts(table):
    """Twelve genes whose preference for each family's first codon grows.

    Gene i uses the first codon of every family 5 + 3i times and each
    other codon 5 times, so bias rises (ENC falls) with i.
    """
    families = codon_families(table)
    rows = {}
    for i in range(12):
        row = {c: 0 for c in ALL_CODONS}
        for codons in families.values():
            for j, codon in enumerate(codons):
                row[codon] = 5 + 3 * i if j == 0 else 5
        rows[f"g{i:02d}"] = row
    return pd.DataFrame.from_dict(rows, orient="index")


@pytest.fixture(scope="module")
def expected_optimal(table):
    return {codons[0] for codons in codon_families(table).values() if len(codons) > 1}


# ═══════════════════════════════════════════════════════════════════════════════
# est_optimal_codons
# ═══════════════════════════════════════════════════════════════════════════════

class TestEstOptimalCodons:
    def test_columns(self, graded_counts):
        result = est_optimal_codons(graded_counts)
        assert list(result.columns) == [
            "codon", "aa_code", "amino_acid", "subfam",
            "coef", "pvalue", "qvalue", "optimal",
        ]

    def test_tests_multi_codon_families_only(self, graded_counts):
        result = est_optimal_codons(graded_counts)
        assert len(result) == 59
        assert not set(result["codon"]) & {"ATG", "TGG", "TAA", "TAG", "TGA"}

    def test_enc_falls_along_gradient(self, graded_counts):
        enc = get_enc(graded_counts)
        assert enc.is_monotonic_decreasing

    def test_finds_preferred_codons_ols(self, graded_counts, expected_optimal):
        result = est_optimal_codons(graded_counts, method="ols")
        assert set(result.loc[result["optimal"], "codon"]) == expected_optimal

    def test_finds_preferred_codons_binomial(self, graded_counts, expected_optimal):
        result = est_optimal_codons(graded_counts, method="binomial")
        assert set(result.loc[result["optimal"], "codon"]) == expected_optimal

    def test_coefficient_signs(self, graded_counts, expected_optimal):
        result = est_optimal_codons(graded_counts).set_index("codon")
        for codon in expected_optimal:
            assert result.at[codon, "coef"] < 0
        others = result.index.difference(sorted(expected_optimal))
        assert (result.loc[others, "coef"] > 0).all()

    def test_qvalues_not_below_pvalues(self, graded_counts):
        result = est_optimal_codons(graded_counts)
        assert (result["qvalue"] >= result["pvalue"] - 1e-15).all()
        assert (result["qvalue"] <= 1.0).all()

    def test_alpha_threshold(self, graded_counts):
        result = est_optimal_codons(graded_counts, alpha=0.0)
        assert not result["optimal"].any()

    def test_amino_acid_level(self, graded_counts, table):
        result = est_optimal_codons(graded_counts, level="amino_acid")
        assert len(result) == 59
        assert set(result["amino_acid"]) == {
            aa for aa, codons in codon_families(table, "amino_acid").items()
            if len(codons) > 1
        }

    def test_precomputed_enc(self, graded_counts):
        enc = get_enc(graded_counts).to_dict()
        a = est_optimal_codons(graded_counts, enc=enc)
        b = est_optimal_codons(graded_counts)
        np.testing.assert_allclose(a["coef"], b["coef"])

    def test_too_few_genes(self, graded_counts):
        with pytest.raises(InsufficientData):
            est_optimal_codons(graded_counts.iloc[:2])

    def test_rarely_used_family(self, graded_counts):
        counts = graded_counts.copy()
        counts.loc[counts.index[2:], ["TGT", "TGC"]] = 0
        with pytest.raises(InsufficientData, match="Cys"):
            est_optimal_codons(counts)

    def test_constant_enc(self, graded_counts):
        counts = pd.concat([graded_counts.iloc[[0]]] * 5)
        counts.index = [f"copy{i}" for i in range(5)]
        with pytest.raises(InsufficientData):
            est_optimal_codons(counts)

    def test_min_genes_lower_bound(self, graded_counts):
        with pytest.raises(ValueError, match="min_genes"):
            est_optimal_codons(graded_counts, min_genes=2)

    def test_unused_codon_is_tested(self, graded_counts):
        """A codon no gene uses gets p = q = 1 and still counts in the FDR."""
        counts = graded_counts.copy()
        counts["GCG"] = 0
        result = est_optimal_codons(counts).set_index("codon")
        assert result.at["GCG", "coef"] == 0.0
        assert result.at["GCG", "pvalue"] == 1.0
        assert result.at["GCG", "qvalue"] == 1.0
        assert not result.at["GCG", "optimal"]
        assert result["qvalue"].notna().all()
        assert result["pvalue"].notna().sum() == 59


# ═══════════════════════════════════════════════════════════════════════════════
# get_fop
# ═══════════════════════════════════════════════════════════════════════════════

class TestGetFop:
    def test_explicit_codons(self):
        counts = count_codons({"g1": "AAAAAAAAGGGG"})
        fop = get_fop(counts, optimal_codons=["AAA"])
        # Gly has no optimal codon and does not count
        assert fop["g1"] == pytest.approx(2 / 3)

    def test_family_without_usage_is_nan(self):
        with pytest.warns(UndefinedRatio):
            fop = get_fop(count_codons({"g1": "GGGGGC"}), optimal_codons=["AAA"])
        assert np.isnan(fop["g1"])

    def test_single_codon_family_ignored(self):
        with pytest.warns(UndefinedRatio):
            fop = get_fop(count_codons({"g1": "ATGAAA"}), optimal_codons=["ATG"])
        assert np.isnan(fop["g1"])

    def test_rna_codons(self):
        fop = get_fop(count_codons({"g1": "AAAAAG"}), optimal_codons=["aag"])
        assert fop["g1"] == pytest.approx(0.5)

    def test_from_estimate(self, graded_counts):
        optimal = est_optimal_codons(graded_counts)
        fop = get_fop(graded_counts, optimal_codons=optimal)
        assert fop.is_monotonic_increasing
        assert ((fop >= 0) & (fop <= 1)).all()

    def test_estimates_when_not_given(self, graded_counts):
        optimal = est_optimal_codons(graded_counts)
        pd.testing.assert_series_equal(
            get_fop(graded_counts),
            get_fop(graded_counts, optimal_codons=optimal),
        )
