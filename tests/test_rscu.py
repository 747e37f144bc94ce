"""Tests for RSCU estimation."""

import warnings

import numpy as np
import pandas as pd
import pytest

from codonbias.core.codons import ALL_CODONS, count_codons, get_codon_table
from codonbias.core.rscu import est_rscu
from codonbias.errors import UndefinedRatio


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(scope="module")
def random_counts():
    """Five genes with every codon used."""
    rng = np.random.default_rng(7)
    return pd.DataFrame(
        rng.integers(1, 50, size=(5, 64)),
        index=[f"g{i}" for i in range(5)],
        columns=ALL_CODONS,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# est_rscu
# ═══════════════════════════════════════════════════════════════════════════════

class TestEstRscu:
    def test_lysine_example(self):
        """{AAA: 10, AAG: 0} gives RSCU 2 and 0."""
        with pytest.warns(UndefinedRatio):
            rscu = est_rscu(count_codons({"g1": "AAA" * 10})).set_index("codon")
        assert rscu.at["AAA", "rscu"] == pytest.approx(2.0)
        assert rscu.at["AAG", "rscu"] == pytest.approx(0.0)
        assert rscu.at["AAA", "prop"] == pytest.approx(1.0)

    def test_unused_family_is_nan(self):
        with pytest.warns(UndefinedRatio):
            rscu = est_rscu(count_codons({"g1": "AAA" * 10})).set_index("codon")
        assert np.isnan(rscu.at["GGG", "rscu"])
        assert np.isnan(rscu.at["GGG", "w_cai"])

    def test_sums_to_family_size(self, random_counts):
        rscu = est_rscu(random_counts)
        sums = rscu.groupby("subfam")["rscu"].sum()
        sizes = rscu.groupby("subfam")["codon"].count()
        np.testing.assert_allclose(sums.to_numpy(), sizes.to_numpy())

    def test_sums_at_amino_acid_level(self, random_counts):
        rscu = est_rscu(random_counts, level="amino_acid")
        sums = rscu.groupby("amino_acid")["rscu"].sum()
        assert sums["Leu"] == pytest.approx(6.0)
        assert sums["Met"] == pytest.approx(1.0)

    def test_excludes_stops(self, random_counts):
        rscu = est_rscu(random_counts)
        assert len(rscu) == 61
        assert not set(rscu["codon"]) & {"TAA", "TAG", "TGA"}

    def test_pooled_counts(self, random_counts):
        rscu = est_rscu(random_counts).set_index("codon")
        assert rscu.at["AAA", "cts"] == random_counts["AAA"].sum()

    def test_w_cai_max_is_one(self, random_counts):
        rscu = est_rscu(random_counts)
        maxima = rscu.groupby("subfam")["w_cai"].max()
        np.testing.assert_allclose(maxima.to_numpy(), 1.0)

    def test_pseudo_count(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", UndefinedRatio)
            rscu = est_rscu(count_codons({"g1": "AAA" * 10}), pseudo_cnt=1).set_index("codon")
        assert rscu.at["AAA", "rscu"] == pytest.approx(2 * 11 / 12)
        assert rscu.at["AAG", "rscu"] == pytest.approx(2 * 1 / 12)

    def test_pseudo_count_defines_unused_families(self, random_counts):
        empty = random_counts.iloc[:1] * 0
        rscu = est_rscu(empty, pseudo_cnt=0.5)
        np.testing.assert_allclose(rscu["rscu"].to_numpy(), 1.0)

    def test_gene_weights(self, random_counts):
        weights = {g: 0.0 for g in random_counts.index}
        weights["g0"] = 1.0
        weighted = est_rscu(random_counts, weight=weights)
        single = est_rscu(random_counts.loc[["g0"]])
        np.testing.assert_allclose(weighted["rscu"], single["rscu"])

    def test_missing_gene_weight(self, random_counts):
        with pytest.raises(ValueError):
            est_rscu(random_counts, weight={"g0": 1.0})

    def test_accepts_sequences(self):
        with pytest.warns(UndefinedRatio):
            rscu = est_rscu({"g1": "AAAAAG"}).set_index("codon")
        assert rscu.at["AAA", "rscu"] == pytest.approx(1.0)

    def test_genetic_code(self, random_counts):
        rscu = est_rscu(random_counts, codon_table=get_codon_table("2"))
        assert "TGA" in set(rscu["codon"])
        assert "AGA" not in set(rscu["codon"])

    def test_bad_level(self, random_counts):
        with pytest.raises(ValueError):
            est_rscu(random_counts, level="codon")
