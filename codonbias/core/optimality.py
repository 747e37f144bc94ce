"""tRNA Adaptation Index (tAI) — dos Reis, Savva & Wernisch 2004.

Each codon's absolute adaptiveness is the sum over the tRNAs able to
decode it of gene copy number times pairing efficiency (1 - s), where s is
the selective constraint of the codon:anticodon pair at the wobble
position.  Weights are normalised to a maximum of 1.  Zero weights are
replaced by the geometric mean of the globally scaled non-zero weights,
capped at the smallest non-zero weight, so that an undecoded codon never
scores above a decoded one.

Anticodons are written 5'->3', so the wobble base (position 34) comes
first.  Adenosine at position 34 is read as inosine.
"""

import logging
from collections.abc import Mapping

import numpy as np
import pandas as pd

from codonbias.core.cai import weighted_geometric_mean
from codonbias.core.codons import (
    BASES,
    as_count_matrix,
    get_codon_table,
    normalize_sequence,
    sense_codons,
)
from codonbias.errors import InsufficientData

logger = logging.getLogger(__name__)

# Selective constraints (dos Reis et al. 2004)
DEFAULT_S: dict[str, float] = {
    "WC": 0.0,      # Watson-Crick
    "IU": 0.0,      # I:U
    "IC": 0.28,     # I:C
    "IA": 0.9999,   # I:A
    "GU": 0.41,     # G:U
    "UG": 0.68,     # U:G
}

# (anticodon base 34, codon base 3) -> pairing type
_WOBBLE_PAIRS: dict[tuple[str, str], str] = {
    ("G", "C"): "WC",
    ("G", "T"): "GU",
    ("A", "T"): "IU",
    ("A", "C"): "IC",
    ("A", "A"): "IA",
    ("T", "A"): "WC",
    ("T", "G"): "UG",
    ("C", "G"): "WC",
}

NORMALIZE = ("family", "global")

_COMPLEMENT = str.maketrans("ACGT", "TGCA")


def reverse_complement(sequence: str) -> str:
    return sequence.translate(_COMPLEMENT)[::-1]


def get_trna_weight(
    trna_copies: Mapping[str, float] | pd.Series,
    codon_table: pd.DataFrame | None = None,
    s: Mapping[str, float] | None = None,
    normalize: str = "family",
) -> pd.Series:
    """Compute per-codon tRNA adaptation weights from tRNA gene copy numbers.

    Args:
        trna_copies: {anticodon: gene copy number}, anticodons 5'->3'
            ("AGC" decodes GCU/GCC/GCA for Ala). U and T are equivalent.
        codon_table: Table from get_codon_table(); standard code if None.
        s: Overrides for the pairing constraints in DEFAULT_S.
        normalize: "family" scales each amino acid's codons to a maximum
            of 1; "global" scales by the maximum over all codons.

    Returns:
        Series {codon: weight} in (0, 1] for sense codons other than Met.

    Raises:
        InsufficientData: If no anticodon pairs with any codon.
    """
    if normalize not in NORMALIZE:
        raise ValueError(f"normalize must be one of {NORMALIZE}, got {normalize!r}")
    if codon_table is None:
        codon_table = get_codon_table()

    constraints = dict(DEFAULT_S)
    if s:
        unknown = set(s) - set(DEFAULT_S)
        if unknown:
            raise ValueError(f"Unknown pairing types: {sorted(unknown)}")
        constraints.update(s)

    info = sense_codons(codon_table)
    info = info[info["amino_acid"] != "Met"].set_index("codon")
    aa_of = info["amino_acid"].to_dict()
    raw = pd.Series(0.0, index=info.index, name="trna_weight")

    for anticodon, copies in pd.Series(trna_copies, dtype=np.float64).items():
        ac = normalize_sequence(str(anticodon))
        if len(ac) != 3 or set(ac) - set(BASES):
            logger.warning("Ignoring malformed anticodon %r", anticodon)
            continue
        cognate = reverse_complement(ac)
        aa = aa_of.get(cognate)
        if aa is None:
            logger.debug("Anticodon %s reads no scored codon (%s)", ac, cognate)
            continue
        for base in BASES:
            pairing = _WOBBLE_PAIRS.get((ac[0], base))
            codon = cognate[:2] + base
            if pairing is None or aa_of.get(codon) != aa:
                continue
            raw[codon] += (1.0 - constraints[pairing]) * copies

    if not (raw > 0).any():
        raise InsufficientData("No tRNA anticodon pairs with any codon")

    if normalize == "family":
        fam_max = raw.groupby(info["amino_acid"]).transform("max")
        weights = (raw / fam_max).fillna(0.0)
    else:
        weights = raw / raw.max()

    decoded = raw > 0
    global_w = raw[decoded] / raw.max()
    floor = min(
        float(np.exp(np.log(global_w).mean())),
        float(weights[decoded].min()),
    )
    n_zero = int((~decoded).sum())
    if n_zero:
        logger.info(
            "%d codons lack a decoding tRNA; using floor weight %.4f",
            n_zero, floor,
        )
    weights[~decoded] = floor
    weights.index.name = "codon"
    return weights


def get_tai(
    counts: pd.DataFrame | Mapping[str, str],
    trna_weights: pd.Series | Mapping[str, float],
) -> pd.Series:
    """Compute per-gene tAI.

    Args:
        counts: Codon count matrix from count_codons(), or sequences.
        trna_weights: Weights from get_trna_weight().

    Returns:
        Series of tAI values in (0, 1] indexed by gene id; NaN for genes
        with no scored codon.
    """
    counts = as_count_matrix(counts)
    weights = pd.Series(trna_weights, dtype=np.float64)
    weights.index = [normalize_sequence(c) for c in weights.index]
    return weighted_geometric_mean(counts, weights, name="tai")
