"""Genetic code tables and codon counting."""

import logging
from collections.abc import Iterable, Mapping
from itertools import product

import numpy as np
import pandas as pd
from Bio.Data import CodonTable
from Bio.Data.IUPACData import protein_letters_1to3

from codonbias.errors import InvalidCodeId, MalformedSequence

logger = logging.getLogger(__name__)

BASES = ["A", "C", "G", "T"]
ALL_CODONS = ["".join(b) for b in product(BASES, repeat=3)]
_CODON_INDEX = {c: i for i, c in enumerate(ALL_CODONS)}

DEFAULT_GCID = "1"
DEFAULT_SEQ_ID = "seq"
STOP = "*"

# Synonymous codon grouping used throughout: subfamilies split families
# with more than four codons by their first two nucleotides.
LEVELS = ("subfam", "amino_acid")

TABLE_COLUMNS = ["codon", "aa_code", "amino_acid", "subfam", "is_start", "is_stop"]


# ═══════════════════════════════════════════════════════════════════════════════
# Genetic code tables
# ═══════════════════════════════════════════════════════════════════════════════

def get_codon_table(gcid: str | int = DEFAULT_GCID) -> pd.DataFrame:
    """Build the codon table for an NCBI genetic code.

    Args:
        gcid: NCBI translation table id (e.g. "1" standard, "2" vertebrate
            mitochondrial, "11" bacterial).

    Returns:
        DataFrame with one row per codon (all 64) and columns
        codon, aa_code, amino_acid, subfam, is_start, is_stop.

    Raises:
        InvalidCodeId: If *gcid* is not a known NCBI table.
    """
    try:
        table = CodonTable.unambiguous_dna_by_id[int(gcid)]
    except (KeyError, TypeError, ValueError):
        raise InvalidCodeId(f"Unknown genetic code id: {gcid!r}") from None

    logger.debug("Using NCBI genetic code %s (%s)", table.id, table.names[0])
    return create_codon_table(
        table.forward_table,
        start_codons=table.start_codons,
        stop_codons=table.stop_codons,
    )


def create_codon_table(
    aa_by_codon: Mapping[str, str],
    start_codons: Iterable[str] = ("ATG",),
    stop_codons: Iterable[str] | None = None,
) -> pd.DataFrame:
    """Build a codon table from a custom codon -> amino acid mapping.

    Args:
        aa_by_codon: {codon: one-letter amino acid}. Codons absent from the
            mapping are treated as stop codons.
        start_codons: Codons accepted as translation starts.
        stop_codons: Codons that terminate translation. Defaults to the
            codons missing from *aa_by_codon*. A codon may be both a stop
            and a sense codon (as in NCBI tables 27, 28 and 31).

    Returns:
        Codon table DataFrame (see get_codon_table).
    """
    assignments: dict[str, str] = {}
    for codon, aa in aa_by_codon.items():
        codon = normalize_sequence(codon)
        if codon not in _CODON_INDEX:
            raise ValueError(f"Not a codon: {codon!r}")
        if aa != STOP and aa not in protein_letters_1to3:
            raise ValueError(f"Unknown amino acid code {aa!r} for {codon}")
        assignments[codon] = aa

    starts = {normalize_sequence(c) for c in start_codons}
    if stop_codons is None:
        stops = {c for c in ALL_CODONS if assignments.get(c, STOP) == STOP}
    else:
        stops = {normalize_sequence(c) for c in stop_codons}

    rows = []
    for codon in ALL_CODONS:
        aa_code = assignments.get(codon, STOP)
        if aa_code == STOP:
            amino_acid = subfam = STOP
        else:
            amino_acid = protein_letters_1to3[aa_code]
            subfam = f"{amino_acid}_{codon[:2]}"
        rows.append({
            "codon": codon,
            "aa_code": aa_code,
            "amino_acid": amino_acid,
            "subfam": subfam,
            "is_start": codon in starts,
            "is_stop": codon in stops or aa_code == STOP,
        })
    return pd.DataFrame(rows, columns=TABLE_COLUMNS)


def sense_codons(codon_table: pd.DataFrame) -> pd.DataFrame:
    """Rows of *codon_table* that encode an amino acid."""
    return codon_table[codon_table["amino_acid"] != STOP]


def check_level(level: str) -> str:
    if level not in LEVELS:
        raise ValueError(f"level must be one of {LEVELS}, got {level!r}")
    return level


def codon_families(
    codon_table: pd.DataFrame,
    level: str = "subfam",
) -> dict[str, list[str]]:
    """Group sense codons into synonymous families.

    Args:
        codon_table: Table from get_codon_table().
        level: "subfam" (split by first two nucleotides) or "amino_acid".

    Returns:
        {family label: [codons]} in codon-table order.
    """
    check_level(level)
    families: dict[str, list[str]] = {}
    for codon, label in sense_codons(codon_table)[["codon", level]].itertuples(index=False):
        families.setdefault(label, []).append(codon)
    return families


# ═══════════════════════════════════════════════════════════════════════════════
# Codon counting
# ═══════════════════════════════════════════════════════════════════════════════

def normalize_sequence(sequence: str) -> str:
    """Upper-case a nucleotide sequence and read U as T."""
    return sequence.strip().upper().replace("U", "T")


def sequence_to_codons(sequence: str) -> list[str]:
    """Split a CDS sequence into a list of codons.

    Args:
        sequence: CDS nucleotide sequence (must be divisible by 3).

    Returns:
        List of 3-character codon strings.

    Raises:
        MalformedSequence: If sequence length is not divisible by 3.
    """
    if len(sequence) % 3 != 0:
        raise MalformedSequence(
            f"Sequence length {len(sequence)} is not divisible by 3"
        )
    return [sequence[i : i + 3] for i in range(0, len(sequence), 3)]


def count_codons(sequences: Mapping[str, str] | str) -> pd.DataFrame:
    """Count codons in one or many coding sequences.

    Args:
        sequences: {seq_id: cds_sequence}, or a single sequence string
            (reported under the id "seq").

    Returns:
        Codon count matrix: DataFrame indexed by sequence id (input order)
        with one int64 column per codon (all 64, alphabetical).

    Raises:
        MalformedSequence: If a sequence length is not divisible by 3.

    Triplets containing characters other than A/C/G/T/U are not counted.
    """
    if isinstance(sequences, str):
        sequences = {DEFAULT_SEQ_ID: sequences}

    ids = list(sequences)
    counts = np.zeros((len(ids), len(ALL_CODONS)), dtype=np.int64)
    n_ambiguous = 0

    for gi, seq_id in enumerate(ids):
        try:
            codons = sequence_to_codons(normalize_sequence(sequences[seq_id]))
        except MalformedSequence as exc:
            raise MalformedSequence(f"{seq_id}: {exc}") from None
        for codon in codons:
            ci = _CODON_INDEX.get(codon)
            if ci is None:
                n_ambiguous += 1
                continue
            counts[gi, ci] += 1

    if n_ambiguous:
        logger.warning("Skipped %d codons with ambiguous bases", n_ambiguous)

    return pd.DataFrame(
        counts,
        index=pd.Index(ids, name="seq_id", dtype=object),
        columns=ALL_CODONS,
    )


def as_count_matrix(data: pd.DataFrame | Mapping[str, str] | str) -> pd.DataFrame:
    """Return *data* as a codon count matrix.

    Sequences are counted with count_codons(); an existing matrix is
    aligned to the 64 codon columns, absent codons counting as zero.
    """
    if isinstance(data, pd.DataFrame):
        unknown = set(data.columns) - set(ALL_CODONS)
        if unknown:
            raise ValueError(f"Unknown codon columns: {sorted(unknown)}")
        return data.reindex(columns=ALL_CODONS, fill_value=0)
    return count_codons(data)
