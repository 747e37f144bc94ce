"""Structural quality control of coding sequences."""

import logging
from collections.abc import Iterable, Mapping

import pandas as pd

from codonbias.core.codons import get_codon_table, normalize_sequence

logger = logging.getLogger(__name__)

# Reasons reported for excluded sequences
REASON_LENGTH = "length"
REASON_MIN_LEN = "min_len"
REASON_START = "start"
REASON_STOP = "stop"
REASON_INTERNAL_STOP = "internal_stop"


class CheckedSequences:
    """Result of CDS quality control.  Behaves like a dict of {seq_id: sequence}.

    Usage::

        result = check_cds({"g1": "ATGAAATAA", "g2": "ATGAA"})
        len(result)                 # 1  (number of passing sequences)
        result["g1"]                # "AAA"  (start and stop removed)
        count_codons(result)        # works: any Mapping of sequences

        # Exclusion report
        result.excluded             # {"g2": ["length", "min_len", "stop"]}
        result.n_excluded           # 1
    """

    def __init__(
        self,
        sequences: dict[str, str],
        excluded: dict[str, list[str]],
    ):
        self._sequences = sequences
        self.excluded = excluded
        self.n_passed = len(sequences)
        self.n_excluded = len(excluded)

    # ── dict-like interface (delegates to the passing sequences) ──

    def __len__(self) -> int:
        return len(self._sequences)

    def __getitem__(self, key: str) -> str:
        return self._sequences[key]

    def __contains__(self, key: object) -> bool:
        return key in self._sequences

    def __iter__(self):
        return iter(self._sequences)

    def __bool__(self) -> bool:
        return len(self._sequences) > 0

    def keys(self):
        return self._sequences.keys()

    def values(self):
        return self._sequences.values()

    def items(self):
        return self._sequences.items()

    def get(self, key: str, default=None):
        return self._sequences.get(key, default)

    def report(self) -> pd.DataFrame:
        """Excluded sequences as a DataFrame (seq_id, reason), one row per reason."""
        rows = [
            {"seq_id": seq_id, "reason": reason}
            for seq_id, reasons in self.excluded.items()
            for reason in reasons
        ]
        return pd.DataFrame(rows, columns=["seq_id", "reason"])

    def __repr__(self) -> str:
        return (
            f"CheckedSequences({self.n_passed} passed, "
            f"{self.n_excluded} excluded)"
        )


Mapping.register(CheckedSequences)


def check_cds(
    sequences: Mapping[str, str],
    codon_table: pd.DataFrame | None = None,
    min_len: int = 6,
    check_len: bool = True,
    check_start: bool = True,
    check_stop: bool = True,
    check_istop: bool = True,
    start_codons: Iterable[str] | None = None,
    rm_start: bool = True,
    rm_stop: bool = True,
) -> CheckedSequences:
    """Validate coding sequences and drop those failing any enabled check.

    Args:
        sequences: {seq_id: cds_sequence}.
        codon_table: Table from get_codon_table(); standard code if None.
        min_len: Minimum length in nucleotides, counted before trimming.
            0 disables the check.
        check_len: Require length divisible by 3.
        check_start: Require the first codon to be a start codon.
        check_stop: Require the last codon to be a stop codon.
        check_istop: Reject sequences with an in-frame stop before the end.
        start_codons: Accepted start codons. Defaults to the table's.
        rm_start: Strip the start codon from passing sequences (only when
            check_start is enabled).
        rm_stop: Strip the stop codon from passing sequences (only when
            check_stop is enabled).

    Returns:
        CheckedSequences of normalised (upper-case, T for U) passing
        sequences, with the exclusion report in ``.excluded``.
    """
    if codon_table is None:
        codon_table = get_codon_table()

    if start_codons is None:
        starts = set(codon_table.loc[codon_table["is_start"], "codon"])
    else:
        starts = {normalize_sequence(c) for c in start_codons}
    stops = set(codon_table.loc[codon_table["is_stop"], "codon"])
    # Codons that are only ever read as stops; sense/stop codons of
    # NCBI tables 27, 28 and 31 are allowed internally.
    strict_stops = set(codon_table.loc[codon_table["amino_acid"] == "*", "codon"])

    passed: dict[str, str] = {}
    excluded: dict[str, list[str]] = {}

    for seq_id, raw in sequences.items():
        seq = normalize_sequence(raw)
        reasons: list[str] = []

        if check_len and len(seq) % 3 != 0:
            reasons.append(REASON_LENGTH)
        if min_len and len(seq) < min_len:
            reasons.append(REASON_MIN_LEN)
        if check_start and seq[:3] not in starts:
            reasons.append(REASON_START)

        n_codons = len(seq) // 3
        if check_stop and (n_codons == 0 or seq[(n_codons - 1) * 3 : n_codons * 3] not in stops):
            reasons.append(REASON_STOP)
        if check_istop:
            inner = [seq[i * 3 : i * 3 + 3] for i in range(n_codons - 1)]
            if any(c in strict_stops for c in inner):
                reasons.append(REASON_INTERNAL_STOP)

        if reasons:
            excluded[seq_id] = reasons
            logger.debug("Excluding %s: %s", seq_id, ", ".join(reasons))
            continue

        if check_start and rm_start:
            seq = seq[3:]
        if check_stop and rm_stop:
            seq = seq[:-3]
        passed[seq_id] = seq

    result = CheckedSequences(passed, excluded)
    if result.n_excluded:
        logger.warning(
            "CDS check: %d passed, %d excluded",
            result.n_passed, result.n_excluded,
        )
    else:
        logger.info("CDS check: all %d sequences passed", result.n_passed)
    return result
