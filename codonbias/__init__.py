"""codonbias: codon usage bias statistics for coding sequences."""

__version__ = "0.1.0"

from codonbias.core.cai import cai_weights, get_cai, select_reference_genes
from codonbias.core.codons import (
    count_codons,
    create_codon_table,
    get_codon_table,
    sequence_to_codons,
)
from codonbias.core.composition import get_gc, get_gc3s, get_gc4d
from codonbias.core.enc import get_enc
from codonbias.core.optimal import est_optimal_codons, get_fop
from codonbias.core.optimality import get_tai, get_trna_weight
from codonbias.core.rscu import est_rscu
from codonbias.core.sequences import CheckedSequences, check_cds
from codonbias.errors import (
    CodonBiasError,
    InsufficientData,
    InvalidCodeId,
    MalformedSequence,
    UndefinedRatio,
)

__all__ = [
    "CheckedSequences",
    "CodonBiasError",
    "InsufficientData",
    "InvalidCodeId",
    "MalformedSequence",
    "UndefinedRatio",
    "cai_weights",
    "check_cds",
    "count_codons",
    "create_codon_table",
    "est_optimal_codons",
    "est_rscu",
    "get_cai",
    "get_codon_table",
    "get_enc",
    "get_fop",
    "get_gc",
    "get_gc3s",
    "get_gc4d",
    "get_tai",
    "get_trna_weight",
    "select_reference_genes",
    "sequence_to_codons",
]
