"""Exception and warning types raised by codonbias."""


class CodonBiasError(Exception):
    """Base class for codonbias errors."""


class InvalidCodeId(CodonBiasError, KeyError):
    """The genetic code identifier does not name a known translation table."""

    def __str__(self) -> str:
        # KeyError quotes its message; show it plainly instead.
        return str(self.args[0]) if self.args else ""


class MalformedSequence(CodonBiasError, ValueError):
    """A coding sequence cannot be read as a series of codons."""


class InsufficientData(CodonBiasError, ValueError):
    """Too few observations to compute a statistic."""


class UndefinedRatio(RuntimeWarning):
    """A ratio had a zero denominator; the value is reported as NaN."""
