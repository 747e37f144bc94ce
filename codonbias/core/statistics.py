"""Multiple testing correction and codon usage regression."""

import logging
import warnings

import numpy as np
from scipy import stats

from codonbias.errors import InsufficientData

logger = logging.getLogger(__name__)

REGRESSION_METHODS = ("ols", "binomial")

# Fewest genes a slope p-value can be estimated from
MIN_OBSERVATIONS = 3


# ═══════════════════════════════════════════════════════════════════════════════
# Multiple testing correction
# ═══════════════════════════════════════════════════════════════════════════════

def benjamini_hochberg(p_values: np.ndarray) -> np.ndarray:
    """Apply Benjamini-Hochberg FDR correction.

    Args:
        p_values: 1-D array of raw p-values. NaN entries are left out of
            the correction and stay NaN.

    Returns:
        Array of adjusted p-values (same shape), capped at 1.0.
    """
    p = np.asarray(p_values, dtype=np.float64)
    result = np.full(p.shape, np.nan)
    finite = ~np.isnan(p)
    tested = p[finite]
    n = len(tested)
    if n == 0:
        return result

    # Sort p-values
    sorted_idx = np.argsort(tested)
    sorted_p = tested[sorted_idx]

    # BH adjustment: p_adj[i] = p[i] * n / (rank)
    # Then enforce monotonicity from the bottom up
    ranks = np.arange(1, n + 1)
    adjusted = sorted_p * n / ranks

    # Enforce monotonicity (step-up): walk backwards, take cumulative min
    adjusted = np.minimum.accumulate(adjusted[::-1])[::-1]
    adjusted = np.clip(adjusted, 0.0, 1.0)

    # Unsort
    unsorted = np.empty(n, dtype=np.float64)
    unsorted[sorted_idx] = adjusted
    result[finite] = unsorted
    return result


# ═══════════════════════════════════════════════════════════════════════════════
# Usage regression
# ═══════════════════════════════════════════════════════════════════════════════

def usage_regression(
    successes: np.ndarray,
    totals: np.ndarray,
    covariate: np.ndarray,
    method: str = "ols",
) -> tuple[float, float]:
    """Regress per-gene codon usage on a per-gene covariate.

    "ols" fits usage fraction = b0 + b1 * covariate by least squares.
    "binomial" fits logit(p_i) = b0 + b1 * covariate_i with
    successes ~ Binomial(totals, p_i).

    Args:
        successes: Count of the focal codon per gene.
        totals: Count of all codons of its family per gene (> 0).
        covariate: Per-gene predictor (e.g. ENC).
        method: "ols" or "binomial".

    Returns:
        (coefficient, p_value) for the covariate. Usage that is identical
        in every gene gives (0.0, 1.0). (NaN, NaN) when the binomial fit
        does not converge to a usable estimate.

    Raises:
        InsufficientData: If fewer than MIN_OBSERVATIONS genes, or the
            covariate is constant.
    """
    if method not in REGRESSION_METHODS:
        raise ValueError(f"method must be one of {REGRESSION_METHODS}, got {method!r}")

    k_arr = np.asarray(successes, dtype=np.float64)
    n_arr = np.asarray(totals, dtype=np.float64)
    x_arr = np.asarray(covariate, dtype=np.float64)

    if len(x_arr) < MIN_OBSERVATIONS:
        raise InsufficientData(
            f"Regression needs at least {MIN_OBSERVATIONS} genes, got {len(x_arr)}"
        )
    if np.ptp(x_arr) == 0:
        raise InsufficientData("Covariate is identical across all genes")

    if method == "ols":
        usage = k_arr / n_arr
        if np.ptp(usage) == 0:
            return 0.0, 1.0
        fit = stats.linregress(x_arr, usage)
        return float(fit.slope), float(fit.pvalue)

    import statsmodels.api as sm
    from statsmodels.tools.sm_exceptions import PerfectSeparationError

    # Binomial GLM: endog = (successes, failures), exog = [1, covariate]
    endog = np.column_stack([k_arr, n_arr - k_arr])
    exog = sm.add_constant(x_arr, has_constant="add")

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            model = sm.GLM(endog, exog, family=sm.families.Binomial())
            fit = model.fit(disp=0)
    except (PerfectSeparationError, np.linalg.LinAlgError) as exc:
        logger.warning("Binomial regression failed: %s", exc)
        return float("nan"), float("nan")

    coef = float(fit.params[1])
    p_value = float(fit.pvalues[1])
    if not np.isfinite(coef):
        return float("nan"), float("nan")
    return coef, p_value
