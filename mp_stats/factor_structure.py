"""
Factor Structure Module
=======================

Checks whether a dataset is suitable for factor analysis:

- Kaiser-Meyer-Olkin (KMO) measure of sampling adequacy (MSA)
- Bartlett's test of sphericity

Both work on a correlation matrix; the ``check_*`` functions compute it
from a DataFrame with pairwise-complete observations, the
``*_from_correlation`` functions accept the matrix directly.

Architecture Note:
    This module uses dictionaries (TypedDicts) instead of classes for data
    structures. All data containers are plain Python dicts with documented
    keys.

References:
    Kaiser, H. F. (1970). A second generation little jiffy. Psychometrika,
    35(4), 401-415.
    Kaiser, H. F., & Rice, J. (1974). Little jiffy, mark IV. Educational and
    psychological measurement, 34(1), 111-117.
    Bartlett, M. S. (1951). The effect of standardization on a Chi-square
    approximation in factor analysis. Biometrika, 38(3/4), 337-344.
"""
from __future__ import annotations

from typing import TypedDict, Union

import numpy as np
import pandas as pd
from scipy import stats


KMO_THRESHOLD = 0.5
SPHERICITY_ALPHA = 0.001


# =============================================================================
# Result TypedDicts
# =============================================================================

class KMOResult(TypedDict):
    """
    Result of the KMO measure of sampling adequacy.

    Keys:
        MSA: Overall measure of sampling adequacy (0 to 1)
        MSA_variable: Per-variable MSA, indexed by variable name
        appropriate: Whether MSA reaches the threshold
        message: Human-readable verdict
    """
    MSA: float
    MSA_variable: pd.Series
    appropriate: bool
    message: str


class SphericityResult(TypedDict):
    """
    Result of Bartlett's test of sphericity.

    Keys:
        chisq: Chi-square statistic
        p: p-value (upper tail)
        dof: Degrees of freedom, p * (p - 1) / 2
        sufficient: Whether p is below the significance threshold
        message: Human-readable verdict
    """
    chisq: float
    p: float
    dof: int
    sufficient: bool
    message: str


class FactorStructureResult(TypedDict):
    """
    Combined factor-analysis suitability checks.

    Keys:
        sphericity: Bartlett's test result
        kmo: KMO result
    """
    sphericity: SphericityResult
    kmo: KMOResult


def summarize_factorstructure(result: FactorStructureResult) -> str:
    """
    Generate a summary string for the factor structure checks.

    :param result: FactorStructureResult dictionary
    :returns: Human-readable summary string
    """
    kmo = result["kmo"]
    sphericity = result["sphericity"]
    lines = [
        "Factor Structure",
        f"  Sphericity: Chisq({sphericity['dof']}) = {sphericity['chisq']:.2f}, "
        f"p = {sphericity['p']:.3f} ({'OK' if sphericity['sufficient'] else 'CHECK'})",
        f"  KMO: {kmo['MSA']:.2f} ({'OK' if kmo['appropriate'] else 'CHECK'})",
    ]
    low = kmo["MSA_variable"][kmo["MSA_variable"] < KMO_THRESHOLD]
    if len(low) > 0:
        lines.append(f"  Low per-variable MSA: {', '.join(str(v) for v in low.index)}")
    return "\n".join(lines)


# =============================================================================
# Input handling
# =============================================================================

def correlation_matrix(data: pd.DataFrame, method: str = "pearson") -> pd.DataFrame:
    """
    Correlation matrix of the numeric columns, using pairwise-complete pairs.

    :param data: DataFrame of observations
    :param method: Correlation method passed to DataFrame.corr
    :returns: Correlation matrix as DataFrame
    :raises ValueError: If there are no rows or fewer than two numeric columns
    """
    numeric = data.select_dtypes(include="number")
    if len(numeric) == 0:
        raise ValueError("Data has no rows")
    if numeric.shape[1] < 2:
        raise ValueError(
            f"At least two numeric columns are required, got {numeric.shape[1]}"
        )
    return numeric.corr(method=method)


def _as_correlation(cormatrix: Union[pd.DataFrame, np.ndarray]) -> pd.DataFrame:
    """Validate a correlation matrix and return it as a labelled DataFrame."""
    if isinstance(cormatrix, pd.DataFrame):
        values = cormatrix.to_numpy(dtype=float)
        labels = list(cormatrix.columns)
    else:
        values = np.asarray(cormatrix, dtype=float)
        labels = None

    if values.ndim != 2 or values.shape[0] != values.shape[1]:
        raise ValueError(f"Correlation matrix must be square, got shape {values.shape}")
    if values.shape[0] < 2:
        raise ValueError("Correlation matrix must have at least two variables")
    if not np.all(np.isfinite(values)):
        raise ValueError(
            "Correlation matrix contains missing or infinite values "
            "(constant columns or too few complete pairs?)"
        )

    if labels is None:
        labels = [f"V{i + 1}" for i in range(values.shape[0])]
    return pd.DataFrame(values, index=labels, columns=labels)


# =============================================================================
# KMO
# =============================================================================

def kmo_from_correlation(
    cormatrix: Union[pd.DataFrame, np.ndarray],
    threshold: float = KMO_THRESHOLD,
    verbose: bool = True,
) -> KMOResult:
    """
    Kaiser-Meyer-Olkin measure of sampling adequacy of a correlation matrix.

    MSA = sum(R^2) / (sum(R^2) + sum(Q^2)) over the off-diagonal elements,
    where Q is the partial-correlation matrix derived from the inverse of R.
    Kaiser (1974): > .9 marvelous, .8s meritorious, .7s middling,
    .6s mediocre, .5s miserable, < .5 unacceptable.

    :param cormatrix: Correlation matrix (DataFrame or 2-D array)
    :param threshold: MSA below this is reported as inappropriate
    :param verbose: Print the verdict
    :returns: KMOResult dictionary
    :raises numpy.linalg.LinAlgError: If the matrix is singular
    """
    cor = _as_correlation(cormatrix)
    r = cor.to_numpy()

    q = np.linalg.inv(r)
    d = np.sqrt(np.diag(q))
    q = q / np.outer(d, d)

    np.fill_diagonal(q, 0.0)
    r = r.copy()
    np.fill_diagonal(r, 0.0)

    r2 = r ** 2
    q2 = q ** 2
    msa = float(r2.sum() / (r2.sum() + q2.sum()))
    msa_variable = pd.Series(
        r2.sum(axis=0) / (r2.sum(axis=0) + q2.sum(axis=0)),
        index=cor.columns,
        name="MSA",
    )

    appropriate = msa >= threshold
    if appropriate:
        message = f"OK: The data seems appropriate for factor analysis (KMO = {msa:.2f})."
    else:
        message = f"Warning: Factor analysis is likely to be inappropriate (KMO = {msa:.2f})."
    if verbose:
        print(message)

    return {
        "MSA": msa,
        "MSA_variable": msa_variable,
        "appropriate": appropriate,
        "message": message,
    }


def check_kmo(
    data: pd.DataFrame,
    threshold: float = KMO_THRESHOLD,
    method: str = "pearson",
    verbose: bool = True,
) -> KMOResult:
    """
    Kaiser-Meyer-Olkin measure of sampling adequacy of a dataset.

    :param data: DataFrame of observations (numeric columns are used)
    :param threshold: MSA below this is reported as inappropriate
    :param method: Correlation method
    :param verbose: Print the verdict
    :returns: KMOResult dictionary

    Example:
        >>> result = check_kmo(df, verbose=False)
        >>> result["MSA"]
    """
    return kmo_from_correlation(
        correlation_matrix(data, method=method),
        threshold=threshold,
        verbose=verbose,
    )


# =============================================================================
# Sphericity
# =============================================================================

def sphericity_from_correlation(
    cormatrix: Union[pd.DataFrame, np.ndarray],
    n_obs: int,
    alpha: float = SPHERICITY_ALPHA,
    verbose: bool = True,
) -> SphericityResult:
    """
    Bartlett's test of sphericity of a correlation matrix.

    Tests whether the matrix differs from the identity matrix:
    chisq = -ln(det(R)) * (n - 1 - (2p + 5) / 6), dof = p(p - 1) / 2.

    :param cormatrix: Correlation matrix (DataFrame or 2-D array)
    :param n_obs: Number of observations the matrix was computed from
    :param alpha: p below this is reported as sufficient correlation
    :param verbose: Print the verdict
    :returns: SphericityResult dictionary
    :raises numpy.linalg.LinAlgError: If det(R) is not positive
    """
    if n_obs < 1:
        raise ValueError(f"n_obs must be positive, got {n_obs}")

    cor = _as_correlation(cormatrix)
    n_vars = cor.shape[1]

    det = float(np.linalg.det(cor.to_numpy()))
    if det <= 0:
        raise np.linalg.LinAlgError(
            f"Determinant of the correlation matrix is not positive ({det:g})"
        )

    chisq = -np.log(det) * (n_obs - 1 - (2 * n_vars + 5) / 6)
    dof = n_vars * (n_vars - 1) // 2
    p_value = float(stats.chi2.sf(chisq, dof))

    sufficient = p_value < alpha
    detail = f"(Chisq({dof}) = {chisq:.2f}, p = {p_value:.3f})"
    if sufficient:
        message = (
            "OK: There is sufficient significant correlation in the data "
            f"for factor analysis {detail}."
        )
    else:
        message = (
            "Warning: There is not enough significant correlation in the data "
            f"for factor analysis {detail}."
        )
    if verbose:
        print(message)

    return {
        "chisq": float(chisq),
        "p": p_value,
        "dof": dof,
        "sufficient": sufficient,
        "message": message,
    }


def check_sphericity(
    data: pd.DataFrame,
    alpha: float = SPHERICITY_ALPHA,
    method: str = "pearson",
    verbose: bool = True,
) -> SphericityResult:
    """
    Bartlett's test of sphericity of a dataset.

    :param data: DataFrame of observations (numeric columns are used)
    :param alpha: p below this is reported as sufficient correlation
    :param method: Correlation method
    :param verbose: Print the verdict
    :returns: SphericityResult dictionary
    """
    return sphericity_from_correlation(
        correlation_matrix(data, method=method),
        n_obs=len(data),
        alpha=alpha,
        verbose=verbose,
    )


# =============================================================================
# Combined check
# =============================================================================

def check_factorstructure(
    data: pd.DataFrame,
    method: str = "pearson",
    verbose: bool = True,
) -> FactorStructureResult:
    """
    Run Bartlett's test of sphericity and the KMO measure on a dataset.

    :param data: DataFrame of observations
    :param method: Correlation method
    :param verbose: Print both verdicts
    :returns: FactorStructureResult dictionary
    """
    return {
        "sphericity": check_sphericity(data, method=method, verbose=verbose),
        "kmo": check_kmo(data, method=method, verbose=verbose),
    }
