"""
Multiple-Imputation Pooling Module
==================================

Combines parameter estimates from analyses of multiply imputed datasets
into one pooled estimate per parameter using Rubin's rules, with the
Barnard-Rubin small-sample degrees of freedom.

For a parameter estimated in m imputations:
- ubar = mean(SE^2)                      within-imputation variance
- b    = var(Coefficient)                between-imputation variance
- t    = ubar + (1 + 1/m) * b            total variance
- pooled Coefficient = mean(Coefficient), pooled SE = sqrt(t)

References:
    Rubin, D. B. (1987). Multiple Imputation for Nonresponse in Surveys.
    Barnard, J., & Rubin, D. B. (1999). Small-sample degrees of freedom
    with multiple imputation. Biometrika, 86(4), 948-955.

Usage:
    import statsmodels.formula.api as smf
    from mp_stats import pool_models

    fits = [smf.ols("bmi ~ age + chl", data=d).fit() for d in imputed_datasets]
    pooled = pool_models(fits)
    print(pooled["data"])
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence
import warnings

import numpy as np
import pandas as pd
from scipy import stats

from .introspection import model_parameters
from .multiplicity import adjust_pvalues, is_valid_method
from .names import ParametersTable, create_parameters_table, format_parameters


DEFAULT_CI = 0.95
LAMBDA_FLOOR = 1e-4

GROUP_COLUMNS = ("Parameter", "Response", "Component")

_STAT_COLUMN = re.compile(r"\b(z|t|F)\b")
_DF_COLUMN = re.compile(r"\b(df|df_error)\b")


# =============================================================================
# Degrees of Freedom
# =============================================================================

def barnard_rubin(
    m: int,
    b: float,
    t: float,
    dfcom: Optional[Sequence[float]] = None,
) -> float:
    """
    Barnard-Rubin adjusted degrees of freedom of a pooled estimate.

    :param m: Number of imputations
    :param b: Between-imputation variance
    :param t: Total variance of the pooled estimate
    :param dfcom: Complete-data degrees of freedom (one per imputation)
    :returns: Pooled degrees of freedom; ``inf`` if no finite dfcom is available
    """
    if dfcom is None:
        return np.inf

    dfcom = np.atleast_1d(np.asarray(dfcom, dtype=float))
    finite = dfcom[np.isfinite(dfcom)]
    if finite.size == 0:
        return np.inf
    dfcom_value = float(finite[0])

    if m < 2:
        return dfcom_value

    lam = (1 + 1 / m) * b / t if t > 0 else 0.0
    lam = max(lam, LAMBDA_FLOOR)

    dfold = (m - 1) / lam ** 2
    dfobs = (dfcom_value + 1) / (dfcom_value + 3) * dfcom_value * (1 - lam)
    return dfold * dfobs / (dfold + dfobs)


def _t_quantile(p: float, df: float) -> float:
    if np.isinf(df):
        return float(stats.norm.ppf(p))
    return float(stats.t.ppf(p, df))


def _t_two_sided_p(statistic: float, df: float) -> float:
    if np.isinf(df):
        return float(2 * stats.norm.sf(abs(statistic)))
    return float(2 * stats.t.sf(abs(statistic), df))


# =============================================================================
# Pooling
# =============================================================================

def pool_parameters(
    tables: Sequence[pd.DataFrame],
    ci: float = DEFAULT_CI,
    exponentiate: bool = False,
    p_adjust: Optional[str] = None,
    pretty_names: Optional[Dict[str, str]] = None,
) -> ParametersTable:
    """
    Pool per-imputation parameter tables with Rubin's rules.

    Rows are grouped by whichever of Parameter, Response and Component are
    present; every group is pooled independently and the output has one row
    per group, in first-seen order. Columns not involved in pooling are
    taken from the first imputation's row.

    :param tables: One parameter DataFrame per imputation (Parameter,
        Coefficient, SE, and optionally a t/z/F statistic and df/df_error)
    :param ci: Confidence level for CI_low / CI_high
    :param exponentiate: Exponentiate Coefficient and CI after pooling
    :param p_adjust: Multiplicity correction applied across all pooled rows
    :param pretty_names: Display-name overlay to attach to the result
    :returns: ParametersTable dictionary
    :raises ValueError: If no tables are given, required columns are
        missing or ci is not in (0, 1)
    """
    if len(tables) == 0:
        raise ValueError("No parameter tables to pool")
    if not 0 < ci < 1:
        raise ValueError(f"ci must be between 0 and 1, got {ci}")

    frames = []
    for i, table in enumerate(tables, start=1):
        missing = {"Parameter", "Coefficient", "SE"} - set(table.columns)
        if missing:
            raise ValueError(f"Imputation {i} is missing columns: {sorted(missing)}")
        if table.empty:
            raise ValueError(f"Imputation {i} has no rows")
        frames.append(table.assign(_imputation=i))
    all_models = pd.concat(frames, ignore_index=True)

    columns = list(all_models.columns)
    group_cols = [c for c in GROUP_COLUMNS if c in columns]
    stat_column = next((c for c in columns if _STAT_COLUMN.search(str(c))), None)
    df_column = next((c for c in columns if _DF_COLUMN.search(str(c))), None)

    alpha = (1 + ci) / 2
    rows = []
    single_imputation = False

    for _, group in all_models.groupby(group_cols, sort=False, dropna=False):
        m = len(group)
        single_imputation = single_imputation or m < 2

        coefficients = group["Coefficient"].to_numpy(dtype=float)
        se = group["SE"].to_numpy(dtype=float)

        ubar = float(np.mean(se ** 2))
        b = float(np.var(coefficients, ddof=1)) if m > 1 else 0.0
        total = ubar + (1 + 1 / m) * b

        row = group.iloc[0].to_dict()
        row["Coefficient"] = float(np.mean(coefficients))
        row["SE"] = float(np.sqrt(total))

        statistic = row["Coefficient"] / row["SE"] if row["SE"] > 0 else np.nan
        row[stat_column or "Statistic"] = statistic

        if df_column is not None:
            dof = barnard_rubin(m, b, total, group[df_column].to_numpy(dtype=float))
        else:
            dof = np.inf
        row[df_column or "df"] = dof

        quantile = _t_quantile(alpha, dof)
        row["CI_low"] = row["Coefficient"] - quantile * row["SE"]
        row["CI_high"] = row["Coefficient"] + quantile * row["SE"]
        row["p"] = _t_two_sided_p(statistic, dof)

        rows.append(row)

    if single_imputation:
        warnings.warn(
            "Some parameters were estimated in a single imputation; "
            "between-imputation variance is zero for them."
        )

    params = pd.DataFrame(rows).drop(columns="_imputation")
    params = params.reset_index(drop=True)

    applied_adjust = None
    if p_adjust is not None:
        if is_valid_method(p_adjust):
            params["p"] = adjust_pvalues(params["p"].to_numpy(), method=p_adjust)
            applied_adjust = p_adjust
        else:
            warnings.warn(f"Unknown p-value adjustment '{p_adjust}'; p-values not adjusted")

    if exponentiate:
        params = _exponentiate_parameters(params)

    return create_parameters_table(
        data=params,
        pretty_names=pretty_names,
        ci=ci,
        exponentiated=exponentiate,
        p_adjust=applied_adjust,
        n_imputations=len(tables),
    )


def _exponentiate_parameters(params: pd.DataFrame) -> pd.DataFrame:
    """Exponentiate coefficients and confidence limits."""
    params = params.copy()
    for column in ("Coefficient", "CI_low", "CI_high"):
        if column in params.columns:
            params[column] = np.exp(params[column])
    return params


def pool_models(
    results: List[Any],
    ci: float = DEFAULT_CI,
    exponentiate: bool = False,
    p_adjust: Optional[str] = None,
) -> ParametersTable:
    """
    Pool fitted statsmodels results from multiply imputed datasets.

    :param results: One fitted results object per imputation (same model)
    :param ci: Confidence level
    :param exponentiate: Exponentiate Coefficient and CI after pooling
    :param p_adjust: Multiplicity correction applied across pooled rows
    :returns: ParametersTable with the display names of the first analysis
    """
    if not results:
        raise ValueError("No fitted models to pool")

    tables = [model_parameters(result, ci=ci) for result in results]
    pretty_names = format_parameters(results[0])

    return pool_parameters(
        tables,
        ci=ci,
        exponentiate=exponentiate,
        p_adjust=p_adjust,
        pretty_names=pretty_names,
    )
