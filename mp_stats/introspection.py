"""
Model Introspection Module
==========================

Adapter between fitted statsmodels results and the rest of the package.
Extracts parameter names, family/link information, variable metadata
(factors, ordered contrasts, nested terms) and per-model parameter tables.

Supported results:
- OLS / WLS / GLS and GLM fits
- MixedLM fits (fixed and random effects)
- discrete models (Logit, Probit, Poisson, NegativeBinomial, MNLogit)
- zero-inflated count models and hurdle count models
- OrderedModel fits

Formula-based fits (``smf.ols("y ~ ...", data=df)``) additionally provide
factor levels and nesting from the patsy design information.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.discrete.count_model import GenericZeroInflated
from statsmodels.discrete.discrete_model import MNLogit
from statsmodels.discrete.truncated_model import HurdleCountModel
from statsmodels.genmod.generalized_linear_model import GLM
from statsmodels.miscmodels.ordinal_model import OrderedModel
from statsmodels.regression.linear_model import RegressionModel
from statsmodels.regression.mixed_linear_model import MixedLM

from .names import ModelDescription, create_model_description
from .registry import ModelFamily, ModelInfo, create_model_info
from .terms import (
    TermMetadata,
    clean_parameter_name,
    create_term_metadata,
    parse_wrapper,
    split_top_level,
)


_DISCRETE_LINKS = {
    "Logit": "logit",
    "Probit": "probit",
    "Poisson": "log",
    "NegativeBinomial": "log",
    "NegativeBinomialP": "log",
    "GeneralizedPoisson": "log",
}

_ZERO_COMPONENT_PREFIXES = ("zero_", "inflate_", "zm_")


# =============================================================================
# Model Info
# =============================================================================

def _get_model(result: Any) -> Any:
    model = getattr(result, "model", None)
    if model is None:
        raise TypeError(
            f"Cannot introspect object of type {type(result).__name__}; "
            f"expected a fitted statsmodels results object or a ModelDescription."
        )
    return model


def model_info(result: Any) -> ModelInfo:
    """
    Determine family, distribution and link of a fitted model.

    :param result: Fitted statsmodels results object
    :returns: ModelInfo dictionary
    """
    model = _get_model(result)
    class_name = type(model).__name__

    if isinstance(model, GenericZeroInflated):
        return create_model_info(
            family=ModelFamily.ZERO_INFLATED,
            distribution=class_name.replace("ZeroInflated", "").lower(),
            link="log",
            is_zero_inflated=True,
        )

    if isinstance(model, HurdleCountModel):
        return create_model_info(
            family=ModelFamily.HURDLE,
            distribution="hurdle",
            link="log",
            is_hurdle=True,
        )

    if isinstance(model, OrderedModel):
        distr = getattr(getattr(model, "distr", None), "name", "")
        link = {"logistic": "logit", "norm": "probit"}.get(distr, distr or "unknown")
        return create_model_info(
            family=ModelFamily.ORDINAL,
            distribution="ordinal",
            link=link,
        )

    if isinstance(model, MNLogit):
        return create_model_info(
            family=ModelFamily.MULTINOMIAL,
            distribution="multinomial",
            link="logit",
        )

    if isinstance(model, MixedLM):
        return create_model_info(
            family=ModelFamily.MIXED,
            distribution="gaussian",
            link="identity",
        )

    if isinstance(model, GLM):
        return create_model_info(
            family=ModelFamily.DEFAULT,
            distribution=type(model.family).__name__.lower(),
            link=type(model.family.link).__name__.lower(),
        )

    if isinstance(model, RegressionModel):
        return create_model_info(
            family=ModelFamily.DEFAULT,
            distribution="gaussian",
            link="identity",
        )

    return create_model_info(
        family=ModelFamily.DEFAULT,
        distribution=class_name.lower(),
        link=_DISCRETE_LINKS.get(class_name, "unknown"),
    )


# =============================================================================
# Parameter Names
# =============================================================================

def _param_names(result: Any, params: Any) -> List[str]:
    """Names of a params vector, falling back to the model's exog names."""
    if isinstance(params, (pd.Series, pd.DataFrame)):
        return [str(name) for name in params.index]

    n_params = len(np.atleast_1d(params))
    exog_names = getattr(result.model, "exog_names", None) or []
    if len(exog_names) == n_params:
        return [str(name) for name in exog_names]
    return [f"x{i}" for i in range(n_params)]


def find_parameters(result: Any, effects: str = "fixed") -> List[str]:
    """
    Get the ordered, unique parameter names of a fitted model.

    :param result: Fitted statsmodels results object
    :param effects: "fixed" (fixed effects only), "random" or "all"
    :returns: List of raw parameter names
    """
    if effects not in ("fixed", "random", "all"):
        raise ValueError(f"Unknown effects subset: {effects}. Use 'fixed', 'random' or 'all'.")

    model = _get_model(result)

    if isinstance(model, MixedLM):
        fixed = _param_names(result, result.fe_params)
        every = _param_names(result, result.params)
        if effects == "fixed":
            return fixed
        random = [name for name in every if name not in fixed]
        return random if effects == "random" else fixed + random

    if effects == "random":
        return []
    names = _param_names(result, result.params)
    return list(dict.fromkeys(names))


# =============================================================================
# Term Metadata
# =============================================================================

def term_metadata(result: Any) -> TermMetadata:
    """
    Collect factor levels, ordered contrasts and nested terms of a model.

    Uses the patsy design information of formula-based fits; models fitted
    from arrays yield empty metadata.

    :param result: Fitted statsmodels results object
    :returns: TermMetadata dictionary
    """
    model = _get_model(result)
    factors: Dict[str, List[str]] = {}
    ordered: List[str] = []

    # statsmodels 0.15 renamed data.design_info to data.model_spec
    data = getattr(model, "data", None)
    design_info = getattr(data, "design_info", None) or getattr(data, "model_spec", None)
    factor_infos = getattr(design_info, "factor_infos", None) or {}
    for factor, info in factor_infos.items():
        categories = _factor_categories(info)
        if categories is None:
            continue
        code = factor.name() if callable(getattr(factor, "name", None)) else str(factor)
        variable = clean_parameter_name(code)
        factors[variable] = [str(level) for level in categories]

        wrapper = parse_wrapper(code)
        if wrapper is not None and "Poly" in wrapper["arguments"]:
            ordered.append(variable)

    formula = getattr(model, "formula", None)
    nested = find_nested_terms(formula) if isinstance(formula, str) else []

    return create_term_metadata(factors=factors, ordered=ordered, nested=nested)


def _factor_categories(info: Any) -> Optional[Sequence[Any]]:
    """Levels of a categorical factor, or None for numerical factors."""
    if isinstance(info, (tuple, list)):
        return info
    if getattr(info, "type", None) != "categorical":
        return None
    return info.categories


def find_nested_terms(formula: str) -> List[List[str]]:
    """
    Find nested terms ("a / b") on the right-hand side of a formula.

    :param formula: Model formula, e.g. "y ~ x + (g / z)"
    :returns: One list of (clean) variable names per nested term
    """
    rhs = formula.split("~", 1)[-1]
    nested = []

    for term in split_top_level(rhs, "+"):
        term = _strip_parentheses(term.strip())
        parts = split_top_level(term, "/")
        if len(parts) < 2:
            continue
        nested.append([clean_parameter_name(_strip_parentheses(p.strip())) for p in parts])

    return nested


def _strip_parentheses(text: str) -> str:
    """Remove parentheses that enclose the whole text."""
    while text.startswith("(") and text.endswith(")"):
        depth = 0
        for ch in text[1:-1]:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth < 0:
                    return text
        text = text[1:-1].strip()
    return text


# =============================================================================
# Model Description
# =============================================================================

def describe_model(result: Any) -> ModelDescription:
    """
    Extract everything the renaming pipeline needs from a fitted model.

    :param result: Fitted statsmodels results object
    :returns: ModelDescription dictionary
    """
    return create_model_description(
        parameters=find_parameters(result, effects="fixed"),
        random_parameters=find_parameters(result, effects="random"),
        info=model_info(result),
        metadata=term_metadata(result),
    )


# =============================================================================
# Parameter Tables
# =============================================================================

def model_parameters(result: Any, ci: float = 0.95) -> pd.DataFrame:
    """
    Extract a parameter table from a fitted model.

    Models using t statistics get a ``t`` column and their residual degrees
    of freedom in ``df_error``; all others get ``z`` and infinite
    ``df_error``. Multinomial models add a ``Response`` column, zero-inflated
    and hurdle models a ``Component`` column.

    :param result: Fitted statsmodels results object
    :param ci: Confidence level for CI_low / CI_high
    :returns: DataFrame with Parameter, Coefficient, SE, CI_low, CI_high,
        t or z, df_error and p columns
    """
    if not 0 < ci < 1:
        raise ValueError(f"ci must be between 0 and 1, got {ci}")

    model = _get_model(result)
    info = model_info(result)

    if isinstance(model, MixedLM):
        coef, se = result.fe_params, result.bse_fe
    else:
        coef, se = result.params, result.bse

    if isinstance(coef, pd.DataFrame):
        if not isinstance(se, pd.DataFrame):
            se = pd.DataFrame(np.asarray(se).reshape(coef.shape), index=coef.index, columns=coef.columns)
        frames = []
        for response in coef.columns:
            frame = _parameter_frame(result, coef[response], se[response], ci)
            frame.insert(1, "Response", str(response))
            frames.append(frame)
        return pd.concat(frames, ignore_index=True)

    if not isinstance(coef, pd.Series):
        names = _param_names(result, coef)
        coef = pd.Series(np.asarray(coef), index=names)
        se = pd.Series(np.asarray(se), index=names)

    df = _parameter_frame(result, coef, se, ci)
    if info["is_zero_inflated"] or info["is_hurdle"]:
        component = [
            "zero_inflated" if name.startswith(_ZERO_COMPONENT_PREFIXES) else "conditional"
            for name in df["Parameter"]
        ]
        df.insert(1, "Component", component)
    return df


def _parameter_frame(result: Any, coef: pd.Series, se: pd.Series, ci: float) -> pd.DataFrame:
    """Build the coefficient table for one params vector."""
    use_t = bool(getattr(result, "use_t", False))
    coef = coef.astype(float)
    se = se.reindex(coef.index).astype(float)
    statistic = coef / se
    alpha = (1 + ci) / 2

    if use_t:
        dof = float(result.df_resid)
        quantile = stats.t.ppf(alpha, dof)
        p_value = 2 * stats.t.sf(np.abs(statistic), dof)
    else:
        dof = np.inf
        quantile = stats.norm.ppf(alpha)
        p_value = 2 * stats.norm.sf(np.abs(statistic))

    return pd.DataFrame({
        "Parameter": [str(name) for name in coef.index],
        "Coefficient": coef.values,
        "SE": se.values,
        "CI_low": (coef - quantile * se).values,
        "CI_high": (coef + quantile * se).values,
        "t" if use_t else "z": statistic.values,
        "df_error": dof,
        "p": np.asarray(p_value),
    })
