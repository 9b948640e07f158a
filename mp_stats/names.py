"""
Parameter Names Module
======================

Builds the mapping from a model's raw parameter names to human-readable
display names ("pretty names"), and the ParametersTable container that
carries that mapping next to a parameter table.

Architecture Note:
    This module uses dictionaries (TypedDicts) instead of classes for data
    structures. All data containers are plain Python dicts with documented
    keys.

Pipeline (format_parameters):
1. extract raw names, family info and term metadata from the model
2. use the first response's info for multivariate models
3. apply the family rewrite rule (zero-inflation prefixes, ordinal
   "Intercept: " labels, baseline categories, compositional responses)
4. strip coercion wrappers to obtain clean lookup keys
5. classify every term
6. format single terms; compose interactions from their constituents
7. key the result by the original raw names

Usage:
    import statsmodels.formula.api as smf
    from mp_stats import format_parameters

    fit = smf.ols("y ~ C(group) * x", data=df).fit()
    format_parameters(fit)
    # {"Intercept": "Intercept", "C(group)[T.b]": "group [b]",
    #  "x": "x", "C(group)[T.b]:x": "group [b] * x"}
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict

import pandas as pd

from .formatting import format_interaction, format_parameter
from .registry import (
    ModelInfo,
    TermType,
    create_model_info,
    get_family_rule,
    resolve_family,
)
from .terms import (
    TermInfo,
    TermMetadata,
    classify_parameter,
    classify_parameters,
    clean_parameter_name,
    create_term_metadata,
)


_INTERACTION_TYPES = (TermType.INTERACTION, TermType.NESTED)


# =============================================================================
# ModelDescription TypedDict
# =============================================================================

class ModelDescription(TypedDict):
    """
    Extracted view of a fitted model, as used by the renaming pipeline.

    Keys:
        parameters: Raw names of the fixed-effects parameters, in model order
        random_parameters: Raw names of random-effects parameters (if any)
        info: ModelInfo with family and structure flags
        metadata: TermMetadata (factors, ordered contrasts, nested terms)
    """
    parameters: List[str]
    random_parameters: List[str]
    info: ModelInfo
    metadata: TermMetadata


def create_model_description(
    parameters: List[str],
    info: Optional[ModelInfo] = None,
    metadata: Optional[TermMetadata] = None,
    random_parameters: Optional[List[str]] = None,
) -> ModelDescription:
    """
    Create a ModelDescription dictionary.

    :param parameters: Raw fixed-effects parameter names
    :param info: ModelInfo (default: DEFAULT family)
    :param metadata: TermMetadata (default: no factors)
    :param random_parameters: Raw random-effects parameter names
    :returns: ModelDescription dictionary
    """
    return {
        "parameters": list(parameters),
        "random_parameters": list(random_parameters or []),
        "info": info if info is not None else create_model_info(),
        "metadata": metadata if metadata is not None else create_term_metadata(),
    }


# =============================================================================
# ParametersTable TypedDict
# =============================================================================

class ParametersTable(TypedDict):
    """
    Parameter table plus its display-name overlay.

    Keys:
        data: DataFrame with one row per parameter (Parameter, Coefficient, SE, ...)
        pretty_names: Raw parameter name -> display name
        ci: Confidence level of CI_low / CI_high
        exponentiated: Whether coefficients and CIs are exponentiated
        p_adjust: Multiplicity correction applied to p (None = none)
        n_imputations: Number of imputations pooled (1 for a single fit)
    """
    data: pd.DataFrame
    pretty_names: Dict[str, str]
    ci: float
    exponentiated: bool
    p_adjust: Optional[str]
    n_imputations: int


def create_parameters_table(
    data: pd.DataFrame,
    pretty_names: Optional[Dict[str, str]] = None,
    ci: float = 0.95,
    exponentiated: bool = False,
    p_adjust: Optional[str] = None,
    n_imputations: int = 1,
) -> ParametersTable:
    """
    Create a ParametersTable dictionary.

    :param data: Parameter DataFrame
    :param pretty_names: Raw parameter name -> display name
    :param ci: Confidence level
    :param exponentiated: Whether coefficients are exponentiated
    :param p_adjust: Multiplicity correction applied to p
    :param n_imputations: Number of imputations pooled
    :returns: ParametersTable dictionary
    """
    return {
        "data": data,
        "pretty_names": dict(pretty_names or {}),
        "ci": ci,
        "exponentiated": exponentiated,
        "p_adjust": p_adjust,
        "n_imputations": n_imputations,
    }


def apply_pretty_names(table: ParametersTable) -> pd.DataFrame:
    """
    Return a copy of the table data with display names in ``Parameter``.

    Names without an entry in the overlay are kept unchanged.

    :param table: ParametersTable dictionary
    :returns: DataFrame with prettified Parameter column
    """
    df = table["data"].copy()
    pretty = table["pretty_names"]
    if pretty and "Parameter" in df.columns:
        df["Parameter"] = df["Parameter"].map(lambda name: pretty.get(name, name))
    return df


def summarize_parameters_table(table: ParametersTable) -> str:
    """
    Generate a summary string for a parameter table.

    :param table: ParametersTable dictionary
    :returns: Human-readable summary string
    """
    df = table["data"]
    n_sig = 0
    if "p" in df.columns:
        n_sig = int((df["p"] < 0.05).sum())

    lines = [
        f"Parameters: {len(df)}",
        f"  Imputations pooled: {table['n_imputations']}",
        f"  CI level: {table['ci']:.0%}",
        f"  Significant (p<0.05): {n_sig}",
        f"  p-value adjustment: {table['p_adjust'] or 'none'}",
    ]
    if table["exponentiated"]:
        lines.append("  Coefficients exponentiated")
    return "\n".join(lines)


# =============================================================================
# Renaming Pipeline
# =============================================================================

def format_parameters(
    model: Any,
    effects: Optional[str] = None,
) -> Dict[str, str]:
    """
    Map every raw parameter name of a model to a display name.

    :param model: ModelDescription dict or fitted statsmodels results object
    :param effects: "fixed" or "all" (None = family default)
    :returns: Dict mapping original raw names to display names

    Example:
        >>> desc = create_model_description(
        ...     ["Speciesversicolor", "Sepal.Width", "Speciesversicolor:Sepal.Width"],
        ...     metadata=create_term_metadata(factors={"Species": ["setosa", "versicolor"]}),
        ... )
        >>> format_parameters(desc)["Speciesversicolor:Sepal.Width"]
        'Species [versicolor] * Sepal.Width'
    """
    if isinstance(model, dict) and "parameters" in model:
        description = model
    else:
        from .introspection import describe_model
        description = describe_model(model)

    info = _first_response_info(description["info"])
    rule = get_family_rule(resolve_family(info))

    effects = effects or rule["effects"]
    if effects not in ("fixed", "all"):
        raise ValueError(f"Unknown effects subset: {effects}. Use 'fixed' or 'all'.")

    original = list(description["parameters"])
    if effects == "all":
        original += description.get("random_parameters", [])

    if rule["passthrough"]:
        return {name: name for name in original}

    names = list(original)
    if rule["rewrite"] is not None:
        names = [rule["rewrite"](name, info) for name in names]
        if rule["rewrite_original"]:
            original = list(names)

    metadata = description["metadata"]
    terms = classify_parameters(names, metadata)

    primary: Dict[str, TermInfo] = {}
    secondary: Dict[str, TermInfo] = {}
    for term in terms:
        primary.setdefault(term["parameter"], term)
        if term["secondary_parameter"] is not None:
            secondary.setdefault(term["secondary_parameter"], term)

    pretty: Dict[str, str] = {}
    for key, term in zip(original, terms):
        if key in pretty:
            # multi-response models repeat names; the first one wins
            continue

        if term["type"] not in _INTERACTION_TYPES:
            pretty[key] = format_parameter(
                term["parameter"], term["variable"], term["type"], term["level"]
            )
            continue

        labels = [
            _format_component(component, primary, secondary, metadata)
            for component in term["components"]
        ]
        pretty[key] = format_interaction(
            labels,
            term_type=term["type"],
            is_nested=term["type"] == TermType.NESTED,
        )

    return pretty


def _first_response_info(info: ModelInfo) -> ModelInfo:
    """Use the first response's info for multivariate, non-zero-inflated models."""
    if (
        info.get("is_multivariate", False)
        and not info.get("is_zero_inflated", False)
        and info.get("responses")
    ):
        return info["responses"][0]
    return info


def _format_component(
    component: str,
    primary: Dict[str, TermInfo],
    secondary: Dict[str, TermInfo],
    metadata: TermMetadata,
) -> str:
    """Format one interaction constituent, preferring primary classifications."""
    clean = clean_parameter_name(component)

    if clean in primary:
        term = primary[clean]
        return format_parameter(clean, term["variable"], term["type"], term["level"])

    if clean in secondary:
        term = secondary[clean]
        return format_parameter(
            clean,
            term["secondary_variable"],
            term["secondary_type"],
            term["secondary_level"],
        )

    term = classify_parameter(component, metadata)
    return format_parameter(term["parameter"], term["variable"], term["type"], term["level"])
