"""
Model Family Registry
=====================

Maps model families to the name-rewrite rules applied before parameter
names are classified and prettified. This is the dispatch mechanism that
lets the renaming pipeline handle ordinal, baseline-category, compositional
and zero-inflated models without branching on model classes.

Architecture Note:
    This module uses dictionaries (TypedDicts) instead of classes for data
    structures. All data containers are plain Python dicts with documented
    keys.

Usage:
    from mp_stats.registry import get_family_rule, ModelFamily

    rule = get_family_rule(ModelFamily.ORDINAL)
    name = rule["rewrite"]("Intercept: 1|2", info)
"""
from __future__ import annotations

from enum import Enum, auto
from typing import Callable, Dict, List, Optional, TypedDict
import warnings


# =============================================================================
# Enums
# =============================================================================

class ModelFamily(Enum):
    """Model family tag selecting a name-rewrite rule."""
    DEFAULT = auto()             # Linear and generalized linear models
    MIXED = auto()               # Mixed models (all effects are named)
    ZERO_INFLATED = auto()       # Zero-inflated count models
    HURDLE = auto()              # Hurdle count models
    ORDINAL = auto()             # Proportional odds ("Intercept: " thresholds)
    BASELINE_CATEGORY = auto()   # Baseline-category logit ("category:term")
    COMPOSITIONAL = auto()       # Dirichlet regression ("response.term")
    MULTINOMIAL = auto()         # Multinomial logit (one column per category)
    META = auto()                # Meta-analysis / pooled fits, names kept as-is


class TermType(Enum):
    """Kind of a single model term."""
    PLAIN = "plain"
    FACTOR = "factor"
    POLY = "poly"
    POLY_RAW = "poly_raw"
    SPLINE = "spline"
    LOGARITHM = "logarithm"
    EXPONENTIATION = "exponentiation"
    SQUAREROOT = "squareroot"
    ASIS = "asis"
    SMOOTH = "smooth"
    ORDERED = "ordered"
    INTERACTION = "interaction"
    NESTED = "nested"


# =============================================================================
# ModelInfo TypedDict
# =============================================================================

class ModelInfo(TypedDict):
    """
    Family and structure metadata for a fitted model.

    Keys:
        family: Model family tag
        distribution: Response distribution (e.g. "gaussian", "poisson")
        link: Link function name (e.g. "identity", "logit")
        is_multivariate: Whether the model has several response sub-models
        is_zero_inflated: Whether the model has a zero-inflation component
        is_hurdle: Whether the model is a hurdle model
        responses: Per-response ModelInfo dicts (multivariate models only)
        varnames: Response category names (compositional models)
        parametrization: "common" or "alternative" (compositional models)
    """
    family: ModelFamily
    distribution: str
    link: str
    is_multivariate: bool
    is_zero_inflated: bool
    is_hurdle: bool
    responses: List["ModelInfo"]
    varnames: List[str]
    parametrization: str


def create_model_info(
    family: ModelFamily = ModelFamily.DEFAULT,
    distribution: str = "unknown",
    link: str = "unknown",
    is_multivariate: bool = False,
    is_zero_inflated: bool = False,
    is_hurdle: bool = False,
    responses: Optional[List[ModelInfo]] = None,
    varnames: Optional[List[str]] = None,
    parametrization: str = "common",
) -> ModelInfo:
    """
    Create a ModelInfo dictionary.

    :param family: Model family tag
    :param distribution: Response distribution name
    :param link: Link function name
    :param is_multivariate: Whether the model has several response sub-models
    :param is_zero_inflated: Whether the model has a zero-inflation component
    :param is_hurdle: Whether the model is a hurdle model
    :param responses: Per-response ModelInfo dicts
    :param varnames: Response category names (compositional models)
    :param parametrization: "common" or "alternative" (compositional models)
    :returns: ModelInfo dictionary
    """
    return {
        "family": family,
        "distribution": distribution,
        "link": link,
        "is_multivariate": is_multivariate,
        "is_zero_inflated": is_zero_inflated,
        "is_hurdle": is_hurdle,
        "responses": responses or [],
        "varnames": varnames or [],
        "parametrization": parametrization,
    }


# =============================================================================
# FamilyRule TypedDict
# =============================================================================

NameRewrite = Callable[[str, ModelInfo], str]


class FamilyRule(TypedDict):
    """
    Name-rewrite rule for one model family.

    Keys:
        family: Model family the rule belongs to
        rewrite: Callable (name, info) -> name, applied before classification
        rewrite_original: Also rewrite the original names used as mapping keys
        effects: Default effects subset ("fixed" or "all")
        passthrough: Names are already display names; map each to itself
        description: Human-readable description
    """
    family: ModelFamily
    rewrite: Optional[NameRewrite]
    rewrite_original: bool
    effects: str
    passthrough: bool
    description: str


def create_family_rule(
    family: ModelFamily,
    rewrite: Optional[NameRewrite] = None,
    rewrite_original: bool = False,
    effects: str = "fixed",
    passthrough: bool = False,
    description: str = "",
) -> FamilyRule:
    """
    Create a FamilyRule dictionary.

    :param family: Model family the rule belongs to
    :param rewrite: Callable (name, info) -> name, or None for no rewrite
    :param rewrite_original: Also rewrite the original (key) names
    :param effects: Default effects subset ("fixed" or "all")
    :param passthrough: Map every name to itself, skipping classification
    :param description: Human-readable description
    :returns: FamilyRule dictionary
    """
    if effects not in ("fixed", "all"):
        raise ValueError(f"Unknown effects subset: {effects}")
    return {
        "family": family,
        "rewrite": rewrite,
        "rewrite_original": rewrite_original,
        "effects": effects,
        "passthrough": passthrough,
        "description": description,
    }


# =============================================================================
# Rewrite functions
# =============================================================================

ZERO_INFLATION_PREFIXES = ("count_", "zero_", "inflate_", "zm_", "hm_")


def strip_component_prefix(name: str, info: Optional[ModelInfo] = None) -> str:
    """Remove a zero-inflation/hurdle component prefix such as "count_"."""
    for prefix in ZERO_INFLATION_PREFIXES:
        if name.startswith(prefix):
            return name[len(prefix):]
    return name


def strip_intercept_label(name: str, info: Optional[ModelInfo] = None) -> str:
    """Remove the "Intercept: " label of ordinal threshold parameters."""
    return name.replace("Intercept: ", "")


def strip_baseline_category(name: str, info: Optional[ModelInfo] = None) -> str:
    """Keep the term after the last ":" ("category:term" -> "term")."""
    if ":" not in name:
        return name
    return name.rsplit(":", 1)[1]


def strip_compositional_response(name: str, info: Optional[ModelInfo] = None) -> str:
    """
    Remove the response-category part of a compositional-regression name.

    With the common parametrization names look like "<response>.<term>";
    otherwise "<response>.<part>.<term>" and only the last part is kept.
    """
    if info is not None and info.get("parametrization", "common") == "common":
        for response in sorted(info.get("varnames", []), key=len, reverse=True):
            if name.startswith(f"{response}."):
                return name[len(response) + 1:]
        return name
    parts = name.split(".")
    if len(parts) >= 3:
        return parts[-1]
    return name


# =============================================================================
# DEFAULT FAMILY RULES
# =============================================================================

_DEFAULT_FAMILY_RULES: Dict[ModelFamily, FamilyRule] = {
    ModelFamily.DEFAULT: create_family_rule(
        family=ModelFamily.DEFAULT,
        description="No rewrite",
    ),
    ModelFamily.MIXED: create_family_rule(
        family=ModelFamily.MIXED,
        effects="all",
        description="Fixed and random effects are both named",
    ),
    ModelFamily.ZERO_INFLATED: create_family_rule(
        family=ModelFamily.ZERO_INFLATED,
        rewrite=strip_component_prefix,
        description="Strip count_/zero_/inflate_ component prefixes",
    ),
    ModelFamily.HURDLE: create_family_rule(
        family=ModelFamily.HURDLE,
        rewrite=strip_component_prefix,
        description="Strip count_/zero_ component prefixes",
    ),
    ModelFamily.ORDINAL: create_family_rule(
        family=ModelFamily.ORDINAL,
        rewrite=strip_intercept_label,
        rewrite_original=True,
        description="Strip 'Intercept: ' from threshold names",
    ),
    ModelFamily.BASELINE_CATEGORY: create_family_rule(
        family=ModelFamily.BASELINE_CATEGORY,
        rewrite=strip_baseline_category,
        description="Strip the 'category:' prefix",
    ),
    ModelFamily.COMPOSITIONAL: create_family_rule(
        family=ModelFamily.COMPOSITIONAL,
        rewrite=strip_compositional_response,
        rewrite_original=True,
        description="Strip the response-category part of the name",
    ),
    ModelFamily.MULTINOMIAL: create_family_rule(
        family=ModelFamily.MULTINOMIAL,
        description="One column of parameters per category; names shared",
    ),
    ModelFamily.META: create_family_rule(
        family=ModelFamily.META,
        passthrough=True,
        description="Names are kept as-is",
    ),
}

FAMILY_RULES: Dict[ModelFamily, FamilyRule] = dict(_DEFAULT_FAMILY_RULES)


# =============================================================================
# Registry Functions
# =============================================================================

def get_family_rule(family: ModelFamily) -> FamilyRule:
    """
    Get the rewrite rule for a model family.

    Unregistered families fall back to the DEFAULT rule with a warning.

    :param family: Model family tag
    :returns: FamilyRule dictionary
    """
    if family in FAMILY_RULES:
        return FAMILY_RULES[family]

    warnings.warn(
        f"No rule registered for family {family.name}; using DEFAULT. "
        f"Consider registering one with register_family_rule().",
        UserWarning,
    )
    return FAMILY_RULES.get(ModelFamily.DEFAULT, _DEFAULT_FAMILY_RULES[ModelFamily.DEFAULT])


def resolve_family(info: ModelInfo) -> ModelFamily:
    """
    Pick the family whose rule applies to a model.

    Zero-inflation and hurdle flags take precedence over the family tag.
    """
    if info.get("is_zero_inflated", False):
        return ModelFamily.ZERO_INFLATED
    if info.get("is_hurdle", False):
        return ModelFamily.HURDLE
    return info.get("family", ModelFamily.DEFAULT)


def register_family_rule(
    family: ModelFamily,
    rewrite: Optional[NameRewrite] = None,
    rewrite_original: bool = False,
    effects: str = "fixed",
    passthrough: bool = False,
    description: str = "",
    overwrite: bool = False,
) -> FamilyRule:
    """
    Register a name-rewrite rule for a model family.

    :param family: Model family tag
    :param rewrite: Callable (name, info) -> name
    :param rewrite_original: Also rewrite the original (key) names
    :param effects: Default effects subset ("fixed" or "all")
    :param passthrough: Map every name to itself
    :param description: Human-readable description
    :param overwrite: Allow replacing an existing rule
    :returns: The registered FamilyRule dict
    """
    if family in FAMILY_RULES and not overwrite:
        raise ValueError(
            f"Family {family.name} already has a rule. Use overwrite=True to replace."
        )

    rule = create_family_rule(
        family=family,
        rewrite=rewrite,
        rewrite_original=rewrite_original,
        effects=effects,
        passthrough=passthrough,
        description=description,
    )
    FAMILY_RULES[family] = rule
    return rule


def list_families(with_rewrite_only: bool = False) -> List[ModelFamily]:
    """
    List families with a registered rule.

    :param with_rewrite_only: Only return families whose rule rewrites names
    :returns: List of ModelFamily tags, in registration order
    """
    return [
        family for family, rule in FAMILY_RULES.items()
        if not with_rewrite_only or rule["rewrite"] is not None
    ]


def reset_registry() -> None:
    """Reset the family rule table to the default rules."""
    FAMILY_RULES.clear()
    FAMILY_RULES.update(_DEFAULT_FAMILY_RULES)
