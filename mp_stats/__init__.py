"""
MP Stats - Model Parameter Utilities
====================================

Post-processing utilities for fitted regression models: human-readable
parameter names, pooling of multiply imputed analyses, and factor-analysis
suitability checks.

Architecture Note:
    This package uses dictionaries (TypedDicts) instead of classes for data
    structures. All data containers are plain Python dicts with documented
    keys.

Architecture:
- registry: Model families and their name-rewrite rules
- terms: Term-name tokenizer and classifier
- formatting: Display names for single terms and interactions
- names: Parameter renaming pipeline and ParametersTable
- introspection: statsmodels adapter (names, family, metadata, tables)
- pooling: Rubin's rules with Barnard-Rubin degrees of freedom
- multiplicity: p-value adjustment
- factor_structure: KMO and Bartlett's sphericity test

Usage:
    import statsmodels.formula.api as smf
    from mp_stats import format_parameters, pool_models, check_factorstructure

    fit = smf.ols("y ~ C(group) * x", data=df).fit()
    pretty = format_parameters(fit)

    pooled = pool_models([smf.ols("y ~ x", data=d).fit() for d in imputed])
    print(apply_pretty_names(pooled))

    check_factorstructure(df[["a", "b", "c"]])
"""
from __future__ import annotations

__version__ = "0.1.0"

# Registry - Enums and TypedDicts
from .registry import (
    ModelFamily,
    TermType,
    ModelInfo,
    create_model_info,
    FamilyRule,
    create_family_rule,
    FAMILY_RULES,
    get_family_rule,
    resolve_family,
    register_family_rule,
    list_families,
    reset_registry,
)

# Term classification
from .terms import (
    WrapperSyntax,
    TermMetadata,
    TermInfo,
    create_term_metadata,
    create_term_info,
    parse_wrapper,
    split_interaction,
    clean_parameter_name,
    clean_parameter_names,
    classify_parameter,
    classify_parameters,
    parameters_type,
)

# Formatting
from .formatting import (
    format_order,
    format_parameter,
    format_ordered,
    format_interaction,
)

# Renaming pipeline - TypedDicts and functions
from .names import (
    ModelDescription,
    create_model_description,
    ParametersTable,
    create_parameters_table,
    apply_pretty_names,
    summarize_parameters_table,
    format_parameters,
)

# statsmodels adapter
from .introspection import (
    model_info,
    find_parameters,
    term_metadata,
    find_nested_terms,
    describe_model,
    model_parameters,
)

# Pooling
from .pooling import (
    barnard_rubin,
    pool_parameters,
    pool_models,
)

# Multiplicity corrections
from .multiplicity import (
    CorrectionMethod,
    P_ADJUST_METHODS,
    adjust_pvalues,
)

# Factor structure - TypedDicts and functions
from .factor_structure import (
    KMOResult,
    SphericityResult,
    FactorStructureResult,
    summarize_factorstructure,
    correlation_matrix,
    kmo_from_correlation,
    check_kmo,
    sphericity_from_correlation,
    check_sphericity,
    check_factorstructure,
)

__all__ = [
    # Version
    "__version__",

    # Registry
    "ModelFamily",
    "TermType",
    "ModelInfo",
    "create_model_info",
    "FamilyRule",
    "create_family_rule",
    "FAMILY_RULES",
    "get_family_rule",
    "resolve_family",
    "register_family_rule",
    "list_families",
    "reset_registry",

    # Terms
    "WrapperSyntax",
    "TermMetadata",
    "TermInfo",
    "create_term_metadata",
    "create_term_info",
    "parse_wrapper",
    "split_interaction",
    "clean_parameter_name",
    "clean_parameter_names",
    "classify_parameter",
    "classify_parameters",
    "parameters_type",

    # Formatting
    "format_order",
    "format_parameter",
    "format_ordered",
    "format_interaction",

    # Names
    "ModelDescription",
    "create_model_description",
    "ParametersTable",
    "create_parameters_table",
    "apply_pretty_names",
    "summarize_parameters_table",
    "format_parameters",

    # Introspection
    "model_info",
    "find_parameters",
    "term_metadata",
    "find_nested_terms",
    "describe_model",
    "model_parameters",

    # Pooling
    "barnard_rubin",
    "pool_parameters",
    "pool_models",

    # Multiplicity
    "CorrectionMethod",
    "P_ADJUST_METHODS",
    "adjust_pvalues",

    # Factor structure
    "KMOResult",
    "SphericityResult",
    "FactorStructureResult",
    "summarize_factorstructure",
    "correlation_matrix",
    "kmo_from_correlation",
    "check_kmo",
    "sphericity_from_correlation",
    "check_sphericity",
    "check_factorstructure",
]
