"""
Term Classification Module
==========================

Parses raw model-term names (as produced by the fitting procedure) and
classifies each one into a term kind: factor level, polynomial, spline,
transformation, smooth, ordered contrast, interaction or plain.

Term names are read with a small tokenizer rather than regular
expressions: every known wrapper syntax (``poly(x, 2)1``, ``log(x)``,
``C(g)[T.b]``, ``bs(x, df=3)[0]``, ...) is split into a structured
``(function, inner expression, arguments, suffix)`` record.

Both R-style names (``Speciesversicolor``, ``poly(x, 2)1``, ``cyl.L``) and
patsy-style names (``C(g)[T.b]``, ``np.log(x)``, ``C(dose, Poly)[.Linear]``)
are understood.

Architecture Note:
    This module uses dictionaries (TypedDicts) instead of classes for data
    structures. All data containers are plain Python dicts with documented
    keys.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple, TypedDict, Union

import pandas as pd

from .registry import TermType


# =============================================================================
# Wrapper vocabulary
# =============================================================================

_COERCION_FUNCTIONS = {
    "factor", "as.factor", "ordered", "as.ordered", "C", "as.character",
    "as.numeric", "as.integer", "as.logical",
}
_NUMERIC_COERCIONS = {"as.numeric", "as.integer", "as.logical"}
_POLY_FUNCTIONS = {"poly"}
_SPLINE_FUNCTIONS = {"bs", "ns", "cr", "cc", "cs", "rcs"}
_LOG_FUNCTIONS = {"log", "log1p", "log2", "log10"}
_EXP_FUNCTIONS = {"exp", "expm1"}
_SQRT_FUNCTIONS = {"sqrt"}
_ASIS_FUNCTIONS = {"I"}
_SMOOTH_FUNCTIONS = {"s", "te", "ti", "t2"}

_NAMESPACES = ("np.", "numpy.", "math.")
_TRUE_VALUES = {"TRUE", "T", "True", "true", "1"}

# patsy Poly contrast labels -> R contrast codes
_ORDERED_LABELS = {".Linear": ".L", ".Quadratic": ".Q", ".Cubic": ".C"}
_ORDERED_CODES = {".L", ".Q", ".C"}

# patsy contrast prefixes inside brackets (Treatment, Sum, Diff, Helmert)
_CONTRAST_PREFIXES = ("T.", "S.", "D.", "H.")

_OPENERS = "([{"
_CLOSERS = ")]}"


# =============================================================================
# TypedDicts
# =============================================================================

class WrapperSyntax(TypedDict):
    """
    Structured form of ``function(inner, args..., key = value)suffix``.

    Keys:
        function: Function name as written (may carry a namespace, "np.log")
        inner: First argument (the wrapped expression)
        arguments: Remaining positional arguments
        keywords: Keyword arguments (name -> value as written)
        suffix: Text after the closing parenthesis ("1", "[T.b]", ".L")
    """
    function: str
    inner: str
    arguments: List[str]
    keywords: Dict[str, str]
    suffix: str


class TermMetadata(TypedDict):
    """
    Variable-level metadata of a fitted model.

    Keys:
        factors: Factor variable name -> list of level labels
        ordered: Variables coded with polynomial (ordered) contrasts
        nested: Variables joined by "/" in the formula, one list per term
    """
    factors: Dict[str, List[str]]
    ordered: List[str]
    nested: List[List[str]]


class TermInfo(TypedDict):
    """
    Classification of one model parameter.

    Keys:
        parameter: Clean parameter name (coercion wrappers removed)
        raw_name: Name as produced by the fitting procedure
        type: Term kind
        variable: Underlying predictor variable
        level: Factor level, polynomial degree or ordered-contrast code
        components: Raw constituent names (interactions only)
        secondary_parameter: Constituent not found among primary parameters
        secondary_type: Kind of the secondary constituent
        secondary_variable: Variable of the secondary constituent
        secondary_level: Level of the secondary constituent
    """
    parameter: str
    raw_name: str
    type: TermType
    variable: str
    level: Optional[Union[str, int]]
    components: List[str]
    secondary_parameter: Optional[str]
    secondary_type: Optional[TermType]
    secondary_variable: Optional[str]
    secondary_level: Optional[Union[str, int]]


def create_term_metadata(
    factors: Optional[Dict[str, List[str]]] = None,
    ordered: Optional[List[str]] = None,
    nested: Optional[List[List[str]]] = None,
) -> TermMetadata:
    """
    Create a TermMetadata dictionary.

    :param factors: Factor variable name -> list of level labels
    :param ordered: Variables coded with polynomial contrasts
    :param nested: Variables joined by "/" in the formula
    :returns: TermMetadata dictionary
    """
    return {
        "factors": {k: [str(v) for v in levels] for k, levels in (factors or {}).items()},
        "ordered": list(ordered or []),
        "nested": [list(group) for group in (nested or [])],
    }


def create_term_info(
    parameter: str,
    raw_name: Optional[str] = None,
    term_type: TermType = TermType.PLAIN,
    variable: Optional[str] = None,
    level: Optional[Union[str, int]] = None,
    components: Optional[List[str]] = None,
) -> TermInfo:
    """
    Create a TermInfo dictionary.

    :param parameter: Clean parameter name
    :param raw_name: Name as produced by the fitting procedure (default: parameter)
    :param term_type: Term kind
    :param variable: Underlying variable (default: parameter)
    :param level: Factor level, polynomial degree or contrast code
    :param components: Raw constituent names for interactions
    :returns: TermInfo dictionary with empty secondary fields
    """
    return {
        "parameter": parameter,
        "raw_name": raw_name if raw_name is not None else parameter,
        "type": term_type,
        "variable": variable if variable is not None else parameter,
        "level": level,
        "components": components or [],
        "secondary_parameter": None,
        "secondary_type": None,
        "secondary_variable": None,
        "secondary_level": None,
    }


# =============================================================================
# Tokenizer
# =============================================================================

def split_top_level(text: str, sep: str) -> List[str]:
    """
    Split text on a single-character separator outside brackets and quotes.

    :param text: Text to split
    :param sep: Separator character
    :returns: List of parts (unstripped)
    """
    parts = []
    depth = 0
    quote = None
    current = []

    for ch in text:
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(depth - 1, 0)
        elif ch == sep and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)

    parts.append("".join(current))
    return parts


def split_interaction(name: str) -> List[str]:
    """Split an interaction term into its constituent names."""
    return [part.strip() for part in split_top_level(name, ":")]


def parse_wrapper(name: str) -> Optional[WrapperSyntax]:
    """
    Parse ``function(inner, ...)suffix`` wrapper syntax.

    :param name: Raw term name
    :returns: WrapperSyntax dict, or None if the name is not a wrapper call
    """
    start = name.find("(")
    if start <= 0:
        return None

    function = name[:start].strip()
    if not function or not all(c.isalnum() or c in "._" for c in function):
        return None

    depth = 0
    end = -1
    for pos in range(start, len(name)):
        ch = name[pos]
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
            if depth == 0:
                end = pos
                break
    if end < 0 or name[end] != ")":
        return None

    parts = split_top_level(name[start + 1:end], ",")
    arguments = []
    keywords = {}
    for part in parts[1:]:
        key, eq, value = part.partition("=")
        if eq and key.strip().replace(".", "_").isidentifier() and not value.startswith("="):
            keywords[key.strip()] = value.strip()
        else:
            arguments.append(part.strip())

    return {
        "function": function,
        "inner": parts[0].strip(),
        "arguments": arguments,
        "keywords": keywords,
        "suffix": name[end + 1:],
    }


def canonical_function(function: str) -> str:
    """Strip a namespace prefix ("np.log" -> "log")."""
    for namespace in _NAMESPACES:
        if function.startswith(namespace):
            return function[len(namespace):]
    return function


def _split_bracket(name: str) -> Tuple[str, str]:
    """Split ``base[content]`` into (base, "[content]"); ("name", "") otherwise."""
    if not name.endswith("]") or name.startswith("smooth_"):
        return name, ""
    start = name.find("[")
    base = name[:start]
    if start <= 0 or not all(c.isalnum() or c in "._" for c in base):
        return name, ""
    return base, name[start:]


def _unbracket(suffix: str) -> Tuple[str, bool]:
    suffix = suffix.strip()
    if suffix.startswith("[") and suffix.endswith("]"):
        return suffix[1:-1], True
    return suffix, False


def _ordered_code(suffix: str) -> Optional[str]:
    """Normalise an ordered-contrast suffix to ".L", ".Q", ".C" or "^n"."""
    code, _ = _unbracket(suffix)
    code = _ORDERED_LABELS.get(code, code)
    if code in _ORDERED_CODES:
        return code
    if code.startswith("^") and code[1:].isdigit():
        return code
    return None


def _factor_level(suffix: str) -> Optional[str]:
    """Extract a factor level from "[T.b]", "[b]" or a bare "b" suffix."""
    level, bracketed = _unbracket(suffix)
    if bracketed:
        for prefix in _CONTRAST_PREFIXES:
            if level.startswith(prefix):
                return level[len(prefix):]
    return level or None


def _suffix_degree(suffix: str) -> Optional[int]:
    """
    Degree encoded in a basis-column suffix.

    Bare digits are 1-based (``poly(x, 2)2``); bracketed digits follow the
    0-based patsy column convention (``bs(x, df=3)[1]`` is the 2nd column).
    """
    degree, bracketed = _unbracket(suffix)
    if not degree.isdigit():
        return None
    return int(degree) + 1 if bracketed else int(degree)


# =============================================================================
# Name cleaning
# =============================================================================

def clean_parameter_name(name: str) -> str:
    """
    Remove coercion wrappers and patsy contrast brackets from a name.

    ``as.factor(cyl)6`` -> ``cyl6``, ``C(g)[T.b]`` -> ``gb``,
    ``C(dose, Poly)[.Linear]`` -> ``dose.L``. Transformation wrappers such
    as ``log(x)`` or ``poly(x, 2)1`` are kept, they carry the term kind.

    :param name: Raw parameter name
    :returns: Clean parameter name
    """
    components = split_interaction(name)
    if len(components) > 1:
        return ":".join(clean_parameter_name(c) for c in components)

    name = name.strip()
    wrapper = parse_wrapper(name)
    if wrapper is not None:
        if canonical_function(wrapper["function"]) not in _COERCION_FUNCTIONS:
            return name
        variable, suffix = wrapper["inner"], wrapper["suffix"]
    else:
        variable, suffix = _split_bracket(name)
        if not suffix:
            return name

    code = _ordered_code(suffix)
    if code is not None:
        return f"{variable}{code}"
    return f"{variable}{_factor_level(suffix) or ''}"


def clean_parameter_names(names: List[str]) -> List[str]:
    """Clean a list of parameter names, keeping order."""
    return [clean_parameter_name(name) for name in names]


# =============================================================================
# Classification
# =============================================================================

def classify_parameter(
    name: str,
    metadata: Optional[TermMetadata] = None,
) -> TermInfo:
    """
    Determine the term kind, variable and level of one raw parameter name.

    Never fails: unrecognised syntax is classified as plain.

    :param name: Raw parameter name
    :param metadata: TermMetadata of the model (factors, ordered, nested)
    :returns: TermInfo dictionary
    """
    metadata = metadata or create_term_metadata()
    components = split_interaction(name)

    if len(components) > 1:
        parts = [_classify_single(c, metadata) for c in components]
        variables = [p["variable"] for p in parts]
        term_type = TermType.NESTED if _is_nested(variables, metadata) else TermType.INTERACTION
        clean = ":".join(p["parameter"] for p in parts)
        return create_term_info(
            parameter=clean,
            raw_name=name,
            term_type=term_type,
            variable=clean,
            components=components,
        )

    return _classify_single(name.strip(), metadata)


def _is_nested(variables: List[str], metadata: TermMetadata) -> bool:
    """Whether all variables of an interaction come from one "a/b" term."""
    wanted = set(variables)
    for group in metadata["nested"]:
        if len(wanted) > 1 and wanted <= set(group):
            return True
    return False


def _classify_single(name: str, metadata: TermMetadata) -> TermInfo:
    """Classify a name that is not an interaction."""
    clean = clean_parameter_name(name)

    if name.startswith("smooth_"):
        return create_term_info(clean, name, TermType.SMOOTH, variable=name)

    wrapper = parse_wrapper(name)
    if wrapper is not None:
        return _classify_wrapper(name, clean, wrapper)

    base, bracket = _split_bracket(name)
    if bracket:
        code = _ordered_code(bracket)
        if code is not None:
            return create_term_info(clean, name, TermType.ORDERED, variable=base, level=code)
        level = _factor_level(bracket)
        if level is not None:
            return create_term_info(clean, name, TermType.FACTOR, variable=base, level=level)

    return _classify_concatenated(name, metadata)


def _classify_wrapper(name: str, clean: str, wrapper: WrapperSyntax) -> TermInfo:
    """Classify ``function(inner, ...)suffix`` names."""
    function = canonical_function(wrapper["function"])
    inner = wrapper["inner"]
    suffix = wrapper["suffix"]

    if function in _COERCION_FUNCTIONS:
        code = _ordered_code(suffix)
        if code is not None:
            return create_term_info(clean, name, TermType.ORDERED, variable=inner, level=code)
        level = _factor_level(suffix)
        if level is not None and function not in _NUMERIC_COERCIONS:
            return create_term_info(clean, name, TermType.FACTOR, variable=inner, level=level)
        return create_term_info(clean, name, TermType.PLAIN, variable=inner)

    if function in _POLY_FUNCTIONS:
        raw = wrapper["keywords"].get("raw", "FALSE") in _TRUE_VALUES
        term_type = TermType.POLY_RAW if raw else TermType.POLY
        degree = _suffix_degree(suffix) or 1
        return create_term_info(clean, name, term_type, variable=inner, level=degree)

    if function in _SPLINE_FUNCTIONS:
        degree = _suffix_degree(suffix) or 1
        return create_term_info(clean, name, TermType.SPLINE, variable=inner, level=degree)

    simple = {
        **dict.fromkeys(_LOG_FUNCTIONS, TermType.LOGARITHM),
        **dict.fromkeys(_EXP_FUNCTIONS, TermType.EXPONENTIATION),
        **dict.fromkeys(_SQRT_FUNCTIONS, TermType.SQUAREROOT),
        **dict.fromkeys(_ASIS_FUNCTIONS, TermType.ASIS),
        **dict.fromkeys(_SMOOTH_FUNCTIONS, TermType.SMOOTH),
    }
    if function in simple:
        return create_term_info(clean, name, simple[function], variable=inner)

    return create_term_info(clean, name, TermType.PLAIN)


def _classify_concatenated(name: str, metadata: TermMetadata) -> TermInfo:
    """
    Classify R-style "variable + level" names ("cyl6", "dose.L").

    The variable prefix is matched case-insensitively ("speciesB" against
    factor "Species"), an exact-case match is preferred.
    """
    known = set(metadata["factors"]) | set(metadata["ordered"])
    candidates = sorted(
        known, key=lambda v: (len(v), name.startswith(v)), reverse=True
    )

    for variable in candidates:
        if not name.lower().startswith(variable.lower()) or len(name) == len(variable):
            continue
        rest = name[len(variable):]

        code = _ordered_code(rest)
        if code is not None:
            return create_term_info(name, name, TermType.ORDERED, variable=variable, level=code)

        levels = metadata["factors"].get(variable)
        if levels is None:
            continue
        if not levels or rest in levels:
            return create_term_info(name, name, TermType.FACTOR, variable=variable, level=rest)

    return create_term_info(name, name, TermType.PLAIN)


def classify_parameters(
    parameters: List[str],
    metadata: Optional[TermMetadata] = None,
) -> List[TermInfo]:
    """
    Classify every parameter of a model.

    Interaction constituents that are not primary parameters themselves
    are recorded in the ``secondary_*`` fields of the interaction term
    (the first such constituent).

    :param parameters: Raw parameter names, in model order
    :param metadata: TermMetadata of the model
    :returns: List of TermInfo dictionaries, one per parameter
    """
    metadata = metadata or create_term_metadata()
    terms = [classify_parameter(name, metadata) for name in parameters]
    primary = {term["parameter"] for term in terms}

    for term in terms:
        if term["type"] not in (TermType.INTERACTION, TermType.NESTED):
            continue
        for component in term["components"]:
            if clean_parameter_name(component) in primary:
                continue
            secondary = classify_parameter(component, metadata)
            term["secondary_parameter"] = secondary["parameter"]
            term["secondary_type"] = secondary["type"]
            term["secondary_variable"] = secondary["variable"]
            term["secondary_level"] = secondary["level"]
            break

    return terms


def parameters_type(
    parameters: List[str],
    metadata: Optional[TermMetadata] = None,
) -> pd.DataFrame:
    """
    Tabulate the classification of every parameter.

    :param parameters: Raw parameter names
    :param metadata: TermMetadata of the model
    :returns: DataFrame with Parameter, Raw, Type, Variable, Level and
        Secondary_* columns (one row per parameter)
    """
    rows = []
    for term in classify_parameters(parameters, metadata):
        rows.append({
            "Parameter": term["parameter"],
            "Raw": term["raw_name"],
            "Type": term["type"].value,
            "Variable": term["variable"],
            "Level": term["level"],
            "Secondary_Parameter": term["secondary_parameter"],
            "Secondary_Type": term["secondary_type"].value if term["secondary_type"] else None,
            "Secondary_Variable": term["secondary_variable"],
            "Secondary_Level": term["secondary_level"],
        })

    columns = [
        "Parameter", "Raw", "Type", "Variable", "Level",
        "Secondary_Parameter", "Secondary_Type", "Secondary_Variable", "Secondary_Level",
    ]
    return pd.DataFrame(rows, columns=columns)
