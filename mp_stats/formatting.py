"""
Name Formatting Module
======================

Turns classified model terms into human-readable labels:

- factor levels:       ``Speciesversicolor`` -> ``Species [versicolor]``
- polynomials/splines: ``poly(x, 2)2``       -> ``x [2nd degree]``
- transformations:     ``log(x)``            -> ``x [log]``
- smooth terms:        ``s(x)``              -> ``Smooth term (x)``
- ordered contrasts:   ``dose.L``            -> ``dose [linear]``
- interactions:        ``a:b:c``             -> ``(a * b) * c``
"""
from __future__ import annotations

from typing import List, Optional, Union

from .registry import TermType
from .terms import canonical_function, parse_wrapper


_ORDINAL_WORDS = {
    1: "first", 2: "second", 3: "third", 4: "fourth", 5: "fifth",
    6: "sixth", 7: "seventh", 8: "eighth", 9: "ninth", 10: "tenth",
}

_ORDERED_LABELS = {".L": "[linear]", ".Q": "[quadratic]", ".C": "[cubic]"}

NESTED_SEPARATOR = " : "
INTERACTION_SEPARATOR = " * "


# =============================================================================
# Ordinal numbers
# =============================================================================

def format_order(order: int, textual: bool = False) -> str:
    """
    Format an integer as an ordinal.

    :param order: Positive integer
    :param textual: Spell out the ordinal ("second") instead of "2nd"
    :returns: Ordinal string

    Example:
        >>> format_order(2)
        '2nd'
        >>> format_order(3, textual=True)
        'third'
    """
    order = int(order)
    if textual and order in _ORDINAL_WORDS:
        return _ORDINAL_WORDS[order]

    if 10 <= order % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(order % 10, "th")
    return f"{order}{suffix}"


# =============================================================================
# Single terms
# =============================================================================

def format_parameter(
    name: str,
    variable: str,
    term_type: Union[TermType, str],
    level: Optional[Union[str, int]] = None,
) -> str:
    """
    Format a single (non-interaction) term.

    :param name: Parameter name (clean or raw)
    :param variable: Underlying variable name
    :param term_type: Term kind, as TermType or its string value
    :param level: Factor level, polynomial degree or ordered-contrast code
    :returns: Display name
    """
    term_type = TermType(term_type)

    if term_type == TermType.FACTOR:
        return format_factor(name, variable, level)

    if term_type in (TermType.POLY, TermType.POLY_RAW, TermType.SPLINE):
        return format_poly(variable, level)

    if term_type in (TermType.LOGARITHM, TermType.EXPONENTIATION, TermType.SQUAREROOT):
        return format_log(name, variable)

    if term_type == TermType.ASIS:
        return variable

    if term_type == TermType.SMOOTH:
        return format_smooth(name)

    if term_type == TermType.ORDERED:
        return f"{variable} {format_ordered(level)}"

    if term_type == TermType.PLAIN:
        return variable or name

    # interaction kinds are composed from their constituents
    return name


def format_factor(name: str, variable: str, level: Optional[Union[str, int]] = None) -> str:
    """Format a factor level as ``variable [level]``."""
    if level is None:
        if name.lower().startswith(variable.lower()):
            level = name[len(variable):]
        else:
            level = name.replace(variable, "", 1)
    return f"{variable} [{level}]"


def format_poly(variable: str, degree: Optional[Union[str, int]]) -> str:
    """Format a polynomial or spline term as ``variable [2nd degree]``."""
    degree = int(degree) if degree is not None else 1
    return f"{variable} [{format_order(degree)} degree]"


def format_log(name: str, variable: str) -> str:
    """Format a transformed term as ``variable [function]``."""
    wrapper = parse_wrapper(name)
    function = canonical_function(wrapper["function"]) if wrapper else name
    return f"{variable} [{function}]"


def format_smooth(name: str) -> str:
    """
    Format a smooth term.

    ``smooth_sd[s(x)]`` and ``s(x)`` both become ``Smooth term (x)``.
    """
    if name.startswith("smooth_") and "[" in name and name.endswith("]"):
        name = name[name.index("[") + 1:-1]

    wrapper = parse_wrapper(name)
    if wrapper is None:
        return name
    prefix = wrapper["function"] + "("
    return "Smooth term (" + name[len(prefix):]


def format_ordered(code: Optional[Union[str, int]]) -> str:
    """
    Format an ordered-factor contrast code.

    ".L", ".Q", ".C" are linear, quadratic and cubic; "^n" is the n-th degree.
    """
    code = str(code)
    if code in _ORDERED_LABELS:
        return _ORDERED_LABELS[code]

    degree = code.lstrip("^")
    if degree.isdigit():
        return f"[{format_order(int(degree))} degree]"
    return f"[{code}]"


# =============================================================================
# Interactions
# =============================================================================

def format_interaction(
    components: List[str],
    term_type: Union[TermType, str] = TermType.INTERACTION,
    is_nested: bool = False,
) -> str:
    """
    Join formatted constituents of an interaction or nested term.

    Two constituents are joined with the separator. Longer non-nested
    interactions group all but the last constituent: ``(a * b) * c``.
    Nested terms are joined flat: ``a : b : c``.

    :param components: Already-formatted constituent labels, in order
    :param term_type: INTERACTION or NESTED
    :param is_nested: Whether the term is nested
    :returns: Display name
    """
    term_type = TermType(term_type)
    sep = NESTED_SEPARATOR if is_nested else INTERACTION_SEPARATOR

    if len(components) > 2 and term_type == TermType.INTERACTION and not is_nested:
        grouped = INTERACTION_SEPARATOR.join(components[:-1])
        return f"({grouped}){sep}{components[-1]}"

    return sep.join(components)
