import pytest

from mp_stats.registry import TermType
from mp_stats.terms import (
    classify_parameter,
    classify_parameters,
    clean_parameter_name,
    create_term_metadata,
    parameters_type,
    parse_wrapper,
    split_interaction,
    split_top_level,
)


IRIS = create_term_metadata(factors={"Species": ["setosa", "versicolor", "virginica"]})


# =============================================================================
# Tokenizer
# =============================================================================

def test_split_top_level_ignores_nested_separators():
    assert split_top_level("a:b(c:d)", ":") == ["a", "b(c:d)"]
    assert split_top_level("f(x, 'a,b'), y", ",") == ["f(x, 'a,b')", " y"]


def test_split_interaction_strips_whitespace():
    assert split_interaction("C(g)[T.b] : x") == ["C(g)[T.b]", "x"]


def test_parse_wrapper_poly():
    wrapper = parse_wrapper("poly(x, 2)1")
    assert wrapper == {
        "function": "poly",
        "inner": "x",
        "arguments": ["2"],
        "keywords": {},
        "suffix": "1",
    }


def test_parse_wrapper_keywords_and_brackets():
    wrapper = parse_wrapper("poly(x, 2, raw = TRUE)2")
    assert wrapper["keywords"] == {"raw": "TRUE"}
    assert wrapper["arguments"] == ["2"]

    wrapper = parse_wrapper("bs(x, df=3)[0]")
    assert wrapper["keywords"] == {"df": "3"}
    assert wrapper["suffix"] == "[0]"


def test_parse_wrapper_nested_call():
    wrapper = parse_wrapper("np.log(I(x + 1))")
    assert wrapper["function"] == "np.log"
    assert wrapper["inner"] == "I(x + 1)"
    assert wrapper["suffix"] == ""


@pytest.mark.parametrize("name", ["x", "(Intercept)", "weird(", "a + b(c)"])
def test_parse_wrapper_rejects_non_calls(name):
    assert parse_wrapper(name) is None


# =============================================================================
# Cleaning
# =============================================================================

@pytest.mark.parametrize(
    "raw, clean",
    [
        ("as.factor(cyl)6", "cyl6"),
        ("factor(cyl)", "cyl"),
        ("C(g)[T.b]", "gb"),
        ("g[T.b]", "gb"),
        ("C(dose, Poly)[.Linear]", "dose.L"),
        ("C(dose, Poly)[^4]", "dose^4"),
        ("log(x)", "log(x)"),
        ("poly(x, 2)1", "poly(x, 2)1"),
        ("C(g)[T.b]:x", "gb:x"),
    ],
)
def test_clean_parameter_name(raw, clean):
    assert clean_parameter_name(raw) == clean


# =============================================================================
# Classification
# =============================================================================

def test_classify_polynomials():
    term = classify_parameter("poly(x, 2)2")
    assert term["type"] == TermType.POLY
    assert term["variable"] == "x"
    assert term["level"] == 2

    term = classify_parameter("poly(x, 2, raw = TRUE)1")
    assert term["type"] == TermType.POLY_RAW
    assert term["level"] == 1


def test_classify_splines_patsy_columns_are_zero_based():
    term = classify_parameter("bs(x, df=3)[0]")
    assert term["type"] == TermType.SPLINE
    assert term["level"] == 1

    term = classify_parameter("ns(x, df = 3)2")
    assert term["type"] == TermType.SPLINE
    assert term["level"] == 2


@pytest.mark.parametrize(
    "name, term_type, variable",
    [
        ("log(x)", TermType.LOGARITHM, "x"),
        ("np.log(z)", TermType.LOGARITHM, "z"),
        ("exp(x)", TermType.EXPONENTIATION, "x"),
        ("sqrt(x)", TermType.SQUAREROOT, "x"),
        ("I(x ** 2)", TermType.ASIS, "x ** 2"),
        ("s(x)", TermType.SMOOTH, "x"),
        ("as.numeric(flag)", TermType.PLAIN, "flag"),
    ],
)
def test_classify_wrappers(name, term_type, variable):
    term = classify_parameter(name)
    assert term["type"] == term_type
    assert term["variable"] == variable


def test_classify_smooth_sd_name():
    term = classify_parameter("smooth_sd[s(x)]")
    assert term["type"] == TermType.SMOOTH


def test_classify_patsy_factor():
    term = classify_parameter("C(g)[T.b]")
    assert term["type"] == TermType.FACTOR
    assert term["parameter"] == "gb"
    assert term["variable"] == "g"
    assert term["level"] == "b"


def test_classify_patsy_ordered():
    term = classify_parameter("C(dose, Poly)[.Quadratic]")
    assert term["type"] == TermType.ORDERED
    assert term["variable"] == "dose"
    assert term["level"] == ".Q"


def test_classify_concatenated_factor_uses_levels():
    term = classify_parameter("Speciesversicolor", IRIS)
    assert term["type"] == TermType.FACTOR
    assert term["variable"] == "Species"
    assert term["level"] == "versicolor"

    # unknown level: not a factor term
    assert classify_parameter("Speciesother", IRIS)["type"] == TermType.PLAIN


def test_classify_concatenated_ordered():
    metadata = create_term_metadata(ordered=["dose"])
    term = classify_parameter("dose.L", metadata)
    assert term["type"] == TermType.ORDERED
    assert term["variable"] == "dose"
    assert term["level"] == ".L"


def test_classify_plain_without_metadata():
    term = classify_parameter("Sepal.Width")
    assert term["type"] == TermType.PLAIN
    assert term["variable"] == "Sepal.Width"


def test_classify_never_fails_on_odd_names():
    for name in ["weird(", "", "[", "a]b", "x^2"]:
        assert classify_parameter(name)["type"] == TermType.PLAIN


def test_classify_interaction_keeps_raw_components():
    term = classify_parameter("C(g)[T.b]:x")
    assert term["type"] == TermType.INTERACTION
    assert term["parameter"] == "gb:x"
    assert term["components"] == ["C(g)[T.b]", "x"]


def test_classify_nested_term():
    metadata = create_term_metadata(nested=[["g", "x"]])
    assert classify_parameter("C(g)[T.b]:x", metadata)["type"] == TermType.NESTED
    assert classify_parameter("C(g)[T.b]:z", metadata)["type"] == TermType.INTERACTION


def test_secondary_fields_for_constituents_without_main_effect():
    terms = classify_parameters(["x", "C(g)[T.b]:x"])
    interaction = terms[1]
    assert interaction["secondary_parameter"] == "gb"
    assert interaction["secondary_type"] == TermType.FACTOR
    assert interaction["secondary_variable"] == "g"
    assert interaction["secondary_level"] == "b"

    # constituents already present as main effects are not secondary
    terms = classify_parameters(["C(g)[T.b]", "x", "C(g)[T.b]:x"])
    assert terms[2]["secondary_parameter"] is None


def test_parameters_type_table():
    df = parameters_type(["(Intercept)", "Speciesversicolor", "poly(x, 2)2"], IRIS)
    assert list(df["Type"]) == ["plain", "factor", "poly"]
    assert list(df["Variable"]) == ["(Intercept)", "Species", "x"]
    assert "Secondary_Type" in df.columns
    assert len(df) == 3


def test_classify_concatenated_factor_ignores_prefix_case():
    metadata = create_term_metadata(factors={"Species": ["A", "B"]})
    term = classify_parameter("speciesB", metadata)
    assert term["type"] == TermType.FACTOR
    assert term["variable"] == "Species"
    assert term["level"] == "B"
