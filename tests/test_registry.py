import pytest

from mp_stats.registry import (
    FAMILY_RULES,
    ModelFamily,
    create_family_rule,
    create_model_info,
    get_family_rule,
    list_families,
    register_family_rule,
    reset_registry,
    resolve_family,
    strip_baseline_category,
    strip_component_prefix,
    strip_compositional_response,
    strip_intercept_label,
)


def test_every_family_has_a_default_rule():
    assert set(FAMILY_RULES) == set(ModelFamily)


def test_default_rule_shapes():
    assert get_family_rule(ModelFamily.MIXED)["effects"] == "all"
    assert get_family_rule(ModelFamily.META)["passthrough"] is True
    assert get_family_rule(ModelFamily.ORDINAL)["rewrite_original"] is True
    assert get_family_rule(ModelFamily.ZERO_INFLATED)["rewrite_original"] is False


def test_families_with_rewrite():
    families = list_families(with_rewrite_only=True)
    assert ModelFamily.DEFAULT not in families
    assert ModelFamily.META not in families
    for family in (
        ModelFamily.ZERO_INFLATED, ModelFamily.HURDLE, ModelFamily.ORDINAL,
        ModelFamily.BASELINE_CATEGORY, ModelFamily.COMPOSITIONAL,
    ):
        assert family in families


def test_resolve_family_flags_take_precedence():
    info = create_model_info(family=ModelFamily.ORDINAL, is_zero_inflated=True)
    assert resolve_family(info) == ModelFamily.ZERO_INFLATED

    info = create_model_info(family=ModelFamily.DEFAULT, is_hurdle=True)
    assert resolve_family(info) == ModelFamily.HURDLE

    assert resolve_family(create_model_info(family=ModelFamily.MIXED)) == ModelFamily.MIXED


def test_register_rule_requires_overwrite():
    with pytest.raises(ValueError, match="already has a rule"):
        register_family_rule(ModelFamily.DEFAULT)

    rule = register_family_rule(
        ModelFamily.DEFAULT,
        rewrite=lambda name, info: name.upper(),
        overwrite=True,
    )
    assert get_family_rule(ModelFamily.DEFAULT) is rule

    reset_registry()
    assert get_family_rule(ModelFamily.DEFAULT)["rewrite"] is None


def test_create_family_rule_validates_effects():
    with pytest.raises(ValueError):
        create_family_rule(ModelFamily.DEFAULT, effects="random")


def test_missing_rule_warns_and_falls_back():
    del FAMILY_RULES[ModelFamily.HURDLE]
    with pytest.warns(UserWarning):
        rule = get_family_rule(ModelFamily.HURDLE)
    assert rule["family"] == ModelFamily.DEFAULT


def test_rewrite_functions():
    assert strip_component_prefix("count_x") == "x"
    assert strip_component_prefix("zero_(Intercept)") == "(Intercept)"
    assert strip_component_prefix("x") == "x"

    assert strip_intercept_label("Intercept: 1|2") == "1|2"
    assert strip_intercept_label("x") == "x"

    assert strip_baseline_category("b:x") == "x"
    assert strip_baseline_category("x") == "x"

    common = create_model_info(varnames=["A", "A.B"])
    assert strip_compositional_response("A.B.x", common) == "x"
    assert strip_compositional_response("A.x", common) == "x"
    assert strip_compositional_response("C.x", common) == "C.x"

    alternative = create_model_info(parametrization="alternative")
    assert strip_compositional_response("A.beta.x", alternative) == "x"
    assert strip_compositional_response("A.x", alternative) == "A.x"
