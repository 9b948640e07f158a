from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm
import statsmodels.formula.api as smf

from mp_stats.introspection import (
    describe_model,
    find_nested_terms,
    find_parameters,
    model_info,
    model_parameters,
    term_metadata,
)
from mp_stats.registry import ModelFamily


def test_find_nested_terms():
    assert find_nested_terms("y ~ x + (g / z)") == [["g", "z"]]
    assert find_nested_terms("y ~ C(g)/x") == [["g", "x"]]
    assert find_nested_terms("y ~ a * b + c") == []


def test_ols_info_and_parameters(grouped_data):
    fit = smf.ols("y ~ C(g) + x", data=grouped_data).fit()
    info = model_info(fit)
    assert info["family"] == ModelFamily.DEFAULT
    assert info["distribution"] == "gaussian"
    assert info["link"] == "identity"

    assert find_parameters(fit) == list(fit.params.index)
    assert find_parameters(fit, effects="random") == []
    with pytest.raises(ValueError):
        find_parameters(fit, effects="bogus")


def test_glm_info(grouped_data):
    data = grouped_data.assign(count=np.arange(len(grouped_data)) % 4)
    fit = smf.glm("count ~ x", data=data, family=sm.families.Poisson()).fit()
    info = model_info(fit)
    assert info["distribution"] == "poisson"
    assert info["link"] == "log"


def test_term_metadata_from_formula(grouped_data):
    fit = smf.ols("y ~ C(g) + x", data=grouped_data).fit()
    metadata = term_metadata(fit)
    assert metadata["factors"] == {"g": ["a", "b", "c"]}
    assert metadata["ordered"] == []
    assert metadata["nested"] == []


def test_array_model_has_empty_metadata(grouped_data):
    exog = sm.add_constant(grouped_data[["x", "z"]])
    fit = sm.OLS(grouped_data["y"], exog).fit()
    metadata = term_metadata(fit)
    assert metadata["factors"] == {}
    assert find_parameters(fit) == ["const", "x", "z"]


def test_mixed_model_random_effects(grouped_data):
    fit = smf.mixedlm("y ~ x", data=grouped_data, groups=grouped_data["g"]).fit()
    assert find_parameters(fit, effects="fixed") == ["Intercept", "x"]
    assert find_parameters(fit, effects="random") == ["Group Var"]
    assert find_parameters(fit, effects="all") == ["Intercept", "x", "Group Var"]

    desc = describe_model(fit)
    assert desc["info"]["family"] == ModelFamily.MIXED
    assert desc["random_parameters"] == ["Group Var"]


def test_model_parameters_t_based(grouped_data):
    fit = smf.ols("y ~ C(g) + x", data=grouped_data).fit()
    table = model_parameters(fit)

    assert list(table.columns) == [
        "Parameter", "Coefficient", "SE", "CI_low", "CI_high", "t", "df_error", "p",
    ]
    assert list(table["Parameter"]) == list(fit.params.index)
    assert (table["df_error"] == fit.df_resid).all()

    conf = fit.conf_int(alpha=0.05)
    np.testing.assert_allclose(table["CI_low"], conf[0].to_numpy())
    np.testing.assert_allclose(table["CI_high"], conf[1].to_numpy())
    np.testing.assert_allclose(table["p"], fit.pvalues.to_numpy())


def test_model_parameters_z_based(grouped_data):
    data = grouped_data.assign(hit=(grouped_data["y"] > grouped_data["y"].median()).astype(int))
    fit = smf.logit("hit ~ x", data=data).fit(disp=0)
    table = model_parameters(fit, ci=0.9)

    assert "z" in table.columns
    assert np.isinf(table["df_error"]).all()
    conf = fit.conf_int(alpha=0.1)
    np.testing.assert_allclose(table["CI_low"], conf[0].to_numpy())


def test_model_parameters_multinomial_response_column(grouped_data):
    data = grouped_data.assign(code=grouped_data["g"].map({"a": 0, "b": 1, "c": 2}))
    fit = smf.mnlogit("code ~ x", data=data).fit(disp=0)
    table = model_parameters(fit)

    assert "Response" in table.columns
    assert table["Response"].nunique() == 2
    assert len(table) == 4
    assert model_info(fit)["family"] == ModelFamily.MULTINOMIAL


def test_model_parameters_rejects_bad_ci(grouped_data):
    fit = smf.ols("y ~ x", data=grouped_data).fit()
    with pytest.raises(ValueError):
        model_parameters(fit, ci=95)


def test_non_model_raises():
    with pytest.raises(TypeError):
        model_info(pd.DataFrame())


def test_term_metadata_reads_model_spec_layout():
    # statsmodels 0.15 exposes the design as data.model_spec
    spec = SimpleNamespace(factor_infos={"C(g)": ("a", "b"), "C(dose, Poly)": ("lo", "hi")})
    result = SimpleNamespace(model=SimpleNamespace(
        data=SimpleNamespace(model_spec=spec), formula="y ~ C(g) + C(dose, Poly)",
    ))
    metadata = term_metadata(result)
    assert metadata["factors"] == {"g": ["a", "b"], "dose": ["lo", "hi"]}
    assert metadata["ordered"] == ["dose"]
