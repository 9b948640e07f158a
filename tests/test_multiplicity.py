import numpy as np
import pytest

from mp_stats.multiplicity import adjust_pvalues, is_valid_method


def test_holm():
    adjusted = adjust_pvalues([0.01, 0.04, 0.03], method="holm")
    np.testing.assert_allclose(adjusted, [0.03, 0.06, 0.06])


def test_bonferroni_caps_at_one():
    np.testing.assert_allclose(adjust_pvalues([0.01, 0.5], method="bonferroni"), [0.02, 1.0])


def test_method_names_are_case_insensitive():
    assert is_valid_method("BH")
    assert is_valid_method("fdr")
    np.testing.assert_allclose(
        adjust_pvalues([0.01, 0.02, 0.03], method="BH"),
        adjust_pvalues([0.01, 0.02, 0.03], method="fdr_bh"),
    )


def test_none_is_identity():
    np.testing.assert_allclose(adjust_pvalues([0.2, 0.01], method="none"), [0.2, 0.01])


def test_missing_values_are_kept_and_not_counted():
    adjusted = adjust_pvalues([0.01, np.nan, 0.02], method="bonferroni")
    assert np.isnan(adjusted[1])
    np.testing.assert_allclose(adjusted[[0, 2]], [0.02, 0.04])


def test_all_missing_warns():
    with pytest.warns(UserWarning, match="All p-values are missing"):
        adjusted = adjust_pvalues([np.nan, np.nan], method="holm")
    assert np.isnan(adjusted).all()


def test_unknown_method_raises():
    assert not is_valid_method("magic")
    assert not is_valid_method(None)
    with pytest.raises(ValueError, match="Unknown p-value adjustment"):
        adjust_pvalues([0.1], method="magic")
