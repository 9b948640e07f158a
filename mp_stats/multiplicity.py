"""
Multiplicity Corrections Module
===============================

p-value adjustment for multiple comparisons, backed by
``statsmodels.stats.multitest.multipletests``.

Method names follow the usual conventions ("holm", "bonferroni", "BH",
"fdr", "BY", "hochberg", "hommel", "none"); statsmodels' own names
("fdr_bh", "simes-hochberg", ...) are accepted as well.
"""
from __future__ import annotations

from typing import Dict, Literal, Optional, Sequence
import warnings

import numpy as np
from statsmodels.stats.multitest import multipletests


CorrectionMethod = Literal[
    "none", "holm", "hochberg", "hommel", "bonferroni", "BH", "BY", "fdr",
    "fdr_bh", "fdr_by",
]

# method name (lower case) -> statsmodels method
P_ADJUST_METHODS: Dict[str, Optional[str]] = {
    "none": None,
    "holm": "holm",
    "hochberg": "simes-hochberg",
    "simes-hochberg": "simes-hochberg",
    "hommel": "hommel",
    "bonferroni": "bonferroni",
    "bh": "fdr_bh",
    "fdr": "fdr_bh",
    "fdr_bh": "fdr_bh",
    "by": "fdr_by",
    "fdr_by": "fdr_by",
    "sidak": "sidak",
    "holm-sidak": "holm-sidak",
}


def is_valid_method(method: Optional[str]) -> bool:
    """Whether ``method`` names a known p-value adjustment."""
    return method is not None and method.lower() in P_ADJUST_METHODS


def adjust_pvalues(
    pvalues: Sequence[float],
    method: str = "holm",
) -> np.ndarray:
    """
    Adjust p-values for multiple comparisons.

    Missing (NaN) p-values are left missing and do not count towards the
    number of comparisons.

    :param pvalues: Raw p-values
    :param method: Adjustment method (see P_ADJUST_METHODS)
    :returns: Array of adjusted p-values, same order as the input
    :raises ValueError: If the method is unknown
    """
    if not is_valid_method(method):
        raise ValueError(
            f"Unknown p-value adjustment '{method}'. "
            f"Use one of: {', '.join(sorted(P_ADJUST_METHODS))}"
        )

    pvalues = np.asarray(pvalues, dtype=float)
    adjusted = pvalues.copy()
    sm_method = P_ADJUST_METHODS[method.lower()]
    if sm_method is None:
        return adjusted

    mask = ~np.isnan(pvalues)
    if mask.sum() == 0:
        warnings.warn("All p-values are missing; nothing to adjust")
        return adjusted

    _, corrected, _, _ = multipletests(pvalues[mask], method=sm_method)
    adjusted[mask] = corrected
    return adjusted
