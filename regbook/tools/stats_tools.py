"""
Regression tools.
Models are fitted with statsmodels; tidy_model only reshapes the
coefficient table, it never transforms the numbers.
"""

import logging
from typing import Dict, List, Mapping, Optional

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from pydantic import ValidationError

from regbook.errors import InvalidModelError
from regbook.models.result_schema import CoefficientRow, RegressionResult


logger = logging.getLogger(__name__)

INTERCEPT_LABEL = "(Intercept)"
_STATSMODELS_INTERCEPT = "Intercept"

_COEFFICIENT_ATTRS = {
    "estimate": "params",
    "std_error": "bse",
    "statistic": "tvalues",
    "p_value": "pvalues",
}


def _quote_term(name: str) -> str:
    """Protect column names that are not valid formula identifiers."""
    return name if name.isidentifier() else f'Q("{name}")'


def build_formula(response: str, predictors: List[str]) -> str:
    """Build a formula like 'y ~ x1 + x2'."""
    rhs = " + ".join(_quote_term(p) for p in predictors) if predictors else "1"
    return f"{_quote_term(response)} ~ {rhs}"


def fit_ols(
    data: pd.DataFrame,
    response: str = "y",
    predictors: Optional[List[str]] = None
):
    """
    Fit an ordinary-least-squares model.

    Args:
        data: Observations.
        response: Dependent variable column.
        predictors: Independent variables, in fitting order. Defaults to
            every other column in frame order.

    Returns:
        Fitted statsmodels RegressionResults.
    """
    if predictors is None:
        predictors = [c for c in data.columns if c != response]

    missing = [c for c in [response, *predictors] if c not in data.columns]
    if missing:
        raise ValueError(f"Columns not found in data: {missing}")

    n_terms = len(predictors) + 1
    if len(data) <= n_terms:
        raise ValueError(
            f"Not enough observations ({len(data)}) for {len(predictors)} predictors. "
            f"Need at least {n_terms + 1} observations."
        )

    formula = build_formula(response, list(predictors))
    logger.debug("Fitting %s on %d rows", formula, len(data))
    return smf.ols(formula, data=data).fit()


def tidy_model(model) -> RegressionResult:
    """
    Reshape a fitted model's coefficient table into a RegressionResult.

    Rows follow the model's term order (intercept first, then predictors in
    fitting order). The statsmodels 'Intercept' label is published as
    '(Intercept)'.

    Raises:
        InvalidModelError: model is missing its coefficient table, or the
            table is misaligned, non-numeric or non-finite.
    """
    if model is None:
        raise InvalidModelError("No fitted model supplied")

    columns: Dict[str, pd.Series] = {}
    for field_name, attr in _COEFFICIENT_ATTRS.items():
        try:
            values = getattr(model, attr)
        except (AttributeError, ValueError, np.linalg.LinAlgError) as exc:
            raise InvalidModelError(f"Model has no usable '{attr}': {exc}") from exc
        if not isinstance(values, pd.Series):
            raise InvalidModelError(
                f"Model '{attr}' must be a labelled series, got {type(values).__name__}"
            )
        columns[field_name] = values

    terms = columns["estimate"].index
    if len(terms) == 0:
        raise InvalidModelError("Model has no terms")
    for field_name, series in columns.items():
        if not series.index.equals(terms):
            raise InvalidModelError(
                f"Model '{_COEFFICIENT_ATTRS[field_name]}' is not aligned with its terms"
            )

    rows = []
    for term in terms:
        label = INTERCEPT_LABEL if term == _STATSMODELS_INTERCEPT else str(term)
        try:
            values = {name: float(series[term]) for name, series in columns.items()}
            rows.append(CoefficientRow(term=label, **values))
        except (TypeError, ValueError) as exc:
            raise InvalidModelError(f"Term '{term}' has non-numeric or non-finite values: {exc}") from exc

    df_resid = getattr(model, "df_resid", None)
    nobs = getattr(model, "nobs", None)
    try:
        return RegressionResult(
            rows=rows,
            df_resid=float(df_resid) if df_resid is not None else None,
            nobs=int(nobs) if nobs is not None else None
        )
    except ValidationError as exc:
        raise InvalidModelError(str(exc)) from exc


def run_regressions(
    datasets: Mapping[str, pd.DataFrame],
    response: str = "y",
    predictors: Optional[Mapping[str, List[str]]] = None
) -> Dict[str, RegressionResult]:
    """
    Fit and tidy one model per dataset.

    Args:
        datasets: Sheet name -> observations.
        response: Dependent variable column.
        predictors: Optional sheet name -> predictor list.

    Returns:
        NamedResultSet in the same order as datasets.
    """
    predictors = predictors or {}
    results = {}
    for name, data in datasets.items():
        model = fit_ols(data, response=response, predictors=predictors.get(name))
        results[name] = tidy_model(model)
        logger.info(
            "%s: %d terms, n=%s, R^2=%.3f",
            name, len(results[name].rows), results[name].nobs, model.rsquared
        )
    return results
