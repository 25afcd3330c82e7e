"""
Unit tests for regression fitting and tidying.
"""

import numpy as np
import pandas as pd
import pytest

from regbook.errors import InvalidModelError
from regbook.models.result_schema import TIDY_COLUMNS
from regbook.tools.data_tools import REGRESSION_SPECS, generate_datasets
from regbook.tools.stats_tools import (
    INTERCEPT_LABEL,
    build_formula,
    fit_ols,
    run_regressions,
    tidy_model
)


class FakeModel:
    """Stand-in exposing a statsmodels-like coefficient table."""

    def __init__(self, terms, params=None, bse=None, tvalues=None, pvalues=None):
        index = pd.Index(terms)
        self.params = pd.Series(params or [1.0] * len(terms), index=index)
        self.bse = pd.Series(bse or [0.5] * len(terms), index=index)
        self.tvalues = pd.Series(tvalues or [2.0] * len(terms), index=index)
        self.pvalues = pd.Series(pvalues or [0.05] * len(terms), index=index)
        self.df_resid = 10.0
        self.nobs = 13.0


class TestFitOls:
    """Tests for fit_ols."""

    def test_recovers_coefficients(self, regression_data):
        model = fit_ols(regression_data)

        assert list(model.params.index) == ["Intercept", "x1", "x2"]
        assert model.params["x1"] == pytest.approx(2.0, abs=0.3)
        assert model.params["x2"] == pytest.approx(-0.5, abs=0.3)

    def test_explicit_predictor_order(self, regression_data):
        model = fit_ols(regression_data, predictors=["x2", "x1"])

        assert list(model.params.index) == ["Intercept", "x2", "x1"]

    def test_missing_column(self, regression_data):
        with pytest.raises(ValueError):
            fit_ols(regression_data, predictors=["x9"])

    def test_build_formula_quotes_odd_names(self):
        assert build_formula("y", ["x1", "x2"]) == "y ~ x1 + x2"
        assert build_formula("y", ["my var"]) == 'y ~ Q("my var")'
        assert build_formula("y", []) == "y ~ 1"


class TestTidyModel:
    """Tests for tidy_model."""

    def test_reshapes_without_transforming(self, regression_data):
        model = fit_ols(regression_data)
        result = tidy_model(model)

        assert result.terms == [INTERCEPT_LABEL, "x1", "x2"]
        x1 = result.rows[1]
        assert x1.estimate == model.params["x1"]
        assert x1.std_error == model.bse["x1"]
        assert x1.statistic == model.tvalues["x1"]
        assert x1.p_value == model.pvalues["x1"]
        assert result.df_resid == model.df_resid
        assert result.nobs == 100

    def test_frame_has_tidy_columns(self, regression_data):
        frame = tidy_model(fit_ols(regression_data)).to_frame()

        assert list(frame.columns) == TIDY_COLUMNS
        assert frame["term"].tolist() == ["(Intercept)", "x1", "x2"]

    def test_none_model(self):
        with pytest.raises(InvalidModelError):
            tidy_model(None)

    def test_missing_attribute(self):
        model = FakeModel(["Intercept", "x1"])
        del model.pvalues

        with pytest.raises(InvalidModelError):
            tidy_model(model)

    def test_non_series_attribute(self):
        model = FakeModel(["Intercept", "x1"])
        model.bse = np.array([0.1, 0.2])

        with pytest.raises(InvalidModelError):
            tidy_model(model)

    def test_misaligned_terms(self):
        model = FakeModel(["Intercept", "x1"])
        model.tvalues = pd.Series([1.0, 2.0], index=["x1", "Intercept"])

        with pytest.raises(InvalidModelError):
            tidy_model(model)

    def test_non_numeric_value(self):
        model = FakeModel(["Intercept", "x1"])
        model.params = pd.Series([1.0, "abc"], index=["Intercept", "x1"])

        with pytest.raises(InvalidModelError):
            tidy_model(model)

    def test_empty_model(self):
        with pytest.raises(InvalidModelError):
            tidy_model(FakeModel([]))

    def test_fake_model_order_kept(self):
        result = tidy_model(FakeModel(["Intercept", "b", "a"]))

        assert result.terms == ["(Intercept)", "b", "a"]
        assert result.nobs == 13


class TestRunRegressions:
    """Tests for run_regressions."""

    def test_one_result_per_dataset(self):
        datasets = generate_datasets(REGRESSION_SPECS, 80, seed=7)

        results = run_regressions(datasets)

        assert list(results) == ["Regression1", "Regression2"]
        assert results["Regression1"].terms == ["(Intercept)", "x1", "x2"]
        assert results["Regression2"].terms == ["(Intercept)", "x1", "x2", "x3"]
        assert results["Regression2"].df_resid == 76

    def test_seeded_runs_match(self):
        first = run_regressions(generate_datasets(REGRESSION_SPECS, 50, seed=3))
        second = run_regressions(generate_datasets(REGRESSION_SPECS, 50, seed=3))

        assert first == second


class TestDegenerateFits:
    """Tests for fits without residual degrees of freedom."""

    def test_too_few_observations(self, regression_data):
        with pytest.raises(ValueError, match="Not enough observations"):
            fit_ols(regression_data.head(3))

    def test_minimum_observations_fit(self, regression_data):
        result = tidy_model(fit_ols(regression_data.head(4)))

        assert result.df_resid == 1

    @pytest.mark.parametrize("attr, value", [
        ("bse", float("inf")),
        ("tvalues", float("nan")),
        ("pvalues", float("nan")),
    ])
    def test_non_finite_values_rejected(self, attr, value):
        model = FakeModel(["Intercept", "x1"])
        setattr(model, attr, pd.Series([0.5, value], index=["Intercept", "x1"]))

        with pytest.raises(InvalidModelError):
            tidy_model(model)
