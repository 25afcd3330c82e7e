"""
Pytest configuration and fixtures for regbook tests.
"""

import pytest
import numpy as np
import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from regbook.models.result_schema import RegressionResult


@pytest.fixture
def regression_data():
    """Two-predictor dataset with a known linear signal."""
    rng = np.random.default_rng(42)
    n = 100
    x1 = rng.standard_normal(n)
    x2 = rng.standard_normal(n)
    return pd.DataFrame({
        'x1': x1,
        'x2': x2,
        'y': 0.1 + 2.0 * x1 - 0.5 * x2 + rng.standard_normal(n)
    })


@pytest.fixture
def short_result():
    """Two-term result matching the documented example."""
    return RegressionResult.from_records([
        {"term": "(Intercept)", "estimate": 0.135, "std.error": 0.096,
         "statistic": 1.405, "p.value": 0.163},
        {"term": "x1", "estimate": 1.867, "std.error": 0.101,
         "statistic": 18.485, "p.value": 1.2e-33},
    ])


@pytest.fixture
def long_result():
    """Three-term result."""
    return RegressionResult.from_records([
        {"term": "(Intercept)", "estimate": 1.02, "std.error": 0.05,
         "statistic": 20.4, "p.value": 3.1e-37},
        {"term": "x1", "estimate": 0.79, "std.error": 0.049,
         "statistic": 16.1, "p.value": 2.5e-29},
        {"term": "x2", "estimate": 1.51, "std.error": 0.052,
         "statistic": 29.0, "p.value": 4.4e-49},
    ], df_resid=97.0, nobs=100)


@pytest.fixture
def workbook_with_notes(tmp_path):
    """
    Existing workbook with a hand-formatted Notes sheet whose formulas
    reference Regression1, plus an old Regression1 sheet.
    """
    path = tmp_path / "results.xlsx"
    wb = Workbook()
    notes = wb.active
    notes.title = "Notes"
    notes["A1"] = "Hand-written notes"
    notes["A1"].font = Font(bold=True, italic=True)
    notes["A2"] = "Slope of x1"
    notes["B2"] = "=Regression1!B3"
    notes["B2"].number_format = "0.000"
    notes["A3"] = 42
    notes["A3"].fill = PatternFill(start_color="FFFF00", end_color="FFFF00", fill_type="solid")

    old = wb.create_sheet("Regression1")
    old.append(["term", "estimate", "std.error", "statistic", "p.value"])
    for i in range(6):
        old.append([f"old{i}", 9.0, 9.0, 9.0, 0.9])
    old["G1"] = "stale"

    wb.create_sheet("Data")["A1"] = "raw"
    wb.save(path)
    return path
