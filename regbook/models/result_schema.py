"""
Pydantic schemas for tidy regression results.
One row per model term, with standardized column names.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from regbook.errors import InvalidSheetNameError


TIDY_COLUMNS = ["term", "estimate", "std.error", "statistic", "p.value"]

MAX_SHEET_NAME_LENGTH = 31
INVALID_SHEET_CHARS = ['\\', '/', '*', '?', ':', '[', ']']
RESERVED_SHEET_NAMES = {"history"}


class CoefficientRow(BaseModel):
    """A single model term of a tidy result."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)

    term: str = Field(..., min_length=1)
    estimate: float
    std_error: float = Field(..., alias="std.error")
    statistic: float
    p_value: float = Field(..., alias="p.value")

    def as_record(self) -> List[Any]:
        """Values in TIDY_COLUMNS order."""
        return [self.term, self.estimate, self.std_error, self.statistic, self.p_value]


class RegressionResult(BaseModel):
    """
    Tidy coefficient table of one fitted model.
    Rows keep the model's term order: intercept first, then predictors.
    df_resid and nobs are metadata and are never written to a sheet.
    """
    model_config = ConfigDict(frozen=True)

    rows: Tuple[CoefficientRow, ...]
    df_resid: Optional[float] = None
    nobs: Optional[int] = None

    @field_validator('rows')
    @classmethod
    def validate_unique_terms(cls, rows: Tuple[CoefficientRow, ...]) -> Tuple[CoefficientRow, ...]:
        """Each term appears once."""
        terms = [r.term for r in rows]
        if len(terms) != len(set(terms)):
            raise ValueError(f"Duplicate terms in result: {terms}")
        return rows

    @property
    def terms(self) -> List[str]:
        return [r.term for r in self.rows]

    def __len__(self) -> int:
        return len(self.rows)

    def to_records(self) -> List[List[Any]]:
        """Data rows (no header) in TIDY_COLUMNS order."""
        return [r.as_record() for r in self.rows]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.to_records(), columns=TIDY_COLUMNS)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        df_resid: Optional[float] = None,
        nobs: Optional[int] = None
    ) -> "RegressionResult":
        """
        Build a result from dict rows.

        Args:
            records: Dicts keyed by TIDY_COLUMNS names (or field names).
            df_resid: Residual degrees of freedom, if known.
            nobs: Number of observations, if known.
        """
        rows = [CoefficientRow.model_validate(dict(r)) for r in records]
        return cls(rows=rows, df_resid=df_resid, nobs=nobs)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, **kwargs: Any) -> "RegressionResult":
        missing = [c for c in TIDY_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Frame is missing tidy columns: {missing}")
        return cls.from_records(df[TIDY_COLUMNS].to_dict(orient="records"), **kwargs)


def validate_sheet_name(name: str) -> str:
    """
    Ensure an Excel-compatible sheet name.

    Raises:
        InvalidSheetNameError: empty, too long, forbidden characters,
            leading/trailing apostrophe, or reserved.
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidSheetNameError(name, "name is empty")
    if len(name) > MAX_SHEET_NAME_LENGTH:
        raise InvalidSheetNameError(
            name, f"longer than {MAX_SHEET_NAME_LENGTH} characters"
        )
    for char in INVALID_SHEET_CHARS:
        if char in name:
            raise InvalidSheetNameError(name, f"cannot contain '{char}'")
    if name.startswith("'") or name.endswith("'"):
        raise InvalidSheetNameError(name, "cannot begin or end with an apostrophe")
    if name.lower() in RESERVED_SHEET_NAMES:
        raise InvalidSheetNameError(name, "name is reserved")
    return name


def validate_result_set(result_set: Mapping[str, RegressionResult]) -> Dict[str, RegressionResult]:
    """
    Validate every sheet name of a result set before anything is written.
    Names that only differ by case collide, as they do in Excel.
    """
    seen: Dict[str, str] = {}
    for name, result in result_set.items():
        validate_sheet_name(name)
        key = name.lower()
        if key in seen:
            raise InvalidSheetNameError(name, f"collides with '{seen[key]}'")
        seen[key] = name
        if not isinstance(result, RegressionResult):
            raise TypeError(
                f"Sheet '{name}' expects a RegressionResult, got {type(result).__name__}"
            )
    return dict(result_set)
