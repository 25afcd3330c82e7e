"""Models package for Pydantic schemas."""
from regbook.models.result_schema import (
    TIDY_COLUMNS,
    CoefficientRow,
    RegressionResult,
    validate_sheet_name,
    validate_result_set
)

__all__ = [
    'TIDY_COLUMNS',
    'CoefficientRow',
    'RegressionResult',
    'validate_sheet_name',
    'validate_result_set'
]
