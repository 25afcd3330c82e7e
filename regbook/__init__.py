"""Publish tidy OLS results into named sheets of an Excel workbook."""

__version__ = "1.0.0"
