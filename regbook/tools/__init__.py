"""Tools package for data, regression, workbook and verification steps."""
from regbook.tools.data_tools import DatasetSpec, generate_dataset, generate_datasets
from regbook.tools.excel_tools import load_or_create, merge_results, seed_summary_sheet
from regbook.tools.stats_tools import fit_ols, tidy_model, run_regressions

__all__ = [
    'DatasetSpec',
    'generate_dataset',
    'generate_datasets',
    'load_or_create',
    'merge_results',
    'seed_summary_sheet',
    'fit_ols',
    'tidy_model',
    'run_regressions'
]
