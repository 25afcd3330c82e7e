"""
Regression workbook publisher.
Generates two synthetic datasets, fits an OLS model to each, and merges
the tidy coefficient tables into a workbook without touching its other
sheets.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from regbook import config
from regbook.models.result_schema import RegressionResult
from regbook.tools.data_tools import REGRESSION_SPECS, generate_datasets
from regbook.tools.excel_tools import merge_results, seed_summary_sheet
from regbook.tools.stats_tools import run_regressions
from regbook.tools.verification import (
    VerificationStatus,
    generate_verification_report,
    snapshot_sheets,
    verify_merge
)


logger = logging.getLogger(__name__)


def run_workflow(
    path: Optional[Path] = None,
    n: Optional[int] = None,
    seed: Optional[int] = None,
    summary_sheet: Optional[str] = None
) -> Dict[str, RegressionResult]:
    """
    Generate, fit, tidy and publish both regressions.

    Args:
        path: Workbook file. Defaults to config.WORKBOOK_PATH.
        n: Observations per dataset. Defaults to config.N_OBS.
        seed: Data seed. Defaults to config.DATA_SEED (unseeded when unset).
        summary_sheet: Summary sheet to seed when absent. Defaults to
            config.SUMMARY_SHEET if config.SEED_SUMMARY is on.

    Returns:
        The NamedResultSet that was written.
    """
    path = Path(path) if path is not None else config.WORKBOOK_PATH
    n = n if n is not None else config.N_OBS
    seed = seed if seed is not None else config.DATA_SEED
    if summary_sheet is None and config.SEED_SUMMARY:
        summary_sheet = config.SUMMARY_SHEET

    datasets = generate_datasets(REGRESSION_SPECS, n, seed=seed)
    result_set = run_regressions(datasets)

    before = snapshot_sheets(path, exclude=result_set.keys())
    merge_results(result_set, path)
    if summary_sheet:
        seed_summary_sheet(path, result_set, summary_sheet)

    results = verify_merge(path, result_set, before=before)
    print(generate_verification_report(results))

    failed = [r.sheet_name for r in results if r.status != VerificationStatus.PASS]
    if failed:
        logger.error("Verification failed for: %s", ", ".join(failed))
    return result_set


def main() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    print("📊 Regression Workbook Publisher")
    print(f"📁 Workbook: {config.WORKBOOK_PATH}")
    print(f"🎲 Seed: {config.DATA_SEED if config.DATA_SEED is not None else 'unset (fresh draws)'}")

    config.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    result_set = run_workflow()

    for name, result in result_set.items():
        print(f"\n{name}")
        print(result.to_frame().to_string(index=False))


if __name__ == "__main__":
    main()
