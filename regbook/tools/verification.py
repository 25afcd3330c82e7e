"""
Deterministic Verification Module.
Reads a merged workbook back and compares it to the results that were
published, and checks that every other sheet came through untouched.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
import math

from scipy import stats
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from regbook.models.result_schema import TIDY_COLUMNS, RegressionResult
from regbook.tools.excel_tools import open_workbook


class VerificationStatus(str, Enum):
    """Verification result status."""
    PASS = "PASS"
    FAIL = "FAIL"
    SKIP = "SKIP"
    ERROR = "ERROR"


@dataclass
class VerificationCheck:
    """Single verification check result."""
    check_name: str
    expected_value: Any
    actual_value: Any
    tolerance: float
    status: VerificationStatus
    cell_reference: str
    details: str = ""

    @property
    def difference(self) -> Optional[float]:
        """Absolute difference, for numeric checks only."""
        if not isinstance(self.expected_value, (int, float)) or not isinstance(self.actual_value, (int, float)):
            return None
        return abs(self.expected_value - self.actual_value)


@dataclass
class VerificationResult:
    """Complete verification result for one sheet."""
    sheet_name: str
    status: VerificationStatus
    checks: List[VerificationCheck] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def passed_checks(self) -> int:
        """Count of passed checks."""
        return sum(1 for c in self.checks if c.status == VerificationStatus.PASS)

    @property
    def failed_checks(self) -> int:
        """Count of failed checks."""
        return sum(1 for c in self.checks if c.status == VerificationStatus.FAIL)

    @property
    def total_checks(self) -> int:
        """Total number of checks."""
        return len(self.checks)

    @property
    def pass_rate(self) -> float:
        """Percentage of checks passed."""
        if self.total_checks == 0:
            return 0.0
        return (self.passed_checks / self.total_checks) * 100


DEFAULT_TOLERANCE = 1e-9
STATISTICAL_TOLERANCE = 1e-6

PRESERVED_SHEETS = "preserved sheets"


def _status(ok: bool) -> VerificationStatus:
    return VerificationStatus.PASS if ok else VerificationStatus.FAIL


def _overall(checks: List[VerificationCheck], errors: List[str]) -> VerificationStatus:
    if errors:
        return VerificationStatus.ERROR
    if any(c.status == VerificationStatus.FAIL for c in checks):
        return VerificationStatus.FAIL
    return VerificationStatus.PASS


class StatisticalVerifier:
    """
    Recomputes inferential quantities of a tidy result with scipy.
    """

    def __init__(self, result: RegressionResult):
        self.result = result

    def compute_p_value(self, statistic: float) -> float:
        """
        Two-sided p-value of a t statistic on the result's residual df.

        Returns:
            NaN when the residual degrees of freedom are unknown.
        """
        if self.result.df_resid is None or self.result.df_resid <= 0:
            return float('nan')
        return float(2 * stats.t.sf(abs(statistic), self.result.df_resid))

    def compute_statistic(self, estimate: float, std_error: float) -> float:
        """t statistic as estimate over standard error."""
        if std_error == 0:
            return float('nan')
        return estimate / std_error


def _cell_signature(cell) -> tuple:
    return (
        cell.value,
        cell.number_format,
        bool(cell.font.b),
        bool(cell.font.i),
        cell.fill.fill_type,
    )


def snapshot_sheets(path: Path, exclude: Iterable[str] = ()) -> Dict[str, Dict[str, tuple]]:
    """
    Capture every non-empty cell of every worksheet: value (formulas as
    text) plus its basic formatting.

    Args:
        path: Workbook file.
        exclude: Sheet names to leave out (compared case-insensitively).

    Returns:
        Sheet name -> {coordinate: signature}. Empty if path does not exist.
    """
    path = Path(path)
    if not path.exists():
        return {}

    skip = {name.lower() for name in exclude}
    workbook = open_workbook(path)
    try:
        snapshot = {}
        for ws in workbook.worksheets:
            if ws.title.lower() in skip:
                continue
            snapshot[ws.title] = {
                cell.coordinate: _cell_signature(cell)
                for row in ws.iter_rows()
                for cell in row
                if cell.value is not None or cell.has_style
            }
        return snapshot
    finally:
        workbook.close()


class ExcelVerifier:
    """
    Verifies a merged workbook against the published results.
    """

    def __init__(self, workbook_path: Path):
        self.workbook_path = Path(workbook_path)
        self.workbook = open_workbook(self.workbook_path)

    def close(self) -> None:
        """Close workbook."""
        if self.workbook:
            self.workbook.close()

    def _matching_sheets(self, sheet_name: str) -> List[Worksheet]:
        return [ws for ws in self.workbook.worksheets if ws.title.lower() == sheet_name.lower()]

    def verify_result_sheet(
        self,
        sheet_name: str,
        expected: RegressionResult,
        tolerance: float = DEFAULT_TOLERANCE
    ) -> VerificationResult:
        """
        Check header, row count, term order and values of one sheet, then
        recompute each p-value from its t statistic.
        """
        checks: List[VerificationCheck] = []
        errors: List[str] = []

        matches = self._matching_sheets(sheet_name)
        checks.append(VerificationCheck(
            check_name="sheet count",
            expected_value=1,
            actual_value=len(matches),
            tolerance=0,
            status=_status(len(matches) == 1),
            cell_reference=sheet_name
        ))
        if len(matches) != 1:
            return VerificationResult(sheet_name, VerificationStatus.FAIL, checks)

        ws = matches[0]
        rows = [list(r) for r in ws.iter_rows(values_only=True)]
        header = rows[0][:len(TIDY_COLUMNS)] if rows else []
        checks.append(VerificationCheck(
            check_name="header",
            expected_value=TIDY_COLUMNS,
            actual_value=header,
            tolerance=0,
            status=_status(header == TIDY_COLUMNS),
            cell_reference=f"{sheet_name}!A1"
        ))

        data_rows = rows[1:]
        checks.append(VerificationCheck(
            check_name="row count",
            expected_value=len(expected.rows),
            actual_value=len(data_rows),
            tolerance=0,
            status=_status(len(data_rows) == len(expected.rows)),
            cell_reference=sheet_name
        ))
        if ws.max_column > len(TIDY_COLUMNS):
            errors.append(f"{sheet_name}: unexpected columns beyond {TIDY_COLUMNS[-1]}")

        for r_idx, (row, actual) in enumerate(zip(expected.rows, data_rows), 2):
            for c_idx, (column, want) in enumerate(zip(TIDY_COLUMNS, row.as_record())):
                got = actual[c_idx] if c_idx < len(actual) else None
                ref = f"{sheet_name}!{get_column_letter(c_idx + 1)}{r_idx}"
                if column == "term":
                    ok = got == want
                else:
                    ok = isinstance(got, (int, float)) and (
                        (math.isnan(want) and math.isnan(got)) or abs(want - got) <= tolerance
                    )
                checks.append(VerificationCheck(
                    check_name=f"{row.term} {column}",
                    expected_value=want,
                    actual_value=got,
                    tolerance=tolerance,
                    status=_status(ok),
                    cell_reference=ref
                ))

        checks.extend(self.verify_p_values(sheet_name, expected))
        return VerificationResult(sheet_name, _overall(checks, errors), checks, errors)

    def verify_p_values(self, sheet_name: str, result: RegressionResult) -> List[VerificationCheck]:
        """Each stored p.value must match 2 * P(T > |t|) on df_resid."""
        verifier = StatisticalVerifier(result)
        checks = []
        for r_idx, row in enumerate(result.rows, 2):
            recomputed = verifier.compute_p_value(row.statistic)
            if math.isnan(recomputed):
                status = VerificationStatus.SKIP
            else:
                status = _status(abs(recomputed - row.p_value) <= STATISTICAL_TOLERANCE)
            checks.append(VerificationCheck(
                check_name=f"{row.term} p.value consistency",
                expected_value=recomputed,
                actual_value=row.p_value,
                tolerance=STATISTICAL_TOLERANCE,
                status=status,
                cell_reference=f"{sheet_name}!E{r_idx}",
                details="2 * t.sf(|statistic|, df_resid)"
            ))
        return checks


def verify_preserved(
    before: Mapping[str, Dict[str, tuple]],
    after: Mapping[str, Dict[str, tuple]]
) -> VerificationResult:
    """Every sheet captured before the merge is present and identical after it."""
    checks = []
    for sheet_name, cells in before.items():
        present = sheet_name in after
        changed = [] if not present else sorted(
            coord for coord in set(cells) | set(after[sheet_name])
            if cells.get(coord) != after[sheet_name].get(coord)
        )
        checks.append(VerificationCheck(
            check_name=f"{sheet_name} unchanged",
            expected_value=len(cells),
            actual_value=len(after.get(sheet_name, {})),
            tolerance=0,
            status=_status(present and not changed),
            cell_reference=sheet_name,
            details="missing" if not present else ", ".join(changed[:10])
        ))
    return VerificationResult(PRESERVED_SHEETS, _overall(checks, []), checks)


def verify_merge(
    path: Path,
    result_set: Mapping[str, RegressionResult],
    before: Optional[Mapping[str, Dict[str, tuple]]] = None
) -> List[VerificationResult]:
    """
    Verify a merge: one result per published sheet, plus a preservation
    result when a pre-merge snapshot is supplied.
    """
    verifier = ExcelVerifier(path)
    try:
        results = [
            verifier.verify_result_sheet(name, expected)
            for name, expected in result_set.items()
        ]
    finally:
        verifier.close()

    if before is not None:
        after = snapshot_sheets(path, exclude=result_set.keys())
        results.append(verify_preserved(before, after))
    return results


def generate_verification_report(results: List[VerificationResult]) -> str:
    """
    Generate human-readable verification report.

    Args:
        results: List of verification results.

    Returns:
        Formatted report string.
    """
    lines = [
        "=" * 60,
        "VERIFICATION REPORT",
        "=" * 60,
        ""
    ]

    total_pass = sum(r.passed_checks for r in results)
    total_fail = sum(r.failed_checks for r in results)
    total_checks = sum(r.total_checks for r in results)
    total_errors = sum(len(r.errors) for r in results)

    lines.append(f"Total Checks: {total_checks}")
    lines.append(f"Passed: {total_pass}")
    lines.append(f"Failed: {total_fail}")
    lines.append(f"Pass Rate: {(total_pass/total_checks*100) if total_checks > 0 else 0:.1f}%")
    lines.append("")

    for result in results:
        status_icon = "✓" if result.status == VerificationStatus.PASS else "✗"
        lines.append(f"{status_icon} {result.sheet_name}")
        lines.append(f"   Checks: {result.passed_checks}/{result.total_checks} passed")

        if result.failed_checks > 0:
            lines.append("   Failed checks:")
            for check in result.checks:
                if check.status == VerificationStatus.FAIL:
                    detail = f" ({check.details})" if check.details else ""
                    lines.append(
                        f"     - {check.check_name} at {check.cell_reference}: "
                        f"expected {check.expected_value}, got {check.actual_value}{detail}"
                    )
        for error in result.errors:
            lines.append(f"   Error: {error}")
        lines.append("")

    lines.append("=" * 60)
    overall = "PASS" if total_fail == 0 and total_errors == 0 else "FAIL"
    lines.append(f"OVERALL: {overall}")
    lines.append("=" * 60)

    return "\n".join(lines)
