"""
Excel tools for publishing regression results.
Named result sheets are replaced wholesale; every other sheet of the
workbook (values, formulas, styles) is left as it was.
"""

import logging
import os
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Union

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from regbook.errors import FileAccessError, InvalidSheetNameError
from regbook.models.result_schema import (
    TIDY_COLUMNS,
    RegressionResult,
    validate_result_set,
    validate_sheet_name
)


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_READ_ERRORS = (
    OSError,
    InvalidFileException,
    zipfile.BadZipFile,
    KeyError,
    ValueError,
    TypeError,
)


@dataclass
class LoadedWorkbook:
    """Workbook read in full from an existing file."""
    workbook: Workbook
    path: Path


@dataclass
class FreshWorkbook:
    """Empty in-memory workbook for a path that does not exist yet."""
    workbook: Workbook
    path: Path


WorkbookSource = Union[LoadedWorkbook, FreshWorkbook]


def open_workbook(path: PathLike, data_only: bool = False) -> Workbook:
    """
    Load an existing workbook.

    Raises:
        FileAccessError: missing, a directory, unreadable or not a workbook.
    """
    path = Path(path)
    if not path.exists():
        raise FileAccessError(path, "read", "file does not exist")
    if path.is_dir():
        raise FileAccessError(path, "read", "path is a directory")

    keep_vba = path.suffix.lower() == '.xlsm'
    try:
        return load_workbook(path, data_only=data_only, keep_vba=keep_vba)
    except _READ_ERRORS as exc:
        raise FileAccessError(path, "read", str(exc)) from exc


def load_or_create(path: PathLike) -> WorkbookSource:
    """Load the workbook at path, or start an empty one if there is none."""
    path = Path(path)
    if not path.exists():
        workbook = Workbook()
        workbook.remove(workbook.active)
        return FreshWorkbook(workbook=workbook, path=path)
    return LoadedWorkbook(workbook=open_workbook(path), path=path)


def save_workbook_atomic(workbook: Workbook, path: PathLike) -> Path:
    """
    Write to a temporary file beside path, then rename over it.
    Readers never see a partially written workbook.
    """
    path = Path(path)
    tmp_path = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.stem}-", suffix=path.suffix, dir=path.parent
        )
        os.close(fd)
        tmp_path = Path(tmp_name)
        workbook.save(tmp_path)
        if path.exists():
            shutil.copymode(path, tmp_path)
        else:
            umask = os.umask(0)
            os.umask(umask)
            os.chmod(tmp_path, 0o666 & ~umask)
        os.replace(tmp_path, path)
    except OSError as exc:
        raise FileAccessError(path, "write", str(exc)) from exc
    finally:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
    return path


def sheet_ref(sheet_name: str, cell: str) -> str:
    """Cross-sheet reference, e.g. 'Regression1'!B2."""
    quoted = sheet_name.replace("'", "''")
    return f"'{quoted}'!{cell}"


def find_sheet(workbook: Workbook, name: str):
    """Sheet whose name matches case-insensitively, as Excel compares them."""
    for existing in workbook.sheetnames:
        if existing.lower() == name.lower():
            return workbook[existing]
    return None


class ResultWorkbook:
    """
    Workbook manager that publishes tidy results into named sheets.
    Only sheets it is asked to replace are ever removed.
    """

    def __init__(self, source: WorkbookSource):
        self.source = source
        self.workbook = source.workbook
        self.path = source.path

        self.header_font = Font(bold=True)
        self.header_fill = PatternFill(start_color="DDEEFF", end_color="DDEEFF", fill_type="solid")
        self.title_font = Font(bold=True, size=14)

        self.formula_log: List[Dict[str, str]] = []
        self.sheets_written: List[str] = []

    @property
    def is_fresh(self) -> bool:
        return isinstance(self.source, FreshWorkbook)

    def replace_sheet(self, name: str) -> Worksheet:
        """
        Remove the sheet called name (if any) and create an empty one in
        its place. New names go to the end of the workbook.
        """
        validate_sheet_name(name)
        existing = find_sheet(self.workbook, name)
        index = None
        if existing is not None:
            index = self.workbook.index(existing)
            self.workbook.remove(existing)
            logger.debug("Removed sheet '%s' at position %d", existing.title, index)

        ws = self.workbook.create_sheet(name, index)
        if ws.title != name:
            raise InvalidSheetNameError(name, f"workbook renamed it to '{ws.title}'")
        return ws

    def write_header_row(self, ws: Worksheet, headers: List[str], row: int = 1) -> None:
        """Write formatted header row."""
        for c_idx, header in enumerate(headers, 1):
            cell = ws.cell(row=row, column=c_idx, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill

    def write_title(self, ws: Worksheet, title: str, row: int = 1) -> None:
        cell = ws.cell(row=row, column=1, value=title)
        cell.font = self.title_font

    def write_formula(self, ws: Worksheet, cell: str, formula: str) -> None:
        """
        Write a formula to a cell.

        Args:
            ws: Worksheet
            cell: Cell reference (e.g., "B2")
            formula: Excel formula starting with "="
        """
        if not formula.startswith("="):
            raise ValueError(f"REJECTED: '{formula}' is not a formula. Must start with '='")

        ws[cell] = formula
        self.formula_log.append({
            "sheet": ws.title,
            "cell": cell,
            "formula": formula,
            "timestamp": datetime.now().isoformat()
        })

    def write_result(self, name: str, result: RegressionResult) -> Worksheet:
        """
        Replace sheet name with result: header row at A1, then one row per
        term in model order.
        """
        ws = self.replace_sheet(name)
        self.write_header_row(ws, TIDY_COLUMNS)
        for r_idx, record in enumerate(result.to_records(), 2):
            for c_idx, value in enumerate(record, 1):
                ws.cell(row=r_idx, column=c_idx, value=value)
        ws.freeze_panes = "A2"

        self.sheets_written.append(name)
        return ws

    def write_summary(self, sheet_name: str, result_set: Mapping[str, RegressionResult]) -> Worksheet:
        """
        Add a summary sheet at the front whose cells reference the term,
        estimate and p.value cells of each result sheet.
        """
        validate_sheet_name(sheet_name)
        ws = self.workbook.create_sheet(sheet_name, 0)
        self.write_title(ws, "REGRESSION SUMMARY")
        ws.cell(row=2, column=1, value="Values are formulas referencing the regression sheets")

        self.write_header_row(ws, ["sheet", "term", "estimate", "p.value"], 4)
        row = 5
        for name, result in result_set.items():
            for src_row in range(2, len(result.rows) + 2):
                ws.cell(row=row, column=1, value=name)
                self.write_formula(ws, f"B{row}", f"={sheet_ref(name, f'A{src_row}')}")
                self.write_formula(ws, f"C{row}", f"={sheet_ref(name, f'B{src_row}')}")
                self.write_formula(ws, f"D{row}", f"={sheet_ref(name, f'E{src_row}')}")
                row += 1

        self.sheets_written.append(sheet_name)
        return ws

    def save(self) -> Path:
        """Save workbook atomically and return path."""
        return save_workbook_atomic(self.workbook, self.path)


def merge_results(result_set: Mapping[str, RegressionResult], path: PathLike) -> Path:
    """
    Publish a NamedResultSet into the workbook at path.

    Each named sheet is removed (if present) and rewritten from scratch;
    all other sheets are preserved. Names are validated before the
    workbook is touched, and the file is replaced only once every sheet
    has been written.

    Args:
        result_set: Sheet name -> RegressionResult.
        path: Workbook file; created when absent.

    Returns:
        Path of the saved workbook.

    Raises:
        InvalidSheetNameError: a name breaks Excel's sheet naming rules.
        FileAccessError: the file cannot be read or written.
    """
    path = Path(path)
    result_set = validate_result_set(result_set)
    if not result_set:
        logger.info("Nothing to merge into %s", path)
        return path

    book = ResultWorkbook(load_or_create(path))
    for name, result in result_set.items():
        book.write_result(name, result)

    book.save()
    logger.info(
        "Merged %d sheet(s) into %s workbook %s: %s",
        len(book.sheets_written),
        "new" if book.is_fresh else "existing",
        path,
        ", ".join(book.sheets_written)
    )
    return path


def seed_summary_sheet(
    path: PathLike,
    result_set: Mapping[str, RegressionResult],
    sheet_name: str = "Summary"
) -> bool:
    """
    Add a formula-driven summary sheet if the workbook has none.
    An existing summary sheet is never modified.

    Returns:
        True when the sheet was created.
    """
    path = Path(path)
    result_set = validate_result_set(result_set)
    book = ResultWorkbook(LoadedWorkbook(workbook=open_workbook(path), path=path))

    if find_sheet(book.workbook, sheet_name) is not None:
        logger.debug("Summary sheet '%s' already present, leaving it alone", sheet_name)
        return False

    missing = [name for name in result_set if find_sheet(book.workbook, name) is None]
    if missing:
        raise ValueError(f"Result sheets not found in {path}: {missing}")

    book.write_summary(sheet_name, result_set)
    book.save()
    logger.info("Created summary sheet '%s' in %s", sheet_name, path)
    return True


def read_result_sheet(path: PathLike, sheet_name: str) -> RegressionResult:
    """Read a published result sheet back into a RegressionResult."""
    workbook = open_workbook(path)
    try:
        ws = find_sheet(workbook, sheet_name)
        if ws is None:
            raise KeyError(f"Sheet '{sheet_name}' not found in {path}")

        rows = list(ws.iter_rows(values_only=True))
        if not rows or list(rows[0][:len(TIDY_COLUMNS)]) != TIDY_COLUMNS:
            raise ValueError(f"Sheet '{sheet_name}' does not start with header {TIDY_COLUMNS}")

        records = [
            dict(zip(TIDY_COLUMNS, row[:len(TIDY_COLUMNS)]))
            for row in rows[1:]
            if any(v is not None for v in row)
        ]
        return RegressionResult.from_records(records)
    finally:
        workbook.close()
