"""
File loader utilities for marketplace order exports.

Supports CSV/XLSX/XLS/XLSM with encoding fallback, delimiter sniffing and
sheet selection. Order exports are read from their first sheet by default.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any

import pandas as pd

from order_tally.logger import get_logger

logger = get_logger(__name__)

ALLOWED_SUFFIXES = (".csv", ".xlsx", ".xls", ".xlsm")
# Korean exports are usually UTF-8 with BOM or CP949
CSV_ENCODINGS = ["utf-8-sig", "cp949", "euc-kr", "utf-8"]
CSV_DELIMITERS = [",", ";", "\t", "|"]


def _read_sample(path: Path, encoding: str, sample_size: int = 8192) -> str | None:
    try:
        with path.open("r", encoding=encoding) as handle:
            return handle.read(sample_size)
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug(f"Failed to read sample for {path} ({encoding}): {exc}")
        return None


def sniff_csv_delimiter(path: Path, encoding: str) -> str | None:
    sample = _read_sample(path, encoding)
    if not sample:
        return None
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=CSV_DELIMITERS)
        return dialect.delimiter
    except csv.Error:
        return None


def load_csv(
    path: Path,
    *,
    delimiter: str | None = None,
    encoding: str | None = None,
    encodings: list[str] | None = None,
    **kwargs: Any,
) -> pd.DataFrame:
    encodings_to_try = [encoding] if encoding else (encodings or CSV_ENCODINGS)
    last_error: Exception | None = None
    for candidate in encodings_to_try:
        try:
            sep = delimiter or sniff_csv_delimiter(path, candidate) or ","
            return pd.read_csv(path, encoding=candidate, sep=sep, low_memory=False, **kwargs)
        except (UnicodeDecodeError, pd.errors.ParserError) as exc:
            last_error = exc
            continue
    raise ValueError(f"Failed to load CSV: {path}") from last_error


def load_excel(
    path: Path,
    *,
    sheet_name: str | int = 0,
    **kwargs: Any,
) -> pd.DataFrame:
    suffix = path.suffix.lower()
    engine = "openpyxl" if suffix in (".xlsx", ".xlsm") else None
    return pd.read_excel(path, engine=engine, sheet_name=sheet_name, **kwargs)


def load_file(
    path: Path | str,
    *,
    delimiter: str | None = None,
    sheet_name: str | int = 0,
    encoding: str | None = None,
    **kwargs: Any,
) -> pd.DataFrame:
    """
    Load a CSV or Excel file into a DataFrame.

    Raises:
        FileNotFoundError: If the path does not exist.
        ValueError: If the format is unsupported or the CSV cannot be decoded.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    suffix = file_path.suffix.lower()

    if suffix == ".csv":
        return load_csv(file_path, delimiter=delimiter, encoding=encoding, **kwargs)
    if suffix in (".xlsx", ".xls", ".xlsm"):
        return load_excel(file_path, sheet_name=sheet_name, **kwargs)

    raise ValueError(f"Unsupported file format: {suffix}")


def detect_latest_file(directory: Path | str) -> Path | None:
    """Most recently modified supported file in a directory, ignoring Excel lock files."""
    directory = Path(directory)
    if not directory.is_dir():
        return None
    files = [
        f for f in directory.iterdir()
        if f.is_file() and f.suffix.lower() in ALLOWED_SUFFIXES and not f.name.startswith("~$")
    ]
    if not files:
        return None
    return max(files, key=lambda f: f.stat().st_mtime)


def load_order_rows(path: Path | str, *, sheet_name: str | int = 0) -> list[dict[str, Any]]:
    """
    Read an order export as a list of row mappings.

    Column names are trimmed and empty cells become "".
    """
    df = load_file(path, sheet_name=sheet_name)
    df.columns = [str(c).strip() for c in df.columns]
    df = df.astype(object).where(df.notna(), "")
    logger.info(f"Loaded {len(df)} order rows with {len(df.columns)} columns from {Path(path).name}")
    return df.to_dict(orient="records")
