"""
Excel Formatter Module - Summary Workbook Output

Creates formatted Excel workbooks with:
- 집계표: quantity per design/color and size, with a grand-total row
- 제외 행: rejected rows with their reason (rule tuning)
- 추출 경로: how many rows each extraction path resolved
- Configuration Log: settings used for the run
"""

from __future__ import annotations

import numbers
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
import xlsxwriter
from xlsxwriter.workbook import Workbook
from xlsxwriter.worksheet import Worksheet

from order_tally.aggregator import AggregateResult
from order_tally.config import OUTPUT_PATH, OUTPUT_SETTINGS
from order_tally.diagnostics import build_rejection_report, rejection_counts, source_counts
from order_tally.logger import get_logger

logger = get_logger(__name__)

SUMMARY_SHEET = "집계표"
REJECTION_SHEET = "제외 행"
SOURCE_SHEET = "추출 경로"
CONFIG_SHEET = "Configuration Log"


class ExcelFormatter:
    """Writes an AggregateResult as a formatted summary workbook."""

    def __init__(self, output_path: Path | str | None = None):
        """
        Initialize the ExcelFormatter.

        Args:
            output_path: Directory for output files. Defaults to OUTPUT_PATH.
        """
        self.output_path = Path(output_path) if output_path else OUTPUT_PATH
        self.output_path.mkdir(parents=True, exist_ok=True)

        self.workbook: Workbook | None = None
        self.formats: dict[str, Any] = {}

    def _generate_filename(self, source: str = "orders") -> str:
        """Generate output filename from pattern."""
        timestamp = datetime.now().strftime(OUTPUT_SETTINGS["timestamp_format"])
        return OUTPUT_SETTINGS["workbook_name_pattern"].format(source=source, timestamp=timestamp)

    def _setup_formats(self) -> None:
        """Set up cell formats for the workbook."""
        if self.workbook is None:
            return

        self.formats["header"] = self.workbook.add_format({
            "bold": True,
            "bg_color": "#4472C4",
            "font_color": "#FFFFFF",
            "border": 1,
            "align": "center",
            "valign": "vcenter",
            "text_wrap": True,
        })
        self.formats["integer"] = self.workbook.add_format({
            "num_format": OUTPUT_SETTINGS["integer_format"],
            "border": 1,
        })
        self.formats["default"] = self.workbook.add_format({
            "border": 1,
        })
        self.formats["total_label"] = self.workbook.add_format({
            "bold": True,
            "bg_color": "#D9E1F2",
            "border": 1,
        })
        self.formats["total_integer"] = self.workbook.add_format({
            "bold": True,
            "bg_color": "#D9E1F2",
            "num_format": OUTPUT_SETTINGS["integer_format"],
            "border": 1,
        })

    def _write_table(self, ws: Worksheet, df: pd.DataFrame, start_row: int = 0) -> None:
        for col_idx, col_name in enumerate(df.columns):
            ws.write(start_row, col_idx, col_name, self.formats["header"])

        for row_offset, values in enumerate(df.itertuples(index=False, name=None), start=start_row + 1):
            for col_idx, value in enumerate(values):
                if value is None or (not isinstance(value, str) and pd.isna(value)):
                    ws.write_blank(row_offset, col_idx, None, self.formats["default"])
                elif isinstance(value, numbers.Number) and not isinstance(value, bool):
                    ws.write_number(row_offset, col_idx, value, self.formats["integer"])
                else:
                    ws.write(row_offset, col_idx, str(value), self.formats["default"])

    def create_summary_sheet(self, result: AggregateResult, sheet_name: str = SUMMARY_SHEET) -> Worksheet:
        """
        Create the main tally sheet.

        Args:
            result: Aggregation result to write.
            sheet_name: Name of the worksheet.

        Returns:
            The created worksheet.
        """
        if self.workbook is None:
            raise RuntimeError("Workbook not initialized")

        ws = self.workbook.add_worksheet(sheet_name)
        df = result.to_dataframe(include_totals=False)
        self._write_table(ws, df)

        # Grand-total row
        total_row = len(df) + 1
        ws.write(total_row, 0, OUTPUT_SETTINGS["total_header"], self.formats["total_label"])
        ws.write_blank(total_row, 1, None, self.formats["total_label"])
        totals = result.size_totals()
        for col_idx, size in enumerate(result.sizes, start=2):
            ws.write_number(total_row, col_idx, totals[size], self.formats["total_integer"])
        ws.write_number(total_row, len(result.sizes) + 2, result.grand_total, self.formats["total_integer"])

        widest = max([len(str(d)) for d in df[OUTPUT_SETTINGS["design_header"]]] + [10])
        ws.set_column(0, 0, min(widest + 4, 40))
        ws.set_column(1, 1, 12)
        ws.set_column(2, len(result.sizes) + 2, 8)
        ws.freeze_panes(1, 2)

        return ws

    def create_rejection_sheet(self, result: AggregateResult, sheet_name: str = REJECTION_SHEET) -> Worksheet:
        """Create the rejected-rows sheet, reason counts first, then every row."""
        if self.workbook is None:
            raise RuntimeError("Workbook not initialized")

        ws = self.workbook.add_worksheet(sheet_name)
        counts = pd.DataFrame(list(rejection_counts(result).items()), columns=["reason", "rows"])
        self._write_table(ws, counts)

        report = build_rejection_report(result)
        self._write_table(ws, report, start_row=len(counts) + 2)

        ws.set_column(0, 1, 14)
        ws.set_column(2, 4, 12)
        ws.set_column(5, 7, 45)
        ws.set_column(8, 9, 20)

        return ws

    def create_source_sheet(self, result: AggregateResult, sheet_name: str = SOURCE_SHEET) -> Worksheet:
        """Create the extraction-path sheet (adapter:size_rule/design_rule -> rows)."""
        if self.workbook is None:
            raise RuntimeError("Workbook not initialized")

        ws = self.workbook.add_worksheet(sheet_name)
        df = pd.DataFrame(list(source_counts(result).items()), columns=["source", "rows"])
        self._write_table(ws, df)
        ws.set_column(0, 0, 45)
        ws.set_column(1, 1, 10)
        return ws

    def create_configuration_log(self, config: dict[str, Any], sheet_name: str = CONFIG_SHEET) -> Worksheet:
        """
        Create Configuration Log sheet showing settings used.

        Args:
            config: Configuration dictionary.
            sheet_name: Name of the worksheet.

        Returns:
            The created worksheet.
        """
        if self.workbook is None:
            raise RuntimeError("Workbook not initialized")

        ws = self.workbook.add_worksheet(sheet_name)

        ws.write(0, 0, "Configuration Log", self.formats["header"])
        ws.write(0, 1, f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}", self.formats["default"])

        row = 2
        ws.write(row, 0, "Setting", self.formats["header"])
        ws.write(row, 1, "Value", self.formats["header"])

        row += 1
        for key, value in config.items():
            ws.write(row, 0, str(key), self.formats["default"])
            ws.write(row, 1, str(value)[:250], self.formats["default"])
            row += 1

        ws.set_column(0, 0, 30)
        ws.set_column(1, 1, 80)

        return ws

    def create_summary_workbook(
        self,
        result: AggregateResult,
        config: dict[str, Any] | None = None,
        source: str = "orders",
        output_filename: str | None = None,
    ) -> Path:
        """
        Create a complete summary workbook with all sheets.

        Args:
            result: Aggregation result.
            config: Optional configuration for the Configuration Log sheet.
            source: Input name used in the generated filename.
            output_filename: Custom output filename. If None, auto-generated.

        Returns:
            Path to the created workbook.
        """
        if output_filename is None:
            output_filename = self._generate_filename(source)

        output_path = self.output_path / output_filename

        self.workbook = xlsxwriter.Workbook(str(output_path))
        self._setup_formats()

        try:
            self.create_summary_sheet(result)
            self.create_rejection_sheet(result)
            self.create_source_sheet(result)
            if config is not None:
                self.create_configuration_log(config)
        finally:
            self.workbook.close()
            self.workbook = None

        logger.info(f"Summary workbook written to {output_path}")
        return output_path


def create_summary_workbook(
    result: AggregateResult,
    config: dict[str, Any] | None = None,
    source: str = "orders",
    output_path: Path | str | None = None,
    output_filename: str | None = None,
) -> Path:
    """
    Convenience function to create a summary workbook.

    Args:
        result: Aggregation result.
        config: Optional configuration for the Configuration Log sheet.
        source: Input name used in the generated filename.
        output_path: Output directory.
        output_filename: Custom output filename.

    Returns:
        Path to the created workbook.
    """
    formatter = ExcelFormatter(output_path)
    return formatter.create_summary_workbook(result, config, source, output_filename)
