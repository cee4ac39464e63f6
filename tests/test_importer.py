"""Tests for expense_ledger.importer and expense_ledger.readers.

Covers:
- reader registry and header mapping
- delimiter detection for comma and tab files
- row filtering (blank, comment and instruction rows)
- row numbering and the aggregate outcome policy
- spreadsheet imports with native cell values
- file-level failures and the async entry point's cleanup guarantee
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest

from expense_ledger.importer import import_file, import_file_async, process_rows, should_skip
from expense_ledger.models import FileErrorCode, ImportStatus, RawRow, RowErrorCode
from expense_ledger.readers import READERS, csv_reader, get_reader, xlsx_reader
from expense_ledger.readers.columns import map_header
from expense_ledger.readers.csv_reader import detect_delimiter


def _write(tmp_path: Path, text: str, name: str = "import.csv") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Reader registry and header mapping
# ---------------------------------------------------------------------------


class TestReaderRegistry:
    """Tests for the READERS dict and get_reader()."""

    def test_csv_and_xlsx_registered(self):
        assert get_reader(".csv") is csv_reader.read
        assert get_reader(".XLSX") is xlsx_reader.read
        assert ".tsv" in READERS

    def test_unknown_suffix_raises_key_error(self):
        with pytest.raises(KeyError):
            get_reader(".pdf")


class TestMapHeader:
    """Header names are trimmed, lower-cased and matched by name."""

    def test_maps_by_name_in_any_order(self):
        mapping = map_header([" Category ", "AMOUNT", "Date", "Description"])
        assert mapping == {"category": 0, "amount": 1, "date": 2, "description": 3}

    def test_ignores_unknown_headers(self):
        mapping = map_header(["Date", "Description", "Amount", "Category", "Tags", "Note"])
        assert mapping == {"date": 0, "description": 1, "amount": 2, "category": 3}

    def test_positional_when_nothing_recognized(self):
        mapping = map_header(["When", "What", "How much", "Kind"])
        assert mapping == {"date": 0, "description": 1, "amount": 2, "category": 3}


class TestDetectDelimiter:
    def test_tab(self):
        assert detect_delimiter("date\tdescription\tamount\tcategory\n") == "\t"

    def test_comma(self):
        assert detect_delimiter("date,description,amount,category\n") == ","

    def test_tab_header_with_commas_in_rows(self):
        """Commas inside tab-delimited cells do not sway detection."""
        text = "date\tdescription\tamount\tcategory\n01/02/2024\tA, B, C\t5\tFood\n"
        assert detect_delimiter(text) == "\t"


# ---------------------------------------------------------------------------
# Row filtering
# ---------------------------------------------------------------------------


class TestShouldSkip:
    def test_blank_row(self):
        assert should_skip(RawRow("", " ", "", ""))

    def test_comment_row(self):
        assert should_skip(RawRow("# a comment", "", "", ""))

    def test_instruction_row(self):
        assert should_skip(RawRow("Format: MM/DD/YYYY", "Text", "Number", "One of: Food"))

    def test_data_row_kept(self):
        assert not should_skip(RawRow("01/15/2024", "Coffee", "5", "Food"))

    def test_none_values_are_blank(self):
        assert should_skip(RawRow(None, None, None, None))


# ---------------------------------------------------------------------------
# CSV import
# ---------------------------------------------------------------------------


class TestCsvImport:
    """End-to-end imports of delimited text files."""

    def test_comma_delimited_success(self, tmp_path, food_and_shopping):
        path = _write(
            tmp_path,
            "date,description,amount,category\n"
            "01/15/2024,Coffee,4.50,Food\n"
            "01/16/2024,Shoes,80,shopping\n",
        )
        result = import_file(path, food_and_shopping)

        assert result.status == ImportStatus.SUCCESS
        assert result.committable
        assert result.errors == []
        assert len(result.expenses) == 2
        assert result.expenses[0].date == date(2024, 1, 15)
        assert result.expenses[0].amount == Decimal("4.50")
        assert result.expenses[1].category == "shop"
        assert result.message == "Successfully imported 2 expenses"

    def test_tab_delimited_with_mixed_case_headers(self, tmp_path, food_and_shopping):
        path = _write(
            tmp_path,
            " Date \tDESCRIPTION\tAmount\tCategory\tNote\n01/15/2024\tLunch, team\t15.50\tFood\tx\n",
        )
        result = import_file(path, food_and_shopping)

        assert result.status == ImportStatus.SUCCESS
        assert result.expenses[0].description == "Lunch, team"

    def test_utf8_bom_is_tolerated(self, tmp_path, food_and_shopping):
        path = tmp_path / "bom.csv"
        path.write_bytes(
            b"\xef\xbb\xbf" + "date,description,amount,category\n01/15/2024,Café,3,Food\n".encode()
        )
        result = import_file(path, food_and_shopping)
        assert result.status == ImportStatus.SUCCESS
        assert result.expenses[0].description == "Café"

    def test_template_rows_skipped(self, tmp_path, food_and_shopping):
        path = _write(
            tmp_path,
            "date\tdescription\tamount\tcategory\n"
            "# Format: MM/DD/YYYY (e.g., 01/15/2024)\tText\tNumber\tOne of: Food, Shopping\n"
            "\t\t\t\n"
            "01/15/2024\tSample Expense\t50.00\tFood\n",
        )
        result = import_file(path, food_and_shopping)

        assert result.status == ImportStatus.SUCCESS
        assert len(result.expenses) == 1
        assert result.skipped == 2

    def test_errors_tagged_with_display_row_numbers(self, tmp_path, food_and_shopping):
        """Invalid data rows 2 and 4 (after the instruction row) report rows 3 and 5."""
        path = _write(
            tmp_path,
            "date\tdescription\tamount\tcategory\n"
            "# Format: MM/DD/YYYY\tText\tNumber\tOne of: Food, Shopping\n"
            "13/01/2024\tRent\t1200\tFood\n"
            "01/15/2024\tCoffee\t5\tFood\n"
            "01/15/2024\tCoffee\t-5\tFood\n",
        )
        result = import_file(path, food_and_shopping)

        assert result.status == ImportStatus.VALIDATION_FAILED
        assert not result.committable
        assert len(result.expenses) == 1
        assert len(result.errors) == 2
        assert [e.row_number for e in result.errors] == [3, 5]
        assert [e.code for e in result.errors] == [
            RowErrorCode.BAD_DATE_FORMAT,
            RowErrorCode.INVALID_AMOUNT,
        ]
        assert result.message.splitlines() == [
            "Row 3: Invalid date format. Use MM/DD/YYYY",
            "Row 5: Invalid amount. Must be a positive number",
        ]

    def test_partial_import_commits_valid_rows(self, tmp_path, food_and_shopping):
        path = _write(
            tmp_path,
            "date,description,amount,category\n"
            "01/15/2024,Coffee,5,Food\n"
            "01/15/2024,Coffee,5,Bogus\n",
        )
        result = import_file(path, food_and_shopping, allow_partial=True)

        assert result.status == ImportStatus.PARTIAL
        assert result.committable
        assert len(result.expenses) == 1
        assert [e.row_number for e in result.errors] == [3]

    def test_all_rows_invalid_is_not_partial(self, tmp_path, food_and_shopping):
        path = _write(tmp_path, "date,description,amount,category\n01/15/2024,Coffee,0,Food\n")
        result = import_file(path, food_and_shopping, allow_partial=True)
        assert result.status == ImportStatus.VALIDATION_FAILED

    def test_no_valid_expenses(self, tmp_path, food_and_shopping):
        """Only instruction and blank rows: a distinct outcome, not success."""
        path = _write(
            tmp_path,
            "date,description,amount,category\n# nothing here,,,\n",
        )
        result = import_file(path, food_and_shopping)

        assert result.status == ImportStatus.NO_VALID_EXPENSES
        assert not result.committable
        assert result.message == "No valid expenses found in file"

    def test_header_only_file(self, tmp_path, food_and_shopping):
        path = _write(tmp_path, "date,description,amount,category\n")
        assert import_file(path, food_and_shopping).status == ImportStatus.NO_VALID_EXPENSES

    def test_empty_file(self, tmp_path, food_and_shopping):
        path = _write(tmp_path, "")
        assert import_file(path, food_and_shopping).status == ImportStatus.NO_VALID_EXPENSES

    def test_delimiter_only_line_keeps_its_row_number(self, tmp_path, food_and_shopping):
        """``,,,`` counts as a row and is skipped; an empty line is dropped."""
        path = _write(
            tmp_path,
            "date,description,amount,category\n"
            ",,,\n"
            "\n"
            "01/15/2024,Coffee,0,Food\n",
        )
        result = import_file(path, food_and_shopping)

        assert result.skipped == 1
        assert [e.row_number for e in result.errors] == [3]


# ---------------------------------------------------------------------------
# Spreadsheet import
# ---------------------------------------------------------------------------


class TestXlsxImport:
    """End-to-end imports of .xlsx workbooks."""

    def test_native_numbers_and_strings(self, write_xlsx, food_and_shopping):
        path = write_xlsx(
            [
                ["Date", "Description", "Amount", "Category"],
                ["# Format: MM/DD/YYYY", "Text", "Number", "One of: Food, Shopping"],
                ["01/15/2024", "Sample Expense", 50, "Food"],
                ["01/16/2024", "Lunch", 15.5, "shopping"],
            ]
        )
        result = import_file(path, food_and_shopping)

        assert result.status == ImportStatus.SUCCESS
        assert [e.amount for e in result.expenses] == [Decimal("50"), Decimal("15.5")]
        assert result.expenses[1].category == "shop"

    def test_native_date_cells(self, write_xlsx, food_and_shopping):
        path = write_xlsx(
            [
                ["date", "description", "amount", "category"],
                [datetime(2024, 2, 29), "Leap lunch", 12.25, "Food"],
            ]
        )
        result = import_file(path, food_and_shopping)

        assert result.status == ImportStatus.SUCCESS
        assert result.expenses[0].date == date(2024, 2, 29)

    def test_row_numbers_match_sheet_rows(self, write_xlsx, food_and_shopping):
        path = write_xlsx(
            [
                ["Date", "Description", "Amount", "Category"],
                ["01/15/2024", "Coffee", 5, "Food"],
                ["01/15/2024", "Coffee", 5, "Travel"],
            ]
        )
        result = import_file(path, food_and_shopping)

        assert result.status == ImportStatus.VALIDATION_FAILED
        assert result.errors[0].row_number == 3
        assert result.errors[0].code == RowErrorCode.UNKNOWN_CATEGORY

    def test_corrupt_workbook_is_decode_failure(self, tmp_path, food_and_shopping):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"this is not a zip archive")
        result = import_file(path, food_and_shopping)

        assert result.status == ImportStatus.READ_FAILED
        assert result.file_error == FileErrorCode.DECODE_FAILURE


# ---------------------------------------------------------------------------
# File-level failures
# ---------------------------------------------------------------------------


class TestFileFailures:
    """File problems end the import with one read_failed outcome."""

    def test_no_file_selected(self, food_and_shopping):
        for value in (None, "", "  "):
            result = import_file(value, food_and_shopping)
            assert result.status == ImportStatus.READ_FAILED
            assert result.file_error == FileErrorCode.NO_FILE_SELECTED

    def test_unsupported_extension(self, tmp_path, food_and_shopping):
        path = _write(tmp_path, "whatever", name="expenses.pdf")
        result = import_file(path, food_and_shopping)

        assert result.status == ImportStatus.READ_FAILED
        assert result.file_error == FileErrorCode.FILE_TYPE_REJECTED
        assert ".pdf" in result.message

    def test_missing_file(self, tmp_path, food_and_shopping):
        result = import_file(tmp_path / "nope.csv", food_and_shopping)

        assert result.status == ImportStatus.READ_FAILED
        assert result.file_error == FileErrorCode.FILE_READ_FAILURE
        assert "file not found" in result.message

    def test_invalid_utf8(self, tmp_path, food_and_shopping):
        path = tmp_path / "latin1.csv"
        path.write_bytes("date,description,amount,category\n01/15/2024,Caf\xe9,3,Food\n".encode("latin-1"))
        result = import_file(path, food_and_shopping)

        assert result.status == ImportStatus.READ_FAILED
        assert result.file_error == FileErrorCode.DECODE_FAILURE


# ---------------------------------------------------------------------------
# process_rows
# ---------------------------------------------------------------------------


class TestProcessRows:
    def test_numbering_counts_filtered_rows(self, food_and_shopping):
        rows = [
            RawRow("", "", "", ""),
            RawRow("01/15/2024", "Coffee", "5", "Nope"),
        ]
        result = process_rows(rows, food_and_shopping)
        assert result.errors[0].row_number == 3
        assert result.skipped == 1

    def test_every_error_of_a_row_is_listed(self, food_and_shopping):
        rows = [RawRow("02/30/2024", "X", "abc", "Nope")]
        result = process_rows(rows, food_and_shopping)
        assert len(result.errors) == 3
        assert len(result.message.splitlines()) == 3


# ---------------------------------------------------------------------------
# Async entry point
# ---------------------------------------------------------------------------


class TestImportFileAsync:
    """The async variant returns the same outcome and always runs cleanup."""

    def test_success_runs_cleanup(self, tmp_path, food_and_shopping):
        path = _write(tmp_path, "date,description,amount,category\n01/15/2024,Coffee,5,Food\n")
        calls: list[str] = []

        result = asyncio.run(
            import_file_async(path, food_and_shopping, on_complete=lambda: calls.append("done"))
        )

        assert result.status == ImportStatus.SUCCESS
        assert calls == ["done"]

    def test_failure_runs_cleanup(self, tmp_path, food_and_shopping):
        calls: list[str] = []

        result = asyncio.run(
            import_file_async(
                tmp_path / "missing.xlsx",
                food_and_shopping,
                on_complete=lambda: calls.append("done"),
            )
        )

        assert result.status == ImportStatus.READ_FAILED
        assert calls == ["done"]

    def test_cleanup_runs_when_import_raises(self, monkeypatch, food_and_shopping):
        calls: list[str] = []

        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr("expense_ledger.importer.import_file", explode)

        with pytest.raises(RuntimeError):
            asyncio.run(
                import_file_async("x.csv", food_and_shopping, on_complete=lambda: calls.append("done"))
            )
        assert calls == ["done"]

    def test_without_callback(self, tmp_path, food_and_shopping):
        path = _write(tmp_path, "date,description,amount,category\n")
        result = asyncio.run(import_file_async(path, food_and_shopping))
        assert result.status == ImportStatus.NO_VALID_EXPENSES
