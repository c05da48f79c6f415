"""Tests for settlement report parsing."""

from decimal import Decimal
from pathlib import Path

import pytest

from settlement_recon.errors import MalformedInputError
from settlement_recon.report import parse_amount, parse_report, parse_rows, read_report

HEADER = "customer_id,customer_email,reporting_category,gross,fee"


class TestParseAmount:
    """Tests for lenient decimal parsing."""

    def test_parses_decimal(self):
        assert parse_amount("100.25") == Decimal("100.25")
        assert parse_amount(" -3.00 ") == Decimal("-3.00")

    @pytest.mark.parametrize("raw", ["", None, "abc", "12,00", "NaN", "Infinity"])
    def test_unparsable_defaults_to_zero(self, raw):
        """Unparsable and non-finite cells count as zero."""
        assert parse_amount(raw) == Decimal("0")


class TestParseReport:
    """Tests for report text to records."""

    def test_parses_records_in_order(self):
        text = "\n".join(
            [
                HEADER,
                "cus_1,a@example.com,charge,100.00,3.20",
                ",,adjustment,-5.00,0",
            ]
        )

        records = parse_report(text)

        assert len(records) == 2
        assert records[0].customer_id == "cus_1"
        assert records[0].customer_email == "a@example.com"
        assert records[0].reporting_category == "charge"
        assert records[0].gross == Decimal("100.00")
        assert records[0].fee == Decimal("3.20")
        assert records[1].customer_id == ""
        assert records[1].gross == Decimal("-5.00")

    def test_strips_quotes_and_whitespace(self):
        text = '"customer_id", "gross","fee"\n" cus_1 ", "10.50" ,\'0.30\'\n'

        records = parse_report(text)

        assert records[0].customer_id == "cus_1"
        assert records[0].gross == Decimal("10.50")
        assert records[0].fee == Decimal("0.30")

    def test_quoted_commas_stay_in_one_field(self):
        text = 'customer_id,description,gross\ncus_1,"Order 1, 2 items",20\n'

        rows = parse_rows(text)

        assert rows[0]["description"] == "Order 1, 2 items"
        assert rows[0]["gross"] == "20"

    def test_short_rows_pad_missing_fields(self):
        text = f"{HEADER}\ncus_1,a@example.com\n"

        records = parse_report(text)

        assert records[0].reporting_category == ""
        assert records[0].gross == Decimal("0")
        assert records[0].fee == Decimal("0")

    def test_blank_lines_are_skipped(self):
        text = f"\n\n{HEADER}\n\n   \ncus_1,,charge,1,0\n\n"

        records = parse_report(text)

        assert len(records) == 1

    def test_malformed_numbers_default_to_zero(self):
        text = f"{HEADER}\ncus_1,,charge,oops,n/a\n"

        record = parse_report(text)[0]

        assert record.gross == Decimal("0")
        assert record.fee == Decimal("0")

    def test_header_only_yields_no_records(self):
        assert parse_report(HEADER + "\n") == []

    @pytest.mark.parametrize("text", ["", "\n\n", "   \n"])
    def test_empty_input_is_malformed(self, text):
        with pytest.raises(MalformedInputError):
            parse_report(text)


class TestReadReport:
    """Tests for reading reports from disk."""

    def test_reads_file_with_bom(self, tmp_path: Path):
        path = tmp_path / "report.csv"
        path.write_text(f"\ufeff{HEADER}\ncus_1,,charge,5,0.5\n", encoding="utf-8")

        records = read_report(path)

        assert records[0].customer_id == "cus_1"
        assert records[0].gross == Decimal("5")

    def test_missing_file_is_malformed(self, tmp_path: Path):
        with pytest.raises(MalformedInputError) as exc_info:
            read_report(tmp_path / "missing.csv")

        assert "Cannot read" in str(exc_info.value)


class TestEmptyCellRows:
    """Rows of bare delimiters are records, not blank lines."""

    def test_delimiter_only_row_is_kept(self):
        text = f"{HEADER}\n,,,,\ncus_1,,charge,5,0\n"

        records = parse_report(text)

        assert len(records) == 2
        assert records[0].customer_id == ""
        assert records[0].gross == Decimal("0")
        assert records[0].fee == Decimal("0")
