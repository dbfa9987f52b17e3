"""
RSVP import text parsing: block splitting, line classification, year context
"""
import logging
from datetime import date

from core.models import LineKind
from rsvp_import_parser import (
    classify_line,
    match_header_line,
    parse_paid_date,
    parse_rsvp_import_text,
)

SAMPLE_TEXT = """2025
張三 網球課10H（1/2 2026）
1-   1/2 14:00～15:00
2- 1/4 14:00~15:00
3-
garbage line
李四 瑜珈5H
1- 3/5 09:00～10:30
"""


class TestClassifyLine:
    def test_year_marker_wins_over_other_shapes(self):
        kind, match = classify_line("2026")
        assert kind == LineKind.YEAR_MARKER
        assert match.year == 2026

    def test_header_with_fullwidth_paid_date(self):
        kind, match = classify_line("張三 網球課10H（1/2 2026）")
        assert kind == LineKind.HEADER
        assert match.customer_name == "張三"
        assert match.product_label == "網球課10H"
        assert match.total_reservations == 10
        assert match.paid_date == date(2026, 1, 2)
        assert match.paid_date_text == "01/02 2026"

    def test_header_with_ascii_parentheses(self):
        match = match_header_line("John Smith Tennis3H (12/1 2025)")
        assert match.customer_name == "John Smith"
        assert match.product_label == "Tennis3H"
        assert match.paid_date == date(2025, 12, 1)

    def test_header_without_paid_date(self):
        kind, match = classify_line("李四 瑜珈5H")
        assert kind == LineKind.HEADER
        assert match.paid_date is None

    def test_explicit_reservation_line(self):
        kind, match = classify_line("1-   1/2 14:00～15:00")
        assert kind == LineKind.RESERVATION
        assert match.ordinal == 1
        assert match.date_text == "1/2"
        assert match.start_text == "14:00"
        assert match.end_text == "15:00"

    def test_continuation_line(self):
        kind, match = classify_line("3-")
        assert kind == LineKind.CONTINUATION
        assert match.is_continuation is True
        assert match.date_text is None

    def test_unmatched_line(self):
        assert classify_line("see you next week") is None


class TestParsePaidDate:
    def test_normalizes(self):
        assert parse_paid_date("1/2 2026") == ("01/02 2026", date(2026, 1, 2))

    def test_impossible_date_is_not_paid(self):
        assert parse_paid_date("2/30 2026") == (None, None)

    def test_unparseable_header_paid_date_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            match = match_header_line("王 課3H（someday）")
        assert match is not None
        assert match.paid_date is None
        assert "Unparseable paid date" in caplog.text


class TestParseRsvpImportText:
    def test_blocks_in_input_order(self):
        result = parse_rsvp_import_text(SAMPLE_TEXT, default_year=2024)

        assert [b.customer_name for b in result.blocks] == ["張三", "李四"]
        first, second = result.blocks
        assert first.already_paid is True
        assert first.year == 2026
        assert [line.ordinal for line in first.lines] == [1, 2, 3]
        assert first.lines[2].is_continuation is True
        assert second.already_paid is False
        assert second.lines[0].end_text == "10:30"

    def test_unexpected_line_is_collected_and_skipped(self):
        result = parse_rsvp_import_text(SAMPLE_TEXT, default_year=2024)

        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.block_index == 0
        assert error.line == 6
        assert error.error == "Unexpected line format: garbage line"
        assert result.line_count == 4

    def test_invalid_reservation_line(self):
        text = "王 課3H\n1- 1/2 10:00～11:00\n2- tomorrow\n3- 1/9 10:00～11:00"
        result = parse_rsvp_import_text(text, default_year=2026)

        assert [line.ordinal for line in result.blocks[0].lines] == [1, 3]
        assert result.errors[0].error == "Invalid reservation format: 2- tomorrow"
        assert result.errors[0].line == 3

    def test_lines_before_first_header_are_ignored(self):
        text = "notes\n1- 1/2 10:00～11:00\n王 課3H\n1- 1/3 10:00～11:00"
        result = parse_rsvp_import_text(text, default_year=2026)

        assert result.errors == []
        assert len(result.blocks) == 1
        assert result.blocks[0].lines[0].date_text == "1/3"

    def test_year_marker_applies_to_headers_without_paid_date(self):
        result = parse_rsvp_import_text(SAMPLE_TEXT, default_year=2024)
        assert result.blocks[1].year == 2025

    def test_default_year_without_marker(self):
        result = parse_rsvp_import_text("王 課3H\n1- 1/2 10:00～11:00", default_year=2023)
        assert result.blocks[0].year == 2023
        assert result.blocks[0].lines[0].year == 2023

    def test_year_marker_inside_block_moves_following_lines(self):
        text = "2025\n王 課3H\n1- 12/30 10:00～11:00\n2026\n2- 1/6 10:00～11:00"
        result = parse_rsvp_import_text(text, default_year=2020)

        assert [line.year for line in result.blocks[0].lines] == [2025, 2026]

    def test_blank_and_padded_lines(self):
        text = "\n\n   王 課3H   \n\n   1- 1/2 10:00～11:00  \n"
        result = parse_rsvp_import_text(text, default_year=2026)

        assert len(result.blocks) == 1
        assert result.blocks[0].line_number == 3
        assert result.blocks[0].lines[0].line_number == 5

    def test_empty_text(self):
        result = parse_rsvp_import_text("", default_year=2026)
        assert result.blocks == []
        assert result.errors == []
