"""Tests for command detection and conversation field parsing."""

import pytest

from menu_advisor.core.exceptions import ValidationError
from menu_advisor.services.conversation.commands import Command, detect_command, is_resummarize_command
from menu_advisor.services.conversation.field_parser import parse_closing_date, parse_targeting_fields


class TestDetectCommand:
    """Test suite for command phrase matching."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("請統整建議", Command.RESUMMARIZE),
            ("麻煩提供 Excel", Command.EXPORT),
            ("提供 CSV 謝謝", Command.EXPORT),
            ("可以產出結案報告了", Command.CLOSING_REPORT),
            ("薯條要不要做成套餐？", None),
            ("", None),
        ],
    )
    def test_detects_commands(self, text, expected) -> None:
        assert detect_command(text) is expected

    def test_resummarize_wins_over_other_commands(self) -> None:
        assert detect_command("統整建議後提供 excel 並產出結案報告") is Command.RESUMMARIZE

    def test_export_wins_over_closing_report(self) -> None:
        assert detect_command("提供 excel 然後產出結案報告") is Command.EXPORT

    def test_export_phrase_requires_space(self) -> None:
        assert detect_command("提供excel") is None

    def test_is_resummarize_command(self) -> None:
        assert is_resummarize_command("統整建議")
        assert not is_resummarize_command("提供 excel")


class TestParseTargetingFields:
    """Test suite for best-effort targeting extraction."""

    def test_extracts_labeled_lines(self) -> None:
        text = "餐廳類型與風格：咖啡廳\n主要目標客群: 學生\n目標客單價：180 元"

        assert parse_targeting_fields(text) == ("180 元", "學生")

    def test_missing_labels_give_none(self) -> None:
        assert parse_targeting_fields("我們是一間麵店") == (None, None)

    def test_empty_values_give_none(self) -> None:
        assert parse_targeting_fields("目標客單價：   \n") == (None, None)


class TestParseClosingDate:
    """Test suite for closing date validation."""

    def test_accepts_valid_date_and_trims(self) -> None:
        assert parse_closing_date("  2024/01/15\n") == "2024/01/15"

    def test_accepts_leap_day(self) -> None:
        assert parse_closing_date("2024/02/29") == "2024/02/29"

    @pytest.mark.parametrize("text", ["2024-01-15", "2024/1/15", "明天", "2024/01/15 下午", "2023/02/29", "2024/13/01"])
    def test_rejects_invalid_dates(self, text) -> None:
        with pytest.raises(ValidationError):
            parse_closing_date(text)
