"""Tests for completion response parsing."""

from types import SimpleNamespace

import pytest

from menu_advisor.core.exceptions import ParseError
from menu_advisor.utils.response_parser import extract_items, extract_markdown, recover_final_advice


def turn(sender: str, content: str) -> SimpleNamespace:
    return SimpleNamespace(sender=sender, content=content)


class TestExtractItems:
    """Test suite for structured item extraction."""

    def test_parses_fenced_json_block(self) -> None:
        text = '說明文字\n```json\n[{"價格": "100"}]\n```\n結尾'

        assert extract_items(text) == [{"價格": "100"}]

    def test_falls_back_to_bracket_span(self) -> None:
        text = '好的，結果如下 [{"價格": "100"}, {"價格": "80"}] 以上'

        assert len(extract_items(text)) == 2

    def test_no_array_raises_with_raw_text(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            extract_items("我無法完成這個請求")

        assert exc_info.value.raw_text == "我無法完成這個請求"

    def test_invalid_json_raises(self) -> None:
        with pytest.raises(ParseError):
            extract_items("```json\n[{'價格': 100,}]\n```")

    def test_object_instead_of_array_raises(self) -> None:
        with pytest.raises(ParseError):
            extract_items('```json\n{"價格": "100"}\n```')

    def test_non_object_elements_raise(self) -> None:
        with pytest.raises(ParseError):
            extract_items('[1, 2, 3]')

    def test_empty_array_is_returned_as_is(self) -> None:
        assert extract_items("```json\n[]\n```") == []


class TestExtractMarkdown:
    """Test suite for fenced Markdown extraction."""

    def test_returns_fenced_content(self) -> None:
        assert extract_markdown("前言\n```markdown\n# 標題\n內容\n```\n") == "# 標題\n內容"

    def test_returns_whole_text_without_fence(self) -> None:
        assert extract_markdown("  # 標題\n內容  ") == "# 標題\n內容"


class TestRecoverFinalAdvice:
    """Test suite for picking the agreed advice from history."""

    def test_prefers_reply_after_latest_resummarize(self) -> None:
        turns = [
            turn("user", "背景"),
            turn("ai", "初版建議"),
            turn("user", "統整建議"),
            turn("ai", "統整後建議"),
            turn("user", "再調整飲品"),
            turn("ai", "飲品調整"),
        ]

        assert recover_final_advice(turns, "menu.txt", "菜單") == "統整後建議"

    def test_falls_back_to_latest_assistant_turn(self) -> None:
        turns = [turn("user", "背景"), turn("ai", "初版建議"), turn("user", "謝謝"), turn("ai", "不客氣")]

        assert recover_final_advice(turns, "menu.txt", "菜單") == "不客氣"

    def test_resummarize_without_reply_falls_back(self) -> None:
        turns = [turn("user", "背景"), turn("ai", "初版建議"), turn("user", "統整建議")]

        assert recover_final_advice(turns, "menu.txt", "菜單") == "初版建議"

    def test_placeholder_without_assistant_turns(self) -> None:
        advice = recover_final_advice([turn("user", "背景")], "menu.txt", "牛肉麵 180" * 100)

        assert "menu.txt" in advice
        assert "找不到先前的優化建議內容" in advice
        assert len(advice) < 700
