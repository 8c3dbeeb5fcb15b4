"""Unit tests for input command classification."""

import pytest

from mallard.domain.base_enums import ConfirmChoice
from mallard.domain.commands import (
    Clear,
    Exit,
    Explain,
    Export,
    Help,
    History,
    NaturalLanguage,
    Schema,
    classify_command,
)


class TestClassifyCommand:
    """Tests for classify_command function."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("exit", Exit()),
            ("quit", Exit()),
            ("QUIT", Exit()),
            ("help", Help()),
            ("  Schema  ", Schema()),
            ("history", History()),
            ("clear", Clear()),
        ],
    )
    def test_keywords(self, text, expected):
        assert classify_command(text) == expected

    def test_export_without_filename(self):
        assert classify_command("export") == Export(filename=None)

    def test_export_with_filename(self):
        assert classify_command("export sales report.xlsx") == Export(filename="sales report.xlsx")

    def test_export_case_insensitive(self):
        assert classify_command("EXPORT out") == Export(filename="out")

    def test_explain_without_sql(self):
        assert classify_command("explain") == Explain(sql=None)

    def test_explain_with_sql(self):
        assert classify_command("explain SELECT * FROM t") == Explain(sql="SELECT * FROM t")

    def test_prefix_must_be_whole_word(self):
        """"exports by region" is a question, not an export command."""
        assert classify_command("exports by region") == NaturalLanguage(text="exports by region")
        assert classify_command("explaining churn") == NaturalLanguage(text="explaining churn")

    def test_keyword_inside_sentence_is_natural_language(self):
        assert classify_command("help me find customers") == NaturalLanguage(text="help me find customers")

    def test_natural_language_is_stripped(self):
        assert classify_command("  show customers \n") == NaturalLanguage(text="show customers")


class TestConfirmChoice:
    """Tests for ConfirmChoice.from_answer."""

    @pytest.mark.parametrize("answer", ["y", "Y", "yes", " YES "])
    def test_execute(self, answer):
        assert ConfirmChoice.from_answer(answer) == ConfirmChoice.EXECUTE

    @pytest.mark.parametrize("answer", ["e", "explain", "E"])
    def test_explain(self, answer):
        assert ConfirmChoice.from_answer(answer) == ConfirmChoice.EXPLAIN

    @pytest.mark.parametrize("answer", ["n", "no", "", "maybe", "yep"])
    def test_anything_else_declines(self, answer):
        assert ConfirmChoice.from_answer(answer) == ConfirmChoice.DECLINE
