"""
LLM reply models.

The assistant is asked to answer in a tagged format:

    <explanation>Brief explanation of the approach</explanation>
    <sql>SELECT ...</sql>
    <teaching_note>Optional notes on new SQL features</teaching_note>

AssistantReply extracts those sections from the free-form text. Extraction
never fails: a missing, reversed or unterminated tag just leaves its field
empty, and the SQL is not validated here (the engine does that on execution).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from mallard.config_constants import EXPLANATION_TAG, SQL_TAG, TEACHING_NOTE_TAG


class LLMReply(BaseModel):
    """Result of one request to the LLM collaborator."""

    model_config = ConfigDict(frozen=True)

    success: bool = Field(..., description="Whether the LLM call succeeded")
    raw_text: str = Field(default="", description="Reply text (if success=True)")
    error: Optional[str] = Field(default=None, description="Failure reason (if success=False)")

    @classmethod
    def ok(cls, raw_text: str) -> "LLMReply":
        return cls(success=True, raw_text=raw_text)

    @classmethod
    def failure(cls, error: str) -> "LLMReply":
        return cls(success=False, error=error)


class AssistantReply(BaseModel):
    """Structured sections of an assistant reply."""

    model_config = ConfigDict(frozen=True)

    explanation: str = Field(default="", description="Approach explanation")
    sql: str = Field(default="", description="Generated SQL")
    teaching_note: str = Field(default="", description="Notes on SQL features used")
    raw_text: str = Field(default="", description="Unparsed reply")

    @property
    def has_sql(self) -> bool:
        return bool(self.sql)

    @classmethod
    def from_llm_response(cls, raw_text: str) -> "AssistantReply":
        """
        Parse an LLM reply into its tagged sections.

        Each section is extracted independently, so a missing teaching note
        does not affect the explanation or SQL.

        Args:
            raw_text: Raw LLM reply

        Returns:
            AssistantReply with empty strings for absent sections
        """
        raw_text = raw_text or ""
        return cls(
            explanation=cls._extract_tag(raw_text, EXPLANATION_TAG),
            sql=cls._extract_tag(raw_text, SQL_TAG),
            teaching_note=cls._extract_tag(raw_text, TEACHING_NOTE_TAG),
            raw_text=raw_text,
        )

    @staticmethod
    def _extract_tag(text: str, tag: str) -> str:
        """
        Return the trimmed text between the first <tag> and the first </tag> after it.

        Returns an empty string when either marker is missing or the only
        closing marker precedes the opening one.
        """
        opening = f"<{tag}>"
        closing = f"</{tag}>"

        start = text.find(opening)
        if start == -1:
            return ""

        content_start = start + len(opening)
        end = text.find(closing, content_start)
        if end == -1:
            return ""

        return text[content_start:end].strip()
