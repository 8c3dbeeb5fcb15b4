"""
Text helpers for display truncation and LLM input validation.

Character counts are used instead of token counts; limits are hard caps
checked before anything is sent to the model.
"""

from typing import Optional, Sequence


def truncate_cell(value: Optional[str], max_length: int, placeholder: str = "NULL") -> str:
    """
    Prepare a result cell for terminal display.

    Args:
        value: Cell text (None when the row has no value for the column)
        max_length: Maximum rendered length
        placeholder: Text shown for missing values

    Returns:
        The value, the placeholder, or the value cut to max_length with "..."

    Example:
        >>> truncate_cell("a" * 60, max_length=50)
        'aaaa...'  # 47 chars + "..."
    """
    if value is None:
        return placeholder

    if len(value) <= max_length:
        return value

    if max_length <= 3:
        return value[:max_length]

    return value[:max_length - 3] + "..."


def preview(text: str, max_chars: int) -> str:
    """Return the first max_chars characters of text, marking the cut with '...'."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


class InputValidator:
    """
    Character limits for LLM requests.
    """

    @staticmethod
    def validate_conversation_chars(
        messages: Sequence[str],
        system_prompt: Optional[str] = None,
        max_chars: int = 0
    ) -> None:
        """
        Validate total character count for a multi-turn LLM request.

        Args:
            messages: Contents of every message sent (history + new message)
            system_prompt: Optional system prompt
            max_chars: Maximum allowed total characters

        Raises:
            ValueError: If total exceeds character limit

        Example:
            >>> InputValidator.validate_conversation_chars(["Hi", "Hello"], system_prompt="Be brief", max_chars=1000)  # OK
        """
        total_chars = sum(len(message) for message in messages)
        if system_prompt:
            total_chars += len(system_prompt)

        if total_chars > max_chars:
            raise ValueError(
                f"Conversation too large: {total_chars} characters, "
                f"maximum allowed: {max_chars}. Use 'clear' to reset the conversation."
            )
