from enum import Enum


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ConversationState(str, Enum):
    """States of the conversation loop."""
    AWAITING_INPUT = "awaiting_input"
    DISPATCHING_COMMAND = "dispatching_command"
    GENERATING = "generating"
    CONFIRM_EXECUTE = "confirm_execute"
    EXECUTING = "executing"
    DISPLAYING = "displaying"
    SKIPPED = "skipped"
    EXITED = "exited"


class ConfirmChoice(str, Enum):
    """Answers accepted at the execute-confirmation prompt."""
    EXECUTE = "execute"
    DECLINE = "decline"
    EXPLAIN = "explain"

    @classmethod
    def from_answer(cls, answer: str) -> "ConfirmChoice":
        """Map a typed answer to a choice; anything unrecognised declines."""
        normalized = answer.strip().lower()
        if normalized in ("y", "yes"):
            return cls.EXECUTE
        if normalized in ("e", "explain"):
            return cls.EXPLAIN
        return cls.DECLINE
