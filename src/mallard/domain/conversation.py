"""
Conversation state models.

ConversationContext is the mutable state of one interactive session. Only
the conversation service mutates it; collaborators (LLM client, schema
rendering) receive a ConversationSnapshot, which cannot be modified.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .base_enums import MessageRole
from .types import SchemaMap, SchemaView


class Message(BaseModel):
    """One conversation message."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole = Field(..., description="Who wrote the message")
    content: str = Field(..., description="Message text (raw LLM reply for assistant messages)")


class ExecutedQuery(BaseModel):
    """Audit record of one execution attempt, successful or not."""

    model_config = ConfigDict(frozen=True)

    sql: str = Field(..., description="SQL that was executed")
    executed_at: datetime = Field(..., description="Local time the execution finished")
    success: bool = Field(..., description="Whether the execution succeeded")
    row_count: int = Field(default=0, ge=0, description="Rows returned (0 on failure)")


@dataclass(frozen=True)
class ConversationSnapshot:
    """Read-only view of a ConversationContext at one point in time."""

    history: Tuple[Message, ...]
    schemas: SchemaView


@dataclass
class ConversationContext:
    """
    Mutable state of one interactive session.

    Lives for the whole process and is never persisted.
    """

    history: List[Message] = field(default_factory=list)
    schemas: SchemaMap = field(default_factory=dict)
    query_history: List[ExecutedQuery] = field(default_factory=list)

    def snapshot(self) -> ConversationSnapshot:
        return ConversationSnapshot(
            history=tuple(self.history),
            schemas=MappingProxyType(dict(self.schemas)),
        )

    def record_turn(self, user_message: str, assistant_reply: str) -> None:
        """Append one user/assistant exchange to the history."""
        self.history.append(Message(role=MessageRole.USER, content=user_message))
        self.history.append(Message(role=MessageRole.ASSISTANT, content=assistant_reply))

    def clear_history(self) -> None:
        """Forget the conversation; schemas and executed queries are kept."""
        self.history.clear()
