"""
Domain package for the Mallard SQL assistant.

This package contains the domain models, commands and errors used
throughout the application.
"""

from .base_enums import ConfirmChoice, ConversationState, MessageRole
from .commands import (
    Clear,
    Command,
    Exit,
    Explain,
    Export,
    Help,
    History,
    NaturalLanguage,
    Schema,
    classify_command,
)
from .conversation import ConversationContext, ConversationSnapshot, ExecutedQuery, Message
from .replies import AssistantReply, LLMReply
from .results import QueryResult
from .schemas import ColumnInfo, TableSchema

__all__ = [
    # Enums
    "ConfirmChoice",
    "ConversationState",
    "MessageRole",

    # Commands
    "Command",
    "Exit",
    "Help",
    "Schema",
    "History",
    "Clear",
    "Export",
    "Explain",
    "NaturalLanguage",
    "classify_command",

    # Conversation
    "ConversationContext",
    "ConversationSnapshot",
    "ExecutedQuery",
    "Message",

    # Replies
    "AssistantReply",
    "LLMReply",

    # Results and schemas
    "QueryResult",
    "ColumnInfo",
    "TableSchema",
]
