"""
Services package for the Mallard SQL assistant.

Orchestrates repositories and infrastructure into the interactive session.
"""

from .conversation_service import ConversationService
from .export_service import SpreadsheetExporter

__all__ = [
    "ConversationService",
    "SpreadsheetExporter",
]
