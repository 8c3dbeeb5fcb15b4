"""
User input commands.

Every input line is classified once into a closed set of command variants:

    Exit | Help | Schema | History | Clear | Export(filename?) | Explain(sql?) | NaturalLanguage(text)

The conversation service consumes them with an exhaustive match, so adding a
command means adding a variant here and a case there.

Keywords are case-insensitive. "export" and "explain" only match as the first
whitespace-delimited word, so "exports by region" is a natural-language request.
"""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Exit:
    pass


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class Schema:
    pass


@dataclass(frozen=True)
class History:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Export:
    filename: Optional[str] = None


@dataclass(frozen=True)
class Explain:
    # None means "explain the most recently executed query"
    sql: Optional[str] = None


@dataclass(frozen=True)
class NaturalLanguage:
    text: str


Command = Union[Exit, Help, Schema, History, Clear, Export, Explain, NaturalLanguage]

KEYWORD_COMMANDS = {
    "exit": Exit(),
    "quit": Exit(),
    "help": Help(),
    "schema": Schema(),
    "history": History(),
    "clear": Clear(),
}

HELP_TEXT = (
    ("help", "Show this help message"),
    ("schema", "Display available tables and columns"),
    ("history", "Show query history"),
    ("clear", "Clear conversation history"),
    ("explain [query]", "Get detailed explanation of a query"),
    ("export [filename]", "Export last query results to Excel (.xlsx)"),
    ("exit / quit", "Exit the program"),
)


def classify_command(text: str) -> Command:
    """
    Classify one line of user input.

    Args:
        text: Raw input line (must not be blank)

    Returns:
        The matching command variant; unrecognised input is NaturalLanguage
    """
    stripped = text.strip()
    keyword = KEYWORD_COMMANDS.get(stripped.lower())
    if keyword is not None:
        return keyword

    parts = stripped.split(maxsplit=1)
    head = parts[0].lower() if parts else ""
    argument = parts[1].strip() if len(parts) > 1 else None

    if head == "export":
        return Export(filename=argument or None)
    if head == "explain":
        return Explain(sql=argument or None)

    return NaturalLanguage(text=stripped)
