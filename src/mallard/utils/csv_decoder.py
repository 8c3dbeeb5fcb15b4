"""
CSV decoder for DuckDB CLI output.

DuckDB's `-csv` mode writes a header line followed by one line per row.
Fields containing commas, quotes or line breaks are wrapped in double quotes
and embedded quotes are doubled.

Decoding rules:
- A `"` toggles quoting, except `""` inside quotes which yields one literal `"`
- A `,` outside quotes ends the current field
- `\\r` or `\\n` outside quotes ends the current row; line breaks inside quotes
  are kept in the field value
- Blank lines are dropped
- Rows whose field count differs from the header's are dropped and counted
- Values stay text; typed interpretation belongs to the presentation layer

Usage:
    decoded = decode_csv("id,name\\n1,\\"Smith, J\\"\\n")
    decoded.column_names  # ["id", "name"]
    decoded.rows          # [{"id": "1", "name": "Smith, J"}]
"""

from dataclasses import dataclass, field
from typing import Dict, List

from mallard.utils.logging import get_module_logger

logger = get_module_logger()

QUOTE = '"'
DELIMITER = ','
LINE_BREAKS = ('\r', '\n')


@dataclass(frozen=True)
class DecodedCsv:
    """Header and rows decoded from one CSV document."""

    column_names: List[str] = field(default_factory=list)
    rows: List[Dict[str, str]] = field(default_factory=list)

    # Data rows discarded because their field count did not match the header
    dropped_row_count: int = 0


def split_records(text: str) -> List[List[str]]:
    """
    Split CSV text into records of raw field values.

    Args:
        text: Complete CSV document

    Returns:
        One list of field values per non-blank record, in input order
    """
    records: List[List[str]] = []
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    # True once the current record has consumed any character (quotes included),
    # so a record holding a single empty quoted field is not mistaken for a blank line
    record_started = False

    i = 0
    length = len(text)
    while i < length:
        char = text[i]

        if char == QUOTE:
            record_started = True
            if in_quotes and i + 1 < length and text[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            record_started = True
            fields.append(''.join(current))
            current = []
        elif char in LINE_BREAKS and not in_quotes:
            if record_started:
                fields.append(''.join(current))
                records.append(fields)
            fields = []
            current = []
            record_started = False
        else:
            record_started = True
            current.append(char)

        i += 1

    if record_started:
        fields.append(''.join(current))
        records.append(fields)

    return records


def _unique_column_names(header: List[str]) -> List[str]:
    """Suffix repeated header names with _1, _2, ... so every name is unique."""
    seen = set(header)
    counts: Dict[str, int] = {}
    unique: List[str] = []

    for name in header:
        if name not in counts:
            counts[name] = 0
            unique.append(name)
            continue

        candidate = name
        while candidate in seen:
            counts[name] += 1
            candidate = f"{name}_{counts[name]}"
        seen.add(candidate)
        unique.append(candidate)

    return unique


def decode_csv(text: str) -> DecodedCsv:
    """
    Decode CSV text into column names and rows of named text values.

    Args:
        text: Raw CSV output, first record is the header

    Returns:
        DecodedCsv; empty input yields no columns and no rows
    """
    records = split_records(text or "")
    if not records:
        return DecodedCsv()

    column_names = _unique_column_names(records[0])
    expected = len(column_names)

    rows: List[Dict[str, str]] = []
    dropped = 0
    for values in records[1:]:
        if len(values) != expected:
            dropped += 1
            continue
        rows.append(dict(zip(column_names, values)))

    if dropped:
        logger.warning(
            "Dropped CSV rows with mismatched field count",
            dropped_rows=dropped,
            expected_fields=expected,
            kept_rows=len(rows),
        )

    return DecodedCsv(column_names=column_names, rows=rows, dropped_row_count=dropped)
