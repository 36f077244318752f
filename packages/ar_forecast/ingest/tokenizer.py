"""Single-line CSV tokenizer for loosely quoted billing exports.

Unlike :mod:`csv`, this tokenizer works one physical line at a time and never
raises: an unbalanced quote simply keeps the "inside quotes" state until the
end of the line. Quoted fields may contain the delimiter; quote characters
themselves never survive into the output.
"""

from __future__ import annotations

QUOTE = '"'


def _clean_field(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value.startswith(QUOTE) and value.endswith(QUOTE):
        value = value[1:-1]
    return value.replace(QUOTE, "").replace("\r", "")


def split_csv_line(line: str, delimiter: str = ",") -> list[str]:
    """Split ``line`` into trimmed field values.

    A ``"`` toggles the inside-quotes state and is dropped; a delimiter inside
    quotes is literal text. Each field is then trimmed, one layer of wrapping
    quotes is removed, and any remaining quote or carriage-return characters
    are stripped.

    >>> split_csv_line('202309,"1,234.50", "Revenue, Net"')
    ['202309', '1,234.50', 'Revenue, Net']
    """

    if len(delimiter) != 1:
        raise ValueError("delimiter must be a single character")

    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == QUOTE:
            in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))

    return [_clean_field(f) for f in fields]


__all__ = ["split_csv_line"]
