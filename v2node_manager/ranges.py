"""Parsing of NodeID and display-index selections such as ``95``, ``1-5`` or ``1,3,96-98``."""

import re
from typing import List, Optional

_SINGLE = re.compile(r"\d+", re.ASCII)
_RANGE = re.compile(r"(\d+)-(\d+)", re.ASCII)

MAX_RANGE_SIZE = 10000


class SelectionError(ValueError):
    """Raised when a selection string cannot be parsed."""


def parse_token(token: str) -> List[int]:
    """Expand one token (a number or an inclusive ``start-end`` range) into integers."""
    token = "".join(token.split())
    if _SINGLE.fullmatch(token):
        return [int(token)]

    match = _RANGE.fullmatch(token)
    if not match:
        raise SelectionError(f"Invalid input: {token} (expected a number or a range such as 96 or 96-98)")

    start, end = int(match.group(1)), int(match.group(2))
    if start > end:
        raise SelectionError(f"Invalid range {token}: start must be less than or equal to end")
    if end - start + 1 > MAX_RANGE_SIZE:
        raise SelectionError(f"Range {token} is too large (at most {MAX_RANGE_SIZE} values)")
    return list(range(start, end + 1))


def parse_int(text: str) -> Optional[int]:
    """Return the non-negative integer written in ASCII digits, or None."""
    text = text.strip()
    if not _SINGLE.fullmatch(text):
        return None
    return int(text)


def parse_id_spec(text: str) -> List[int]:
    """Parse a single NodeID or one inclusive range."""
    if not text or not text.strip():
        raise SelectionError("No NodeID given")
    return parse_token(text)


def parse_selection(text: str) -> List[int]:
    """Parse a comma-separated list of numbers and ranges.

    Empty tokens are ignored and the order of first appearance is kept, so
    ``"1, 3-5,,3"`` gives ``[1, 3, 4, 5, 3]``; callers decide how duplicates
    resolve.
    """
    numbers: List[int] = []
    for part in text.split(","):
        if not part.strip():
            continue
        numbers.extend(parse_token(part))

    if not numbers:
        raise SelectionError("No valid input")
    return numbers
