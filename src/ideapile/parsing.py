"""
Parsers for free-text model replies.

The model is asked for simple formats ("1, 3, 5" or "tag1, tag2, tag3") but
nothing in its reply is trusted as structured output. These functions take
the raw text and either return a validated result or raise ParseError; the
callers decide how to degrade.
"""

import re

from ideapile.errors import ParseError

# A single entry number, or an inclusive range such as "2-4"
_ENTRY_RE = re.compile(r"(?<![-–\d])(\d+)(?:\s*[-–]\s*(\d+))?")
_TAG_SPLIT_RE = re.compile(r"[,;\n]+")
_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")
_TAG_STRIP_CHARS = " \t\"'`#.:!?()[]{}"

MAX_TAG_LENGTH = 30


def parse_connection_indices(text: str | None, corpus_size: int) -> list[int]:
    """
    Turn a reply like "2, 5 and 7" into 0-based indices into a numbered list.

    - The reply numbers entries from 1; the result is 0-based.
    - "2-4" means entries 2, 3 and 4.
    - Numbers outside 1..corpus_size are discarded.
    - Duplicates are dropped, first occurrence wins.
    - A reply without any number ("none", or prose saying nothing relates)
      yields [].

    Raises ParseError only when the reply is empty.
    """
    if corpus_size <= 0:
        return []

    reply = (text or "").strip()
    if not reply:
        raise ParseError("Empty connection reply")

    indices: list[int] = []
    for start, end in _ENTRY_RE.findall(reply):
        first = int(start)
        last = int(end) if end else first
        low, high = min(first, last), min(max(first, last), corpus_size)
        for number in range(low, high + 1):
            index = number - 1
            if 0 <= index < corpus_size and index not in indices:
                indices.append(index)
    return indices


def parse_tags(text: str | None, limit: int = 3) -> list[str]:
    """
    Turn a reply like "Travel, #japan, food-culture" into normalized tags.

    Accepts comma, semicolon, or newline separated items, with or without
    list markers, quotes, or leading '#'. Inner whitespace becomes '-'.
    Returns at most `limit` tags. Raises ParseError if nothing usable remains.
    """
    reply = (text or "").strip()
    if not reply:
        raise ParseError("Empty tag reply")

    tags: list[str] = []
    for item in _TAG_SPLIT_RE.split(reply):
        item = _LIST_MARKER_RE.sub("", item)
        # Drop a "Tags:" style prefix
        if ":" in item:
            item = item.split(":", 1)[1]
        tag = item.strip(_TAG_STRIP_CHARS).lower()
        tag = re.sub(r"\s+", "-", tag)
        if not tag or len(tag) > MAX_TAG_LENGTH or tag in tags:
            continue
        tags.append(tag)
        if len(tags) >= limit:
            break

    if not tags:
        raise ParseError("No tags found in reply", details={"reply": reply[:200]})
    return tags
