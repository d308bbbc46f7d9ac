"""Chat command parser.

Classifies a submitted chat line as a task start (`#name`), a task end
(`##name`, or any longer run of `#`), or a plain message. Command
detection is anchored to the start of the line: "hello #world" is a
message.

Also provides the hashtag autocomplete helpers. They share one rule with
classification: a run of exactly one `#` is a start context, a run of two
or more is an end context.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from src.data.models import TaskCategory

START_PREFIX = "#"
END_PREFIX = "##"

_WHITESPACE = (" ", "\n", "\t")


@dataclass(frozen=True)
class Command:
    """Result of classifying one submitted line."""

    kind: Literal["start", "end", "message"]
    name: str = ""   # task name for start/end
    text: str = ""   # original line for messages


def classify(line: str) -> Command | None:
    """Classify a submitted chat line.

    Returns None for input that must be ignored: blank lines and bare
    `#` / `##` with no task name.
    """
    trimmed = line.strip()
    if not trimmed:
        return None

    if trimmed.startswith(END_PREFIX):
        name = trimmed.lstrip("#").strip()
        return Command(kind="end", name=name) if name else None

    if trimmed.startswith(START_PREFIX):
        name = trimmed[1:].strip()
        return Command(kind="start", name=name) if name else None

    return Command(kind="message", text=line)


# ---------------------------------------------------------------------------
# Hashtag autocomplete
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HashtagContext:
    """The `#` token the caret is currently inside."""

    prefix: Literal["#", "##"]
    start: int    # index of the first `#` in the run
    query: str    # text typed after the prefix, up to the caret


def run_prefix(run_length: int) -> Literal["#", "##"]:
    """Map a run of consecutive `#` to its command prefix."""
    return END_PREFIX if run_length >= 2 else START_PREFIX


def detect_hashtag(value: str, caret: int | None = None) -> HashtagContext | None:
    """Find the hashtag being typed at *caret* (defaults to end of text).

    Scans backward from the caret to the nearest `#`, giving up at
    whitespace, then walks back over the run of `#` that contains it.
    """
    if caret is None:
        caret = len(value)
    caret = max(0, min(caret, len(value)))

    hash_index = -1
    for i in range(caret - 1, -1, -1):
        ch = value[i]
        if ch == "#":
            hash_index = i
            break
        if ch in _WHITESPACE:
            break

    if hash_index < 0:
        return None

    run_start = hash_index
    while run_start > 0 and value[run_start - 1] == "#":
        run_start -= 1

    prefix = run_prefix(hash_index - run_start + 1)
    return HashtagContext(
        prefix=prefix,
        start=run_start,
        query=value[run_start + len(prefix):caret],
    )


def filter_suggestions(query: str, categories: list[TaskCategory]) -> list[TaskCategory]:
    """Registered categories whose name contains *query*, ignoring case."""
    needle = query.lower()
    return [c for c in categories if needle in c.name.lower()]


def apply_suggestion(
    value: str,
    context: HashtagContext,
    name: str,
    caret: int | None = None,
) -> str:
    """Replace the hashtag being typed with `prefix + name`."""
    if caret is None:
        caret = len(value)
    return f"{value[:context.start]}{context.prefix}{name}{value[caret:]}"
