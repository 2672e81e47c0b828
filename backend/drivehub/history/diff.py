# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Edit History Diff Engine

Hunk-only unified diffs (no file headers), built with difflib, and the
reconstruction of earlier versions from a newest-first chain of diffs.

Diff format:
    @@ -old_start,old_count +new_start,new_count @@
    ' ' context / '-' removed / '+' added lines, joined by "\\n".
    A line without a trailing newline is followed by
    "\\ No newline at end of file".

Application is exact: every hunk must match at the line position its
header names. A hunk whose leading (trailing) context is shorter than
DIFF_CONTEXT_LINES was cut by the start (end) of the file, and must match
there too. That anchoring is what lets can_apply_forward tell the two
sides of a short diff apart.
"""

import difflib
import logging
import re
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DIFF_CONTEXT_LINES = 3
NO_NEWLINE_MARKER = "\\ No newline at end of file"

_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


class DiffWithOrigin(BaseModel):
    """A diff tagged with where the edit happened"""
    diff: str
    origin: Literal["local", "remote"]


@dataclass
class Hunk:
    old_start: int  # 0-based line index
    new_start: int
    old_lines: List[str] = field(default_factory=list)
    new_lines: List[str] = field(default_factory=list)
    leading_context: int = 0
    trailing_context: int = 0


def split_lines(text: str) -> List[str]:
    """Split on "\\n" only, keeping line endings. str.splitlines would also split on \\u2028 etc."""
    if not text:
        return []
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def _format_range(start: int, stop: int) -> str:
    length = stop - start
    if length == 0:
        return f"{start},0"
    return f"{start + 1},{length}"


def _emit(out: List[str], prefix: str, line: str) -> None:
    if line.endswith("\n"):
        out.append(prefix + line[:-1])
    else:
        out.append(prefix + line)
        out.append(NO_NEWLINE_MARKER)


def create_diff(old: str, new: str, context: int = DIFF_CONTEXT_LINES) -> str:
    """
    Diff `old` -> `new`. Identical inputs produce an empty string.

    Args:
        old: Content before the edit
        new: Content after the edit
        context: Context lines around each change

    Returns:
        Hunk-only unified diff text
    """
    a = split_lines(old)
    b = split_lines(new)
    matcher = difflib.SequenceMatcher(None, a, b, autojunk=False)

    out: List[str] = []
    for group in matcher.get_grouped_opcodes(context):
        i1, i2 = group[0][1], group[-1][2]
        j1, j2 = group[0][3], group[-1][4]
        out.append(f"@@ -{_format_range(i1, i2)} +{_format_range(j1, j2)} @@")
        for tag, a1, a2, b1, b2 in group:
            if tag == "equal":
                for line in a[a1:a2]:
                    _emit(out, " ", line)
                continue
            if tag in ("replace", "delete"):
                for line in a[a1:a2]:
                    _emit(out, "-", line)
            if tag in ("replace", "insert"):
                for line in b[b1:b2]:
                    _emit(out, "+", line)
    return "\n".join(out)


def _start_index(start: str, count: Optional[str]) -> int:
    # A zero-length range names the line *before* the insertion point
    if count is not None and int(count) == 0:
        return int(start)
    return int(start) - 1


def parse_diff(diff: str) -> List[Hunk]:
    """
    Parse diff text into hunks.

    Raises:
        ValueError: On a malformed hunk header
    """
    hunks: List[Hunk] = []
    entries: List[List[str]] = []
    current: Optional[Hunk] = None

    def close() -> None:
        if current is None:
            return
        for op, text in entries:
            if op in " -":
                current.old_lines.append(text)
            if op in " +":
                current.new_lines.append(text)
        ops = [op for op, _ in entries]
        lead = 0
        while lead < len(ops) and ops[lead] == " ":
            lead += 1
        trail = 0
        while trail < len(ops) and ops[len(ops) - 1 - trail] == " ":
            trail += 1
        current.leading_context = lead
        current.trailing_context = trail

    for raw in diff.split("\n"):
        if raw.startswith("@@"):
            close()
            match = _HUNK_HEADER.match(raw)
            if not match:
                raise ValueError(f"Malformed hunk header: {raw!r}")
            current = Hunk(
                old_start=_start_index(match.group(1), match.group(2)),
                new_start=_start_index(match.group(3), match.group(4)),
            )
            hunks.append(current)
            entries = []
        elif current is None or not raw:
            continue
        elif raw.startswith("\\"):
            if entries and entries[-1][1].endswith("\n"):
                entries[-1][1] = entries[-1][1][:-1]
        elif raw[0] in " -+":
            entries.append([raw[0], raw[1:] + "\n"])
        else:
            raise ValueError(f"Unexpected diff line: {raw!r}")
    close()
    return hunks


def _apply_hunks(content: str, hunks: Sequence[Hunk], reverse: bool) -> Optional[str]:
    lines = split_lines(content)
    out: List[str] = []
    cursor = 0
    for hunk in hunks:
        if reverse:
            start, source, target = hunk.new_start, hunk.new_lines, hunk.old_lines
        else:
            start, source, target = hunk.old_start, hunk.old_lines, hunk.new_lines
        end = start + len(source)
        if start < cursor or lines[start:end] != source:
            return None
        if hunk.leading_context < DIFF_CONTEXT_LINES and start != 0:
            return None
        if hunk.trailing_context < DIFF_CONTEXT_LINES and end != len(lines):
            return None
        out.extend(lines[cursor:start])
        out.extend(target)
        cursor = end
    out.extend(lines[cursor:])
    return "".join(out)


def apply_diff(content: str, diff: str) -> Optional[str]:
    """Apply `diff` forward; None if it does not match `content`"""
    try:
        hunks = parse_diff(diff)
    except ValueError as e:
        logger.debug(f"Unparseable diff: {e}")
        return None
    return _apply_hunks(content, hunks, reverse=False)


def reverse_apply_diff(content: str, diff: str) -> Optional[str]:
    """
    Recover the old side of `diff` from its new side.

    Returns:
        The pre-edit content, or None when `content` is not the diff's new side
    """
    try:
        hunks = parse_diff(diff)
    except ValueError as e:
        logger.debug(f"Unparseable diff: {e}")
        return None
    return _apply_hunks(content, hunks, reverse=True)


def can_apply_forward(content: str, diff: str) -> bool:
    """True when `content` is the old side of `diff`"""
    return apply_diff(content, diff) is not None


def reconstruct_content(current: str, diffs: Sequence[DiffWithOrigin]) -> Optional[str]:
    """
    Walk a newest-first chain of diffs back from `current`.

    Local diffs are always reverse-applied. A remote diff whose old side
    already equals the content was never pulled here, so it is skipped
    instead of reversed.

    Returns:
        The reconstructed content, or None if any step does not apply
    """
    content = current
    for entry in diffs:
        if entry.origin == "remote" and can_apply_forward(content, entry.diff):
            continue
        previous = reverse_apply_diff(content, entry.diff)
        if previous is None:
            return None
        content = previous
    return content


def diff_stats(diff: str) -> Tuple[int, int]:
    """(additions, deletions) line counts"""
    additions = deletions = 0
    for line in diff.split("\n"):
        if line.startswith("+"):
            additions += 1
        elif line.startswith("-"):
            deletions += 1
    return additions, deletions
