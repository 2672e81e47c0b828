# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Blank-line markers for WYSIWYG markdown editing.

Rich-text editors collapse runs of blank lines into one paragraph break.
Before editing, every extra blank line in a run of 2+ becomes a marker
paragraph; after editing the markers turn back into blank lines. Fenced
code and blank runs next to indented code are left untouched.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

NBSP = "\u00a0"
BLANK_LINE_MARKER = f"\u2060{NBSP}\u2060"

FENCE_PATTERN = re.compile(r"^\s{0,3}(`{3,}|~{3,})")


@dataclass(frozen=True)
class Fence:
    char: str
    length: int


def fence_of(line: str) -> Optional[Fence]:
    match = FENCE_PATTERN.match(line)
    if not match:
        return None
    marker = match.group(1)
    return Fence(char=marker[0], length=len(marker))


def is_indented_code_line(line: str) -> bool:
    return line.startswith("    ") or line.startswith("\t")


def _track_fence(current: Optional[Fence], line: str) -> Optional[Fence]:
    """Fence state after `line`: opens on any fence, closes on a matching one"""
    marker = fence_of(line)
    if marker is None:
        return current
    if current is None:
        return marker
    if marker.char == current.char and marker.length >= current.length:
        return None
    return current


def to_wysiwyg_markdown(markdown: str) -> str:
    """Encode extra blank lines as marker paragraphs"""
    if "\n\n\n" not in markdown:
        return markdown

    out: List[str] = []
    fence: Optional[Fence] = None
    blank_run = 0
    prev_line: Optional[str] = None

    def flush(next_line: Optional[str]) -> None:
        nonlocal blank_run
        if blank_run == 0:
            return
        near_indented_code = (
            (prev_line is not None and is_indented_code_line(prev_line))
            or (next_line is not None and is_indented_code_line(next_line))
        )
        if fence is not None or near_indented_code:
            out.extend([""] * blank_run)
        else:
            out.append("")
            for _ in range(blank_run - 1):
                out.append(BLANK_LINE_MARKER)
                out.append("")
        blank_run = 0

    for line in markdown.split("\n"):
        if line == "":
            blank_run += 1
            continue
        flush(line)
        out.append(line)
        prev_line = line
        fence = _track_fence(fence, line)

    flush(None)
    return "\n".join(out)


def from_wysiwyg_markdown(markdown: str) -> str:
    """Turn marker paragraphs back into blank lines"""
    if BLANK_LINE_MARKER not in markdown:
        return markdown

    lines = markdown.split("\n")
    out: List[str] = []
    fence: Optional[Fence] = None

    i = 0
    while i < len(lines):
        line = lines[i]

        if fence is None and line == "":
            cursor = i
            markers = 0
            while (
                cursor + 2 < len(lines)
                and lines[cursor + 1] == BLANK_LINE_MARKER
                and lines[cursor + 2] == ""
            ):
                markers += 1
                cursor += 2
            if markers:
                out.extend([""] * (markers + 1))
                i = cursor + 1
                continue

        out.append(line)
        fence = _track_fence(fence, line)
        i += 1

    return "\n".join(out)
