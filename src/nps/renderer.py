from __future__ import annotations

import re
import sys
from typing import IO, List, Optional

from .config import Color, ColorMode, Columns, QueryOptions
from .logger import Colors, setup_logger
from .matcher import MatchSet, MatchType
from .record import PackageRecord

_logger = setup_logger()

GUTTER = "  "


def use_color(mode: ColorMode, stream: IO) -> bool:
    """auto: only color when writing to a terminal, suppress if e.g. piped."""
    if mode is ColorMode.ALWAYS:
        return True
    if mode is ColorMode.NEVER:
        return False
    isatty = getattr(stream, "isatty", None)
    enabled = bool(isatty and isatty())
    if not enabled:
        _logger.debug("Not running in terminal, color disabled")
    return enabled


def highlight_match(text: str, pattern: str, color: Color, ignore_case: bool = True) -> str:
    """Wrap every occurrence of pattern in bold + color."""
    if not pattern:
        return text
    flags = re.IGNORECASE if ignore_case else 0
    pattern_re = re.compile(re.escape(pattern), flags)
    return pattern_re.sub(lambda m: f"{color.ansi}{Colors.BOLD}{m.group(0)}{Colors.RESET}", text)


def format_row(record: PackageRecord, columns: Columns, name_width: int, version_width: int) -> str:
    name, version, description = record.fields()
    if columns is Columns.ALL:
        return f"{name:<{name_width}}{GUTTER}{version:<{version_width}}{GUTTER}{description}"
    if columns is Columns.VERSION:
        return f"{name:<{name_width}}{GUTTER}{version}"
    if columns is Columns.DESCRIPTION:
        return f"{name:<{name_width}}{GUTTER}{description}"
    return name


def render_lines(matches: MatchSet, options: QueryOptions, color: bool = False) -> List[str]:
    """
    Lay out the buckets as aligned rows.
    Empty buckets are skipped; with options.separate an empty line goes
    between two consecutive non-empty buckets.
    """
    name_width = max((len(r.identifier) for r in matches), default=0)
    version_width = max((len(r.version or "") for r in matches), default=0)
    colors = dict(zip((MatchType.EXACT, MatchType.DIRECT, MatchType.INDIRECT), options.bucket_colors()))

    lines: List[str] = []
    for match_type, records in matches.buckets(flip=options.flip):
        if not records:
            continue
        if lines and options.separate:
            lines.append("")
        for record in records:
            line = format_row(record, options.columns, name_width, version_width)
            if color:
                line = highlight_match(line, options.search_term or "", colors[match_type], options.ignore_case)
            lines.append(line)
    return lines


def render(matches: MatchSet, options: QueryOptions, stream: Optional[IO] = None) -> int:
    """Write the matches to stream (stdout by default); return the number of records printed."""
    stream = stream or sys.stdout
    color = use_color(options.color_mode, stream)
    for line in render_lines(matches, options, color=color):
        stream.write(line + "\n")
    stream.flush()
    return len(matches)
