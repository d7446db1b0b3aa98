"""Scalar discovery from external tool diagnostics.

mkvinfo and cdparanoia only report what we need as free text, so every
pattern that scrapes them lives here and callers receive typed values.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, List, Pattern, TypeVar

from mkatools.errors import ParseError
from mkatools.logging_utils import get_logger

log = get_logger(__name__)

T = TypeVar("T")

SAMPLES_PER_FRAME = 588

SAMPLE_RATE_RE = re.compile(r"\|\s+\+ Sampling frequency: (\d+)")
CHANNELS_RE = re.compile(r"\|\s+\+ Channels: (\d+)")
TRACK_INDEX_RE = re.compile(
    r" {1,2}\d{1,2}\. +(\d+) \[\d\d:\d\d\.\d\d\] +\d+ \[\d\d:\d\d\.\d\d\] +\w+ + \w+ +\d+")


def extract_scalar(lines: Iterable[str], pattern: Pattern[str],
                   extractor: Callable[[str], T] = int, name: str = "value") -> T:
    """Return the single value captured by ``pattern`` across ``lines``.

    A second matching line is an error even if it agrees with the first, and
    so is no match at all.
    """
    found = False
    value = None
    for line in lines:
        m = pattern.fullmatch(line.rstrip("\r\n"))
        if not m:
            continue
        if found:
            log.error("ambiguous tool output", extra={"value": name, "line": line.rstrip()})
            raise ParseError("ambiguous value", name)
        value = extractor(m.group(1))
        found = True
    if not found:
        raise ParseError("value not found", name)
    return value


def extract_all(lines: Iterable[str], pattern: Pattern[str],
                extractor: Callable[[str], T] = int) -> List[T]:
    """Collect the value captured by ``pattern`` from every matching line, in order."""
    values = []
    for line in lines:
        m = pattern.fullmatch(line.rstrip("\r\n"))
        if m:
            values.append(extractor(m.group(1)))
    return values


def sample_rate(mkvinfo_lines: Iterable[str]) -> int:
    return extract_scalar(mkvinfo_lines, SAMPLE_RATE_RE, int, name="sample rate")


def channel_count(mkvinfo_lines: Iterable[str]) -> int:
    return extract_scalar(mkvinfo_lines, CHANNELS_RE, int, name="channel count")


def track_lengths(query_lines: Iterable[str]) -> List[int]:
    """Per-track sample lengths from ``cdparanoia --query`` output."""
    lengths = extract_all(query_lines, TRACK_INDEX_RE, lambda frames: int(frames) * SAMPLES_PER_FRAME)
    if not lengths:
        raise ParseError("value not found", "track index")
    return lengths
