"""Sample-accurate timecodes.

Timecodes are ``HH:MM:SS.fffffffff`` with a nanosecond fraction; the hours
field is at least two digits and widens past 99. Only ASCII digits are
accepted and surrounding whitespace is not. The fraction is floored when formatting and rounded half-up to the nearest sample when
parsing, so ``parse_timecode(format_timecode(n, r), r) == n`` for every sample
count ``n`` at any rate up to 1 GHz, and further cycles never drift.

The legacy simple-chapter variant keeps a millisecond fraction and is fixed at
44100 Hz; it cannot represent every sample exactly.
"""

from __future__ import annotations

import re

from mkatools.errors import ParseError

NANOS_PER_SECOND = 1_000_000_000
MILLIS_PER_SECOND = 1_000
LEGACY_SAMPLE_RATE = 44100

_TIMECODE_RE = re.compile(r"(\d{2,}):(\d{2}):(\d{2})\.(\d{9})", re.ASCII)
_LEGACY_TIMECODE_RE = re.compile(r"(\d{2,}):(\d{2}):(\d{2})\.(\d{3})", re.ASCII)


def _split(samples: int, sample_rate: int):
    if samples < 0:
        raise ValueError(f"sample count must be non-negative, got {samples}")
    if sample_rate <= 0:
        raise ValueError(f"sample rate must be positive, got {sample_rate}")
    hours = samples // (sample_rate * 3600)
    samples -= hours * sample_rate * 3600
    minutes = samples // (sample_rate * 60)
    samples -= minutes * sample_rate * 60
    seconds = samples // sample_rate
    samples -= seconds * sample_rate
    return hours, minutes, seconds, samples


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def format_timecode(samples: int, sample_rate: int) -> str:
    """Format a sample offset as ``HH:MM:SS.fffffffff``."""
    hours, minutes, seconds, rest = _split(samples, sample_rate)
    nanos = rest * NANOS_PER_SECOND // sample_rate
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{nanos:09d}"


def timecode_to_nanos(timecode: str) -> int:
    """Convert a ``HH:MM:SS.fffffffff`` timecode to nanoseconds."""
    m = _TIMECODE_RE.fullmatch(timecode)
    if not m:
        raise ParseError("malformed timecode", timecode)
    hours, minutes, seconds, nanos = (int(g) for g in m.groups())
    return (hours * 3600 + minutes * 60 + seconds) * NANOS_PER_SECOND + nanos


def nanos_to_samples(nanos: int, sample_rate: int) -> int:
    """Rescale nanoseconds to samples, rounding half-up to the nearest sample."""
    return _round_half_up(nanos * sample_rate, NANOS_PER_SECOND)


def parse_timecode(timecode: str, sample_rate: int) -> int:
    """Parse ``HH:MM:SS.fffffffff`` back into a sample offset at ``sample_rate``."""
    if sample_rate <= 0:
        raise ValueError(f"sample rate must be positive, got {sample_rate}")
    return nanos_to_samples(timecode_to_nanos(timecode), sample_rate)


def format_legacy_timecode(samples: int) -> str:
    """Format a 44100 Hz sample offset as ``HH:MM:SS.mmm``."""
    hours, minutes, seconds, rest = _split(samples, LEGACY_SAMPLE_RATE)
    millis = rest * MILLIS_PER_SECOND // LEGACY_SAMPLE_RATE
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def parse_legacy_timecode(timecode: str) -> int:
    """Parse ``HH:MM:SS.mmm`` into a 44100 Hz sample offset."""
    m = _LEGACY_TIMECODE_RE.fullmatch(timecode)
    if not m:
        raise ParseError("malformed timecode", timecode)
    hours, minutes, seconds, millis = (int(g) for g in m.groups())
    whole = (hours * 3600 + minutes * 60 + seconds) * LEGACY_SAMPLE_RATE
    return whole + _round_half_up(millis * LEGACY_SAMPLE_RATE, MILLIS_PER_SECOND)
