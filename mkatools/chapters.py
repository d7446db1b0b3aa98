from __future__ import annotations

import re
from itertools import accumulate
from typing import List, Sequence

from mkatools.errors import ParseError, ValidationError
from mkatools.logging_utils import get_logger
from mkatools.markup import Element, element, leaf, parse, render
from mkatools.timecode import (
    format_legacy_timecode,
    format_timecode,
    nanos_to_samples,
    parse_legacy_timecode,
    timecode_to_nanos,
)
from mkatools.types import Chapter, Chapters

log = get_logger(__name__)

UNDETERMINED_LANGUAGE = "und"

_LEGACY_LINE_RE = re.compile(r"CHAPTER(\d{2,})(NAME)?=(.*)")


def from_boundaries(names: Sequence[str], start_samples: Sequence[int], uids: Sequence[int]) -> Chapters:
    """Zip names, start offsets and uids into a Chapters sequence."""
    if not (len(names) == len(start_samples) == len(uids)):
        raise ValidationError(
            f"track names ({len(names)}), start samples ({len(start_samples)}) "
            f"and uids ({len(uids)}) must all have the same element count")
    return Chapters(Chapter(uid=u, start_sample=s, name=n) for n, s, u in zip(names, start_samples, uids))


def starts_from_lengths(lengths: Sequence[int]) -> List[int]:
    """Start offsets of consecutive tracks with the given sample lengths."""
    return [0] + list(accumulate(lengths))[:-1] if lengths else []


def from_lengths(names: Sequence[str], lengths: Sequence[int], uids: Sequence[int]) -> Chapters:
    if len(lengths) != len(names):
        raise ValidationError(
            f"track lengths ({len(lengths)}) and track names ({len(names)}) must have the same element count")
    return from_boundaries(names, starts_from_lengths(lengths), uids)


def build_document(chapters: Chapters, sample_rate: int) -> Element:
    atoms = [
        element(
            "ChapterAtom",
            leaf("ChapterUID", c.uid),
            leaf("ChapterTimeStart", format_timecode(c.start_sample, sample_rate)),
            element(
                "ChapterDisplay",
                leaf("ChapterString", c.name),
                leaf("ChapterLanguage", UNDETERMINED_LANGUAGE),
            ),
        )
        for c in chapters
    ]
    return element("Chapters", element("EditionEntry", *atoms))


def serialize(chapters: Chapters, sample_rate: int) -> bytes:
    """Render the XML chapter listing consumed by mkvmerge ``--chapters``."""
    return render(build_document(chapters, sample_rate))


def parse_chapters(data: bytes, sample_rate: int) -> Chapters:
    """Read an XML chapter listing.

    Start times are read as nanoseconds and rescaled to samples at
    ``sample_rate``, the rate of the stream the chapters belong to.
    """
    root = parse(data)
    if root.tag != "Chapters":
        raise ParseError("malformed document", f"expected <Chapters>, found <{root.tag}>")

    entries = []
    for atom in root.findall("EditionEntry/ChapterAtom"):
        uid_text = atom.findtext("ChapterUID")
        start_text = atom.findtext("ChapterTimeStart")
        if uid_text is None:
            raise ParseError("missing field", "ChapterUID")
        if start_text is None:
            raise ParseError("missing field", "ChapterTimeStart")
        try:
            uid = int(uid_text)
        except ValueError:
            raise ParseError("malformed document", f"ChapterUID {uid_text!r}")
        entries.append(Chapter(
            uid=uid,
            start_sample=nanos_to_samples(timecode_to_nanos(start_text.strip()), sample_rate),
            name=atom.findtext("ChapterDisplay/ChapterString") or "",
        ))
    log.debug("chapters parsed", extra={"count": len(entries), "sample_rate": sample_rate})
    return Chapters(entries)


def serialize_legacy(chapters: Chapters) -> bytes:
    """Render the simple ``CHAPTERnn=`` listing.

    Millisecond precision at an assumed 44100 Hz; offsets from streams at any
    other rate come out wrong.
    """
    lines = []
    for number, c in enumerate(chapters, start=1):
        lines.append(f"CHAPTER{number:02d}={format_legacy_timecode(c.start_sample)}")
        lines.append(f"CHAPTER{number:02d}NAME={c.name}")
    return ("\n".join(lines) + "\n").encode("utf-8") if lines else b""


def parse_legacy(data: bytes, uids: Sequence[int]) -> Chapters:
    """Read a simple ``CHAPTERnn=`` listing, which carries no uids of its own."""
    starts = {}
    names = {}
    for raw in data.decode("utf-8").splitlines():
        line = raw.strip()
        if not line:
            continue
        m = _LEGACY_LINE_RE.fullmatch(line)
        if not m:
            raise ParseError("malformed document", line)
        number = int(m.group(1))
        if m.group(2):
            names[number] = m.group(3)
        else:
            starts[number] = parse_legacy_timecode(m.group(3))

    numbers = sorted(starts)
    if numbers != sorted(names):
        raise ParseError("missing field", "CHAPTERnn/CHAPTERnnNAME pair")
    return from_boundaries([names[n] for n in numbers], [starts[n] for n in numbers], uids)
