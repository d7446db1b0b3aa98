from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from mkatools.errors import ValidationError

MAX_UID = (1 << 63) - 1


@dataclass(frozen=True)
class Track:
    index: int
    name: str
    uid: int
    start_sample: int
    length_samples: Optional[int] = None

    @property
    def part_number(self) -> int:
        return self.index + 1


@dataclass(frozen=True)
class Chapter:
    """A named track boundary."""

    uid: int
    start_sample: int
    name: str


class Chapters(Sequence[Chapter]):
    """Ordered, immutable track boundaries in playback order.

    Start samples never decrease and uids are pairwise distinct; both are
    checked on construction.
    """

    def __init__(self, entries: Sequence[Chapter] = ()):
        self._entries: Tuple[Chapter, ...] = tuple(entries)
        seen = set()
        previous = 0
        for chapter in self._entries:
            if not 0 <= chapter.uid <= MAX_UID:
                raise ValidationError(f"chapter uid {chapter.uid} is not a 63-bit non-negative integer")
            if chapter.uid in seen:
                raise ValidationError(f"duplicate chapter uid {chapter.uid}")
            if chapter.start_sample < previous:
                raise ValidationError(
                    f"chapter {chapter.name!r} starts at {chapter.start_sample}, before {previous}")
            seen.add(chapter.uid)
            previous = chapter.start_sample

    def __getitem__(self, index):
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Chapter]:
        return iter(self._entries)

    def __eq__(self, other) -> bool:
        if isinstance(other, Chapters):
            return self._entries == other._entries
        return NotImplemented

    def __repr__(self) -> str:
        return f"Chapters({list(self._entries)!r})"

    @property
    def uids(self) -> List[int]:
        return [c.uid for c in self._entries]

    @property
    def names(self) -> List[str]:
        return [c.name for c in self._entries]

    @property
    def start_samples(self) -> List[int]:
        return [c.start_sample for c in self._entries]

    def lengths(self, total_samples: Optional[int] = None) -> List[Optional[int]]:
        """Per-track sample lengths from consecutive boundaries.

        The last length needs the stream's total sample count; without it the
        last entry is ``None``.
        """
        starts = self.start_samples
        result: List[Optional[int]] = [b - a for a, b in zip(starts, starts[1:])]
        if starts:
            if total_samples is None:
                result.append(None)
            elif total_samples < starts[-1]:
                raise ValidationError(f"total {total_samples} ends before the last chapter at {starts[-1]}")
            else:
                result.append(total_samples - starts[-1])
        return result

    def tracks(self, total_samples: Optional[int] = None) -> List[Track]:
        return [
            Track(index=i, name=c.name, uid=c.uid, start_sample=c.start_sample, length_samples=length)
            for i, (c, length) in enumerate(zip(self._entries, self.lengths(total_samples)))
        ]


@dataclass(frozen=True)
class Album:
    artist: str
    title: str
    year: str
    genre: str
    total_parts: int

    @property
    def display_title(self) -> str:
        """Container title, ``Artist: Album``."""
        return f"{self.artist}: {self.title}"


@dataclass(frozen=True)
class TrackTag:
    uid: int
    title: Optional[str] = None
    part_number: Optional[int] = None


@dataclass(frozen=True)
class Tags:
    album: Album
    tracks: Tuple[TrackTag, ...] = ()

    def by_uid(self, uid: int) -> Optional[TrackTag]:
        for track in self.tracks:
            if track.uid == uid:
                return track
        return None

    @property
    def uids(self) -> List[int]:
        return [t.uid for t in self.tracks]
