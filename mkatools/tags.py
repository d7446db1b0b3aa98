from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from mkatools.errors import ParseError, ValidationError
from mkatools.logging_utils import get_logger
from mkatools.markup import Element, element, leaf, parse, render
from mkatools.types import Album, Tags, TrackTag

log = get_logger(__name__)

ALBUM_TARGET = 50
TRACK_TARGET = 30


@dataclass(frozen=True)
class LegacyAlbum:
    """Metadata of a 2011-era archive: no uids, per-track SAMPLES, DATE_RECORDED."""

    album: Album
    track_names: Tuple[str, ...]
    track_lengths: Tuple[int, ...]


def build(artist: str, title: str, year: str, genre: str,
          track_names: Sequence[str], track_uids: Sequence[int]) -> Tags:
    if len(track_names) != len(track_uids):
        raise ValidationError(
            f"track names ({len(track_names)}) and track uids ({len(track_uids)}) "
            "must have the same element count")
    album = Album(artist=artist, title=title, year=year, genre=genre, total_parts=len(track_names))
    tracks = tuple(
        TrackTag(uid=uid, title=name, part_number=index + 1)
        for index, (name, uid) in enumerate(zip(track_names, track_uids))
    )
    return Tags(album=album, tracks=tracks)


def _simple(name: str, value) -> Element:
    return element("Simple", leaf("Name", name), leaf("String", value))


def build_document(tags: Tags) -> Element:
    album = tags.album
    records = [
        element(
            "Tag",
            element("Targets", leaf("TargetTypeValue", ALBUM_TARGET)),
            _simple("TITLE", album.title),
            _simple("ARTIST", album.artist),
            _simple("TOTAL_PARTS", album.total_parts),
            _simple("DATE_RELEASED", album.year),
            _simple("GENRE", album.genre),
        )
    ]
    for track in tags.tracks:
        fields = []
        if track.title is not None:
            fields.append(_simple("TITLE", track.title))
        if track.part_number is not None:
            fields.append(_simple("PART_NUMBER", track.part_number))
        records.append(element(
            "Tag",
            element("Targets", leaf("TargetTypeValue", TRACK_TARGET), leaf("ChapterUID", track.uid)),
            *fields,
        ))
    return element("Tags", *records)


def serialize(tags: Tags) -> bytes:
    """Render the XML tag listing consumed by mkvmerge ``--global-tags``."""
    return render(build_document(tags))


def _records(root: Element, target: int) -> List[Element]:
    wanted = str(target)
    return [tag for tag in root.findall("Tag")
            if (tag.findtext("Targets/TargetTypeValue") or "").strip() == wanted]


def _simple_values(record: Element) -> Dict[str, str]:
    values = {}
    for simple in record.findall("Simple"):
        name = simple.findtext("Name")
        if name is not None:
            values[name] = simple.findtext("String") or ""
    return values


def _album_value(records: Sequence[Element], name: str) -> str:
    value: Optional[str] = None
    for record in records:
        value = _simple_values(record).get(name, value)
    if value is None:
        log.error("album tag missing", extra={"field": name})
        raise ParseError("missing field", name)
    return value


def _as_int(value: Optional[str], name: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise ParseError("malformed document", f"{name} {value!r}")


def _parse_root(data: bytes) -> Element:
    root = parse(data)
    if root.tag != "Tags":
        raise ParseError("malformed document", f"expected <Tags>, found <{root.tag}>")
    return root


def parse_tags(data: bytes) -> Tags:
    """Read an XML tag listing.

    ARTIST, TITLE, DATE_RELEASED and GENRE must be present at album scope.
    TOTAL_PARTS falls back to the number of track records; absent track-scope
    fields are left as ``None``.
    """
    root = _parse_root(data)
    album_records = _records(root, ALBUM_TARGET)

    tracks = []
    for record in _records(root, TRACK_TARGET):
        uid = _as_int(record.findtext("Targets/ChapterUID"), "ChapterUID")
        if uid is None:
            raise ParseError("missing field", "ChapterUID")
        values = _simple_values(record)
        tracks.append(TrackTag(
            uid=uid,
            title=values.get("TITLE"),
            part_number=_as_int(values.get("PART_NUMBER"), "PART_NUMBER"),
        ))

    total_parts = None
    for record in album_records:
        total_parts = _simple_values(record).get("TOTAL_PARTS", total_parts)

    album = Album(
        artist=_album_value(album_records, "ARTIST"),
        title=_album_value(album_records, "TITLE"),
        year=_album_value(album_records, "DATE_RELEASED"),
        genre=_album_value(album_records, "GENRE"),
        total_parts=_as_int(total_parts, "TOTAL_PARTS") if total_parts is not None else len(tracks),
    )
    log.debug("tags parsed", extra={"tracks": len(tracks)})
    return Tags(album=album, tracks=tuple(tracks))


def parse_legacy_tags(data: bytes) -> LegacyAlbum:
    """Read the tags of a 2011-era archive.

    Track records carry TITLE and SAMPLES in playback order and no ChapterUID;
    the album date lives in DATE_RECORDED.
    """
    root = _parse_root(data)
    album_records = _records(root, ALBUM_TARGET)

    names: List[str] = []
    lengths: List[int] = []
    for record in _records(root, TRACK_TARGET):
        values = _simple_values(record)
        if "TITLE" in values:
            names.append(values["TITLE"])
        if "SAMPLES" in values:
            lengths.append(_as_int(values["SAMPLES"], "SAMPLES"))

    if len(names) != len(lengths):
        raise ValidationError(
            f"legacy tags list {len(names)} track titles but {len(lengths)} sample lengths")

    album = Album(
        artist=_album_value(album_records, "ARTIST"),
        title=_album_value(album_records, "TITLE"),
        year=_album_value(album_records, "DATE_RECORDED"),
        genre=_album_value(album_records, "GENRE"),
        total_parts=len(names),
    )
    return LegacyAlbum(album=album, track_names=tuple(names), track_lengths=tuple(lengths))
