"""The three album flows.

* ``archive_disc``   CD -> single-FLAC Matroska archive with chapters and tags
* ``update_archive`` 2011-era archive -> current archive layout
* ``split_archive``  archive -> one Opus file per chapter

Each run owns one scratch directory; nothing is muxed until the stream and
both metadata files are complete.
"""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from mkatools import chapters as chapter_model
from mkatools import probe
from mkatools import tags as tag_model
from mkatools.errors import AlbumExistsError, ValidationError
from mkatools.ids import UidGenerator
from mkatools.logging_utils import get_logger
from mkatools.tools import Toolchain
from mkatools.types import Chapters, Tags
from mkatools.workspace import scratch_dir

log = get_logger(__name__)

CDDA_SAMPLE_RATE = 44100

Ask = Callable[[str], str]

_UNSAFE_PATH_CHARS = re.compile(r"[^a-zA-Z0-9\s.\-]", re.ASCII)


@dataclass(frozen=True)
class AlbumInput:
    artist: str
    title: str
    year: str
    genre: str
    track_names: Tuple[str, ...]


def collect_album_input(track_count: int, ask: Ask = input) -> AlbumInput:
    """Prompt for album fields and one name per track."""
    artist = ask("Artist: ")
    title = ask("Album.: ")
    year = ask("Year..: ")
    genre = ask("Genre.: ")
    names = tuple(ask(f"Track {number:02d}: ") for number in range(1, track_count + 1))
    return AlbumInput(artist=artist, title=title, year=year, genre=genre, track_names=names)


def sanitize_path_component(name: str) -> str:
    return _UNSAFE_PATH_CHARS.sub("_", name)


def write_metadata(directory: Path, chapters: Chapters, tags: Tags, sample_rate: int,
                   simple_chapters: bool = False) -> Tuple[Path, Path]:
    """Serialize chapters and tags into ``directory``; returns both paths."""
    if simple_chapters:
        chapters_file = directory / "chapters.txt"
        chapters_file.write_bytes(chapter_model.serialize_legacy(chapters))
    else:
        chapters_file = directory / "chapters.xml"
        chapters_file.write_bytes(chapter_model.serialize(chapters, sample_rate))
    tags_file = directory / "tags.xml"
    tags_file.write_bytes(tag_model.serialize(tags))
    return chapters_file, tags_file


def archive_disc(device: str, cover: Path, output: Path, toolchain: Optional[Toolchain] = None,
                 ask: Ask = input, uids: Optional[UidGenerator] = None,
                 simple_chapters: bool = False) -> Tuple[Chapters, Tags]:
    """Rip ``device`` into a tagged, chaptered archive at ``output``.

    The rip runs in the background while the album metadata is collected.
    """
    toolchain = toolchain or Toolchain()
    uids = uids or UidGenerator()
    lengths = probe.track_lengths(toolchain.query_disc(device))
    log.info("disc indexed", extra={"device": device, "tracks": len(lengths)})

    with scratch_dir(toolchain.config.temp_prefix + "cd2mka-") as tmp:
        flac = tmp / "audio.flac"
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="rip") as pool:
            log.info("beginning background rip", extra={"device": device})
            rip = pool.submit(toolchain.rip_disc, device, flac)

            entered = collect_album_input(len(lengths), ask)
            chapters = chapter_model.from_lengths(entered.track_names, lengths, uids.generate(len(lengths)))
            tags = tag_model.build(entered.artist, entered.title, entered.year, entered.genre,
                                   chapters.names, chapters.uids)
            chapters_file, tags_file = write_metadata(tmp, chapters, tags, CDDA_SAMPLE_RATE, simple_chapters)

            log.info("still ripping")
            rip.result()

        toolchain.mux(flac, cover, tags_file, chapters_file, tags.album.display_title, output)
    return chapters, tags


def update_archive(source: Path, output: Path, toolchain: Optional[Toolchain] = None,
                   uids: Optional[UidGenerator] = None) -> Tuple[Chapters, Tags]:
    """Rewrite a 2011-era archive with uid-correlated chapters and tags."""
    toolchain = toolchain or Toolchain()
    uids = uids or UidGenerator()
    log.info("updating archive", extra={"source": str(source), "output": str(output)})

    sample_rate = probe.sample_rate(toolchain.info(source))
    legacy = tag_model.parse_legacy_tags(toolchain.read_tags(source))
    album = legacy.album

    with scratch_dir(toolchain.config.temp_prefix + "mka-update-") as tmp:
        flac = tmp / "audio.flac"
        cover = tmp / "cover.jpg"
        toolchain.dump_cover(source, cover)
        toolchain.dump_stream(source, flac)

        chapters = chapter_model.from_lengths(
            legacy.track_names, legacy.track_lengths, uids.generate(len(legacy.track_names)))
        tags = tag_model.build(album.artist, album.title, album.year, album.genre,
                               chapters.names, chapters.uids)
        chapters_file, tags_file = write_metadata(tmp, chapters, tags, sample_rate)
        toolchain.mux(flac, cover, tags_file, chapters_file, album.display_title, output)
    return chapters, tags


def opus_bitrate(per_pair: int, channels: int) -> int:
    """Total Opus bitrate for ``channels``, ``per_pair`` kbit/s per (possibly coupled) pair."""
    return per_pair * max(1, (channels + 1) // 2)


def split_archive(source: Path, music_dir: Path, toolchain: Optional[Toolchain] = None,
                  bitrate: Optional[int] = None) -> List[Path]:
    """Decode each chapter of ``source`` and encode it as a tagged Opus file.

    Files land in ``music_dir/<artist>/<album>/NN. <title>.opus``; an existing
    album directory is refused.
    """
    toolchain = toolchain or Toolchain()
    log.info("generating opus set", extra={"source": str(source), "music_dir": str(music_dir)})

    info = toolchain.info(source)
    sample_rate = probe.sample_rate(info)
    channels = probe.channel_count(info)
    tags = tag_model.parse_tags(toolchain.read_tags(source))
    chapters = chapter_model.parse_chapters(toolchain.read_chapters(source), sample_rate)
    if tags.tracks and set(tags.uids) != set(chapters.uids):
        raise ValidationError("track tags and chapters reference different uids")

    album = tags.album
    album_dir = music_dir / sanitize_path_component(album.artist) / sanitize_path_component(album.title)
    if album_dir.exists():
        log.error("album directory exists", extra={"path": str(album_dir)})
        raise AlbumExistsError(f"Directory '{album_dir}' already exists.")

    kbps = opus_bitrate(bitrate or toolchain.config.opus_bitrate, channels)
    outputs = []
    with scratch_dir(toolchain.config.temp_prefix + "mka2opus-") as tmp:
        flac = tmp / "audio.flac"
        cover = tmp / "cover.jpg"
        toolchain.dump_cover(source, cover)
        toolchain.dump_stream(source, flac)

        starts = chapters.start_samples
        for index, start in enumerate(starts):
            until = starts[index + 1] if index + 1 < len(starts) else None
            toolchain.decode_segment(flac, tmp / f"{index}.wav", start, until)

        try:
            album_dir.mkdir(parents=True)
        except FileExistsError:
            raise AlbumExistsError(f"Directory '{album_dir}' already exists.")

        for track in chapters.tracks():
            tag = tags.by_uid(track.uid)
            title = tag.title if tag is not None and tag.title is not None else track.name
            target = album_dir / f"{track.part_number:02d}. {sanitize_path_component(title)}.opus"
            toolchain.encode_opus(tmp / f"{track.index}.wav", target, kbps, title,
                                  album.artist, album.title, album.year, album.genre, cover)
            outputs.append(target)
    log.info("opus set done", extra={"album_dir": str(album_dir), "tracks": len(outputs)})
    return outputs
