"""
Shared pytest fixtures for mkatools tests.

Orchestration tests use FakeToolchain instead of cdparanoia/flac/mkvtoolnix/
opusenc; relay tests spawn small Python child processes.
"""

import random
import threading
from pathlib import Path

import pytest

from mkatools.config import ToolConfig
from mkatools.ids import UidGenerator
from mkatools.tools import Toolchain

CD_QUERY_OUTPUT = """\
cdparanoia III release 10.2 (September 11, 2008)

Table of contents (audio tracks only):
track        length               begin        copy pre ch
===========================================================
  1.     2250 [00:30.00]        0 [00:00.00]    no   no  2
  2.     2250 [00:30.00]     2250 [00:30.00]    no   no  2
  3.     4500 [01:00.00]     4500 [01:00.00]    no   no  2
TOTAL    9000 [02:00.00]    (audio only)
"""

MKVINFO_OUTPUT = """\
+ EBML head
|+ Segment tracks
| + A track
|  + Track number: 1 (track ID for mkvmerge & mkvextract: 0)
|  + Track type: audio
|  + Codec ID: A_FLAC
|  + Audio track
|   + Sampling frequency: 44100
|   + Channels: 2
|   + Bit depth: 16
"""


class FakeToolchain(Toolchain):
    """Records every tool invocation and fakes the files the tools would write."""

    def __init__(self, query_output=CD_QUERY_OUTPUT, info_output=MKVINFO_OUTPUT,
                 tags_xml=b"", chapters_xml=b"", config=None):
        super().__init__(config or ToolConfig())
        self.query_output = query_output
        self.info_output = info_output
        self.tags_xml = tags_xml
        self.chapters_xml = chapters_xml
        self.calls = []
        self.rip_started = threading.Event()
        self.muxed = None
        self.decoded = []
        self.encoded = []

    def query_disc(self, device):
        self.calls.append(("query_disc", device))
        return self.query_output.splitlines()

    def rip_disc(self, device, output):
        self.calls.append(("rip_disc", device))
        self.rip_started.set()
        Path(output).write_bytes(b"fLaC fake stream")

    def info(self, mka):
        self.calls.append(("info", mka))
        return self.info_output.splitlines()

    def read_tags(self, mka):
        self.calls.append(("read_tags", mka))
        return self.tags_xml

    def read_chapters(self, mka):
        self.calls.append(("read_chapters", mka))
        return self.chapters_xml

    def dump_cover(self, mka, output):
        self.calls.append(("dump_cover", mka))
        Path(output).write_bytes(b"\xff\xd8 fake jpeg")

    def dump_stream(self, mka, output):
        self.calls.append(("dump_stream", mka))
        Path(output).write_bytes(b"fLaC fake stream")

    def decode_segment(self, flac, output, skip, until=None):
        self.calls.append(("decode_segment", skip, until))
        self.decoded.append((skip, until))
        Path(output).write_bytes(b"RIFF fake wav")

    def encode_opus(self, wav, opus, bitrate, title, artist, album, date, genre, cover):
        self.calls.append(("encode_opus", Path(opus).name))
        self.encoded.append({
            "wav": Path(wav).name, "opus": Path(opus), "bitrate": bitrate, "title": title,
            "artist": artist, "album": album, "date": date, "genre": genre,
        })
        Path(opus).write_bytes(b"OggS fake opus")

    def mux(self, stream, cover, tags, chapters, title, output):
        self.calls.append(("mux", title))
        self.muxed = {
            "stream": Path(stream).read_bytes(),
            "cover": Path(cover),
            "tags": Path(tags).read_bytes(),
            "chapters": Path(chapters).read_bytes(),
            "chapters_name": Path(chapters).name,
            "title": title,
            "output": Path(output),
            "scratch": Path(stream).parent,
        }


@pytest.fixture
def fake_toolchain():
    return FakeToolchain()


@pytest.fixture
def seeded_uids():
    """Deterministic uid generator."""
    return UidGenerator(random.Random(1234))
