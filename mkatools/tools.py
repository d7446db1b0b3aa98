from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from mkatools.config import ToolConfig
from mkatools.errors import ExternalProcessError
from mkatools.logging_utils import get_logger
from mkatools.relay import Stage, pipeline

log = get_logger(__name__)


class Toolchain:
    """cdparanoia, flac, mkvtoolnix and opusenc, invoked at their command-line boundary.

    Every method waits for its tool and raises ExternalProcessError when it
    cannot be started or exits non-zero.
    """

    def __init__(self, config: Optional[ToolConfig] = None):
        self.config = config or ToolConfig()

    def _run(self, stage: str, argv: Sequence[str], stdout=subprocess.DEVNULL,
             stderr=subprocess.DEVNULL) -> subprocess.CompletedProcess:
        argv = [str(a) for a in argv]
        log.debug("run", extra={"stage": stage, "argv": argv})
        try:
            proc = subprocess.run(argv, stdin=subprocess.DEVNULL, stdout=stdout, stderr=stderr)
        except OSError as e:
            log.error("tool could not be started", extra={"stage": stage, "error": str(e)})
            raise ExternalProcessError(stage, detail=f"could not be started: {e}")
        if proc.returncode != 0:
            log.error("tool failed", extra={"stage": stage, "returncode": proc.returncode})
            raise ExternalProcessError(stage, proc.returncode)
        return proc

    def _open(self, stage: str, argv: Sequence[str], stdin=subprocess.DEVNULL) -> Stage:
        argv = [str(a) for a in argv]
        log.debug("spawn", extra={"stage": stage, "argv": argv})
        try:
            proc = subprocess.Popen(argv, stdin=stdin, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL)
        except OSError as e:
            log.error("tool could not be started", extra={"stage": stage, "error": str(e)})
            raise ExternalProcessError(stage, detail=f"could not be started: {e}")
        return Stage(stage, proc)

    # -- disc ---------------------------------------------------------------

    def query_disc(self, device: str) -> List[str]:
        """Track index lines cdparanoia prints to stderr for ``device``."""
        proc = self._run("cdparanoia", [self.config.cdparanoia, "--force-cdrom-device", device, "--query"],
                         stderr=subprocess.PIPE)
        return proc.stderr.decode("utf-8", errors="replace").splitlines()

    def rip_disc(self, device: str, output: Path) -> None:
        """Read the whole disc as WAV and encode it to a single FLAC file."""
        with open(output, "wb", buffering=0) as sink:
            reader = self._open("cdparanoia", [self.config.cdparanoia, "--force-cdrom-device", device,
                                               "--output-wav", "1-", "-"])
            try:
                encoder = self._open("flac", [self.config.flac, "--verify", "--best", "-"],
                                     stdin=subprocess.PIPE)
            except ExternalProcessError:
                reader.process.kill()
                reader.process.wait()
                raise
            pipeline(reader, encoder, sink, self.config.relay_buffer_size)
        log.info("disc ripped", extra={"device": device, "output": str(output)})

    # -- flac ---------------------------------------------------------------

    def decode_segment(self, flac: Path, output: Path, skip: int, until: Optional[int] = None) -> None:
        """Decode samples ``[skip, until)`` of ``flac`` to a WAV file; open-ended without ``until``."""
        argv = [self.config.flac, "--decode", f"--output-name={output}", f"--skip={skip}"]
        if until is not None:
            argv.append(f"--until={until}")
        argv.append(flac)
        self._run("flac", argv)

    # -- mkvtoolnix ---------------------------------------------------------

    def info(self, mka: Path) -> List[str]:
        proc = self._run("mkvinfo", [self.config.mkvinfo, mka], stdout=subprocess.PIPE)
        return proc.stdout.decode("utf-8", errors="replace").splitlines()

    def extract(self, kind: str, mka: Path, index: Optional[int] = None,
                output: Optional[Path] = None) -> bytes:
        """Run ``mkvextract <kind>``; ``index:output`` for attachments and tracks, stdout otherwise."""
        argv = [self.config.mkvextract, kind, mka]
        if index is not None:
            argv.append(f"{index}:{output}")
        elif output is not None:
            argv.append(output)
        proc = self._run("mkvextract", argv, stdout=subprocess.PIPE)
        return proc.stdout

    def dump_cover(self, mka: Path, output: Path) -> None:
        self.extract("attachments", mka, 1, output)

    def dump_stream(self, mka: Path, output: Path) -> None:
        self.extract("tracks", mka, 0, output)

    def read_tags(self, mka: Path) -> bytes:
        return self.extract("tags", mka)

    def read_chapters(self, mka: Path) -> bytes:
        return self.extract("chapters", mka)

    def mux(self, stream: Path, cover: Path, tags: Path, chapters: Path, title: str, output: Path) -> None:
        self._run("mkvmerge", [
            self.config.mkvmerge, "--disable-track-statistics-tags",
            "--output", output,
            "--title", title,
            "--chapters", chapters,
            "--global-tags", tags,
            "--attachment-name", self.config.cover_attachment_name,
            "--attachment-mime-type", self.config.cover_mime_type,
            "--attach-file", cover,
            stream,
        ])
        log.info("muxed", extra={"output": str(output)})

    # -- opus ---------------------------------------------------------------

    def encode_opus(self, wav: Path, opus: Path, bitrate: int, title: str, artist: str,
                    album: str, date: str, genre: str, cover: Path) -> None:
        self._run("opusenc", [
            self.config.opusenc, "--bitrate", bitrate,
            "--title", title,
            "--artist", artist,
            "--album", album,
            "--date", date,
            "--genre", genre,
            "--picture", cover,
            "--discard-comments",
            wav, opus,
        ])
