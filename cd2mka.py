from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from mkatools.config import load_config
from mkatools.errors import ArchiveError
from mkatools.logging_utils import get_logger, setup_logging
from mkatools.orchestrator import archive_disc
from mkatools.tools import Toolchain

log = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments for ripping a disc."""
    parser = argparse.ArgumentParser(
        description="Rip a CD into a single Matroska audio file holding one FLAC stream, "
                    "tagged and with a chapter per track. Needs cdparanoia, flac and mkvtoolnix on PATH.")
    parser.add_argument("device", help="CD-ROM device (e.g. /dev/sr0)")
    parser.add_argument("cover", type=Path, help="album art file (JPEG)")
    parser.add_argument("output", type=Path, help="output .mka file")
    parser.add_argument("--simple_chapters", action="store_true",
                        help="write CHAPTERnn= chapters (millisecond precision) instead of XML")
    parser.add_argument("--buffer_size", type=int, default=None, help="relay buffer size in bytes")
    parser.add_argument("--log_level", type=str, default=None, help="log level (e.g., INFO, DEBUG)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point.

    Examples:
      python3 cd2mka.py /dev/sr0 cover.jpg "Artist - Album.mka"
    """
    args = parse_args(argv)
    setup_logging(args.log_level)
    try:
        toolchain = Toolchain(load_config(relay_buffer_size=args.buffer_size))
        archive_disc(args.device, args.cover, args.output, toolchain=toolchain,
                     simple_chapters=args.simple_chapters)
    except ArchiveError as e:
        log.error(f"cd2mka failed: {e}", extra={"kind": type(e).__name__})
        return 1
    except EOFError:
        log.error("cd2mka failed: input closed before all album fields were entered")
        return 1
    log.info("DONE", extra={"output": str(args.output)})
    return 0


if __name__ == "__main__":
    sys.exit(main())
