from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from mkatools.config import load_config
from mkatools.errors import AlbumExistsError, ArchiveError
from mkatools.logging_utils import get_logger, setup_logging
from mkatools.orchestrator import split_archive
from mkatools.tools import Toolchain

log = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments for generating an Opus set."""
    parser = argparse.ArgumentParser(description="Generate one Opus file per chapter of a Matroska audio archive.")
    parser.add_argument("mka", type=Path, help="Matroska audio archive")
    parser.add_argument("music_location", type=Path, help="music library root; files go to <artist>/<album>/")
    parser.add_argument("--bitrate", type=int, default=None,
                        help="kbit/s per (possibly coupled) channel pair (default: 128)")
    parser.add_argument("--log_level", type=str, default=None, help="log level (e.g., INFO, DEBUG)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point.

    Examples:
      python3 mka2opus.py "Artist - Album.mka" ~/Music
      python3 mka2opus.py "Artist - Album.mka" ~/Music --bitrate 96
    """
    args = parse_args(argv)
    setup_logging(args.log_level)
    log.info(f"Generating Opus set from '{args.mka}' to '{args.music_location}'")
    try:
        split_archive(args.mka, args.music_location, toolchain=Toolchain(load_config(opus_bitrate=args.bitrate)))
    except AlbumExistsError as e:
        log.error(str(e))
        return 3
    except ArchiveError as e:
        log.error(f"mka2opus failed: {e}", extra={"kind": type(e).__name__})
        return 1
    log.info("DONE")
    return 0


if __name__ == "__main__":
    sys.exit(main())
