from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from mkatools.config import load_config
from mkatools.errors import ArchiveError
from mkatools.logging_utils import get_logger, setup_logging
from mkatools.orchestrator import update_archive
from mkatools.tools import Toolchain

log = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments for updating a 2011-era archive."""
    parser = argparse.ArgumentParser(
        description="Rewrite a 2011 Matroska audio archive with uid-linked chapters and tags.")
    parser.add_argument("source", type=Path, help="2011 Matroska file")
    parser.add_argument("output", type=Path, help="output .mka file")
    parser.add_argument("--log_level", type=str, default=None, help="log level (e.g., INFO, DEBUG)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    log.info(f"Updating '{args.source}' to '{args.output}'")
    try:
        update_archive(args.source, args.output, toolchain=Toolchain(load_config()))
    except ArchiveError as e:
        log.error(f"mka_update failed: {e}", extra={"kind": type(e).__name__})
        return 1
    log.info("DONE")
    return 0


if __name__ == "__main__":
    sys.exit(main())
