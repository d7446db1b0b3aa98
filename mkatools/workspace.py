from __future__ import annotations

import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from mkatools.logging_utils import get_logger

log = get_logger(__name__)


@contextmanager
def scratch_dir(prefix: str = "mkatools-") -> Iterator[Path]:
    """Yield a private temporary directory, removed recursively on every exit path."""
    with tempfile.TemporaryDirectory(prefix=prefix) as tmp:
        log.debug("scratch dir created", extra={"path": tmp})
        try:
            yield Path(tmp)
        finally:
            log.debug("scratch dir removed", extra={"path": tmp})
