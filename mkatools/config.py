from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

from mkatools.errors import ValidationError
from mkatools.logging_utils import get_logger

log = get_logger(__name__)

ENV_PREFIX = "MKATOOLS_"


@dataclass(frozen=True)
class ToolConfig:
    """Names of the external binaries and the tunables shared by every flow."""

    cdparanoia: str = "cdparanoia"
    flac: str = "flac"
    mkvinfo: str = "mkvinfo"
    mkvextract: str = "mkvextract"
    mkvmerge: str = "mkvmerge"
    opusenc: str = "opusenc"
    relay_buffer_size: int = 1024 * 1024
    opus_bitrate: int = 128
    cover_attachment_name: str = "Cover"
    cover_mime_type: str = "image/jpeg"
    temp_prefix: str = "mkatools-"


def load_config(env: Optional[Mapping[str, str]] = None, **overrides) -> ToolConfig:
    """Build a ToolConfig from MKATOOLS_* environment variables.

    Each field maps to ``MKATOOLS_<FIELD>`` (e.g. ``MKATOOLS_FLAC``,
    ``MKATOOLS_RELAY_BUFFER_SIZE``). Keyword overrides win over the
    environment; ``None`` overrides are ignored so CLI defaults can pass through.
    """
    env = os.environ if env is None else env
    values = {}
    for f in fields(ToolConfig):
        raw = env.get(ENV_PREFIX + f.name.upper())
        if raw is None:
            continue
        if f.type in ("int", int):
            values[f.name] = _parse_positive_int(f.name, raw)
        else:
            values[f.name] = raw
    for name, value in overrides.items():
        if value is not None:
            values[name] = value

    config = replace(ToolConfig(), **values)
    if config.relay_buffer_size <= 0 or config.opus_bitrate <= 0:
        raise ValidationError("relay_buffer_size and opus_bitrate must be positive")
    log.debug("config loaded", extra={"overrides": sorted(values)})
    return config


def _parse_positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{ENV_PREFIX}{name.upper()} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValidationError(f"{ENV_PREFIX}{name.upper()} must be positive, got {value}")
    return value
