"""Core package for archiving albums as chaptered single-stream Matroska files.

The CLI scripts (cd2mka, mka_update, mka2opus) import the flows from
``mkatools.orchestrator``; the models underneath are usable on their own.
"""

from __future__ import annotations

__version__ = "0.1.0"
