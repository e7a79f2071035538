from __future__ import annotations

import enum
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path

from .fs_access import Filesystem

logger = logging.getLogger(__name__)


class EntryKind(enum.Enum):
    MISSING = 'missing'
    FILE = 'file'
    DIRECTORY = 'directory'


@dataclass(frozen=True)
class Entry:
    kind: EntryKind
    info: os.stat_result | None = None


MISSING = Entry(EntryKind.MISSING)


async def classify(fs: Filesystem, path: Path) -> Entry:
    """Classify ``path`` with a single stat call.

    There is no separate existence check; whatever the one lookup reports is
    the answer. Failed lookups, and node types that cannot be served (FIFOs,
    sockets, devices), come back as MISSING.
    """
    try:
        info = await fs.stat(path)
    except (OSError, ValueError) as exc:
        logger.debug('stat failed for %s: %s', path, exc)
        return MISSING

    if stat.S_ISDIR(info.st_mode):
        return Entry(EntryKind.DIRECTORY, info)
    if stat.S_ISREG(info.st_mode):
        return Entry(EntryKind.FILE, info)
    return Entry(EntryKind.MISSING, info)
