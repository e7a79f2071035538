from __future__ import annotations

import asyncio
import logging
import os
import stat
from dataclasses import dataclass
from datetime import datetime

from ..errors import FilesystemError
from .fs_access import Filesystem
from .paths import ResolvedPath, display_name

logger = logging.getLogger(__name__)

DIRECTORY_MARKER = '<Directory>'


@dataclass(frozen=True)
class ListingRow:
    href: str
    name: str
    size: str = ''
    created: str = ''
    modified: str = ''
    is_dir: bool = False


@dataclass(frozen=True)
class Listing:
    uri: str
    rows: tuple[ListingRow, ...]


class DirectoryLister:
    """Builds the rows of one directory listing.

    Child metadata is fetched concurrently and joined before any row is
    produced. Rows keep the order the directory was read in.

    With ``error_policy='fail'`` the first failed child lookup cancels the
    others and raises FilesystemError for the whole listing. With ``'blank'``
    the failed child is kept with empty metadata cells.
    """

    def __init__(self, fs: Filesystem, *, error_policy: str = 'fail', timestamp_format: str = '%Y-%m-%d %H:%M:%S'):
        if error_policy not in {'fail', 'blank'}:
            raise ValueError(f'Unknown listing error policy: {error_policy}')
        self._fs = fs
        self._error_policy = error_policy
        self._timestamp_format = timestamp_format

    async def build(self, resolved: ResolvedPath) -> Listing:
        try:
            names = await self._fs.list_names(resolved.fs_path)
        except OSError as exc:
            logger.error('Error reading directory %s: %s', resolved.uri, exc)
            raise FilesystemError(resolved.uri, exc) from exc

        stats = await self._gather(resolved, names)

        rows: list[ListingRow] = []
        if not resolved.is_root:
            rows.append(ListingRow(href=resolved.parent_href, name='..', is_dir=True))
        for name in names:
            rows.append(self._row(resolved, name, stats[name]))
        return Listing(uri=resolved.uri, rows=tuple(rows))

    async def _gather(self, resolved: ResolvedPath, names: list[str]) -> dict[str, os.stat_result | None]:
        if not names:
            return {}

        tasks = [asyncio.ensure_future(self._lookup(resolved, name)) for name in names]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise
        return dict(zip(names, results))

    async def _lookup(self, resolved: ResolvedPath, name: str) -> os.stat_result | None:
        try:
            return await self._fs.stat(resolved.fs_path / name)
        except OSError as exc:
            uri = resolved.child_uri(name)
            if self._error_policy == 'blank':
                logger.warning('Listing %s without metadata: %s', uri, exc)
                return None
            logger.error('Error reading metadata for %s: %s', uri, exc)
            raise FilesystemError(uri, exc) from exc

    def _row(self, resolved: ResolvedPath, name: str, info: os.stat_result | None) -> ListingRow:
        href = resolved.child_href(name)
        label = display_name(name)
        if info is None:
            return ListingRow(href=href, name=label)

        is_dir = stat.S_ISDIR(info.st_mode)
        created = getattr(info, 'st_birthtime', None) or info.st_ctime
        return ListingRow(
            href=href,
            name=label + '/' if is_dir else label,
            size=DIRECTORY_MARKER if is_dir else str(info.st_size),
            created=self._format_time(created),
            modified=self._format_time(info.st_mtime),
            is_dir=is_dir,
        )

    def _format_time(self, timestamp: float) -> str:
        return datetime.fromtimestamp(timestamp).strftime(self._timestamp_format)
