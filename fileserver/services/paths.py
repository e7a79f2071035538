from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, unquote_to_bytes

import anyio

from ..errors import InvalidPath

_BAD_ESCAPE = re.compile(rb'%(?![0-9A-Fa-f]{2})')


@dataclass(frozen=True)
class ResolvedPath:
    fs_path: Path
    parts: tuple[str, ...] = ()
    prefix: str = ''

    @property
    def is_root(self) -> bool:
        return not self.parts

    @property
    def uri(self) -> str:
        return display_name('/' + '/'.join(self.parts))

    @property
    def parent_href(self) -> str:
        return self._prefixed(_href(self.parts[:-1]))

    def child_uri(self, name: str) -> str:
        return display_name('/' + '/'.join((*self.parts, name)))

    def child_href(self, name: str) -> str:
        return self._prefixed(_href((*self.parts, name)))

    def _prefixed(self, href: str) -> str:
        if not self.prefix:
            return href
        return quote(self.prefix.rstrip('/')) + href


def _href(parts: tuple[str, ...]) -> str:
    # names undecodable as UTF-8 carry surrogate escapes; quote their raw bytes
    return '/' + '/'.join(quote(os.fsencode(part), safe='') for part in parts)


def display_name(name: str) -> str:
    return os.fsencode(name).decode('utf-8', 'replace')


def _within(root: Path, candidate: Path) -> bool:
    return candidate == root or root in candidate.parents


def decode_request_path(raw_path: bytes | str) -> str:
    """Percent-decode the path component of a request target.

    Anything after ``?`` or ``#`` is dropped. Bytes that are not valid UTF-8
    become surrogate escapes, matching how the filesystem reports such names.
    Malformed escapes and NUL bytes raise InvalidPath.
    """
    if isinstance(raw_path, str):
        raw_path = raw_path.encode('utf-8')
    raw_path = raw_path.split(b'?', 1)[0].split(b'#', 1)[0]
    if _BAD_ESCAPE.search(raw_path):
        raise InvalidPath('Malformed percent-encoding in request path')
    decoded = unquote_to_bytes(raw_path).decode('utf-8', 'surrogateescape')
    if '\x00' in decoded:
        raise InvalidPath('Request path contains a NUL byte')
    return decoded


def normalize_segments(path: str) -> tuple[str, ...]:
    """Collapse ``.`` and ``..`` segments without touching the filesystem.

    A ``..`` that would climb above the first segment is an escape attempt.
    """
    parts: list[str] = []
    for segment in path.split('/'):
        if segment in ('', '.'):
            continue
        if segment == '..':
            if not parts:
                raise InvalidPath('Request path escapes the served root')
            parts.pop()
            continue
        if os.sep != '/' and (os.sep in segment or (os.altsep and os.altsep in segment)):
            raise InvalidPath('Request path contains a native path separator')
        parts.append(segment)
    return tuple(parts)


def resolve_request_path(root: Path, raw_path: bytes | str, prefix: str = '') -> ResolvedPath:
    parts = normalize_segments(decode_request_path(raw_path))
    candidate = root.joinpath(*parts)
    if not _within(root, candidate):
        raise InvalidPath('Request path escapes the served root')
    return ResolvedPath(candidate, parts, prefix)


async def ensure_confined(root: Path, resolved: ResolvedPath) -> ResolvedPath:
    # symlinks inside the tree may still point outside it
    try:
        real = Path(await anyio.Path(resolved.fs_path).resolve())
    except (OSError, RuntimeError) as exc:
        # symlink loops raise RuntimeError before Python 3.13
        raise InvalidPath('Request path cannot be resolved') from exc
    if not _within(root, real):
        raise InvalidPath('Request path resolves outside the served root')
    return resolved
