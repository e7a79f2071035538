from __future__ import annotations

import logging
import mimetypes
import os
from typing import AsyncIterator

import anyio
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from ..errors import FilesystemError, MidStreamFailure
from .fs_access import AsyncReader, Filesystem
from .paths import ResolvedPath

logger = logging.getLogger(__name__)


async def _iter_chunks(handle: AsyncReader, uri: str, size: int, chunk_size: int) -> AsyncIterator[bytes]:
    remaining = size
    while remaining > 0:
        try:
            chunk = await handle.read(min(chunk_size, remaining))
        except OSError as exc:
            logger.error('Error reading stream for file %s after %d bytes: %s', uri, size - remaining, exc)
            raise MidStreamFailure(f'Read failed after {size - remaining} of {size} bytes: {uri}') from exc
        if not chunk:
            logger.error('File %s ended early, %d of %d bytes missing', uri, remaining, size)
            raise MidStreamFailure(f'File ended after {size - remaining} of {size} bytes: {uri}')
        remaining -= len(chunk)
        yield chunk


class FileStreamResponse(StreamingResponse):
    """Streams an already opened file and closes it however the send ends."""

    def __init__(self, handle: AsyncReader, resolved: ResolvedPath, size: int, chunk_size: int):
        self.handle = handle
        media_type, _ = mimetypes.guess_type(resolved.fs_path.name)
        super().__init__(
            _iter_chunks(handle, resolved.uri, size, chunk_size),
            media_type=media_type or 'application/octet-stream',
            headers={'Content-Length': str(size)},
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            with anyio.CancelScope(shield=True):
                await self.handle.aclose()


async def stream_file(
    fs: Filesystem,
    resolved: ResolvedPath,
    info: os.stat_result,
    chunk_size: int,
) -> FileStreamResponse:
    # nothing is committed until the handle is open
    try:
        handle = await fs.open_binary(resolved.fs_path)
    except OSError as exc:
        logger.error('Error opening file %s: %s', resolved.uri, exc)
        raise FilesystemError(resolved.uri, exc) from exc
    return FileStreamResponse(handle, resolved, info.st_size, chunk_size)
