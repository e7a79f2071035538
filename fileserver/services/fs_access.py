from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol

import anyio
import anyio.to_thread


class AsyncReader(Protocol):
    async def read(self, size: int = -1) -> bytes:
        ...

    async def aclose(self) -> None:
        ...


class Filesystem(Protocol):
    async def stat(self, path: Path) -> os.stat_result:
        ...

    async def list_names(self, path: Path) -> list[str]:
        ...

    async def open_binary(self, path: Path) -> AsyncReader:
        ...


class RealFilesystem:
    """Runs every blocking call in a worker thread so the event loop keeps serving."""

    async def stat(self, path: Path) -> os.stat_result:
        return await anyio.Path(path).stat()

    async def list_names(self, path: Path) -> list[str]:
        names = await anyio.to_thread.run_sync(os.listdir, path)
        return sorted(names)

    async def open_binary(self, path: Path) -> AsyncReader:
        return await anyio.open_file(path, 'rb')
