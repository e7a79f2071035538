from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from fileserver.errors import FilesystemError, MidStreamFailure
from fileserver.services.fs_access import RealFilesystem
from fileserver.services.paths import ResolvedPath
from fileserver.services.streamer import stream_file


class _Handle:
    def __init__(self, chunks: list[bytes | Exception]):
        self._chunks = list(chunks)
        self.closed = False
        self.reads: list[int] = []

    async def read(self, size: int = -1) -> bytes:
        self.reads.append(size)
        if not self._chunks:
            return b''
        chunk = self._chunks.pop(0)
        if isinstance(chunk, Exception):
            raise chunk
        return chunk

    async def aclose(self) -> None:
        self.closed = True


class _Filesystem:
    def __init__(self, handle: _Handle | None = None, open_error: OSError | None = None):
        self.handle = handle
        self.open_error = open_error

    async def open_binary(self, path: Path):
        if self.open_error:
            raise self.open_error
        return self.handle


def _info(size: int) -> os.stat_result:
    return os.stat_result((0o100644, 0, 0, 1, 0, 0, size, 0, 0, 0))


def _scope() -> dict:
    return {
        'type': 'http',
        'asgi': {'version': '3.0', 'spec_version': '2.4'},
        'http_version': '1.1',
        'method': 'GET',
        'scheme': 'http',
        'path': '/file.bin',
        'raw_path': b'/file.bin',
        'query_string': b'',
        'headers': [],
        'client': ('127.0.0.1', 12345),
        'server': ('testserver', 80),
    }


async def _receive():
    await asyncio.Event().wait()


def _resolved(name: str = 'file.bin') -> ResolvedPath:
    return ResolvedPath(Path('/srv/share') / name, (name,))


@pytest.mark.asyncio
async def test_open_failure_raises_before_anything_is_sent():
    fs = _Filesystem(open_error=PermissionError(13, 'Permission denied', '/srv/share/file.bin'))

    with pytest.raises(FilesystemError) as exc:
        await stream_file(fs, _resolved(), _info(10), chunk_size=4)

    assert str(exc.value) == 'Permission denied: /file.bin'


@pytest.mark.asyncio
async def test_streams_bounded_chunks_and_closes_handle():
    handle = _Handle([b'abcd', b'efgh', b'ij'])
    sent: list[dict] = []

    async def _send(message):
        sent.append(message)

    response = await stream_file(_Filesystem(handle), _resolved('notes.txt'), _info(10), chunk_size=4)
    await response(_scope(), _receive, _send)

    assert sent[0]['status'] == 200
    headers = dict(sent[0]['headers'])
    assert headers[b'content-length'] == b'10'
    assert headers[b'content-type'].startswith(b'text/plain')
    assert b''.join(m.get('body', b'') for m in sent[1:]) == b'abcdefghij'
    assert max(handle.reads) <= 4
    assert handle.closed


@pytest.mark.asyncio
async def test_read_error_mid_stream_aborts_and_closes_handle():
    handle = _Handle([b'abcd', OSError(5, 'Input/output error')])
    sent: list[dict] = []

    async def _send(message):
        sent.append(message)

    response = await stream_file(_Filesystem(handle), _resolved(), _info(10), chunk_size=4)
    with pytest.raises(MidStreamFailure):
        await response(_scope(), _receive, _send)

    assert sent[0]['status'] == 200
    assert sent[1]['body'] == b'abcd'
    assert not any(m.get('more_body') is False for m in sent[1:])
    assert handle.closed


@pytest.mark.asyncio
async def test_file_shrinking_mid_stream_is_a_failure():
    handle = _Handle([b'abcd'])

    async def _send(message):
        pass

    response = await stream_file(_Filesystem(handle), _resolved(), _info(10), chunk_size=4)
    with pytest.raises(MidStreamFailure):
        await response(_scope(), _receive, _send)

    assert handle.closed


@pytest.mark.asyncio
async def test_client_disconnect_releases_handle():
    handle = _Handle([b'abcd', b'efgh', b'ij'])

    async def _send(message):
        if message['type'] == 'http.response.body':
            raise OSError('client went away')

    response = await stream_file(_Filesystem(handle), _resolved(), _info(10), chunk_size=4)
    with pytest.raises(Exception):
        await response(_scope(), _receive, _send)

    assert handle.closed


@pytest.mark.asyncio
async def test_real_file_round_trip_larger_than_chunk(tmp_path):
    payload = os.urandom(256 * 1024 + 17)
    target = tmp_path / 'blob.bin'
    target.write_bytes(payload)
    sent: list[dict] = []

    async def _send(message):
        sent.append(message)

    fs = RealFilesystem()
    resolved = ResolvedPath(target, ('blob.bin',))
    response = await stream_file(fs, resolved, await fs.stat(target), chunk_size=8192)
    await response(_scope(), _receive, _send)

    body_messages = [m for m in sent if m['type'] == 'http.response.body']
    assert len(body_messages) > 1
    assert b''.join(m.get('body', b'') for m in body_messages) == payload
