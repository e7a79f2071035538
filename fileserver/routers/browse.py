from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response
from fastapi.templating import Jinja2Templates

from ..config import Settings
from ..deps import get_filesystem, get_settings
from ..errors import FilesystemError, InvalidPath
from ..services.entries import EntryKind, classify
from ..services.fs_access import Filesystem
from ..services.listing import DirectoryLister
from ..services.paths import ensure_confined, resolve_request_path
from ..services.streamer import stream_file
from ..services.stylesheet import stylesheet_response

router = APIRouter(tags=['browse'])
logger = logging.getLogger(__name__)

_templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / 'templates'))


def not_found() -> PlainTextResponse:
    return PlainTextResponse('404 Not Found\n', status_code=404)


def internal_error(exc: Exception) -> PlainTextResponse:
    return PlainTextResponse(f'{exc}\n', status_code=500)


def _raw_request_path(request: Request) -> bytes:
    """Request target path relative to the mount point, still percent-encoded."""
    raw = request.scope.get('raw_path') or quote(request.scope['path']).encode('ascii')
    root_path = request.scope.get('root_path', '').rstrip('/')
    if root_path:
        for mount in (root_path.encode('utf-8'), quote(root_path).encode('ascii')):
            if raw == mount or raw.startswith(mount + b'/'):
                return raw[len(mount):]
    return raw


@router.get('/{path:path}')
async def serve(
    request: Request,
    config: Settings = Depends(get_settings),
    fs: Filesystem = Depends(get_filesystem),
) -> Response:
    try:
        resolved = resolve_request_path(
            config.serve_root,
            _raw_request_path(request),
            prefix=request.scope.get('root_path', ''),
        )
        if config.confine_symlinks:
            await ensure_confined(config.serve_root, resolved)
    except InvalidPath as exc:
        logger.info('Rejected request path %r: %s', request.url.path, exc)
        return not_found()

    if resolved.uri == config.css_uri:
        return stylesheet_response()

    entry = await classify(fs, resolved.fs_path)
    try:
        if entry.kind is EntryKind.DIRECTORY:
            lister = DirectoryLister(
                fs,
                error_policy=config.listing_error_policy,
                timestamp_format=config.timestamp_format,
            )
            listing = await lister.build(resolved)
            return _templates.TemplateResponse(
                request,
                'listing.html',
                {'listing': listing, 'css_uri': quote(resolved.prefix.rstrip('/')) + config.css_uri},
            )
        if entry.kind is EntryKind.FILE:
            return await stream_file(fs, resolved, entry.info, config.stream_chunk_size)
    except FilesystemError as exc:
        return internal_error(exc)

    return not_found()
