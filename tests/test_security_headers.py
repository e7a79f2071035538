from __future__ import annotations

import pytest
from fastapi.responses import PlainTextResponse
from starlette.requests import Request

from fileserver import main


def _make_request(method: str, path: str) -> Request:
    scope = {
        'type': 'http',
        'http_version': '1.1',
        'method': method,
        'scheme': 'http',
        'path': path,
        'raw_path': path.encode(),
        'query_string': b'',
        'headers': [],
        'client': ('127.0.0.1', 12345),
        'server': ('testserver', 80),
    }

    async def _receive():
        return {'type': 'http.request', 'body': b'', 'more_body': False}

    return Request(scope, _receive)


@pytest.mark.asyncio
async def test_security_headers_added_on_success_response():
    request = _make_request('GET', '/docs/guide.md')

    async def _next(_request: Request):
        return PlainTextResponse('ok')

    response = await main.security_middleware(request, _next)

    assert response.status_code == 200
    assert response.headers['Content-Security-Policy'].startswith("default-src 'self'")
    assert response.headers['X-Frame-Options'] == 'DENY'
    assert response.headers['X-Content-Type-Options'] == 'nosniff'
    assert response.headers['Referrer-Policy'] == 'strict-origin-when-cross-origin'


@pytest.mark.asyncio
async def test_security_headers_added_on_error_response():
    request = _make_request('GET', '/missing')

    async def _next(_request: Request):
        return PlainTextResponse('404 Not Found\n', status_code=404)

    response = await main.security_middleware(request, _next)

    assert response.status_code == 404
    assert response.headers['X-Content-Type-Options'] == 'nosniff'
