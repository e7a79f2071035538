from __future__ import annotations

from fastapi import Request

from .config import Settings
from .services.fs_access import Filesystem


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_filesystem(request: Request) -> Filesystem:
    return request.app.state.filesystem
