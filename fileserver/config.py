from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_program_name() -> str:
    script = Path(sys.argv[0]) if sys.argv and sys.argv[0] else Path('fileserver')
    if script.stem == '__main__':
        return script.parent.name or 'fileserver'
    return script.name or 'fileserver'


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    app_name: str = 'File Server'
    app_host: str = '0.0.0.0'
    app_port: int = Field(default=8888, ge=1, le=65535)
    serve_root: Path = Field(default_factory=Path.cwd)
    program_name: str = Field(default_factory=_default_program_name, min_length=1)
    stream_chunk_size: int = Field(default=64 * 1024, ge=1, le=16 * 1024 * 1024)
    listing_error_policy: Literal['fail', 'blank'] = 'fail'
    confine_symlinks: bool = False
    timestamp_format: str = '%Y-%m-%d %H:%M:%S'
    log_level: str = Field(default='info', pattern='^(critical|error|warning|info|debug)$')

    @field_validator('log_level', mode='before')
    @classmethod
    def _lower_log_level(cls, value):
        return value.lower() if isinstance(value, str) else value

    @field_validator('serve_root')
    @classmethod
    def _root_must_be_directory(cls, value: Path) -> Path:
        root = value.expanduser().resolve(strict=False)
        if not root.is_dir():
            raise ValueError(f'Bad root directory: {value}')
        return root

    @property
    def css_asset_name(self) -> str:
        return f'{self.program_name}.css'

    @property
    def css_uri(self) -> str:
        return '/' + self.css_asset_name


@lru_cache
def default_settings() -> Settings:
    return Settings()
