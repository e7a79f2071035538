from __future__ import annotations

import argparse
import logging

import uvicorn
from pydantic import ValidationError

from .config import Settings
from .main import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Serve a directory tree over HTTP for browsing and download.')
    parser.add_argument('-p', '--port', type=int, help='Port to listen on (default 8888)')
    parser.add_argument('-r', '--root', help='Root dir to serve, defaults to the current directory')
    parser.add_argument('--host', help='Address to bind (default 0.0.0.0)')
    parser.add_argument('--log-level', choices=['critical', 'error', 'warning', 'info', 'debug'])
    return parser


def _describe(exc: ValidationError) -> str:
    return '; '.join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())


def load_settings(argv: list[str] | None = None) -> Settings:
    args = build_parser().parse_args(argv)
    overrides = {
        'app_port': args.port,
        'serve_root': args.root,
        'app_host': args.host,
        'log_level': args.log_level,
    }
    try:
        return Settings(**{key: value for key, value in overrides.items() if value is not None})
    except ValidationError as exc:
        raise SystemExit(f'Invalid configuration: {_describe(exc)}') from exc


def main(argv: list[str] | None = None) -> None:
    config = load_settings(argv)
    logging.basicConfig(
        level=config.log_level.upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    uvicorn.run(create_app(config), host=config.app_host, port=config.app_port, log_level=config.log_level)

