"""
Preview server entrypoint - runs the template bundle under uvicorn.

Spawned by the render pipeline; not meant to be started by hand, although
``python -m resumepdf.serve`` works for debugging a template.
"""

import argparse
import asyncio
from pathlib import Path

import uvicorn

from resumepdf.app import build_app, write_status_file
from resumepdf.config import get_settings
from resumepdf.shared.logging import get_logger

logger = get_logger(__name__)

STARTED_POLL_INTERVAL = 0.05


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="resumepdf-serve", description="Serve a resume template bundle")
    parser.add_argument("--host", default=settings.server_host)
    parser.add_argument("--port", type=int, default=settings.server_port or 15173)
    parser.add_argument("--root", type=Path, default=settings.preview_root)
    parser.add_argument("--status-file", type=Path, default=None)
    return parser.parse_args(argv)


async def serve(server: uvicorn.Server, url: str, status_file: Path | None = None) -> None:
    """
    Run ``server`` and publish ``url`` once the listener is bound.

    uvicorn runs the app lifespan before binding, so the status file is
    written here rather than at application startup. A failed bind ends
    ``serve()`` without ever setting ``server.started``.
    """
    task = asyncio.create_task(server.serve())
    while not server.started and not task.done():
        await asyncio.sleep(STARTED_POLL_INTERVAL)

    if server.started and status_file is not None:
        write_status_file(status_file, url)
        logger.info(f"Published {url} to {status_file}")

    await task


def main(argv: list[str] | None = None) -> None:
    """Run the preview server."""
    args = parse_args(argv)
    url = f"http://{args.host}:{args.port}"
    app = build_app(root=args.root)

    config = uvicorn.Config(
        app,
        host=args.host,
        port=args.port,
        log_level=get_settings().log_level.lower(),
    )
    server = uvicorn.Server(config)
    # uvicorn also announces "Uvicorn running on <url>" once bound; the parent scans for it
    asyncio.run(serve(server, url, args.status_file))
    if not server.started:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
