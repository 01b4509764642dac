"""CLI entry point for the hookrelay API server and worker."""

import argparse
import asyncio
import json
import os
import sys


def _serve(args: argparse.Namespace) -> None:
    import uvicorn

    from hookrelay.config import settings

    uvicorn.run("hookrelay.main:app", host=args.host or settings.host, port=args.port or settings.port)


async def _process_queue() -> dict:
    from hookrelay.config import settings
    from hookrelay.db.engine import create_db_engine, create_session_factory
    from hookrelay.logging_config import configure_logging
    from hookrelay.workers.scheduler import process_queue_once

    configure_logging(log_level=settings.log_level, json_output=settings.json_logs and not settings.local_mode)

    engine = create_db_engine()
    if engine.dialect.name == "sqlite":
        from hookrelay.db.base import Base
        import hookrelay.db.models  # noqa: F401 (register ORM models)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    try:
        result = await process_queue_once(create_session_factory(engine))
    finally:
        await engine.dispose()
    return result.as_dict()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="hookrelay-server",
        description="hookrelay: outbound webhook delivery service",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the API server (default)")
    serve.add_argument("--host", default=None, help="Bind host (default: HOOKRELAY_HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: HOOKRELAY_PORT or 8080)")

    subparsers.add_parser("process-queue", help="Run one delivery cycle and exit")

    argv = sys.argv[1:] if argv is None else argv
    args = parser.parse_args(argv)

    if args.local:
        os.environ["HOOKRELAY_LOCAL_MODE"] = "1"

    if args.command == "process-queue":
        print(json.dumps(asyncio.run(_process_queue())))
        return

    if args.command is None:
        args = parser.parse_args([*argv, "serve"])
    _serve(args)


if __name__ == "__main__":
    main()
