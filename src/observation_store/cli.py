"""Command-line interface for observation-store."""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog
import uvicorn

from observation_store.config import get_settings
from observation_store.errors import InvalidEncodingError, ObservationStoreError
from observation_store.ingestion import ObservationService
from observation_store.models.ids import ObservationId
from observation_store.observability import configure_logging
from observation_store.storage import ObservationStore

logger = structlog.get_logger()


async def _run(database_url: str | None, action):
    """Open the store, run one action against the service, close the store."""
    store = await ObservationStore.connect(database_url)
    try:
        return await action(ObservationService(store))
    finally:
        await store.close()


def _resolve_content(args) -> str:
    if args.file is not None:
        try:
            return Path(args.file).read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise InvalidEncodingError(args.file, e.start) from e
    return args.content


def cmd_migrate(args):
    """Create the database schema."""

    async def action(service: ObservationService):
        await service.store.migrate()

    asyncio.run(_run(args.database_url, action))
    print("ok: migrated")


def cmd_ingest_text(args):
    """Ingest text from --content or --file."""
    content = _resolve_content(args)

    async def action(service: ObservationService):
        return await service.ingest_text(content, title=args.title, source_url=args.source_url)

    observation_id, inserted = asyncio.run(_run(args.database_url, action))
    if inserted:
        print(f"ok: inserted observation {observation_id}")
    else:
        print(f"ok: existing observation {observation_id}")


def cmd_get_observation(args):
    """Print an observation's metadata."""

    async def action(service: ObservationService):
        return await service.get_observation(args.id)

    obs = asyncio.run(_run(args.database_url, action))
    if obs is None:
        print(f"not found: observation {args.id}")
        return

    print(f"id: {obs.id}")
    print(f"hash: {obs.content_hash}")
    print(f"source_kind: {obs.source_kind.value}")
    print(f"created_at: {obs.created_at.isoformat()}")
    if obs.published_at is not None:
        print(f"published_at: {obs.published_at.isoformat()}")
    if obs.title is not None:
        print(f"title: {obs.title}")
    if obs.source_url is not None:
        print(f"source_url: {obs.source_url}")
    print(f"content_bytes: {obs.content_bytes}")


def cmd_chunk(args):
    """Re-chunk an observation."""

    async def action(service: ObservationService):
        return await service.chunk_observation(args.observation_id, args.chunk_size)

    count = asyncio.run(_run(args.database_url, action))
    if count is None:
        print(f"not found: observation {args.observation_id}")
        return
    print(f"ok: upserted {count} chunks")


def cmd_list_chunks(args):
    """List an observation's chunks in index order."""

    async def action(service: ObservationService):
        return await service.list_chunks(args.observation_id)

    for c in asyncio.run(_run(args.database_url, action)):
        print(
            f"{c.id} idx={c.index} bytes={len(c.text.encode('utf-8'))} "
            f"start={c.start_offset} end={c.end_offset} tokens={c.token_estimate}"
        )


def cmd_serve(args):
    """Start the API server."""
    settings = get_settings()
    host = args.host or settings.host
    port = args.port or settings.port

    logger.info("starting_server", host=host, port=port)

    uvicorn.run(
        "observation_store.api.app:app",
        host=host,
        port=port,
        reload=args.reload,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="observation-store",
        description="Content-addressed document ingestion and byte-offset chunking",
    )
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy async URL (defaults to OBSERVATION_STORE_DATABASE_URL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate command
    migrate_parser = subparsers.add_parser("migrate", help="Create the database schema")
    migrate_parser.set_defaults(func=cmd_migrate)

    # ingest-text command
    ingest_parser = subparsers.add_parser("ingest-text", help="Ingest a text observation")
    source = ingest_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--content", help="Text to ingest")
    source.add_argument("--file", type=Path, help="Read text from a UTF-8 file")
    ingest_parser.add_argument("--title", help="Optional title")
    ingest_parser.add_argument("--source-url", help="Optional source URL")
    ingest_parser.set_defaults(func=cmd_ingest_text)

    # get-observation command
    get_parser = subparsers.add_parser("get-observation", help="Show an observation")
    get_parser.add_argument("id", type=ObservationId.parse, help="Observation ID")
    get_parser.set_defaults(func=cmd_get_observation)

    # chunk command
    chunk_parser = subparsers.add_parser("chunk", help="Chunk an observation")
    chunk_parser.add_argument("observation_id", type=ObservationId.parse, help="Observation ID")
    chunk_parser.add_argument(
        "--chunk-size",
        type=int,
        default=get_settings().default_chunk_size,
        help="Maximum chunk size in bytes",
    )
    chunk_parser.set_defaults(func=cmd_chunk)

    # list-chunks command
    list_parser = subparsers.add_parser("list-chunks", help="List an observation's chunks")
    list_parser.add_argument("observation_id", type=ObservationId.parse, help="Observation ID")
    list_parser.set_defaults(func=cmd_list_chunks)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", type=str, help="Host to bind to")
    serve_parser.add_argument("--port", type=int, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entrypoint."""
    configure_logging()
    args = build_parser().parse_args(argv)

    try:
        args.func(args)
    except (ObservationStoreError, OSError) as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
