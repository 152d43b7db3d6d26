import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx

from docsearch.config.settings import Settings, settings
from docsearch.container import Container, configure_container
from docsearch.core.exceptions import DocSearchError
from docsearch.core.models.search import SearchMode, SearchResponse
from docsearch.core.protocols.vector_store import VectorStoreProtocol
from docsearch.core.services.ingest_service import IngestService
from docsearch.core.services.query_expander import QueryExpander
from docsearch.core.services.search_service import SearchService

logger = logging.getLogger(__name__)


def check_weaviate(config: Settings) -> bool:
    """Check that the Weaviate instance is ready.

    Returns:
        True if ready, False otherwise.
    """
    try:
        resp = httpx.get(f"{config.weaviate_url.rstrip('/')}/v1/.well-known/ready", timeout=5)
    except httpx.HTTPError as e:
        logger.error(f"Weaviate not reachable: {e}")
        return False
    if resp.status_code != 200:
        logger.error(f"Weaviate not ready: {resp.status_code}")
        return False
    return True


def format_response(response: SearchResponse, show_scores: bool = False) -> str:
    lines = []
    if len(response.variants) > 1:
        lines.append("Variants: " + " | ".join(response.variants))
        lines.append("")

    if not response.results:
        lines.append("No matching documents found.")
        return "\n".join(lines)

    for i, r in enumerate(response.results, 1):
        header = f"[{i}] {r.source_id} (page {r.chunk.page_number})"
        if show_scores:
            header += f" relevance={r.relevance_score:.3f} fused={r.fused_score:.3f}"
        lines.append(header)
        lines.append(r.content[:300].replace("\n", " "))
        lines.append("")

    if response.answer:
        lines.append("Answer:")
        lines.append(response.answer)
    lines.append(f"Sources: {', '.join(response.sources)}")
    return "\n".join(lines)


async def cmd_init_schema(container: Container, args: argparse.Namespace) -> None:
    store = container.resolve(VectorStoreProtocol)
    await store.ensure_schema()
    logger.info("Schema ready")


async def cmd_ingest(container: Container, args: argparse.Namespace) -> None:
    service = container.resolve(IngestService)
    path = Path(args.path)
    if path.is_dir():
        results = await service.ingest_directory(path)
    else:
        results = [await service.ingest_file(path, total_pages=args.pages)]

    for r in results:
        logger.info(f"{r.source_id}: {r.chunks_stored} chunks, {r.pages} pages ({r.document_type})")
    logger.info(f"Indexed {sum(r.chunks_stored for r in results)} chunks")


async def cmd_search(container: Container, args: argparse.Namespace) -> None:
    service = container.resolve(SearchService)
    overrides = {"mode": SearchMode(args.mode)}
    if args.limit is not None:
        overrides["limit"] = args.limit
    if args.weight is not None:
        overrides["vector_weight"] = args.weight
    if args.no_synthesis:
        overrides["enable_synthesis"] = False
    if args.no_expansion:
        overrides["enable_expansion"] = False
    if args.enhance:
        overrides["enable_enhancement"] = True

    config = settings.search_config().with_overrides(**overrides)
    response = await service.search(args.query, config)
    print(format_response(response, show_scores=args.scores))


async def cmd_expand(container: Container, args: argparse.Namespace) -> None:
    expander = container.resolve(QueryExpander)
    for variant in await expander.expand(args.query):
        print(variant)


async def cmd_stats(container: Container, args: argparse.Namespace) -> None:
    store = container.resolve(VectorStoreProtocol)
    print(f"Chunks stored: {await store.count()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docsearch", description="Hybrid document search")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-schema", help="Create the chunk class in Weaviate")

    ingest = sub.add_parser("ingest", help="Index a .txt/.md file or directory")
    ingest.add_argument("path", nargs="?", default=settings.docs_path)
    ingest.add_argument("--pages", type=int, default=1, help="Page count for a single file")

    search = sub.add_parser("search", help="Search indexed documents")
    search.add_argument("query")
    search.add_argument("--mode", choices=[m.value for m in SearchMode], default=settings.search_mode)
    search.add_argument("--limit", type=int)
    search.add_argument("--weight", type=float, help="Vector weight in [0, 1]")
    search.add_argument("--no-synthesis", action="store_true")
    search.add_argument("--no-expansion", action="store_true")
    search.add_argument("--enhance", action="store_true", help="Rewrite the query before searching")
    search.add_argument("--scores", action="store_true")

    expand = sub.add_parser("expand", help="Show query variants")
    expand.add_argument("query")

    sub.add_parser("stats", help="Show stored chunk count")
    return parser


COMMANDS = {
    "init-schema": cmd_init_schema,
    "ingest": cmd_ingest,
    "search": cmd_search,
    "expand": cmd_expand,
    "stats": cmd_stats,
}


async def run(container: Container, args: argparse.Namespace) -> None:
    try:
        await COMMANDS[args.command](container, args)
    finally:
        store = container.resolve(VectorStoreProtocol)
        close = getattr(store, "close", None)
        if close is not None:
            await close()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.log_level.upper(), format="%(message)s")

    if args.command != "expand" and not check_weaviate(settings):
        sys.exit(1)

    container = configure_container(settings)
    try:
        asyncio.run(run(container, args))
    except DocSearchError as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
