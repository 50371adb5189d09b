"""
CLI entry-point for the SmartDocs ingestion pipeline.

Usage
-----
    python -m smartdocs.services.cli ingest report.pdf ./more_pdfs/
    python -m smartdocs.services.cli stats
    python -m smartdocs.services.cli query "what is the notice period?" [--top-k 4]
    python -m smartdocs.services.cli reset
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def _collect_pdfs(paths: list[str]) -> list[Path]:
    found: list[Path] = []
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            found.extend(sorted(p.glob("*.pdf")))
        elif p.exists():
            found.append(p)
        else:
            logger.warning("Path does not exist: %s", p)
    return found


def cmd_ingest(args: argparse.Namespace) -> int:
    from smartdocs.ingestion.errors import SmartDocsError
    from smartdocs.ingestion.schemas import UploadedPdf
    from smartdocs.services.container import build_services

    pdfs = _collect_pdfs(args.paths)
    if not pdfs:
        print("No PDF files found.")
        return 1

    services = build_services()
    uploads = [UploadedPdf(filename=p.name, data=p.read_bytes(), content_type="application/pdf") for p in pdfs]
    try:
        report = asyncio.run(services.pipeline.ingest(uploads))
    except SmartDocsError as exc:
        print(f"Ingestion failed: {exc.public_message}")
        return 1

    print("\n══════════════ Ingestion Summary ══════════════")
    for fr in report.files:
        extra = f" ({fr.error})" if fr.error else ""
        print(f"  {fr.filename:<30} {fr.status:<11} {fr.chunks:>5} chunks{extra}")
    print(f"  Chunks extracted : {report.chunks_extracted}")
    print(f"  Duplicates       : {report.duplicates}")
    print(f"  Stored           : {report.added}")
    print(f"  Elapsed          : {report.elapsed_seconds:.1f}s")
    print("═══════════════════════════════════════════════")
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    from smartdocs.ingestion.config import ingest_settings
    from smartdocs.ingestion.vectordb import ChunkVectorStore

    store = ChunkVectorStore()
    print("\n══════════════ Vector Store Stats ══════════════")
    print(f"  Collection : {ingest_settings.collection_name}")
    print(f"  Chunks     : {store.count()}")
    print(f"  Dimension  : {store.dimension or '-'}")
    print("════════════════════════════════════════════════")
    return 0


def cmd_query(args: argparse.Namespace) -> int:
    from smartdocs.services.container import build_services

    services = build_services()
    result = asyncio.run(services.retrieval.search(args.query, args.top_k))
    if result.empty:
        print("No documents ingested yet.")
        return 0

    print(f"\nTop {len(result.citations)} results for: \"{args.query}\"\n")
    for i, c in enumerate(result.citations, 1):
        print(f"── Result {i} (score={c.score:.4f}, seq={c.sequence_index}) ──")
        print(f"   Citation: {c}")
        text = c.text[:300]
        print(f"   Text: {text}{'…' if len(c.text) > 300 else ''}")
        print()
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    from smartdocs.ingestion.vectordb import ChunkVectorStore

    ChunkVectorStore().reset()
    print("Vector store reset.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="SmartDocs PDF ingestion CLI",
        prog="python -m smartdocs.services.cli",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_ingest = sub.add_parser("ingest", help="Ingest PDF files or folders of PDFs")
    p_ingest.add_argument("paths", nargs="+", help="PDF files or directories")
    p_ingest.set_defaults(func=cmd_ingest)

    p_stats = sub.add_parser("stats", help="Show vector store statistics")
    p_stats.set_defaults(func=cmd_stats)

    p_query = sub.add_parser("query", help="Query the vector store")
    p_query.add_argument("query", type=str, help="Search query")
    p_query.add_argument("--top-k", type=int, default=4, help="Number of results")
    p_query.set_defaults(func=cmd_query)

    p_reset = sub.add_parser("reset", help="Delete every stored chunk")
    p_reset.set_defaults(func=cmd_reset)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
