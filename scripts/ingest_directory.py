#!/usr/bin/env python3
"""Bulk-ingest a directory of legal documents.

Run with: uv run python scripts/ingest_directory.py ./corpus --owner dev-user --type statute
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import get_settings
from src.core.errors import RAGError
from src.core.logging import configure_logging
from src.db.database import async_session_maker, close_db
from src.db.models import DocumentType
from src.db.repository import SQLDocumentStore
from src.rag.embedder import build_embedder
from src.rag.extractors import DocumentExtractor, file_type_from_name
from src.rag.ingestion import build_ingestion_pipeline


async def ingest_directory(
    directory: Path,
    owner_id: str | None,
    document_type: DocumentType,
    is_public: bool,
    jurisdiction: str | None,
) -> int:
    """Ingest every supported file in a directory. Returns the number of failures."""
    settings = get_settings()
    configure_logging(settings)

    supported = set(DocumentExtractor().supported_types())
    files = sorted(
        p for p in directory.iterdir() if p.is_file() and file_type_from_name(p.name) in supported
    )
    if not files:
        print(f"No supported files in {directory}")
        return 0

    embedder = build_embedder(settings)
    failures = 0

    try:
        for path in files:
            # One session per file so a failure never leaves a half-open transaction behind
            async with async_session_maker() as db:
                pipeline = build_ingestion_pipeline(SQLDocumentStore(db), embedder, settings)
                try:
                    result = await pipeline.ingest(
                        path.read_bytes(),
                        path.name,
                        owner_id,
                        document_type=document_type,
                        is_public=is_public,
                        title=path.stem,
                        jurisdiction=jurisdiction,
                    )
                except RAGError as e:
                    failures += 1
                    print(f"✗ {path.name}: [{e.code}] {e.message}")
                    continue

            print(f"✓ {path.name}: {result.chunk_count} chunks (document {result.document_id})")
    finally:
        await embedder.close()
        await close_db()

    print(f"\nIngested {len(files) - failures} of {len(files)} files")
    return failures


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("directory", type=Path)
    parser.add_argument("--owner", dest="owner_id", default=None, help="Owner user ID")
    parser.add_argument(
        "--type",
        dest="document_type",
        choices=[t.value for t in DocumentType],
        default=DocumentType.CASE.value,
    )
    parser.add_argument("--private", action="store_true", help="Only visible to the owner")
    parser.add_argument("--jurisdiction", default=None)
    args = parser.parse_args()

    if not args.directory.is_dir():
        parser.error(f"{args.directory} is not a directory")

    failures = asyncio.run(
        ingest_directory(
            args.directory,
            args.owner_id,
            DocumentType(args.document_type),
            not args.private,
            args.jurisdiction,
        )
    )
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
