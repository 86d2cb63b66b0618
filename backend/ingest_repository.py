"""
Repository Ingestion Script for TalkToCode.

This script:
1. Lists the files of a GitHub repository (root level unless --recursive)
2. Downloads and chunks each file on line boundaries
3. Generates embeddings using HuggingFace API
4. Upserts the vectors into Supabase pgvector

Usage:
    python ingest_repository.py <owner> <repo> [--recursive] [--max-chars N]
"""
import sys
import argparse
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.content_fetcher import GitHubContentFetcher
from services.chunking_engine import ChunkingEngine, load_tokenizer
from services.embedding_model import EmbeddingModel
from services.embedding_generator import EmbeddingGenerator
from services.vector_store import VectorStore
from services.ingestion_pipeline import IngestionPipeline, IngestionError
from config import CHUNK_MAX_CHARS, EMBEDDING_MAX_CONCURRENCY, INGEST_RECURSIVE

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Embed a GitHub repository into the vector store")
    parser.add_argument("owner", help="Repository owner (user or organisation)")
    parser.add_argument("repo", help="Repository name")
    parser.add_argument("--recursive", action="store_true", default=INGEST_RECURSIVE,
                        help="Also ingest files in subdirectories")
    parser.add_argument("--max-chars", type=int, default=CHUNK_MAX_CHARS,
                        help="Maximum chunk size in characters")
    parser.add_argument("--workers", type=int, default=EMBEDDING_MAX_CONCURRENCY,
                        help="Concurrent embedding requests")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main ingestion process."""
    args = parse_args(argv)

    try:
        logger.info("=" * 60)
        logger.info(f"Starting ingestion of {args.owner}/{args.repo}")
        logger.info("=" * 60)

        logger.info("[1/3] Initializing services...")
        embedding_model = EmbeddingModel()
        vector_store = VectorStore()
        pipeline = IngestionPipeline(
            fetcher=GitHubContentFetcher(),
            chunking_engine=ChunkingEngine(max_chunk_size=args.max_chars, tokenizer=load_tokenizer()),
            embedding_generator=EmbeddingGenerator(embedding_model, max_workers=args.workers),
            vector_store=vector_store,
            recursive=args.recursive
        )

        logger.info("[2/3] Warming up embedding model...")
        logger.info("This may take 15-20 seconds on first run (HuggingFace free tier)...")
        embedding_model.warmup()

        logger.info("[3/3] Fetching, chunking, embedding and storing...")
        report = pipeline.ingest(args.owner, args.repo)

        logger.info("=" * 60)
        logger.info("INGESTION COMPLETE!")
        logger.info("=" * 60)
        logger.info(f"Files fetched: {report.files_fetched}/{report.files_listed}")
        logger.info(f"Chunks created: {report.chunks}")
        logger.info(f"Embedding failures: {report.embedding_failures}")
        logger.info(f"Vectors upserted: {report.vectors_upserted}")
        logger.info(f"Records in namespace '{vector_store.namespace}': {vector_store.count()}")
        return 0

    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        return 1
    except IngestionError as e:
        logger.error(f"Ingestion failed: {str(e)}")
        return 1
    except Exception as e:
        logger.error(f"Ingestion failed: {str(e)}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
