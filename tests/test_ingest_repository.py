"""Unit tests for the ingest_repository command-line script."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from unittest.mock import patch
import ingest_repository
from services.ingestion_pipeline import IngestionError, IngestionReport


def test_parse_args_defaults():
    args = ingest_repository.parse_args(["octo", "demo"])

    assert args.owner == "octo"
    assert args.repo == "demo"
    assert args.recursive is False
    assert args.max_chars == 8000


def test_parse_args_options():
    args = ingest_repository.parse_args(["octo", "demo", "--recursive", "--max-chars", "500", "--workers", "2"])

    assert args.recursive is True
    assert args.max_chars == 500
    assert args.workers == 2


@patch("ingest_repository.GitHubContentFetcher")
@patch("ingest_repository.VectorStore")
@patch("ingest_repository.EmbeddingModel")
@patch("ingest_repository.IngestionPipeline")
def test_main_success(mock_pipeline_class, mock_model_class, mock_store_class, mock_fetcher_class):
    mock_pipeline_class.return_value.ingest.return_value = IngestionReport(
        owner="octo", repo="demo", files_listed=2, files_fetched=2, chunks=3, vectors_upserted=3
    )
    mock_store_class.return_value.count.return_value = 3

    assert ingest_repository.main(["octo", "demo"]) == 0

    mock_pipeline_class.return_value.ingest.assert_called_once_with("octo", "demo")
    assert mock_pipeline_class.call_args.kwargs["recursive"] is False


@patch("ingest_repository.GitHubContentFetcher")
@patch("ingest_repository.VectorStore")
@patch("ingest_repository.EmbeddingModel")
@patch("ingest_repository.IngestionPipeline")
def test_main_failure(mock_pipeline_class, mock_model_class, mock_store_class, mock_fetcher_class):
    mock_pipeline_class.return_value.ingest.side_effect = IngestionError("No readable files found")

    assert ingest_repository.main(["octo", "demo"]) == 1


@patch("ingest_repository.load_tokenizer")
@patch("ingest_repository.GitHubContentFetcher")
@patch("ingest_repository.VectorStore")
@patch("ingest_repository.EmbeddingModel")
@patch("ingest_repository.IngestionPipeline")
def test_main_counts_tokens(mock_pipeline_class, mock_model_class, mock_store_class, mock_fetcher_class,
                            mock_load_tokenizer):
    mock_pipeline_class.return_value.ingest.return_value = IngestionReport(
        owner="octo", repo="demo", files_listed=1, files_fetched=1, chunks=1, vectors_upserted=1
    )

    assert ingest_repository.main(["octo", "demo"]) == 0

    chunking_engine = mock_pipeline_class.call_args.kwargs["chunking_engine"]
    assert chunking_engine.tokenizer is mock_load_tokenizer.return_value
