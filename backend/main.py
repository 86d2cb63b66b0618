"""Main entry point for the TalkToCode repository Q&A API."""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import PORT, CORS_ORIGINS, LOG_LEVEL, LOG_FORMAT, CHUNK_MAX_CHARS, QUERY_TOP_K
from logger import setup_logging
from models.api import IngestRequest, IngestResponse, QueryRequest, QueryResponse, QueryResultItem
from services.content_fetcher import GitHubContentFetcher
from services.chunking_engine import ChunkingEngine, load_tokenizer
from services.embedding_model import EmbeddingModel
from services.embedding_generator import EmbeddingGenerator
from services.vector_store import VectorStore
from services.retrieval_engine import RetrievalEngine, QueryEmbeddingError
from services.ingestion_pipeline import IngestionPipeline, IngestionError

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="TalkToCode",
    description="Ingest a GitHub repository and ask questions about its contents",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-wide services (created once on startup)
ingestion_pipeline: IngestionPipeline = None
retrieval_engine: RetrievalEngine = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global ingestion_pipeline, retrieval_engine

    if LOG_FORMAT == "json":
        setup_logging(LOG_LEVEL)

    logger.info("Initializing TalkToCode services...")

    try:
        tokenizer = load_tokenizer()

        content_fetcher = GitHubContentFetcher()
        embedding_model = EmbeddingModel()
        vector_store = VectorStore()

        ingestion_pipeline = IngestionPipeline(
            fetcher=content_fetcher,
            chunking_engine=ChunkingEngine(max_chunk_size=CHUNK_MAX_CHARS, tokenizer=tokenizer),
            embedding_generator=EmbeddingGenerator(embedding_model),
            vector_store=vector_store
        )
        logger.info("Initialized IngestionPipeline")

        retrieval_engine = RetrievalEngine(vector_store, embedding_model)

        embedding_model.warmup()

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render every HTTP error as {"error": message}."""
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "TalkToCode API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "talktocode",
        "version": "1.0.0",
        "ready": ingestion_pipeline is not None and retrieval_engine is not None
    }


@app.post("/ingest", response_model=IngestResponse)
@app.post("/api/parse-repo", response_model=IngestResponse, include_in_schema=False)
def ingest_endpoint(request: IngestRequest) -> IngestResponse:
    """
    Fetch the root-level files of a repository, embed them and store the vectors.

    Partial failures (unreadable files, chunks that fail to embed) still
    return 200; the counts in the response show what was stored.

    Args:
        request: IngestRequest with username and repo

    Returns:
        IngestResponse with a message and ingestion counts

    Raises:
        HTTPException: 400 for missing fields, 500 when nothing could be stored
    """
    if not request.username or not request.username.strip():
        raise HTTPException(status_code=400, detail="Username is required")
    if not request.repo or not request.repo.strip():
        raise HTTPException(status_code=400, detail="Repository name is required")

    username = request.username.strip()
    repo = request.repo.strip()

    try:
        report = ingestion_pipeline.ingest(username, repo)
    except IngestionError as e:
        logger.error(f"Ingestion of {username}/{repo} failed: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to process repository. Please check the provided parameters and try again."
        )
    except Exception as e:
        logger.error(f"Unexpected error ingesting {username}/{repo}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="Failed to process repository. Please check the provided parameters and try again."
        )

    return IngestResponse(
        message="Repository contents processed and embeddings stored!",
        files_processed=report.files_fetched,
        chunks=report.chunks,
        vectors_upserted=report.vectors_upserted,
        embedding_failures=report.embedding_failures
    )


@app.post("/query", response_model=QueryResponse, response_model_exclude_none=True)
@app.post("/api/query", response_model=QueryResponse, response_model_exclude_none=True, include_in_schema=False)
def query_endpoint(request: QueryRequest) -> QueryResponse:
    """
    Return the stored snippets most similar to a question.

    Args:
        request: QueryRequest with question

    Returns:
        QueryResponse with results, or with error "No matches found." when
        the namespace has nothing to return

    Raises:
        HTTPException: 400 for a missing question, 500 for embedding or search failures
    """
    if not request.question or not request.question.strip():
        raise HTTPException(status_code=400, detail="Question is required")

    logger.info(f"Processing query: {request.question[:100]}...")

    try:
        results = retrieval_engine.query(request.question, top_k=QUERY_TOP_K)
    except QueryEmbeddingError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error processing query: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to query embeddings. Please try again.")

    if not results:
        return QueryResponse(error="No matches found.")

    return QueryResponse(
        message="Query successful!",
        results=[QueryResultItem(text=result.text, score=result.score) for result in results]
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting TalkToCode API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
