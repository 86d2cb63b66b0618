"""Configuration management for the TalkToCode repository Q&A service."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Source hosting
GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Model Configuration
# Ingestion and query must use the same model or similarity scores are meaningless
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2")
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "768"))

# Concurrency Configuration
EMBEDDING_MAX_CONCURRENCY = int(os.getenv("EMBEDDING_MAX_CONCURRENCY", "8"))
FETCH_MAX_CONCURRENCY = int(os.getenv("FETCH_MAX_CONCURRENCY", "4"))

# Chunking Configuration
CHUNK_MAX_CHARS = int(os.getenv("CHUNK_MAX_CHARS", "8000"))  # characters, not tokens

# Vector Store Configuration
VECTOR_TABLE = os.getenv("VECTOR_TABLE", "code_chunks")
VECTOR_NAMESPACE = os.getenv("VECTOR_NAMESPACE", "ns1")

# Retrieval Configuration
QUERY_TOP_K = int(os.getenv("QUERY_TOP_K", "5"))

# Ingestion Configuration
INGEST_RECURSIVE = os.getenv("INGEST_RECURSIVE", "false").lower() in ("1", "true", "yes")

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
