import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables (only in development)
# In containers, environment variables are set directly
if os.getenv("ENVIRONMENT") != "production":
    load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Storage
DATABASE_TYPE = os.getenv("DATABASE_TYPE", "memory")  # Options: 'memory', 'json'
JSON_DB_PATH = os.getenv("JSON_DB_PATH", str(BASE_DIR / "data"))

# Input guard
MAX_QUERY_LENGTH = int(os.getenv("MAX_QUERY_LENGTH", "500"))

# Rate Limiting
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "10"))
RATE_LIMIT_PER_HOUR = int(os.getenv("RATE_LIMIT_PER_HOUR", "100"))
RATE_LIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")

# Search tuning
SEARCH_TOP_K = int(os.getenv("SEARCH_TOP_K", "20"))
MIN_SIMILARITY = float(os.getenv("MIN_SIMILARITY", "0.3"))
COMPLEX_CANDIDATE_LIMIT = int(os.getenv("COMPLEX_CANDIDATE_LIMIT", "10"))
STRUCTURED_RESULT_LIMIT = int(os.getenv("STRUCTURED_RESULT_LIMIT", "100"))
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "512"))

# Generative model (local file only, never downloaded on the query path)
GENERATIVE_PROVIDER = os.getenv("GENERATIVE_PROVIDER", "mock")  # Options: 'mock', 'llama_cpp'
MODEL_DIR = os.getenv("MODEL_DIR", str(BASE_DIR / "models"))
MODEL_FILENAME = os.getenv("MODEL_FILENAME", "gemma-2b-it-q4.gguf")
MODEL_CONTEXT_SIZE = int(os.getenv("MODEL_CONTEXT_SIZE", "2048"))
ANALYSIS_TIMEOUT_SECONDS = float(os.getenv("ANALYSIS_TIMEOUT_SECONDS", "30"))

# Background sweeps
VECTORIZE_PAUSE_EVERY = int(os.getenv("VECTORIZE_PAUSE_EVERY", "10"))
VECTORIZE_PAUSE_SECONDS = float(os.getenv("VECTORIZE_PAUSE_SECONDS", "0.1"))
REPROCESS_PAUSE_EVERY = int(os.getenv("REPROCESS_PAUSE_EVERY", "5"))
REPROCESS_PAUSE_SECONDS = float(os.getenv("REPROCESS_PAUSE_SECONDS", "0.2"))

# Audit
AUDIT_LOG_LEVEL = os.getenv("AUDIT_LOG_LEVEL", "info")  # Options: 'info', 'verbose', 'compulsory'

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE")
ENABLE_FILE_LOGGING = os.getenv("ENABLE_FILE_LOGGING", "false").lower() == "true"

# API server (local only)
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))

# HTTP-level limits on maintenance endpoints (per client address)
MAINTENANCE_RATE_LIMIT_ENABLED = os.getenv("MAINTENANCE_RATE_LIMIT_ENABLED", "true").lower() == "true"
MAINTENANCE_RATE_LIMIT_PER_MINUTE = int(os.getenv("MAINTENANCE_RATE_LIMIT_PER_MINUTE", "30"))
