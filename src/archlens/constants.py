"""Centralized constants for ArchLens.

Defaults shared by the LLM, embeddings and cache layers.
"""

# =============================================================================
# LLM Default Models
# =============================================================================

DEFAULT_OPENAI_MODEL = "gpt-4"
DEFAULT_ANTHROPIC_MODEL = "claude-3-sonnet-20240229"
DEFAULT_GEMINI_MODEL = "gemini-pro"
DEFAULT_OLLAMA_MODEL = "llama-3.2-3b-instruct"
DEFAULT_LOCAL_MODEL = "llama-3.2-3b-instruct"
DEFAULT_ENTERPRISE_MODEL = "gpt-4"


# =============================================================================
# LLM Default Endpoints
# =============================================================================

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_ANTHROPIC_BASE_URL = "https://api.anthropic.com/v1"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_LOCAL_LLM_URL = "http://localhost:11434/v1"

# Placeholder key accepted by OpenAI-compatible local servers
LOCAL_API_KEY_PLACEHOLDER = "not-needed"


# =============================================================================
# LLM Call Defaults
# =============================================================================

DEFAULT_TEMPERATURE = 0.1
DEFAULT_MAX_TOKENS = 4000

# Seconds
DEFAULT_LLM_TIMEOUT = 120.0


# =============================================================================
# Tokens
# =============================================================================

# Seconds a token read from the environment is trusted before re-reading
TOKEN_TTL_SECONDS = 60 * 60

ENTERPRISE_TOKEN_ENV = "ENTERPRISE_LLM_TOKEN"
APIGEE_TOKEN_ENV = "APIGEE_TOKEN"


# =============================================================================
# Embeddings
# =============================================================================

DEFAULT_EMBEDDINGS_PROVIDER = "local"
DEFAULT_EMBEDDINGS_MODEL = "nomic-embed-text"
DEFAULT_EMBEDDINGS_DIMENSIONS = 768

DEFAULT_OPENAI_EMBEDDINGS_URL = "https://api.openai.com"
DEFAULT_COHERE_URL = "https://api.cohere.ai"
DEFAULT_HUGGINGFACE_URL = "https://api-inference.huggingface.co"

# Seconds
DEFAULT_EMBEDDING_TIMEOUT = 30.0
DEFAULT_BATCH_EMBEDDING_TIMEOUT = 60.0

EMBEDDING_BATCH_SIZE = 10


# =============================================================================
# Analysis Cache
# =============================================================================

ANALYSIS_CACHE_TTL_SECONDS = 24 * 60 * 60
CACHE_SWEEP_INTERVAL_SECONDS = 60 * 60
