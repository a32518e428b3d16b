"""Configuration settings for Mane Core."""

import os
from pathlib import Path

# Logging
LOG_LEVEL = os.environ.get("MANE_LOG_LEVEL", "INFO")

# Paths
DATA_DIR = Path(os.environ.get("MANE_DATA_DIR", Path.home() / ".mane"))
VAULT_DIR = DATA_DIR / "vault"
EMBEDDINGS_DIR = DATA_DIR / "embeddings"

# Embeddings
EMBEDDING_MODEL = os.environ.get("MANE_EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
EMBEDDING_DEVICE = os.environ.get("MANE_EMBEDDING_DEVICE") or None

# Server
HOST = os.environ.get("MANE_HOST", "127.0.0.1")
PORT = int(os.environ.get("MANE_PORT", "3000"))

# API
API_PREFIX = "/api"

# Language model ("ollama" or "llama_cpp")
LLM_BACKEND = os.environ.get("MANE_LLM_BACKEND", "ollama")
OLLAMA_URL = os.environ.get("MANE_OLLAMA_URL", "http://localhost:11434")
OLLAMA_MODEL = os.environ.get("MANE_OLLAMA_MODEL", "qwen2.5")
LLAMA_MODEL_PATH = os.environ.get("MANE_LLAMA_MODEL_PATH", "")
LLM_TEMPERATURE = float(os.environ.get("MANE_LLM_TEMPERATURE", "0.3"))
LLM_TIMEOUT_SECONDS = float(os.environ.get("MANE_LLM_TIMEOUT", "120"))

# Agent
MAX_ITERATIONS = int(os.environ.get("MANE_MAX_ITERATIONS", "15"))
SESSION_TTL_SECONDS = int(os.environ.get("MANE_SESSION_TTL", "600"))
MAX_HISTORY_ENTRIES = int(os.environ.get("MANE_MAX_HISTORY", "50"))
DEFAULT_DUPLICATE_THRESHOLD = 0.95
ORGANIZE_TARGET = os.environ.get("MANE_ORGANIZE_TARGET", str(Path.home() / "Organized"))
