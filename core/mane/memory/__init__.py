"""Memory module - document index and embeddings."""

from mane.memory.embeddings import EmbeddingModel
from mane.memory.vault import (
    MEDIA_TYPES,
    DocumentIndex,
    IndexedDocument,
    SearchResult,
    Vault,
)

__all__ = [
    "EmbeddingModel",
    "MEDIA_TYPES",
    "DocumentIndex",
    "IndexedDocument",
    "SearchResult",
    "Vault",
]
