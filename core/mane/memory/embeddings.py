"""
Sentence embeddings for the document index.

Vectors are L2-normalised, so a dot product is the cosine similarity and
LanceDB's squared L2 distance maps back to it as 1 - d/2.
"""

from pathlib import Path
from typing import Optional

import numpy as np

from mane.config import EMBEDDING_DEVICE, EMBEDDING_MODEL, EMBEDDINGS_DIR
from mane.utils.logging import logger


class EmbeddingModel:
    """sentence-transformers model, all-MiniLM-L6-v2 (384 dims) by default."""

    def __init__(
        self,
        model_name: str = EMBEDDING_MODEL,
        cache_dir: Optional[Path] = None,
        device: Optional[str] = EMBEDDING_DEVICE,
    ):
        self.model_name = model_name
        self.cache_dir = cache_dir or EMBEDDINGS_DIR
        self.device = device
        self._model = None

    async def initialize(self) -> None:
        """Download (first run) and load the model."""
        if self._model is not None:
            return

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Loading embedding model: {self.model_name}")

        try:
            from sentence_transformers import SentenceTransformer

            self._model = SentenceTransformer(
                self.model_name,
                cache_folder=str(self.cache_dir),
                device=self.device,
            )
        except Exception as e:
            logger.error(f"Failed to load embedding model: {e}")
            raise RuntimeError(f"Could not load embedding model: {e}")

        logger.info(f"Embedding model loaded (dim={self.embedding_dim})")

    def embed_query(self, text: str) -> np.ndarray:
        """One text -> unit vector of shape (embedding_dim,)."""
        if self._model is None:
            raise RuntimeError("Embedding model not initialized. Call initialize() first.")

        return self._model.encode(
            text,
            convert_to_numpy=True,
            show_progress_bar=False,
            normalize_embeddings=True,
        )

    @property
    def embedding_dim(self) -> int:
        if self._model is None:
            return 0
        return self._model.get_sentence_embedding_dimension()
