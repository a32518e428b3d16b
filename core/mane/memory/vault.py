"""
Document index backed by LanceDB.

The agent only needs three things from the index: ranked search, the full
document list, and an embedding for arbitrary text. `DocumentIndex` names
that surface; `Vault` is the on-disk implementation.
"""

import asyncio
import os
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

import numpy as np

from mane.config import VAULT_DIR
from mane.memory.embeddings import EmbeddingModel
from mane.utils.logging import logger


MEDIA_TYPES = ("text", "image", "audio")


@dataclass
class IndexedDocument:
    """A file known to the index, with the text used to embed it."""

    file_path: str
    file_name: str
    media_type: str
    content: str


@dataclass
class SearchResult:
    """A search result from the index."""

    file_path: str
    file_name: str
    media_type: str
    content: str
    score: float


class DocumentIndex(Protocol):
    """What the agent core needs from the document index."""

    async def search(
        self, query: str, limit: int = 10, media_type: Optional[str] = None
    ) -> list[SearchResult]:
        ...

    async def get_all_documents(self) -> list[IndexedDocument]:
        ...

    async def generate_embedding(self, text: str) -> np.ndarray:
        ...


def _quote(value: str) -> str:
    return value.replace("'", "''")


class Vault:
    """
    Semantic document storage using LanceDB.

    Each row is one file: its path, media type, the text describing it
    (file contents, or a caption for images/audio) and its embedding.
    Data is persisted to disk at ~/.mane/vault/
    """

    TABLE_NAME = "documents"

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        embedding_model: Optional[EmbeddingModel] = None,
    ):
        self.data_dir = data_dir or VAULT_DIR
        self._db = None
        self._table = None
        self._embedding_model = embedding_model or EmbeddingModel()
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize LanceDB and the embedding model."""
        if self._initialized:
            return

        self.data_dir.mkdir(parents=True, exist_ok=True)

        try:
            import lancedb

            await self._embedding_model.initialize()

            self._db = lancedb.connect(str(self.data_dir))

            if self.TABLE_NAME in self._db.table_names():
                self._table = self._db.open_table(self.TABLE_NAME)
                logger.info(f"Opened existing vault table with {self._table.count_rows()} documents")
            else:
                # Created on first store
                self._table = None
                logger.info("Vault table will be created on first store")

            self._initialized = True
            logger.info("Vault initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize vault: {e}")
            raise RuntimeError(f"Could not initialize vault: {e}")

    def _require_initialized(self):
        if not self._initialized:
            raise RuntimeError("Vault not initialized. Call initialize() first.")

    async def add_document(self, file_path: str, content: str, media_type: str = "text") -> str:
        """
        Index (or re-index) a file.

        Returns:
            The row id
        """
        self._require_initialized()

        if media_type not in MEDIA_TYPES:
            raise ValueError(f"Unknown media type: {media_type}")

        await self.delete_by_path(file_path)

        vector = await self.generate_embedding(content)
        doc_id = str(uuid.uuid4())
        row = {
            "id": doc_id,
            "file_path": file_path,
            "file_name": os.path.basename(file_path),
            "media_type": media_type,
            "content": content,
            "indexed_at": datetime.now().isoformat(),
            "vector": vector.tolist(),
        }

        if self._table is None:
            self._table = self._db.create_table(self.TABLE_NAME, data=[row])
            logger.info("Created vault table")
        else:
            self._table.add([row])

        logger.info(f"Indexed {media_type} document: {file_path}")
        return doc_id

    async def search(
        self,
        query: str,
        limit: int = 10,
        media_type: Optional[str] = None,
    ) -> list[SearchResult]:
        """Vector similarity search, best match first."""
        self._require_initialized()

        if self._table is None:
            return []

        query_vector = await self.generate_embedding(query)
        search_query = self._table.search(query_vector.tolist())

        if media_type and media_type != "all":
            search_query = search_query.where(f"media_type = '{_quote(media_type)}'")

        rows = search_query.limit(limit).to_list()

        # Vectors are unit length, so squared L2 distance d = 2 - 2cos
        return [
            SearchResult(
                file_path=row["file_path"],
                file_name=row["file_name"],
                media_type=row["media_type"],
                content=row["content"],
                score=1.0 - float(row["_distance"]) / 2.0,
            )
            for row in rows
        ]

    async def get_all_documents(self) -> list[IndexedDocument]:
        """Every indexed document, in insertion order."""
        self._require_initialized()

        if self._table is None:
            return []

        rows = self._table.to_arrow().to_pylist()
        return [
            IndexedDocument(
                file_path=row["file_path"],
                file_name=row["file_name"],
                media_type=row["media_type"],
                content=row["content"],
            )
            for row in rows
        ]

    async def generate_embedding(self, text: str) -> np.ndarray:
        """Embed text off the event loop."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._embedding_model.embed_query, text)

    async def delete_by_path(self, file_path: str) -> None:
        self._require_initialized()
        if self._table is not None:
            self._table.delete(f"file_path = '{_quote(file_path)}'")

    async def count(self) -> int:
        if self._table is None:
            return 0
        return self._table.count_rows()

    async def clear(self) -> None:
        """Clear all data from the vault."""
        self._require_initialized()

        if self._table is not None:
            self._db.drop_table(self.TABLE_NAME)
            self._table = None
            logger.info("Vault cleared")
