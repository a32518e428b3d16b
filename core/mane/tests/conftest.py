import os
from typing import Optional

import numpy as np
import pytest

from mane.engine.llm import ChatModel, LLMUnavailableError
from mane.memory.vault import IndexedDocument, SearchResult


class FakeIndex:
    """In-memory document index with fixed embeddings keyed by content."""

    def __init__(self, vectors: Optional[dict] = None):
        self.documents: list[IndexedDocument] = []
        self.vectors = {k: np.asarray(v, dtype=float) for k, v in (vectors or {}).items()}
        self.failing: set[str] = set()

    def add(self, file_path: str, content: str, media_type: str = "text", vector=None):
        self.documents.append(IndexedDocument(
            file_path=file_path,
            file_name=os.path.basename(file_path),
            media_type=media_type,
            content=content,
        ))
        if vector is not None:
            self.vectors[content] = np.asarray(vector, dtype=float)

    async def add_document(self, file_path: str, content: str, media_type: str = "text") -> str:
        self.documents = [d for d in self.documents if d.file_path != file_path]
        self.add(file_path, content, media_type)
        return f"doc_{len(self.documents)}"

    async def count(self) -> int:
        return len(self.documents)

    async def clear(self):
        self.documents = []

    async def search(self, query, limit=10, media_type=None):
        docs = [d for d in self.documents if media_type is None or d.media_type == media_type]
        return [
            SearchResult(
                file_path=d.file_path,
                file_name=d.file_name,
                media_type=d.media_type,
                content=d.content,
                score=1.0 - i * 0.1,
            )
            for i, d in enumerate(docs[:limit])
        ]

    async def get_all_documents(self):
        return list(self.documents)

    async def generate_embedding(self, text: str):
        if text in self.failing:
            raise RuntimeError(f"cannot embed {text}")
        if text in self.vectors:
            return self.vectors[text]
        return np.zeros(3)


class ScriptedChatModel(ChatModel):
    """Replays canned responses; an Exception entry is raised instead."""

    name = "scripted"

    def __init__(self, responses=None, healthy: bool = True):
        self.responses = list(responses or [])
        self.healthy = healthy
        self.calls: list[list[dict]] = []
        self.closed = False

    def _next(self, messages):
        self.calls.append([dict(m) for m in messages])
        if not self.responses:
            raise LLMUnavailableError("script exhausted")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def invoke(self, messages):
        return self._next(messages)

    async def stream(self, messages):
        text = self._next(messages)
        middle = len(text) // 2
        for chunk in (text[:middle], text[middle:]):
            if chunk:
                yield chunk

    async def check_health(self):
        return self.healthy

    async def close(self):
        self.closed = True


@pytest.fixture
def index():
    idx = FakeIndex()
    idx.add("/photos/cat1.jpg", "a photo of a cat on a sofa", "image")
    idx.add("/photos/cat2.jpg", "a cat sleeping in the sun", "image")
    idx.add("/docs/taxes.txt", "tax return for 2023", "text")
    return idx
