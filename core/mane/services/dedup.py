"""
Duplicate detection over the document index.

Documents whose embeddings are at least `threshold` cosine-similar are
unioned; each connected component with two or more members is reported as
one duplicate group.
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from mane.config import DEFAULT_DUPLICATE_THRESHOLD
from mane.memory.vault import DocumentIndex, IndexedDocument
from mane.tools.base import FileAction, FileActionType, generate_action_id
from mane.utils.logging import logger


class UnionFind:
    """Disjoint sets over 0..n-1 with path compression and union by rank."""

    def __init__(self, size: int):
        self.parent = list(range(size))
        self.rank = [0] * size

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, x: int, y: int) -> None:
        root_x, root_y = self.find(x), self.find(y)
        if root_x == root_y:
            return
        if self.rank[root_x] < self.rank[root_y]:
            root_x, root_y = root_y, root_x
        self.parent[root_y] = root_x
        if self.rank[root_x] == self.rank[root_y]:
            self.rank[root_x] += 1

    def groups(self) -> dict[int, list[int]]:
        """Members of each set, keyed by root, members in ascending order."""
        result: dict[int, list[int]] = {}
        for i in range(len(self.parent)):
            result.setdefault(self.find(i), []).append(i)
        return result


@dataclass
class FileRef:
    file_path: str
    file_name: str
    media_type: str

    def to_dict(self) -> dict:
        return {
            "filePath": self.file_path,
            "fileName": self.file_name,
            "mediaType": self.media_type,
        }


@dataclass
class DuplicateFile(FileRef):
    similarity: float = 0.0

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["similarity"] = self.similarity
        return data


@dataclass
class DuplicateGroup:
    """The file to keep, and the files that duplicate it."""

    primary: FileRef
    duplicates: list[DuplicateFile] = field(default_factory=list)
    average_similarity: float = 0.0

    def to_dict(self) -> dict:
        return {
            "primary": self.primary.to_dict(),
            "duplicates": [d.to_dict() for d in self.duplicates],
            "averageSimilarity": self.average_similarity,
        }


def cosine_similarity_matrix(vectors: np.ndarray) -> np.ndarray:
    """Pairwise cosine similarity; rows with zero norm compare as 0."""
    norms = np.linalg.norm(vectors, axis=1)
    safe = np.where(norms == 0, 1.0, norms)
    unit = vectors / safe[:, None]
    unit[norms == 0] = 0.0
    return unit @ unit.T


class DuplicateDetector:
    """Finds groups of near-identical documents in the index."""

    def __init__(self, index: DocumentIndex):
        self.index = index

    async def _embed_all(
        self, documents: list[IndexedDocument]
    ) -> tuple[list[IndexedDocument], Optional[np.ndarray]]:
        """Embed documents concurrently; failed ones are dropped."""
        results = await asyncio.gather(
            *(self.index.generate_embedding(doc.content) for doc in documents),
            return_exceptions=True,
        )

        kept, vectors = [], []
        for doc, result in zip(documents, results):
            if isinstance(result, Exception):
                logger.warning(f"Failed to embed {doc.file_path}: {result}")
                continue
            kept.append(doc)
            vectors.append(np.asarray(result, dtype=np.float64))

        if not vectors:
            return kept, None
        return kept, np.vstack(vectors)

    async def find_duplicates(
        self,
        media_type: str = "all",
        threshold: float = DEFAULT_DUPLICATE_THRESHOLD,
    ) -> list[DuplicateGroup]:
        """
        Group documents whose similarity meets the threshold.

        Grouping is transitive: a member may join through a chain, so its
        similarity to the primary can fall below the threshold.
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be between 0 and 1")

        documents = await self.index.get_all_documents()
        if media_type and media_type != "all":
            documents = [d for d in documents if d.media_type == media_type]

        if len(documents) < 2:
            return []

        logger.info(f"Checking {len(documents)} documents for duplicates (threshold {threshold})")

        documents, vectors = await self._embed_all(documents)
        if vectors is None or len(documents) < 2:
            return []

        similarity = cosine_similarity_matrix(vectors)
        n = len(documents)
        uf = UnionFind(n)
        for i in range(n):
            for j in range(i + 1, n):
                if similarity[i, j] >= threshold:
                    uf.union(i, j)

        groups = []
        for members in uf.groups().values():
            if len(members) < 2:
                continue

            primary_idx = members[0]
            primary = documents[primary_idx]
            duplicates = [
                DuplicateFile(
                    file_path=documents[m].file_path,
                    file_name=documents[m].file_name,
                    media_type=documents[m].media_type,
                    similarity=round(float(similarity[primary_idx, m]), 3),
                )
                for m in members[1:]
            ]
            average = round(sum(d.similarity for d in duplicates) / len(duplicates), 3)

            groups.append(DuplicateGroup(
                primary=FileRef(primary.file_path, primary.file_name, primary.media_type),
                duplicates=duplicates,
                average_similarity=average,
            ))

        # Stable: ties keep the input order of their primaries
        groups.sort(key=lambda g: len(g.duplicates), reverse=True)

        logger.info(f"Found {len(groups)} duplicate groups")
        return groups


def generate_dedup_actions(groups: list[DuplicateGroup]) -> list[FileAction]:
    """Propose deleting every duplicate, keeping each group's primary."""
    actions = []
    for group in groups:
        for dup in group.duplicates:
            actions.append(FileAction(
                id=generate_action_id(),
                type=FileActionType.DELETE,
                source_path=dup.file_path,
                requires_permission=os.path.dirname(dup.file_path),
                description=(
                    f'Delete duplicate "{dup.file_name}" '
                    f'(keeping "{group.primary.file_name}", similarity {dup.similarity})'
                ),
            ))
    return actions
