"""
Content-based file organisation.

Documents are clustered with k-means over their embeddings, each cluster is
named by the language model, and the result can be turned into a batch of
createFolder + move proposals.
"""

import asyncio
import math
import os
import re
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from mane.config import ORGANIZE_TARGET
from mane.engine.llm import ChatModel
from mane.memory.vault import DocumentIndex, IndexedDocument
from mane.services.dedup import FileRef
from mane.tools.base import FileAction, FileActionType, generate_action_id
from mane.utils.logging import logger


MIN_DOCUMENTS = 3
MAX_KMEANS_ITERATIONS = 100
SAMPLE_FILES = 5
PREVIEW_CHARS = 200

LABEL_PROMPT = """Analyze these files and provide:
1. A short descriptive label (3-5 words)
2. A suggested folder name (lowercase, underscores, no spaces)
3. 3-5 keywords describing the content

Files in this cluster:
{files}

Respond in this exact format:
Label: [your label]
Folder: [folder_name]
Keywords: [keyword1, keyword2, keyword3]"""

_LABEL = re.compile(r"Label:\s*(.+)", re.IGNORECASE)
_FOLDER = re.compile(r"Folder:\s*(\S+)", re.IGNORECASE)
_KEYWORDS = re.compile(r"Keywords:\s*(.+)", re.IGNORECASE)


@dataclass
class ClusterResult:
    """A group of files that belong together."""

    id: int
    label: str
    suggested_folder_name: str
    files: list[FileRef] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "suggestedFolderName": self.suggested_folder_name,
            "files": [f.to_dict() for f in self.files],
            "keywords": self.keywords,
        }


def choose_k(n: int, max_clusters: int) -> int:
    return min(max(2, math.floor(math.sqrt(n / 2))), max_clusters)


def kmeans(
    vectors: np.ndarray,
    k: int,
    rng: np.random.Generator,
    max_iterations: int = MAX_KMEANS_ITERATIONS,
) -> np.ndarray:
    """Cluster assignments for each row, k-means++ seeded."""
    n = len(vectors)

    # k-means++: next centroid drawn with probability proportional to the
    # squared distance from the nearest existing one
    centroids = [vectors[rng.integers(n)]]
    for _ in range(1, k):
        dist_sq = np.min(
            [np.sum((vectors - c) ** 2, axis=1) for c in centroids], axis=0
        )
        total = dist_sq.sum()
        if total > 0:
            idx = rng.choice(n, p=dist_sq / total)
        else:
            idx = rng.integers(n)
        centroids.append(vectors[idx])
    centroids = np.array(centroids, dtype=np.float64)

    assignments = np.full(n, -1)
    for iteration in range(max_iterations):
        distances = np.linalg.norm(vectors[:, None, :] - centroids[None, :, :], axis=2)
        new_assignments = distances.argmin(axis=1)

        if np.array_equal(new_assignments, assignments):
            logger.info(f"K-means converged after {iteration + 1} iterations")
            break
        assignments = new_assignments

        for c in range(k):
            members = vectors[assignments == c]
            if len(members):
                centroids[c] = members.mean(axis=0)

    return assignments


def sanitize_folder_name(name: str) -> str:
    return re.sub(r"[^a-z0-9_]", "_", name.strip().lower())


class ClusterOrganizer:
    """Groups indexed documents by content and proposes a folder layout."""

    def __init__(
        self,
        index: DocumentIndex,
        llm: Optional[ChatModel] = None,
        seed: Optional[int] = None,
    ):
        self.index = index
        self.llm = llm
        self.seed = seed

    async def _embed_all(self, documents: list[IndexedDocument]):
        results = await asyncio.gather(
            *(self.index.generate_embedding(doc.content) for doc in documents),
            return_exceptions=True,
        )
        kept, vectors = [], []
        for doc, result in zip(documents, results):
            if isinstance(result, Exception):
                logger.warning(f"Failed to generate embedding for {doc.file_name}: {result}")
                continue
            kept.append(doc)
            vectors.append(np.asarray(result, dtype=np.float64))
        return kept, vectors

    async def organize_files(self, max_clusters: int = 10) -> list[ClusterResult]:
        """Cluster every indexed document. Fewer than three yields no clusters."""
        if max_clusters < 2:
            raise ValueError("max_clusters must be at least 2")

        documents = await self.index.get_all_documents()
        if len(documents) < MIN_DOCUMENTS:
            logger.info("Not enough documents to cluster")
            return []

        documents, vectors = await self._embed_all(documents)
        if len(documents) < MIN_DOCUMENTS:
            return []

        k = choose_k(len(documents), max_clusters)
        logger.info(f"Clustering {len(documents)} documents into {k} clusters")

        rng = np.random.default_rng(self.seed)
        assignments = kmeans(np.vstack(vectors), k, rng)

        clusters: dict[int, list[IndexedDocument]] = {}
        for doc, cluster_id in zip(documents, assignments):
            clusters.setdefault(int(cluster_id), []).append(doc)

        results = []
        for cluster_id, docs in clusters.items():
            results.append(await self._label_cluster(cluster_id, docs))

        results.sort(key=lambda c: len(c.files), reverse=True)
        logger.info(f"Generated {len(results)} clusters")
        return results

    async def _label_cluster(self, cluster_id: int, docs: list[IndexedDocument]) -> ClusterResult:
        result = ClusterResult(
            id=cluster_id,
            label=f"Cluster {cluster_id + 1}",
            suggested_folder_name=f"cluster_{cluster_id + 1}",
            files=[FileRef(d.file_path, d.file_name, d.media_type) for d in docs],
        )

        if self.llm is None:
            return result

        samples = []
        for doc in docs[:SAMPLE_FILES]:
            preview = doc.content
            if len(preview) > PREVIEW_CHARS:
                preview = preview[:PREVIEW_CHARS] + "..."
            samples.append(f"- {doc.file_name}: {preview}")

        prompt = LABEL_PROMPT.format(files="\n".join(samples))
        try:
            content = await self.llm.invoke([{"role": "user", "content": prompt}])
        except Exception as e:
            logger.warning(f"Failed to label cluster {cluster_id}: {e}")
            return result

        label = _LABEL.search(content)
        folder = _FOLDER.search(content)
        keywords = _KEYWORDS.search(content)

        if label:
            result.label = label.group(1).strip()
        if folder:
            name = sanitize_folder_name(folder.group(1))
            if name.strip("_"):
                result.suggested_folder_name = name
        if keywords:
            raw = keywords.group(1).strip().strip("[]")
            result.keywords = [k.strip() for k in raw.split(",") if k.strip()]

        return result


def generate_organize_actions(
    clusters: list[ClusterResult],
    target_folder: Optional[str] = None,
) -> list[FileAction]:
    """
    One createFolder per cluster plus a move for each of its files.
    Single-file clusters are left where they are.
    """
    base = os.path.abspath(os.path.expanduser(target_folder or ORGANIZE_TARGET))
    actions = []

    for cluster in clusters:
        if len(cluster.files) < 2:
            continue

        folder = os.path.join(base, cluster.suggested_folder_name)
        actions.append(FileAction(
            id=generate_action_id("create"),
            type=FileActionType.CREATE_FOLDER,
            destination_path=folder,
            requires_permission=base,
            description=f'Create folder "{cluster.suggested_folder_name}" for {cluster.label}',
        ))

        for f in cluster.files:
            actions.append(FileAction(
                id=generate_action_id("move"),
                type=FileActionType.MOVE,
                source_path=f.file_path,
                destination_path=os.path.join(folder, f.file_name),
                requires_permission=folder,
                description=f'Move "{f.file_name}" to {cluster.suggested_folder_name}',
            ))

    return actions
