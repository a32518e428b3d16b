"""
Semantic file search tool for Mane.
"""

from mane.memory.vault import MEDIA_TYPES, DocumentIndex
from mane.tools.base import RiskLevel, Tool, ToolParameter, ToolResult
from mane.utils.logging import logger


PREVIEW_CHARS = 200
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class FindFilesTool(Tool):
    """Search indexed files by content or description."""

    def __init__(self, index: DocumentIndex):
        super().__init__(
            name="find_files",
            description=(
                "Search for files based on their content or description. Use this to find "
                "files containing specific topics, objects, or text. For images, searches "
                "through their AI-generated descriptions. Returns matching file paths with "
                "relevance scores."
            ),
            risk_level=RiskLevel.LOW,
            parameters=[
                ToolParameter(
                    "query",
                    "string",
                    'Semantic search query describing what to find (e.g., "images of cats", '
                    '"tax documents from 2023")',
                ),
                ToolParameter(
                    "limit",
                    "number",
                    f"Maximum number of results to return (default: {DEFAULT_LIMIT})",
                    required=False,
                ),
                ToolParameter(
                    "media_type",
                    "string",
                    'Filter by media type: "text", "image", "audio", or "all" (default: "all")',
                    required=False,
                ),
            ],
        )
        self.index = index

    async def execute(self, params: dict) -> ToolResult:
        query = params.get("query")
        if not isinstance(query, str) or not query.strip():
            return ToolResult.fail("query parameter is required")

        limit = params.get("limit", DEFAULT_LIMIT)
        if isinstance(limit, bool) or not isinstance(limit, (int, float)) or limit < 1:
            return ToolResult.fail("limit must be a positive number")
        limit = min(int(limit), MAX_LIMIT)

        media_type = params.get("media_type") or "all"
        if media_type != "all" and media_type not in MEDIA_TYPES:
            return ToolResult.fail(
                f"media_type must be one of: all, {', '.join(MEDIA_TYPES)}"
            )

        logger.info(f"Searching for: \"{query}\" (limit: {limit}, type: {media_type})")

        results = await self.index.search(
            query,
            limit=limit,
            media_type=None if media_type == "all" else media_type,
        )
        results = results[:limit]

        files = [
            {
                "file_path": r.file_path,
                "file_name": r.file_name,
                "media_type": r.media_type,
                "relevance": round(r.score, 2),
                "preview": (
                    r.content[:PREVIEW_CHARS] + "..."
                    if len(r.content) > PREVIEW_CHARS
                    else r.content
                ),
            }
            for r in results
        ]

        logger.info(f"Found {len(files)} matching files")

        return ToolResult(
            success=True,
            data={"query": query, "total_found": len(files), "files": files},
        )
