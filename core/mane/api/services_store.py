"""Shared agent services for API routes."""

import asyncio
from typing import Optional

from mane.engine.llm import ChatModel, create_chat_model
from mane.engine.orchestrator import AgentOrchestrator
from mane.engine.sessions import SessionStore
from mane.memory.vault import DocumentIndex, Vault
from mane.services.action_history import ActionHistory
from mane.services.cluster import ClusterOrganizer
from mane.services.dedup import DuplicateDetector
from mane.tools import build_default_registry
from mane.utils.logging import logger


class AgentServices:
    """Everything the agent routes share: index, model, sessions and history."""

    def __init__(
        self,
        index: DocumentIndex,
        llm: ChatModel,
        sessions: Optional[SessionStore] = None,
        history: Optional[ActionHistory] = None,
    ):
        self.index = index
        self.llm = llm
        self.registry = build_default_registry(index)
        self.sessions = sessions or SessionStore()
        self.history = history or ActionHistory()
        self.orchestrator = AgentOrchestrator(llm, self.registry, self.sessions)
        self.dedup = DuplicateDetector(index)
        self.organizer = ClusterOrganizer(index, llm)

    @classmethod
    async def create(cls) -> "AgentServices":
        """Open the on-disk vault and connect the configured model."""
        vault = Vault()
        await vault.initialize()
        services = cls(index=vault, llm=create_chat_model())
        logger.info(f"Agent services ready (model: {services.llm.name})")
        return services

    async def shutdown(self) -> None:
        await self.llm.close()


services: Optional[AgentServices] = None
_create_lock = asyncio.Lock()


async def get_services() -> AgentServices:
    """Get or create the shared services."""
    global services
    if services is None:
        async with _create_lock:
            # Another request may have finished creating them while we waited
            if services is None:
                services = await AgentServices.create()
    return services
