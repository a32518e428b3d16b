"""
Language model clients.

The agent talks to the model through ChatModel: a full completion
(invoke) or a chunked one (stream) over a list of
{"role": "system"|"user"|"assistant", "content": "..."} messages.

Two backends:
- OllamaChatModel: an Ollama server over HTTP (default)
- LlamaCppChatModel: a local GGUF model loaded with llama-cpp-python
"""

import asyncio
import json
import queue
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import AsyncGenerator, Optional

import httpx

from mane.config import (
    LLAMA_MODEL_PATH,
    LLM_BACKEND,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
    OLLAMA_MODEL,
    OLLAMA_URL,
)
from mane.utils.logging import logger


class LLMUnavailableError(RuntimeError):
    """The language model could not be reached or failed to answer."""


class ChatModel(ABC):
    """Chat completion endpoint used by the agent."""

    name: str = "unknown"

    @abstractmethod
    async def invoke(self, messages: list[dict]) -> str:
        """Return the full completion for the transcript."""

    @abstractmethod
    def stream(self, messages: list[dict]) -> AsyncGenerator[str, None]:
        """Yield the completion in chunks."""

    @abstractmethod
    async def check_health(self) -> bool:
        """Whether the model endpoint is reachable."""

    async def close(self) -> None:
        """Release any held resources."""


class OllamaChatModel(ChatModel):
    """Chat model served by Ollama."""

    def __init__(
        self,
        base_url: str = OLLAMA_URL,
        model: str = OLLAMA_MODEL,
        temperature: float = LLM_TEMPERATURE,
        timeout: float = LLM_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.name = model
        self.temperature = temperature
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, connect=5.0),
            transport=transport,
        )

    @staticmethod
    def _content(data) -> str:
        """Pull the message text out of one /api/chat reply or chunk."""
        if not isinstance(data, dict):
            raise LLMUnavailableError(f"Unexpected Ollama reply: {data!r}")
        message = data.get("message") or {}
        if not isinstance(message, dict):
            raise LLMUnavailableError(f"Unexpected Ollama message: {message!r}")
        return message.get("content") or ""

    def _payload(self, messages: list[dict], stream: bool) -> dict:
        return {
            "model": self.model,
            "messages": messages,
            "stream": stream,
            "options": {"temperature": self.temperature},
        }

    async def invoke(self, messages: list[dict]) -> str:
        try:
            response = await self._client.post("/api/chat", json=self._payload(messages, stream=False))
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, httpx.StreamError, ValueError) as e:
            raise LLMUnavailableError(f"Ollama request failed: {e}") from e

        return self._content(data)

    async def stream(self, messages: list[dict]) -> AsyncGenerator[str, None]:
        try:
            async with self._client.stream(
                "POST", "/api/chat", json=self._payload(messages, stream=True)
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    chunk = json.loads(line)
                    content = self._content(chunk)
                    if content:
                        yield content
                    if chunk.get("done"):
                        break
        except (httpx.HTTPError, httpx.StreamError, ValueError) as e:
            raise LLMUnavailableError(f"Ollama stream failed: {e}") from e

    async def check_health(self) -> bool:
        try:
            response = await self._client.get("/api/tags")
        except httpx.HTTPError as e:
            logger.warning(f"Ollama is not available at {self.base_url}: {e}")
            return False

        if response.is_success:
            return True
        logger.warning(f"Ollama is not responding properly (status {response.status_code})")
        return False

    async def close(self) -> None:
        await self._client.aclose()


class LlamaCppChatModel(ChatModel):
    """
    Local GGUF model via llama-cpp-python.
    The model is loaded on first use and inference runs in the thread pool.
    """

    def __init__(
        self,
        model_path: Path,
        n_ctx: int = 8192,
        n_gpu_layers: int = -1,  # -1 = all layers on GPU
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = 1024,
    ):
        self.model_path = Path(model_path)
        self.name = self.model_path.stem
        self.n_ctx = n_ctx
        self.n_gpu_layers = n_gpu_layers
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._llm = None
        self._lock = asyncio.Lock()

    async def _ensure_loaded(self):
        async with self._lock:
            if self._llm is not None:
                return self._llm

            if not self.model_path.exists():
                raise LLMUnavailableError(f"Model not found: {self.model_path}")

            logger.info(f"Loading {self.model_path}...")

            def do_load():
                from llama_cpp import Llama

                return Llama(
                    model_path=str(self.model_path),
                    n_ctx=self.n_ctx,
                    n_gpu_layers=self.n_gpu_layers,
                    verbose=False,
                )

            loop = asyncio.get_event_loop()
            try:
                self._llm = await loop.run_in_executor(None, do_load)
            except Exception as e:
                logger.error(f"Failed to load {self.model_path}: {e}")
                raise LLMUnavailableError(f"Model loading failed: {e}") from e

            logger.info(f"Model {self.name} loaded successfully")
            return self._llm

    async def invoke(self, messages: list[dict]) -> str:
        llm = await self._ensure_loaded()

        loop = asyncio.get_event_loop()
        try:
            response = await loop.run_in_executor(
                None,
                lambda: llm.create_chat_completion(
                    messages=messages,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
            )
        except Exception as e:
            raise LLMUnavailableError(f"Inference failed: {e}") from e

        try:
            return response["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise LLMUnavailableError(f"Malformed completion: {e!r}") from e

    async def stream(self, messages: list[dict]) -> AsyncGenerator[str, None]:
        llm = await self._ensure_loaded()

        loop = asyncio.get_event_loop()
        q: queue.Queue = queue.Queue()

        def generate():
            try:
                for chunk in llm.create_chat_completion(
                    messages=messages,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    stream=True,
                ):
                    delta = chunk["choices"][0].get("delta", {})
                    if delta.get("content"):
                        q.put(delta["content"])
                q.put(None)  # Signal completion
            except Exception as e:
                q.put(e)

        thread = threading.Thread(target=generate, daemon=True)
        thread.start()

        while True:
            try:
                item = await loop.run_in_executor(None, lambda: q.get(timeout=0.1))
            except queue.Empty:
                continue
            if item is None:
                break
            if isinstance(item, Exception):
                raise LLMUnavailableError(f"Inference failed: {item}") from item
            yield item

        thread.join()

    async def check_health(self) -> bool:
        return self.model_path.exists()

    async def close(self) -> None:
        self._llm = None


def create_chat_model() -> ChatModel:
    """Build the chat model selected by configuration."""
    if LLM_BACKEND == "llama_cpp":
        if not LLAMA_MODEL_PATH:
            raise ValueError("MANE_LLAMA_MODEL_PATH must be set for the llama_cpp backend")
        return LlamaCppChatModel(Path(LLAMA_MODEL_PATH))
    if LLM_BACKEND == "ollama":
        return OllamaChatModel()
    raise ValueError(f"Unknown LLM backend: {LLM_BACKEND}")
