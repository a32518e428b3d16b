"""
ReAct agent that turns a natural-language command into a batch of proposed
file actions.

The orchestrator drives the loop (model -> parse -> tool -> observation),
collects every FileAction the tools propose, and only once the loop has
ended cleanly stores them as a pending session for the user to confirm.
Nothing here touches the filesystem.
"""

import re
from dataclasses import dataclass, field
from typing import AsyncGenerator, Optional

from mane.config import MAX_ITERATIONS
from mane.engine.llm import ChatModel, LLMUnavailableError
from mane.engine.parser import (
    ParsedAction,
    ParsedFinal,
    ParsedMalformed,
    parse_react_response,
)
from mane.engine.sessions import SessionStore
from mane.tools.base import FileAction, ToolRegistry
from mane.utils.logging import logger


FALLBACK_ANSWER = (
    "I was unable to complete the task within the allowed steps. "
    "Please try a simpler command."
)
NUDGE_MESSAGE = "Please continue with your next Action or provide a Final Answer."
FORMAT_REMINDER = (
    "Respond with Thought, Action and Action Input (a single JSON object), "
    "or with Thought and Final Answer."
)
UNAVAILABLE_ANSWER = "The language model is not available. Please ensure it is running."

_SESSION_SUFFIX = re.compile(r"\[Session:\s*([A-Za-z0-9_\-]+)\]")


def format_session_suffix(session_id: str) -> str:
    return f"\n\n[Session: {session_id}]"


def extract_session_id(text: str) -> Optional[str]:
    """Pull the session id out of a final answer, if it carries one."""
    match = _SESSION_SUFFIX.search(text or "")
    return match.group(1) if match else None


@dataclass
class AgentResponse:
    """Outcome of one agent command."""

    thought: str
    actions: list[FileAction]
    final_answer: str
    requires_confirmation: bool
    error: Optional[str] = None
    session_id: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "thought": self.thought,
            "actions": [a.to_dict() for a in self.actions],
            "finalAnswer": self.final_answer,
            "requiresConfirmation": self.requires_confirmation,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.session_id is not None:
            data["sessionId"] = self.session_id
        return data


@dataclass
class AgentEvent:
    """
    One step of a streamed agent run.

    type: thought | action | observation | final | error
    The terminal event (final or error) carries the complete response.
    """

    type: str
    content: str
    action: Optional[FileAction] = None
    response: Optional[AgentResponse] = field(default=None, repr=False)

    def to_dict(self) -> dict:
        data = {"type": self.type, "content": self.content}
        if self.action is not None:
            data["action"] = self.action.to_dict()
        if self.response is not None and self.response.session_id:
            data["sessionId"] = self.response.session_id
        return data


class AgentOrchestrator:
    """
    ReAct loop over the tool registry.

    One command runs strictly sequentially: each iteration waits for a
    single model call, and at most one tool runs per iteration.
    """

    SYSTEM_PROMPT = """You are an intelligent file organization assistant. You can search, move, copy, rename, delete and organize files.

AVAILABLE TOOLS:
{tools}

RESPONSE FORMAT - You must respond in ONE of these two formats:

FORMAT 1 - When you need to use a tool:
Thought: [your reasoning - one sentence]
Action: [exact tool name]
Action Input: [valid JSON object]

FORMAT 2 - When you are done and have a final answer:
Thought: [your final reasoning]
Final Answer: [your complete response to the user]

CRITICAL RULES:
1. Output ONLY ONE action per response. STOP after Action Input and wait for the Observation.
2. DO NOT continue after Action Input. DO NOT assume results. DO NOT write multiple actions.
3. DO NOT write placeholder text like "[receives results]" or "[continues...]".
4. After you see "Observation:", analyze the ACTUAL results before your next action.
5. Use EXACT file paths from find_files results - never make up paths.
6. Always call find_files FIRST before any move/copy/rename/delete operations.
7. Call create_folder BEFORE moving files into a new folder.
8. Only output "Final Answer:" when you have completed ALL necessary tool calls.
9. File operations are only PROPOSED. The user confirms them afterwards, so never claim they already happened.

WORKFLOW EXAMPLE:
User: "Move cat images to Desktop/cats"

Response 1:
Thought: I need to find images of cats first.
Action: find_files
Action Input: {{"query": "cat images", "media_type": "image", "limit": 20}}

[System provides Observation with actual results]

Response 2:
Thought: Found 2 cat images. Now I need to create the cats folder.
Action: create_folder
Action Input: {{"folder_path": "/Users/name/Desktop/cats"}}

[System provides Observation]

Response 3:
Thought: Folder action created. Now I'll move the first image.
Action: move_file
Action Input: {{"source_path": "/actual/path/from/results/cat1.jpg", "destination_path": "/Users/name/Desktop/cats"}}

[Continue one action at a time until done, then give Final Answer]"""

    def __init__(
        self,
        llm: ChatModel,
        registry: ToolRegistry,
        sessions: SessionStore,
        max_iterations: int = MAX_ITERATIONS,
    ):
        self.llm = llm
        self.registry = registry
        self.sessions = sessions
        self.max_iterations = max_iterations
        self._available: Optional[bool] = None

    # === Public API ===

    async def execute(self, command: str) -> AgentResponse:
        """Run a command to completion."""
        response = None
        async for event in self._run(command, streaming=False):
            if event.response is not None:
                response = event.response
        return response

    async def execute_stream(self, command: str) -> AsyncGenerator[AgentEvent, None]:
        """
        Run a command, yielding each step as it happens.

        A consumer that stops reading early abandons the run; no session is
        created in that case.
        """
        async for event in self._run(command, streaming=True):
            yield event

    async def check_health(self) -> bool:
        self._available = await self.llm.check_health()
        return self._available

    def get_status(self) -> dict:
        return {
            "available": bool(self._available),
            "model": self.llm.name,
            "tools": self.registry.get_tool_names(),
        }

    def build_messages(self, command: str) -> list[dict]:
        """Seed transcript: system prompt with the tool catalog, then the command."""
        system_prompt = self.SYSTEM_PROMPT.format(
            tools=self.registry.generate_tool_descriptions()
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": command},
        ]

    # === Loop ===

    async def _run(self, command: str, streaming: bool) -> AsyncGenerator[AgentEvent, None]:
        if not command or not command.strip():
            yield self._error_event("Command is empty", "Please provide a command.")
            return

        if not self._available and not await self.check_health():
            yield self._error_event("LLM unavailable", UNAVAILABLE_ANSWER)
            return

        messages = self.build_messages(command)
        collected: list[FileAction] = []
        last_thought = ""
        final_answer: Optional[str] = None

        for iteration in range(1, self.max_iterations + 1):
            logger.info(f"ReAct iteration {iteration}")

            try:
                content = await self._complete(messages, streaming)
            except LLMUnavailableError as e:
                self._available = False
                logger.error(f"Agent execution failed: {e}")
                yield self._error_event(str(e), f"Error: {e}")
                return

            logger.debug(f"LLM Response:\n{content}")
            parsed = parse_react_response(content)

            if parsed.thought:
                last_thought = parsed.thought
                yield AgentEvent(type="thought", content=parsed.thought)

            if isinstance(parsed, ParsedFinal):
                final_answer = parsed.answer
                logger.info("Agent reached final answer")
                break

            if isinstance(parsed, ParsedAction):
                yield AgentEvent(type="action", content=f"Using {parsed.tool}...")

                result = await self.registry.execute_tool(parsed.tool, parsed.tool_input)

                proposed = result.proposed_action
                if proposed is not None:
                    collected.append(proposed)
                    yield AgentEvent(type="action", content=proposed.description, action=proposed)

                observation = result.to_observation()
                yield AgentEvent(type="observation", content=observation)
                reply = f"Observation: {observation}"

            elif isinstance(parsed, ParsedMalformed):
                observation = f"Error: {parsed.error}. {FORMAT_REMINDER}"
                yield AgentEvent(type="observation", content=observation)
                reply = f"Observation: {observation}"

            else:
                reply = NUDGE_MESSAGE

            messages.append({"role": "assistant", "content": content})
            messages.append({"role": "user", "content": reply})

        if final_answer is None:
            logger.warning(f"No final answer after {self.max_iterations} iterations")
            final_answer = FALLBACK_ANSWER

        session_id = self.sessions.store(collected) if collected else None
        if session_id:
            final_answer += format_session_suffix(session_id)

        response = AgentResponse(
            thought=last_thought,
            actions=collected,
            final_answer=final_answer,
            requires_confirmation=bool(collected),
            session_id=session_id,
        )
        yield AgentEvent(type="final", content=final_answer, response=response)

    async def _complete(self, messages: list[dict], streaming: bool) -> str:
        if not streaming:
            return await self.llm.invoke(messages)

        chunks = []
        async for chunk in self.llm.stream(messages):
            chunks.append(chunk)
        return "".join(chunks)

    def _error_event(self, error: str, answer: str) -> AgentEvent:
        response = AgentResponse(
            thought="",
            actions=[],
            final_answer=answer,
            requires_confirmation=False,
            error=error,
        )
        return AgentEvent(type="error", content=answer, response=response)
