import pytest

from conftest import ScriptedChatModel
from mane.engine.llm import LLMUnavailableError
from mane.engine.orchestrator import (
    FALLBACK_ANSWER,
    NUDGE_MESSAGE,
    AgentOrchestrator,
    extract_session_id,
)
from mane.engine.sessions import SessionStore
from mane.tools import build_default_registry
from mane.tools.base import FileActionType


SEARCH = 'Thought: Find the cats.\nAction: find_files\nAction Input: {"query": "cats", "media_type": "image"}'
CREATE = 'Thought: Make a folder.\nAction: create_folder\nAction Input: {"folder_path": "/home/u/cats"}'
MOVE = (
    'Thought: Move it.\nAction: move_file\n'
    'Action Input: {"source_path": "/photos/cat1.jpg", "destination_path": "/home/u/cats"}'
)
FINAL = "Thought: All set.\nFinal Answer: I prepared 2 actions for your cat photos."


def make_agent(index, responses, healthy=True, max_iterations=15):
    llm = ScriptedChatModel(responses, healthy=healthy)
    sessions = SessionStore()
    agent = AgentOrchestrator(llm, build_default_registry(index), sessions, max_iterations=max_iterations)
    return agent, llm, sessions


@pytest.mark.asyncio
async def test_collects_proposals_into_session(index):
    agent, llm, sessions = make_agent(index, [SEARCH, CREATE, MOVE, FINAL])

    response = await agent.execute("Move cat images to ~/cats")

    assert response.requires_confirmation is True
    assert [a.type for a in response.actions] == [FileActionType.CREATE_FOLDER, FileActionType.MOVE]
    assert response.actions[1].destination_path == "/home/u/cats/cat1.jpg"
    assert response.thought == "All set."
    assert response.final_answer.startswith("I prepared 2 actions for your cat photos.")
    assert response.final_answer.endswith(f"\n\n[Session: {response.session_id}]")
    assert extract_session_id(response.final_answer) == response.session_id
    assert sessions.get(response.session_id).actions == response.actions
    assert response.to_dict()["sessionId"] == response.session_id


@pytest.mark.asyncio
async def test_transcript_alternates_and_carries_observations(index):
    agent, llm, _ = make_agent(index, [SEARCH, FINAL])

    await agent.execute("find cats")

    transcript = llm.calls[-1]
    assert [m["role"] for m in transcript] == ["system", "user", "assistant", "user"]
    assert "find_files:" in transcript[0]["content"]
    assert transcript[2]["content"] == SEARCH
    assert transcript[3]["content"].startswith("Observation: {")
    assert "cat1.jpg" in transcript[3]["content"]


@pytest.mark.asyncio
async def test_read_only_run_creates_no_session(index):
    agent, _, sessions = make_agent(index, [SEARCH, FINAL])

    response = await agent.execute("find cats")

    assert response.requires_confirmation is False
    assert response.session_id is None
    assert "[Session:" not in response.final_answer
    assert len(sessions) == 0


@pytest.mark.asyncio
async def test_action_wins_over_final_answer(index):
    mixed = CREATE + "\nFinal Answer: done already"
    agent, llm, _ = make_agent(index, [mixed, FINAL])

    response = await agent.execute("make a cats folder")

    assert len(llm.calls) == 2
    assert len(response.actions) == 1
    assert response.final_answer.startswith("I prepared 2 actions")


@pytest.mark.asyncio
async def test_final_answer_mentioning_an_action_ends_the_loop(index):
    answer = (
        "Thought: No further action: needed.\n"
        "Final Answer: I proposed one action: creating /home/u/cats."
    )
    agent, llm, sessions = make_agent(index, [CREATE, answer])

    response = await agent.execute("make a cats folder")

    assert len(llm.calls) == 2
    assert response.thought == "No further action: needed."
    assert response.final_answer.startswith("I proposed one action: creating /home/u/cats.")
    assert not response.final_answer.startswith(FALLBACK_ANSWER)
    assert sessions.get(response.session_id) is not None


@pytest.mark.asyncio
async def test_malformed_and_narrative_turns_recover(index):
    broken = 'Thought: oops\nAction: find_files\nAction Input: {"query": '
    agent, llm, _ = make_agent(index, [broken, "Let me think about this.", FINAL])

    response = await agent.execute("find cats")

    assert response.error is None
    second, third = llm.calls[1], llm.calls[2]
    assert second[-1]["content"].startswith("Observation: Error: Action Input is not valid JSON")
    assert third[-1]["content"] == NUDGE_MESSAGE


@pytest.mark.asyncio
async def test_tool_failure_becomes_error_observation(index):
    unknown = 'Thought: x\nAction: teleport_file\nAction Input: {}'
    agent, llm, _ = make_agent(index, [unknown, FINAL])

    await agent.execute("teleport")

    assert llm.calls[1][-1]["content"].startswith('Observation: Error: Tool "teleport_file" not found.')


@pytest.mark.asyncio
async def test_exhaustion_returns_fallback_with_collected_actions(index):
    agent, llm, sessions = make_agent(index, [CREATE, CREATE, CREATE], max_iterations=3)

    response = await agent.execute("loop forever")

    assert len(llm.calls) == 3
    assert response.final_answer.startswith(FALLBACK_ANSWER)
    assert len(response.actions) == 3
    assert sessions.get(response.session_id) is not None


@pytest.mark.asyncio
async def test_model_failure_stores_no_session(index):
    agent, _, sessions = make_agent(index, [CREATE, LLMUnavailableError("connection refused")])

    response = await agent.execute("make a folder")

    assert response.error == "connection refused"
    assert response.actions == []
    assert response.requires_confirmation is False
    assert len(sessions) == 0


@pytest.mark.asyncio
async def test_unhealthy_model_short_circuits(index):
    agent, llm, _ = make_agent(index, [FINAL], healthy=False)

    response = await agent.execute("anything")

    assert response.error == "LLM unavailable"
    assert llm.calls == []
    assert agent.get_status()["available"] is False


@pytest.mark.asyncio
async def test_stream_emits_steps_then_final(index):
    agent, _, _ = make_agent(index, [CREATE, FINAL])

    events = [e async for e in agent.execute_stream("make a folder")]

    types = [e.type for e in events]
    assert types[0] == "thought"
    assert types[-1] == "final"
    assert "observation" in types
    proposals = [e for e in events if e.action is not None]
    assert len(proposals) == 1
    assert proposals[0].to_dict()["action"]["type"] == "createFolder"
    assert events[-1].to_dict()["sessionId"] == events[-1].response.session_id


@pytest.mark.asyncio
async def test_abandoned_stream_creates_no_session(index):
    agent, _, sessions = make_agent(index, [CREATE, FINAL])

    stream = agent.execute_stream("make a folder")
    async for event in stream:
        if event.action is not None:
            break
    await stream.aclose()

    assert len(sessions) == 0


def test_status_lists_tools(index):
    agent, _, _ = make_agent(index, [])

    status = agent.get_status()

    assert status["model"] == "scripted"
    assert "find_files" in status["tools"]
