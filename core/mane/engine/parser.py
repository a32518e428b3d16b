"""
Parser for ReAct-formatted model output.

The model is asked to answer with either

    Thought: ...
    Action: <tool name>
    Action Input: {json}

or

    Thought: ...
    Final Answer: ...

Models drift from this format, so parsing never raises: every response maps
to exactly one of the ParsedResponse variants and the orchestrator decides
what to do with it.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Union

from mane.utils.logging import logger


# Markers are case-sensitive and must open a line, so prose such as
# "one action: move it" inside a thought or answer is not a marker.
_THOUGHT = re.compile(
    r"^[ \t]*Thought[ \t]*:[ \t]*(.*?)(?=^[ \t]*(?:Action|Action Input|Final Answer)[ \t]*:|\Z)",
    re.DOTALL | re.MULTILINE,
)
_ACTION = re.compile(r"^[ \t]*Action[ \t]*:[ \t]*([^\n]*)", re.MULTILINE)
_ACTION_INPUT = re.compile(r"^[ \t]*Action Input[ \t]*:", re.MULTILINE)
_FINAL_ANSWER = re.compile(r"^[ \t]*Final Answer[ \t]*:[ \t]*(.*)\Z", re.DOTALL | re.MULTILINE)
_TOOL_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class ParsedAction:
    """The model asked for a tool call."""
    thought: str
    tool: str
    tool_input: dict = field(default_factory=dict)


@dataclass
class ParsedFinal:
    """The model produced its final answer."""
    thought: str
    answer: str


@dataclass
class ParsedThought:
    """Neither an action nor a final answer (narrative drift)."""
    thought: str


@dataclass
class ParsedMalformed:
    """An Action marker was present but the call could not be decoded."""
    thought: str
    error: str


ParsedResponse = Union[ParsedAction, ParsedFinal, ParsedThought, ParsedMalformed]


def _extract_thought(text: str) -> str:
    match = _THOUGHT.search(text)
    return match.group(1).strip() if match else ""


def _clean_tool_name(raw: str) -> str:
    tokens = raw.split()
    if not tokens:
        return ""
    # Tolerate "`find_files`", "[find_files]" and "find_files()"
    name = tokens[0].strip("`*\"'[]")
    if name.endswith("()"):
        name = name[:-2]
    return name


def _decode_action_input(text: str, start: int) -> Union[dict, str]:
    """
    Decode the JSON object that follows "Action Input:".

    Returns the object, or an error message.
    """
    rest = text[start:]
    brace = rest.find("{")
    if brace == -1:
        return "Action Input must be a JSON object"

    # Anything between the marker and the brace other than a code fence
    # means the input was not a JSON object.
    prefix = rest[:brace].strip().strip("`").strip()
    if prefix and prefix.lower() != "json":
        return "Action Input must be a JSON object"

    try:
        value, _ = json.JSONDecoder().raw_decode(rest[brace:])
    except json.JSONDecodeError as e:
        return f"Action Input is not valid JSON: {e.msg}"

    if not isinstance(value, dict):
        return "Action Input must be a JSON object"
    return value


def parse_react_response(text: str) -> ParsedResponse:
    """
    Parse one model response.

    An Action marker takes priority over a Final Answer: a response
    carrying both is treated as an action and the final answer is ignored.
    """
    thought = _extract_thought(text)

    action_match = _ACTION.search(text)
    if action_match:
        if _FINAL_ANSWER.search(text):
            logger.warning("Model output contains both Action and Final Answer; using the Action")

        tool = _clean_tool_name(action_match.group(1))
        if not tool or not _TOOL_NAME.match(tool):
            return ParsedMalformed(thought=thought, error=f"Invalid tool name: {action_match.group(1).strip()!r}")

        input_match = _ACTION_INPUT.search(text, action_match.start())
        if not input_match:
            return ParsedMalformed(thought=thought, error=f"Missing Action Input for {tool}")

        decoded = _decode_action_input(text, input_match.end())
        if isinstance(decoded, str):
            logger.warning(f"Failed to parse action input for {tool}: {decoded}")
            return ParsedMalformed(thought=thought, error=decoded)

        return ParsedAction(thought=thought, tool=tool, tool_input=decoded)

    final_match = _FINAL_ANSWER.search(text)
    if final_match:
        return ParsedFinal(thought=thought, answer=final_match.group(1).strip())

    return ParsedThought(thought=thought)
