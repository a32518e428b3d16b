from mane.engine.parser import (
    ParsedAction,
    ParsedFinal,
    ParsedMalformed,
    ParsedThought,
    parse_react_response,
)


def test_parses_action_with_json_input():
    text = (
        "Thought: I need to find cat pictures.\n"
        "Action: find_files\n"
        'Action Input: {"query": "cats", "media_type": "image"}'
    )

    parsed = parse_react_response(text)

    assert isinstance(parsed, ParsedAction)
    assert parsed.thought == "I need to find cat pictures."
    assert parsed.tool == "find_files"
    assert parsed.tool_input == {"query": "cats", "media_type": "image"}


def test_parses_final_answer():
    parsed = parse_react_response("Thought: Done.\nFinal Answer: Moved 2 files.\nEnjoy!")

    assert isinstance(parsed, ParsedFinal)
    assert parsed.thought == "Done."
    assert parsed.answer == "Moved 2 files.\nEnjoy!"


def test_action_takes_priority_over_final_answer():
    text = (
        "Thought: Let me search.\n"
        "Action: find_files\n"
        'Action Input: {"query": "invoices"}\n'
        "Final Answer: I found your invoices."
    )

    parsed = parse_react_response(text)

    assert isinstance(parsed, ParsedAction)
    assert parsed.tool_input == {"query": "invoices"}


def test_ignores_text_after_json_object():
    text = (
        "Thought: x\nAction: move_file\n"
        'Action Input: {"source_path": "/a.txt", "destination_path": "/b"}\n'
        "Observation: [waiting]"
    )

    parsed = parse_react_response(text)

    assert isinstance(parsed, ParsedAction)
    assert parsed.tool_input == {"source_path": "/a.txt", "destination_path": "/b"}


def test_accepts_fenced_json_and_decorated_tool_name():
    text = 'Thought: ok\nAction: `create_folder`\nAction Input: ```json\n{"folder_path": "/tmp/x"}\n```'

    parsed = parse_react_response(text)

    assert isinstance(parsed, ParsedAction)
    assert parsed.tool == "create_folder"
    assert parsed.tool_input == {"folder_path": "/tmp/x"}


def test_invalid_json_is_malformed():
    text = 'Thought: t\nAction: find_files\nAction Input: {"query": "cats",'

    parsed = parse_react_response(text)

    assert isinstance(parsed, ParsedMalformed)
    assert parsed.thought == "t"
    assert "not valid JSON" in parsed.error


def test_non_object_input_is_malformed():
    parsed = parse_react_response('Action: find_files\nAction Input: ["cats"]')

    assert isinstance(parsed, ParsedMalformed)
    assert "JSON object" in parsed.error


def test_missing_action_input_is_malformed():
    parsed = parse_react_response("Thought: hmm\nAction: find_files")

    assert isinstance(parsed, ParsedMalformed)
    assert "Missing Action Input" in parsed.error


def test_plain_narrative_is_thought():
    parsed = parse_react_response("Thought: I should look around first.")

    assert isinstance(parsed, ParsedThought)
    assert parsed.thought == "I should look around first."


def test_empty_response_is_thought():
    parsed = parse_react_response("")

    assert isinstance(parsed, ParsedThought)
    assert parsed.thought == ""


def test_marker_words_in_prose_are_not_markers():
    text = (
        "Thought: No further action: needed.\n"
        "Final Answer: I proposed one action: moving cat.jpg to ~/cats."
    )

    parsed = parse_react_response(text)

    assert isinstance(parsed, ParsedFinal)
    assert parsed.thought == "No further action: needed."
    assert parsed.answer == "I proposed one action: moving cat.jpg to ~/cats."


def test_markers_must_start_a_line():
    text = 'Thought: I will call Action: find_files with Action Input: {"query": "x"}'

    parsed = parse_react_response(text)

    assert isinstance(parsed, ParsedThought)


def test_indented_markers_are_accepted():
    text = '  Thought: ok\n  Action: find_files\n  Action Input: {"query": "cats"}'

    parsed = parse_react_response(text)

    assert isinstance(parsed, ParsedAction)
    assert parsed.thought == "ok"
    assert parsed.tool_input == {"query": "cats"}
