"""Directive and chat interpreters fed payload by payload."""
from __future__ import annotations

import json

from legalstream.adapters.events import (
    CaseSummary,
    Complete,
    ConversationId,
    DeliverableChunk,
    DeliverableStructured,
    PartBegin,
    Reasoning,
    SearchQueries,
)
from legalstream.adapters.sink import RecordingSink
from legalstream.engine.framer import extract_payload
from legalstream.engine.interpreter import ChatInterpreter, DirectiveInterpreter
from legalstream.engine.models import StreamMode, SwotRecord

SWOT = {"strength": "s", "weakness": "w", "opportunity": "o", "threat": "t"}


def _run(lines: list[str], **kwargs) -> tuple[DirectiveInterpreter, RecordingSink]:
    sink = RecordingSink()
    interpreter = DirectiveInterpreter(sink, **kwargs)
    for line in lines:
        payload = extract_payload(line)
        if payload is not None:
            interpreter.feed(payload)
    return interpreter, sink


def _shape(sink: RecordingSink) -> list[tuple]:
    shaped = []
    for e in sink.events:
        if isinstance(e, ConversationId):
            shaped.append(("id", e.conversation_id))
        elif isinstance(e, PartBegin):
            shaped.append(("part", e.part_number))
        elif isinstance(e, Reasoning):
            shaped.append(("reasoning", e.part_number, e.text))
        elif isinstance(e, SearchQueries):
            shaped.append(("queries", e.part_number, e.queries))
        elif isinstance(e, DeliverableChunk):
            shaped.append(("chunk", e.part_number, e.text))
        elif isinstance(e, DeliverableStructured):
            shaped.append(("structured", e.part_number, e.record))
        elif isinstance(e, CaseSummary):
            shaped.append(("summary", e.text))
        elif isinstance(e, Complete):
            shaped.append(("complete",))
    return shaped


def test_reasoning_then_deliverable_in_one_part() -> None:
    _, sink = _run([
        "data: [ID: abc123]",
        "data: [PART 1]",
        "data: [THOUGHTS-BEGIN]",
        "data: hello",
        "data: [THOUGHTS-END]",
        "data: [DELIVERABLE-BEGIN]",
        "data: Part one text.",
        "data: [DELIVERABLE-END]",
    ])

    assert _shape(sink) == [
        ("id", "abc123"),
        ("part", 1),
        ("reasoning", 1, "hello"),
        ("chunk", 1, "Part one text."),
    ]


def test_structured_part_emits_record() -> None:
    interpreter, sink = _run([
        "data: [PART 5]",
        "data: [DELIVERABLE-BEGIN]",
        "data: " + json.dumps(SWOT),
    ])

    assert _shape(sink) == [("part", 5), ("structured", 5, SWOT)]
    part = interpreter.ledger.get(5)
    assert part.deliverable == SwotRecord(**SWOT)
    assert part.text == ""


def test_structured_part_falls_back_to_text() -> None:
    interpreter, sink = _run([
        "data: [PART 5]",
        "data: [DELIVERABLE-BEGIN]",
        "data: not json",
    ])

    assert _shape(sink) == [("part", 5), ("chunk", 5, "not json")]
    assert interpreter.ledger.get(5).deliverable == "not json\n"


def test_json_under_other_part_is_plain_text() -> None:
    payload = json.dumps(SWOT)
    _, sink = _run([
        "data: [PART 2]",
        "data: [DELIVERABLE-BEGIN]",
        "data: " + payload,
    ])

    assert _shape(sink) == [("part", 2), ("chunk", 2, payload)]


def test_structured_part_is_configurable() -> None:
    _, sink = _run(
        [
            "data: [PART 3]",
            "data: [DELIVERABLE-BEGIN]",
            "data: " + json.dumps(SWOT),
        ],
        structured_part=3,
    )

    assert _shape(sink)[-1] == ("structured", 3, SWOT)


def test_later_text_does_not_overwrite_structured_record() -> None:
    newer = dict(SWOT, threat="t2")
    interpreter, sink = _run([
        "data: [PART 5]",
        "data: [DELIVERABLE-BEGIN]",
        "data: " + json.dumps(SWOT),
        "data: trailing note",
        "data: " + json.dumps(newer),
    ])

    part = interpreter.ledger.get(5)
    assert part.structured == SwotRecord(**newer)
    assert part.text == "trailing note\n"
    assert ("chunk", 5, "trailing note") in _shape(sink)


def test_search_query_outside_blocks() -> None:
    interpreter, sink = _run([
        "data: [PART 2]",
        "data: [SEARCH_QUERIES]",
        'data: - "first query"',
        "data: - 'second query'",
    ])

    assert _shape(sink) == [
        ("part", 2),
        ("queries", 2, ["first query"]),
        ("queries", 2, ["second query"]),
    ]
    assert interpreter.ledger.get(2).search_queries == ["first query", "second query"]


def test_hyphen_line_inside_deliverable_is_content() -> None:
    interpreter, sink = _run([
        "data: [PART 1]",
        "data: [DELIVERABLE-BEGIN]",
        "data: - Tenant must pay arrears",
    ])

    assert _shape(sink)[-1] == ("chunk", 1, "- Tenant must pay arrears")
    assert interpreter.ledger.get(1).search_queries == []


def test_conversation_id_reported_once() -> None:
    interpreter, sink = _run(["data: [ID: first]", "data: [ID: second]"])

    assert _shape(sink) == [("id", "first")]
    assert interpreter.conversation_id == "first"


def test_events_carry_most_recent_part() -> None:
    _, sink = _run([
        "data: [PART 1]",
        "data: [THOUGHTS-BEGIN]",
        "data: thinking one",
        "data: === PART 2 ===",
        "data: thinking two",
        "data: [THOUGHTS-END]",
        "data: [DELIVERABLE-BEGIN]",
        "data: body two",
    ])

    assert _shape(sink) == [
        ("part", 1),
        ("reasoning", 1, "thinking one"),
        ("part", 2),
        ("reasoning", 2, "thinking two"),
        ("chunk", 2, "body two"),
    ]


def test_reentering_part_appends() -> None:
    interpreter, _ = _run([
        "data: [PART 1]",
        "data: [DELIVERABLE-BEGIN]",
        "data: first",
        "data: [DELIVERABLE-END]",
        "data: [PART 2]",
        "data: [PART 1]",
        "data: [DELIVERABLE-BEGIN]",
        "data: second",
    ])

    part = interpreter.ledger.get(1)
    assert part.text == "first\nsecond\n"
    assert [p.number for p in interpreter.ledger] == [1, 2]


def test_reasoning_order_preserved() -> None:
    interpreter, _ = _run(
        ["data: [PART 1]", "data: [THOUGHTS-BEGIN]"]
        + [f"data: step {i}" for i in range(5)]
    )

    assert interpreter.ledger.get(1).reasoning == [f"step {i}" for i in range(5)]


def test_idle_text_is_discarded() -> None:
    interpreter, sink = _run(["data: [PART 1]", "data: stray text"])

    assert _shape(sink) == [("part", 1)]
    assert interpreter.ledger.get(1).text == ""


def test_completion_stops_processing() -> None:
    interpreter, sink = _run([
        "data: [PART 1]",
        "data: [WAR-GAME-DIRECTIVE-COMPLETE]",
        "data: [PART 2]",
    ])

    assert _shape(sink) == [("part", 1), ("complete",)]
    assert interpreter.finished
    assert interpreter.state.mode is StreamMode.COMPLETE
    assert interpreter.feed("[PART 3]") is False


def test_case_summary_event() -> None:
    _, sink = _run(["data: [SUMMARIZED_FACTS_BEGIN] Tenant v Landlord"])

    assert _shape(sink) == [("summary", "Tenant v Landlord")]


def test_reasoning_before_any_part_lands_in_preamble() -> None:
    interpreter, sink = _run(["data: [THOUGHTS-BEGIN]", "data: early"])

    assert _shape(sink) == [("reasoning", 0, "early")]
    assert interpreter.ledger.get(0).reasoning == ["early"]


def test_chat_interpreter_skips_done_sentinel() -> None:
    sink = RecordingSink()
    interpreter = ChatInterpreter(sink)

    for payload in ["Answer line one", "[DONE]", "Answer line two"]:
        assert interpreter.feed(payload) is True

    assert [e.text for e in sink.of_type(DeliverableChunk)] == [
        "Answer line one", "Answer line two",
    ]
    assert interpreter.ledger.get(0).text == "Answer line one\nAnswer line two\n"
