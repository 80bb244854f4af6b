"""Tests for action directive extraction."""

from procurement_agent.agent.actions import action_tag, extract_actions
from procurement_agent.models import Action


def test_extracts_and_strips_tags():
    text = (
        "I found 1 supplier:\n"
        "1. [Shanghai Steel Works]\n"
        "[ACTION:open_supplier_details:SUP-001]\n"
        "[ACTION:create_rfq:steel beam]"
    )
    reply = extract_actions(text)

    assert reply.text == "I found 1 supplier:\n1. [Shanghai Steel Works]"
    assert reply.actions == [
        Action(type="open_supplier_details", parameter="SUP-001"),
        Action(type="create_rfq", parameter="steel beam"),
    ]


def test_inline_tags_and_duplicates():
    reply = extract_actions(
        "Order now [ACTION:place_order:1] or [ACTION:place_order:1] later [ACTION:place_order:2]"
    )
    assert reply.actions == [Action("place_order", "1"), Action("place_order", "2")]
    assert "[ACTION:" not in reply.text


def test_no_actions():
    reply = extract_actions("  Plain answer with [Rhine Steel GmbH]  ")
    assert reply.text == "Plain answer with [Rhine Steel GmbH]"
    assert reply.actions == []


def test_unknown_action_types_are_kept():
    reply = extract_actions("Done [ACTION:schedule_call:tomorrow]")
    assert reply.actions == [Action("schedule_call", "tomorrow")]


def test_blank_lines_collapsed():
    reply = extract_actions("Line one\n[ACTION:export_data:RFQ-1]\n\n\nLine two")
    assert reply.text == "Line one\n\nLine two"


def test_tag_round_trip():
    tag = action_tag("check_inventory", "all")
    assert tag == "[ACTION:check_inventory:all]"
    assert extract_actions(tag).actions == [Action("check_inventory", "all")]


def test_only_tags_gives_empty_text():
    assert extract_actions("[ACTION:export_data:RFQ-1]").text == ""
