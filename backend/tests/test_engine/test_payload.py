"""Tests for critique request construction."""

from __future__ import annotations

from app.engine.analyzer import TreeAnalyzer
from app.engine.config import CritiqueConfig
from app.engine.payload import build_critique_request, build_user_prompt
from app.llm.prompts import CRITIQUE_SYSTEM_PROMPT, NO_CONTEXT
from tests.conftest import FRAME_TREE, GRADIENT_NODE, TEXT_NODE


config = CritiqueConfig(model="gpt-4o-mini", max_tokens=800, temperature=0.3)


def test_request_is_deterministic():
    record = TreeAnalyzer().analyze([FRAME_TREE])
    first = build_critique_request(record, "Landing page", config)
    second = build_critique_request(record, "Landing page", config)
    assert first == second
    assert first.to_json() == second.to_json()


def test_request_shape():
    record = TreeAnalyzer().analyze([TEXT_NODE])
    request = build_critique_request(record, "", config)
    assert request.model == "gpt-4o-mini"
    assert request.max_tokens == 800
    assert request.temperature == 0.3
    assert [m.role for m in request.messages] == ["system", "user"]
    assert request.messages[0].content == CRITIQUE_SYSTEM_PROMPT


def test_user_prompt_sections():
    record = TreeAnalyzer().analyze([TEXT_NODE])
    prompt = build_user_prompt(record, "Onboarding screen")
    assert "Total Elements: 1 components" in prompt
    assert "Element Types: TEXT" in prompt
    assert "Colors Detected: rgb(0, 0, 255)" in prompt
    assert "Fonts Used: Inter Regular" in prompt
    assert 'Text Content: "Hello"' in prompt
    assert "Canvas Size: 100px × 20px" in prompt
    assert "1. Greeting (TEXT)" in prompt
    assert "Onboarding screen" in prompt


def test_user_prompt_section_order():
    prompt = build_user_prompt(TreeAnalyzer().analyze([FRAME_TREE]))
    markers = [
        "Total Elements:",
        "Element Types:",
        "Colors Detected:",
        "Fonts Used:",
        "Text Content:",
        "Canvas Size:",
        "=== COMPONENT BREAKDOWN ===",
        "=== PROJECT CONTEXT ===",
        "=== CRITIQUE REQUEST ===",
    ]
    positions = [prompt.index(m) for m in markers]
    assert positions == sorted(positions)


def test_breakdown_numbered_in_traversal_order():
    prompt = build_user_prompt(TreeAnalyzer().analyze([FRAME_TREE]))
    assert "1. Card (FRAME)\n2. Title (TEXT)\n3. Actions (GROUP)\n4. Button (RECTANGLE)\n5. Label (TEXT)" in prompt
    assert 'Text Content: "Welcome", "Sign up"' in prompt


def test_empty_sections_use_sentinels():
    prompt = build_user_prompt(TreeAnalyzer().analyze([GRADIENT_NODE]))
    assert "Colors Detected: None detected" in prompt
    assert "Fonts Used: None detected" in prompt
    assert "Text Content: No text content found" in prompt
    assert NO_CONTEXT in prompt
