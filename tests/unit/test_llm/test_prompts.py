"""Tests for model-specific educational system prompts."""

import pytest

from tutor_gateway.llm.prompts import (
    DEFAULT_FRAGMENT,
    EDUCATIONAL_BASELINE,
    build_system_prompt,
    fragment_for,
)


class TestFragmentFor:
    @pytest.mark.parametrize(
        ("model_id", "marker"),
        [
            ("gemini-2.5-pro", "ENHANCED CITATION MODE"),
            ("gemini-2.5-flash", "EFFICIENT EDUCATION MODE"),
            ("gpt-5-nano-2025-08-07", "QUICK REVIEW MODE"),
            ("gpt-5-mini-2025-08-07", "OPTIMIZED EDUCATIONAL MODE"),
            ("gpt-5-2025-08-07", "DEEP REASONING MODE"),
            ("gpt-4o-mini", "BALANCED EDUCATIONAL MODE"),
            ("claude-opus-4-20250514", "RESEARCH ASSISTANT MODE"),
            ("claude-sonnet-4-20250514", "EDUCATIONAL EXCELLENCE MODE"),
            ("sonar-pro", "CURRENT RESEARCH MODE"),
        ],
    )
    def test_model_specific_fragment(self, model_id: str, marker: str) -> None:
        assert marker in fragment_for(model_id)

    def test_case_insensitive(self) -> None:
        assert fragment_for("Claude-Opus-4") == fragment_for("claude-opus-4")

    def test_unknown_model_gets_default(self) -> None:
        assert fragment_for("llama-3-70b") == DEFAULT_FRAGMENT


class TestBuildSystemPrompt:
    def test_baseline_precedes_fragment(self) -> None:
        prompt = build_system_prompt("sonar-pro")
        assert prompt.startswith(EDUCATIONAL_BASELINE)
        assert prompt.endswith(fragment_for("sonar-pro"))

    def test_baseline_sections_present(self) -> None:
        prompt = build_system_prompt("unknown")
        assert "CITATION REQUIREMENTS" in prompt
        assert "EDUCATIONAL APPROACH" in prompt
        assert "ACCURACY & INTEGRITY" in prompt

    def test_deterministic(self) -> None:
        assert build_system_prompt("gemini-2.5-pro") == build_system_prompt(
            "gemini-2.5-pro"
        )
