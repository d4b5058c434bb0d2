"""Unit tests for prompt rendering."""

from insightflow.application.prompts.agent_prompts import (
    DEFAULT_FACILITATOR_NAME,
    DEFAULT_PROGRAM_NAME,
    render_agent_prompt,
    render_conversation_turn,
)
from insightflow.application.prompts.analysis_prompts import (
    build_extraction_prompt,
    build_synthesis_prompt,
    render_rules,
)
from insightflow.domain.models.analysis import AnalysisType, NuggetsRules, OverallRules
from insightflow.domain.models.discussion import AgentType


class TestAgentPrompts:
    def test_defaults_fill_blanks(self) -> None:
        prompt = render_agent_prompt(AgentType.LIGHTBULB, program_name="")
        assert "AI Lightbulb" in prompt
        assert DEFAULT_PROGRAM_NAME in prompt
        assert DEFAULT_FACILITATOR_NAME in prompt

    def test_names_substituted(self) -> None:
        prompt = render_agent_prompt(AgentType.NUGGET, program_name="Growth Summit", facilitator_name="Dana")
        assert '"Growth Summit"' in prompt
        assert "Dana" in prompt
        assert "{" not in prompt

    def test_conversation_turn_without_history(self) -> None:
        turn = render_conversation_turn(AgentType.NUGGET, "", "Hello")
        assert "Beginning of conversation." in turn
        assert turn.endswith("USER: Hello\n\nAI NUGGETS:")


class TestAnalysisPrompts:
    def test_render_rules_lists_enabled_toggles(self) -> None:
        text = render_rules(NuggetsRules(discover_patterns=False, custom_rules=" Keep it short. "))
        assert "recurring patterns" not in text
        assert "key insights" in text
        assert text.endswith("- Keep it short.")

    def test_render_rules_all_disabled(self) -> None:
        rules = OverallRules(
            synthesize_all_insights=False,
            extract_actionable_recommendations=False,
            provide_session_summary=False,
        )
        assert render_rules(rules) == "INSTRUCTIONS: none."

    def test_extraction_prompt_contains_transcript(self) -> None:
        prompt = build_extraction_prompt(AnalysisType.LIGHTBULBS, "USER: idea", OverallRules())
        assert prompt.endswith("TRANSCRIPT:\nUSER: idea")

    def test_synthesis_prompt_numbers_sources(self) -> None:
        prompt = build_synthesis_prompt(AnalysisType.NUGGETS, [{"a": 1}, {"b": 2}], NuggetsRules())
        assert "2 individual business insight analyses" in prompt
        assert '[1] {"a": 1}' in prompt
        assert '[2] {"b": 2}' in prompt
