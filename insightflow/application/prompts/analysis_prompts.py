"""
Extraction and synthesis prompts for the analysis pipeline.

Phase 1 sends one extraction prompt per discussion; phase 2 sends one
synthesis prompt built from every active discussion analysis of the
type. Each prompt asks for strict JSON so the result can be stored as a
structured document.
"""

import json
from typing import Any

from insightflow.domain.models.analysis import (
    AnalysisType,
    LightbulbsRules,
    NuggetsRules,
    OverallRules,
)

ANALYST_SYSTEM_PROMPT = (
    "You are an expert workshop analyst. You read conversations between workshop "
    "participants and AI facilitators and extract what matters. Always answer with a single "
    "JSON object and nothing else: no prose before or after it, no markdown."
)
"""
Role: System prompt shared by every analysis call.

Used by: AnalysisOrchestratorService for extraction and synthesis.
"""


# ============================================================================
# PHASE 1: PER-DISCUSSION EXTRACTION
# ============================================================================

NUGGETS_EXTRACTION_PROMPT = (
    "Analyse the following interview with a top-voted participant and extract the business "
    "insights in their story.\n\n"
    "{rules}\n\n"
    "Respond in strict JSON with the following fields:"
    "\n- insights (array of objects with title, description, key_points, relevant_quotes)"
    "\n- pattern_discovered (object with pattern, evidence, significance, or null)"
    "\n- summary (string)\n\n"
    "TRANSCRIPT:\n{transcript}"
)
"""
Role: Insight extraction from a nugget interview.

Placeholders: rules, transcript.
"""


LIGHTBULBS_EXTRACTION_PROMPT = (
    "Analyse the following idea development conversation and evaluate the ideas the "
    "participant developed.\n\n"
    "{rules}\n\n"
    "Respond in strict JSON with the following fields:"
    "\n- innovative_ideas (array of objects with title, description, inspiration, "
    "potential_applications, first_steps)"
    "\n- cross_pollination (array of strings: connections to other stories or domains)"
    "\n- practicality (string: assessment of feasibility)"
    "\n- summary (string)\n\n"
    "TRANSCRIPT:\n{transcript}"
)
"""
Role: Innovation evaluation of a lightbulb conversation.

Placeholders: rules, transcript.
"""


OVERALL_EXTRACTION_PROMPT = (
    "Summarize the following workshop conversation for the session report.\n\n"
    "{rules}\n\n"
    "Respond in strict JSON with the following fields:"
    "\n- key_points (array of strings)"
    "\n- themes (array of strings)"
    "\n- recommendations (array of strings)"
    "\n- summary (string)\n\n"
    "TRANSCRIPT:\n{transcript}"
)
"""
Role: Session-summary extraction from any conversation.

Placeholders: rules, transcript.
"""


# ============================================================================
# PHASE 2: SYNTHESIS
# ============================================================================

SYNTHESIS_PROMPT = (
    "Below are {count} individual {label} analyses from one workshop session, one JSON "
    "document per conversation. Synthesize them into a single report for the facilitator.\n\n"
    "{rules}\n\n"
    "Respond in strict JSON with the following fields:"
    "\n- title (string)"
    "\n- summary (string)"
    "\n- key_themes (array of objects with theme, description, supporting_analyses)"
    "\n- recommendations (array of strings)"
    "\n- notable_contributions (array of strings)\n\n"
    "ANALYSES:\n{analyses}"
)
"""
Role: Synthesis of every active discussion analysis of one type.

Placeholders: count, label, rules, analyses.
"""


_EXTRACTION_PROMPTS: dict[AnalysisType, str] = {
    AnalysisType.NUGGETS: NUGGETS_EXTRACTION_PROMPT,
    AnalysisType.LIGHTBULBS: LIGHTBULBS_EXTRACTION_PROMPT,
    AnalysisType.OVERALL: OVERALL_EXTRACTION_PROMPT,
}

_SYNTHESIS_LABELS: dict[AnalysisType, str] = {
    AnalysisType.NUGGETS: "business insight",
    AnalysisType.LIGHTBULBS: "idea evaluation",
    AnalysisType.OVERALL: "conversation summary",
}

_RULE_TEXT: dict[str, str] = {
    "focus_on_key_insights": "Focus on the key insights rather than anecdotes.",
    "discover_patterns": "Look for recurring patterns in how the participant reasons and decides.",
    "quote_relevant_examples": "Quote the participant's own words where they illustrate an insight.",
    "capture_innovative_thinking": "Capture innovative thinking even when it is not fully formed.",
    "identify_cross_pollination": "Identify ideas that cross over from other stories or domains.",
    "evaluate_practical_applications": "Evaluate how practical each idea is to apply.",
    "synthesize_all_insights": "Synthesize insights across all conversations, not one by one.",
    "extract_actionable_recommendations": "Extract concrete, actionable recommendations.",
    "provide_session_summary": "Provide an overall summary of the session.",
}


def render_rules(rules: NuggetsRules | LightbulbsRules | OverallRules) -> str:
    """Turn enabled toggles and custom rules into an instruction list."""
    lines = [text for name, text in _RULE_TEXT.items() if getattr(rules, name, False)]
    if rules.custom_rules.strip():
        lines.append(rules.custom_rules.strip())
    if not lines:
        return "INSTRUCTIONS: none."
    return "INSTRUCTIONS:\n" + "\n".join(f"- {line}" for line in lines)


def build_extraction_prompt(
    analysis_type: AnalysisType,
    transcript: str,
    rules: NuggetsRules | LightbulbsRules | OverallRules,
) -> str:
    return _EXTRACTION_PROMPTS[analysis_type].format(
        rules=render_rules(rules),
        transcript=transcript,
    )


def build_synthesis_prompt(
    analysis_type: AnalysisType,
    contents: list[dict[str, Any]],
    rules: NuggetsRules | LightbulbsRules | OverallRules,
) -> str:
    analyses = "\n\n".join(
        f"[{index}] {json.dumps(content, ensure_ascii=False, sort_keys=True)}"
        for index, content in enumerate(contents, start=1)
    )
    return SYNTHESIS_PROMPT.format(
        count=len(contents),
        label=_SYNTHESIS_LABELS[analysis_type],
        rules=render_rules(rules),
        analyses=analyses,
    )
