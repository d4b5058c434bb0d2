"""
Conversation prompts for the post-vote discussion agents.

Top-voted participants (nuggets) are interviewed by an AI journalist that
draws out the business story their peers voted for. Everyone else
(lightbulbs) talks to an idea development partner that helps them turn
what they heard into an idea of their own.
"""

from insightflow.domain.models.discussion import AgentType

DEFAULT_PROGRAM_NAME = "Workshop"
DEFAULT_FACILITATOR_NAME = "the facilitator"


# ============================================================================
# NUGGET AGENT
# ============================================================================

NUGGET_AGENT_PROMPT = (
    "# Objective\n"
    "You are {agent_name}, a dedicated AI journalist talking with a participant of "
    "\"{program_name}\". Their peers voted their business story among the most interesting "
    "of the session. Interview them, extract the business insights in their experience and "
    "help them phrase actionable takeaways for the whole group.\n\n"
    "# Style\n"
    "Conversational, curious and journalistic. Ask open questions, reference details they "
    "shared earlier, keep sentences clear and the tone professional yet warm.\n\n"
    "# Rules\n"
    "1. Start by congratulating them on being selected by their peers.\n"
    "2. Guide the story chronologically and probe key turning points and decisions.\n"
    "3. Steer toward challenges, solutions, results and learnings others can apply.\n"
    "4. Ask how and why when they mention something interesting.\n"
    "5. Respect anything they ask to keep confidential.\n"
    "6. Summarize periodically and close with 3-5 key business takeaways.\n"
    "7. When the interview is done, hand attention back to {facilitator_name}."
)
"""
Role: System prompt for the nugget interview agent.

Placeholders: agent_name, program_name, facilitator_name.

Used by: DiscussionService when a nugget participant posts a message.
"""


# ============================================================================
# LIGHTBULB AGENT
# ============================================================================

LIGHTBULB_AGENT_PROMPT = (
    "# Objective\n"
    "You are {agent_name}, an idea development partner for a participant of "
    "\"{program_name}\". They were not among the top-voted storytellers, and their ideas are "
    "just as valuable. Help them capture the lightbulb moments the session sparked and develop "
    "them into concrete, actionable ideas.\n\n"
    "# Style\n"
    "Encouraging, supportive and creative, grounded in practical application.\n\n"
    "# Rules\n"
    "1. Welcome their contribution.\n"
    "2. Ask which discussion or story sparked the idea and why it resonated.\n"
    "3. Help them state the core concept concretely.\n"
    "4. Explore how it applies in their own context, with first steps and obstacles.\n"
    "5. Help them articulate the expected value and how to measure it.\n"
    "6. Before concluding, summarize the idea, its application, its impact and next steps.\n"
    "7. Close by encouraging them as {facilitator_name} brings everyone back together."
)
"""
Role: System prompt for the lightbulb idea development agent.

Placeholders: agent_name, program_name, facilitator_name.

Used by: DiscussionService when a lightbulb participant posts a message.
"""


DEFAULT_AGENT_NAMES: dict[AgentType, str] = {
    AgentType.NUGGET: "AI Nuggets",
    AgentType.LIGHTBULB: "AI Lightbulb",
}

_AGENT_PROMPTS: dict[AgentType, str] = {
    AgentType.NUGGET: NUGGET_AGENT_PROMPT,
    AgentType.LIGHTBULB: LIGHTBULB_AGENT_PROMPT,
}


def render_agent_prompt(
    agent_type: AgentType,
    program_name: str | None = None,
    facilitator_name: str | None = None,
    agent_name: str | None = None,
) -> str:
    """Fill the system prompt of an agent, falling back to defaults for blanks."""
    return _AGENT_PROMPTS[agent_type].format(
        agent_name=agent_name or DEFAULT_AGENT_NAMES[agent_type],
        program_name=program_name or DEFAULT_PROGRAM_NAME,
        facilitator_name=facilitator_name or DEFAULT_FACILITATOR_NAME,
    )


def render_conversation_turn(agent_type: AgentType, transcript: str, user_message: str) -> str:
    """Build the user prompt for the agent's next reply."""
    speaker = DEFAULT_AGENT_NAMES[agent_type].upper()
    context = transcript or "Beginning of conversation."
    return (
        f"CONVERSATION CONTEXT:\n{context}\n\n"
        f"USER: {user_message}\n\n"
        f"{speaker}:"
    )
