"""Model client configuration.

Every agent talks to one OpenAI-compatible chat completions endpoint
(LLM_BASE_URL), Gemini by default.
"""

import logging

from agents import (
    Agent,
    ModelSettings,
    Runner,
    set_default_openai_api,
    set_default_openai_client,
    set_tracing_disabled,
)
from openai import AsyncOpenAI

from neo import config
from neo.agent.context import AgentState
from neo.agent.prompts import FRAGMENT_TITLE_PROMPT, PROMPT, RESPONSE_PROMPT
from neo.agent.tools import CODE_AGENT_TOOLS

logger = logging.getLogger("neo.agent")

FALLBACK_INPUT = "No summary was produced."

_client_configured = False


def configure_llm_client() -> None:
    global _client_configured
    if _client_configured:
        return
    if not config.LLM_API_KEY:
        logger.warning("No LLM API key configured; agent runs will fail")
        return
    client = AsyncOpenAI(api_key=config.LLM_API_KEY, base_url=config.LLM_BASE_URL)
    set_default_openai_client(client, use_for_tracing=False)
    set_default_openai_api("chat_completions")
    set_tracing_disabled(True)
    _client_configured = True


def create_code_agent(model: str | None = None) -> Agent[AgentState]:
    """Factory for the tool-using code agent, with an optional model override."""
    configure_llm_client()
    return Agent[AgentState](
        name="code-agent",
        handoff_description="an expert AI coding agent",
        instructions=PROMPT,
        model=model or config.CODE_AGENT_MODEL,
        model_settings=ModelSettings(temperature=config.CODE_AGENT_TEMPERATURE),
        tools=list(CODE_AGENT_TOOLS),
    )


def create_fragment_title_agent() -> Agent:
    configure_llm_client()
    return Agent(
        name="fragment-title-generator",
        handoff_description="A fragment title generator",
        instructions=FRAGMENT_TITLE_PROMPT,
        model=config.SUMMARY_MODEL,
    )


def create_response_agent() -> Agent:
    configure_llm_client()
    return Agent(
        name="response-generator",
        handoff_description="A response generator",
        instructions=RESPONSE_PROMPT,
        model=config.SUMMARY_MODEL,
    )


async def generate_text(agent: Agent, summary: str, fallback: str) -> str:
    """Run a single-shot text agent over the summary, falling back when it says nothing."""
    result = await Runner.run(agent, input=summary or FALLBACK_INPUT)
    output = result.final_output
    if isinstance(output, list):
        output = "".join(str(part) for part in output)
    if not isinstance(output, str) or not output.strip():
        return fallback
    return output.strip()
