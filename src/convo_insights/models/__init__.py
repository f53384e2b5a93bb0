"""Model client abstractions."""

from convo_insights.config import Settings
from convo_insights.models.mock_client import MockJsonClient
from convo_insights.models.openai_client import LLMJsonClient, OpenAIJsonClient


def build_llm_client(settings: Settings) -> LLMJsonClient:
    """Build the JSON client selected by ``settings.llm_provider``."""

    if settings.llm_provider == "mock":
        return MockJsonClient()
    return OpenAIJsonClient.from_settings(settings)


__all__ = [
    "LLMJsonClient",
    "MockJsonClient",
    "OpenAIJsonClient",
    "build_llm_client",
]
