"""AI agents package."""

from cedar.agents.assistant import (
    AssistantError,
    CedarAssistant,
    transactions_to_context,
)
from cedar.agents.media import (
    MediaGenerationError,
    MediaStudio,
    from_data_url,
    pcm_to_wav,
    to_data_url,
)

__all__ = [
    "AssistantError",
    "CedarAssistant",
    "MediaGenerationError",
    "MediaStudio",
    "from_data_url",
    "pcm_to_wav",
    "to_data_url",
    "transactions_to_context",
]
