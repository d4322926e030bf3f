"""
Conversation summaries through the OpenAI Chat Completions API.
"""

import logging
from typing import List, Optional

import httpx

from voice_relay.config.constants import (
    DEFAULT_SUMMARY_MODEL,
    LANGUAGE_NAMES,
    LOGGER_NAME,
    OPENAI_CHAT_COMPLETIONS_URL,
)
from voice_relay.models.conversation import ConversationMessage

logger = logging.getLogger(LOGGER_NAME)

SUMMARY_TIMEOUT = 20.0  # seconds
SUMMARY_MAX_TOKENS = 300

SUMMARY_PROMPT = (
    "You summarize phone conversations between a health tourism consultant and a "
    "prospective patient. Write 3-5 sentences in English covering who the patient "
    "is, which treatments they asked about, any medical details they shared and "
    "the agreed next step. Do not invent details."
)


class ConversationSummarizer:
    """Builds a short English summary of a finished conversation."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_SUMMARY_MODEL,
        timeout: float = SUMMARY_TIMEOUT,
        url: str = OPENAI_CHAT_COMPLETIONS_URL,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.url = url

    def build_payload(self, messages: List[ConversationMessage], language: str) -> dict:
        transcript = "\n".join(f"{m.role.value}: {m.content}" for m in messages)
        spoken = LANGUAGE_NAMES.get(language, language)
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SUMMARY_PROMPT},
                {"role": "user", "content": f"Conversation language: {spoken}\n\n{transcript}"},
            ],
            "max_tokens": SUMMARY_MAX_TOKENS,
        }

    async def summarize(self, messages: List[ConversationMessage], language: str) -> Optional[str]:
        """
        Summarize a transcript.

        Returns:
            The summary text, or None when summaries are disabled (no API key)

        Raises:
            httpx.HTTPError: If the request fails
            KeyError / IndexError: If the response has an unexpected shape
        """
        if not self.api_key:
            logger.debug("No OpenAI API key configured, skipping summary")
            return None

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.url, json=self.build_payload(messages, language), headers=headers
            )
            response.raise_for_status()
            data = response.json()

        content = data["choices"][0]["message"]["content"]
        return content.strip() if content else None
