"""
Gemini AI Service for SynthAI

Text completion for the chat endpoint and the AI tools, using the
google.genai SDK. The SDK call is blocking, so it runs in a worker
thread to keep the event loop free.
"""

import asyncio
import logging
from typing import List, Optional

from google import genai
from google.genai import types

from app.config.settings import Settings
from app.domain.chat import ChatTurn, MessageRole
from app.infrastructure.exceptions import AIServiceError, ConfigurationError


logger = logging.getLogger(__name__)


DEFAULT_INSTRUCTION = "You are a helpful AI assistant."


class GeminiService:
    """
    Gemini text-completion client.

    The underlying genai.Client is created on first use, so an app
    without GOOGLE_API_KEY still starts and only fails on LLM calls.
    """

    def __init__(self, settings: Settings):
        self._api_key = settings.google_api_key
        self._model = settings.gemini_model
        self._temperature = settings.llm_temperature
        self._max_output_tokens = settings.llm_max_output_tokens
        self._client: Optional[genai.Client] = None

    @property
    def model(self) -> str:
        return self._model

    @property
    def client(self) -> genai.Client:
        """Get the Gemini client instance."""
        if self._client is None:
            if not self._api_key:
                raise ConfigurationError(
                    "Missing GOOGLE_API_KEY environment variable",
                    missing_keys=["GOOGLE_API_KEY"]
                )
            self._client = genai.Client(api_key=self._api_key)
            logger.info(f"GeminiService initialized with model: {self._model}")
        return self._client

    def _build_contents(
        self,
        message: str,
        history: List[ChatTurn],
    ) -> List[types.Content]:
        contents = []
        for turn in history:
            if turn.role == MessageRole.SYSTEM:
                continue
            role = "model" if turn.role == MessageRole.ASSISTANT else "user"
            contents.append(
                types.Content(role=role, parts=[types.Part.from_text(text=turn.content)])
            )
        contents.append(
            types.Content(role="user", parts=[types.Part.from_text(text=message)])
        )
        return contents

    async def complete(
        self,
        message: str,
        history: Optional[List[ChatTurn]] = None,
        instruction: str = DEFAULT_INSTRUCTION,
    ) -> str:
        """
        Generate a reply to ``message``.

        Args:
            message: Latest user message
            history: Earlier turns of the conversation, oldest first
            instruction: System instruction for the model

        Returns:
            Reply text

        Raises:
            AIServiceError: The model call failed or returned nothing
        """
        client = self.client
        contents = self._build_contents(message, history or [])

        try:
            response = await asyncio.to_thread(
                lambda: client.models.generate_content(
                    model=self._model,
                    contents=contents,
                    config=types.GenerateContentConfig(
                        system_instruction=instruction,
                        temperature=self._temperature,
                        max_output_tokens=self._max_output_tokens,
                    )
                )
            )
        except Exception as e:
            raise AIServiceError(
                f"Completion failed: {str(e)}",
                model=self._model,
                operation="complete",
                original_error=e
            )

        if not response.text:
            raise AIServiceError(
                "Empty response from Gemini",
                model=self._model,
                operation="complete"
            )

        return response.text
