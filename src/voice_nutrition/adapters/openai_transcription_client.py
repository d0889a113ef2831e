"""OpenAI audio transcription client."""

from dataclasses import dataclass

import httpx
from openai import AsyncOpenAI

from voice_nutrition.adapters.openai_errors import translating_openai_errors
from voice_nutrition.services.transcription import Transcriber


@dataclass
class OpenAITranscriptionClient(Transcriber):
    """Transcriber backed by the OpenAI audio API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, http_client: httpx.AsyncClient | None = None
    ) -> "OpenAITranscriptionClient":
        """Create an OpenAI transcription client."""
        return cls(client=AsyncOpenAI(api_key=api_key, http_client=http_client))

    async def transcribe(
        self, *, model: str, audio: bytes, filename: str, language: str | None
    ) -> str:
        """Upload the recording and return the plain-text transcript."""
        request_payload: dict[str, object] = {
            "model": model,
            "file": (filename, audio),
            "response_format": "text",
        }
        if language:
            request_payload["language"] = language

        response = await translating_openai_errors(
            self.client.audio.transcriptions.create(**request_payload)
        )
        if isinstance(response, str):
            return response
        return str(getattr(response, "text", "") or "")
