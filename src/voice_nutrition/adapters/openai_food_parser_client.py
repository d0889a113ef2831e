"""OpenAI Responses API client for structured food extraction."""

import json
from dataclasses import dataclass

import httpx
from openai import AsyncOpenAI

from voice_nutrition.adapters.openai_errors import translating_openai_errors
from voice_nutrition.domain.errors import InvalidResponseError
from voice_nutrition.services.food_parsing import FoodParserClient, ParserReply


@dataclass
class OpenAIFoodParserClient(FoodParserClient):
    """Food parser backed by OpenAI structured outputs."""

    client: AsyncOpenAI
    store: bool = False

    @classmethod
    def create(
        cls,
        api_key: str,
        *,
        store: bool = False,
        http_client: httpx.AsyncClient | None = None,
    ) -> "OpenAIFoodParserClient":
        """Create an OpenAI food parser client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key, http_client=http_client),
            store=store,
        )

    async def parse(
        self,
        *,
        model: str,
        prompt: str,
        transcript: str,
        schema: dict[str, object],
    ) -> ParserReply:
        """Call OpenAI Responses API with a strict JSON schema."""
        request_payload: dict[str, object] = {
            "model": model,
            "instructions": prompt,
            "input": [
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": f"Text: {transcript}"}],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "food_parse",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": self.store,
        }

        response = await translating_openai_errors(
            self.client.responses.create(**request_payload)
        )
        output_text = response.output_text
        if not output_text:
            raise InvalidResponseError("OpenAI returned an empty response")
        try:
            payload = json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise InvalidResponseError("OpenAI returned malformed JSON") from exc
        if not isinstance(payload, dict):
            raise InvalidResponseError("OpenAI returned a non-object payload")

        usage = getattr(response, "usage", None)
        return ParserReply(
            payload=payload,
            input_tokens=int(getattr(usage, "input_tokens", 0) or 0),
            output_tokens=int(getattr(usage, "output_tokens", 0) or 0),
        )
