"""OpenAI Responses API client for text completions."""

from dataclasses import dataclass
from typing import Protocol

from openai import AsyncOpenAI


class TextCompletionClient(Protocol):
    """Interface for a generative model that answers a text prompt."""

    async def complete(self, prompt: str) -> str:
        """Return the raw text answer for a prompt."""


@dataclass
class OpenAITextClient(TextCompletionClient):
    """Text completion client backed by the OpenAI Responses API."""

    client: AsyncOpenAI
    model: str

    @classmethod
    def create(cls, api_key: str, model: str) -> "OpenAITextClient":
        """Create an OpenAI text client."""
        return cls(client=AsyncOpenAI(api_key=api_key), model=model)

    async def complete(self, prompt: str) -> str:
        """Send the prompt and return the output text."""
        response = await self.client.responses.create(
            model=self.model,
            input=prompt,
            store=False,
        )
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
