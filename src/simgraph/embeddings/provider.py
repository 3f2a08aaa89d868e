"""Embedding providers.

A provider turns a list of strings into one vector per string, in order. It
raises :class:`RateLimited` when the service answers 429 and
:class:`ProviderError` for anything else.
"""

from collections.abc import Sequence
from typing import Protocol

import openai

from ..errors import ProviderError, RateLimited

MAX_INPUT_CHARS = 8000
CHECK_INPUT = "test connection"


class EmbeddingProvider(Protocol):
    async def embed(self, model: str, inputs: Sequence[str]) -> list[list[float]]:
        ...


def clean_input(text: str, limit: int = MAX_INPUT_CHARS) -> str:
    """Single line, trimmed and truncated; never empty."""
    cleaned = text.replace("\n", " ").strip()[:limit]
    return cleaned or " "


def looks_like_api_key(api_key: str | None) -> bool:
    """Shape check only; it does not contact the service."""
    return bool(api_key) and api_key.startswith("sk-") and len(api_key) > 20


async def check_connection(provider: EmbeddingProvider, model: str) -> int:
    """Embed one short string and return the vector length.

    Raises:
        ProviderError: the provider answered with no vector.
    """
    vectors = await provider.embed(model, [CHECK_INPUT])
    if not vectors or not vectors[0]:
        raise ProviderError("Provider returned no embedding for the connection check")
    return len(vectors[0])


class OpenAIEmbeddingProvider:
    """Embeddings from the OpenAI API."""

    def __init__(self, api_key: str | None = None, client: "openai.AsyncOpenAI | None" = None):
        if client is None:
            if not api_key:
                raise ValueError("OpenAI API key required for embeddings. Set OPENAI_API_KEY or openai_api_key in config.")
            # retries are handled by the pipeline
            client = openai.AsyncOpenAI(api_key=api_key, max_retries=0)
        self.client = client

    async def embed(self, model: str, inputs: Sequence[str]) -> list[list[float]]:
        try:
            response = await self.client.embeddings.create(
                model=model,
                input=[clean_input(t) for t in inputs],
                encoding_format="float",
            )
        except openai.RateLimitError as e:
            raise RateLimited() from e
        except openai.AuthenticationError as e:
            raise ProviderError("Invalid API key. Please check your OpenAI API key.") from e
        except openai.BadRequestError as e:
            raise ProviderError(f"Bad request: {e.message}") from e
        except openai.APIConnectionError as e:
            raise ProviderError("Network error. Please check your internet connection.") from e
        except openai.APIStatusError as e:
            if e.status_code >= 500:
                raise ProviderError(f"Server error ({e.status_code}): Please try again later") from e
            raise ProviderError(f"API error ({e.status_code}): {e.message}") from e
        except openai.APIError as e:
            raise ProviderError(f"Embedding request failed: {e.message}") from e

        if response.data is None:
            raise ProviderError("Invalid response format from OpenAI API")
        return [d.embedding for d in sorted(response.data, key=lambda d: d.index)]
