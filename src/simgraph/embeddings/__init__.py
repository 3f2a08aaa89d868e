"""Embedding generation: input preparation, providers and the batch pipeline."""

from .pipeline import DEFAULT_MODEL, EmbeddingPipeline, embedding_stats
from .prepare import combine_text_for_embedding, estimate_cost, estimate_tokens
from .provider import EmbeddingProvider, OpenAIEmbeddingProvider, check_connection, clean_input, looks_like_api_key

__all__ = [
    "DEFAULT_MODEL",
    "EmbeddingPipeline",
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "check_connection",
    "clean_input",
    "combine_text_for_embedding",
    "embedding_stats",
    "estimate_cost",
    "estimate_tokens",
    "looks_like_api_key",
]
