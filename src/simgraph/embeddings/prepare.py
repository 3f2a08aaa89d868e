"""Embedding inputs and cost estimation."""

import math
from collections.abc import Sequence

from ..models import CostEstimate, Item

EMBEDDING_FIELDS = ("title", "description", "summary", "content", "tags")
DEFAULT_UNIT_PRICE = 0.00002  # USD per 1K tokens, text-embedding-3-small
MAX_BATCH_SIZE = 50
SECONDS_PER_BATCH = 2


def combine_text_for_embedding(item: Item) -> str:
    """One embedding input: category, text and selected metadata fields."""
    text = item.text
    if item.category:
        text = f"Category: {item.category}. {text}"
    for name in EMBEDDING_FIELDS:
        value = item.metadata.get(name)
        if value and isinstance(value, str):
            text += f" {value}"
    return text.strip()


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 tokens per 3 words)."""
    return math.ceil(len(text.split()) * 4 / 3)


def estimate_cost(
    texts: Sequence[str],
    unit_price: float = DEFAULT_UNIT_PRICE,
    batch_size: int = MAX_BATCH_SIZE,
) -> CostEstimate:
    """Estimate tokens and price of embedding ``texts`` before any request is made."""
    tokens = sum(estimate_tokens(t) for t in texts)
    cost = round(tokens / 1000 * unit_price, 5)
    batches = math.ceil(len(texts) / batch_size) if texts else 0
    return CostEstimate(
        tokens=tokens,
        cost=cost,
        cost_per_item=cost / len(texts) if texts else 0.0,
        batches=batches,
        estimated_seconds=batches * SECONDS_PER_BATCH,
    )
