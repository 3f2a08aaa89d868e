"""Batched, rate-limited embedding runs.

A run moves through ``preparing -> batching -> (submitting -> retrying?)* ->
finalizing -> complete`` and ends in ``failed`` on an unrecoverable error.
Progress is exposed both as a stream of :class:`ProgressEvent` from
:meth:`EmbeddingPipeline.run` and as the ``state``/``progress`` attributes.
"""

import asyncio
import logging
import math
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Any

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import PipelineCancelled, PipelineFailed, ProviderError, RateLimited
from ..models import CostEstimate, EmbeddingRunResult, Item, PipelineState, ProgressEvent
from .prepare import DEFAULT_UNIT_PRICE, MAX_BATCH_SIZE, combine_text_for_embedding, estimate_cost
from .provider import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "text-embedding-3-small"
LARGE_RUN = 1000


class EmbeddingPipeline:
    """Fills in item embeddings through an :class:`EmbeddingProvider`.

    Only rate-limit responses are retried, with exponential backoff
    (``backoff_base``, doubled per attempt) up to ``max_attempts`` submissions
    per batch. Embeddings are written back batch by batch, so a failure keeps
    whatever earlier batches produced. Do not touch the items while a run is
    in progress.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        model: str = DEFAULT_MODEL,
        batch_size: int = MAX_BATCH_SIZE,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        batch_delay: float = 0.2,
        unit_price: float = DEFAULT_UNIT_PRICE,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.provider = provider
        self.model = model
        self.batch_size = max(1, min(batch_size, MAX_BATCH_SIZE))
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self.batch_delay = batch_delay
        self.unit_price = unit_price
        self._sleep = sleep

        self.state: PipelineState | None = None
        self.progress = 0.0
        self.attempts: dict[int, int] = {}
        self.result: EmbeddingRunResult | None = None
        self._running = False

    @classmethod
    def from_config(cls, provider: EmbeddingProvider, config: dict[str, Any], **kwargs: Any) -> "EmbeddingPipeline":
        cfg = config.get("embedding", {})
        return cls(
            provider,
            model=cfg.get("model", DEFAULT_MODEL),
            batch_size=cfg.get("batch_size", MAX_BATCH_SIZE),
            max_attempts=cfg.get("max_attempts", 3),
            backoff_base=cfg.get("backoff_base", 1.0),
            batch_delay=cfg.get("batch_delay", 0.2),
            unit_price=cfg.get("unit_price", DEFAULT_UNIT_PRICE),
            **kwargs,
        )

    def estimate(self, items: Sequence[Item]) -> CostEstimate:
        """What a run over ``items`` is expected to cost; no request is made."""
        texts = [combine_text_for_embedding(item) for item in items]
        return estimate_cost(texts, self.unit_price, self.batch_size)

    def _event(self, state: PipelineState, progress: float, message: str, current: int = 0, total: int = 0) -> ProgressEvent:
        self.state = state
        self.progress = max(self.progress, progress)
        return ProgressEvent(state=state, progress=self.progress, message=message, current=current, total=total)

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_base),
            retry=retry_if_exception_type(RateLimited),
            before_sleep=before_sleep_log(logger, logging.INFO),
            sleep=self._sleep,
            reraise=True,
        )

    async def run(
        self,
        items: Sequence[Item],
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[ProgressEvent]:
        """Embed ``items`` in place, yielding progress events.

        Args:
            items: Items to embed. Each gets ``embedding`` set on success.
            cancel: Checked before each batch; a set event stops the run
                between batches with :class:`PipelineCancelled`.

        Raises:
            PipelineFailed: a batch was still rate limited after
                ``max_attempts`` submissions, or the provider failed.
        """
        if self._running:
            raise RuntimeError("This pipeline is already running")
        self._running = True
        self.progress = 0.0
        self.attempts = {}
        self.result = None
        completed = False
        started = time.monotonic()

        try:
            items = list(items)
            total = len(items)
            texts = [combine_text_for_embedding(item) for item in items]
            estimate = estimate_cost(texts, self.unit_price, self.batch_size)
            if total > LARGE_RUN:
                logger.info(f"Processing large dataset: {total} items, estimated cost: ${estimate.cost:.4f}")
            yield self._event(
                PipelineState.PREPARING, 5,
                f"Preparing {total} item(s) (estimated cost: ${estimate.cost:.4f})", 0, total,
            )

            spans = [range(start, min(start + self.batch_size, total)) for start in range(0, total, self.batch_size)]
            yield self._event(PipelineState.BATCHING, 10, f"Split into {len(spans)} batch(es)", 0, total)

            embedded = 0
            for index, span in enumerate(spans):
                number = index + 1
                if cancel is not None and cancel.is_set():
                    raise PipelineCancelled(
                        f"Embedding run cancelled after {index} of {len(spans)} batch(es)",
                        batch=number,
                    )

                percent = 10 + 80 * index / len(spans)
                yield self._event(
                    PipelineState.SUBMITTING, percent,
                    f"Processing batch {number}/{len(spans)} ({len(span)} items)", span.start, total,
                )

                vectors: list[list[float]] = []
                try:
                    async for attempt in self._retrying():
                        tries = attempt.retry_state.attempt_number
                        self.attempts[number] = tries
                        if tries > 1:
                            yield self._event(
                                PipelineState.RETRYING, percent,
                                f"Retrying batch {number} (attempt {tries}/{self.max_attempts})...", span.start, total,
                            )
                        with attempt:
                            self.state = PipelineState.SUBMITTING
                            vectors = await self.provider.embed(self.model, [texts[i] for i in span])
                except RateLimited as e:
                    raise PipelineFailed(
                        f"Failed to process batch {number} after {self.attempts[number]} attempts: {e}",
                        batch=number,
                        attempts=self.attempts[number],
                    ) from e
                except ProviderError as e:
                    raise PipelineFailed(
                        f"Failed to process batch {number}: {e}",
                        batch=number,
                        attempts=self.attempts[number],
                    ) from e

                embedded += self._commit(items, span, vectors, number)

                if number < len(spans):
                    await self._sleep(self.batch_delay)

            yield self._event(PipelineState.FINALIZING, 95, "Assigning embeddings to items...", total, total)

            elapsed = time.monotonic() - started
            self.result = EmbeddingRunResult(
                items=items,
                embedded=embedded,
                missing=total - embedded,
                batches=len(spans),
                attempts=dict(self.attempts),
                estimate=estimate,
                elapsed=elapsed,
            )
            if self.result.missing:
                logger.warning(f"{self.result.missing} item(s) did not get an embedding")
            logger.info(f"Embedding run finished: {embedded}/{total} embedded in {elapsed:.1f}s")
            completed = True
            yield self._event(
                PipelineState.COMPLETE, 100,
                f"Complete! Generated {embedded} embeddings in {elapsed:.1f}s", embedded, total,
            )
        finally:
            self._running = False
            if not completed:
                self.state = PipelineState.FAILED

    @staticmethod
    def _commit(items: list[Item], span: range, vectors: Sequence[Sequence[float]], number: int) -> int:
        """Write a batch's vectors back by position; returns how many were written."""
        written = 0
        for position, vector in zip(span, vectors):
            items[position].embedding = [float(v) for v in vector]
            written += 1
        if written < len(span):
            logger.warning(
                f"Batch {number}: got {written} embedding(s) for {len(span)} input(s); "
                f"{len(span) - written} item(s) left without an embedding"
            )
        return written

    async def embed_items(
        self,
        items: Sequence[Item],
        on_progress: Callable[[ProgressEvent], None] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> EmbeddingRunResult:
        """Run to completion, forwarding each progress event to ``on_progress``."""
        async for event in self.run(items, cancel):
            if on_progress:
                on_progress(event)
        return self.result


def embedding_stats(items: Sequence[Item]) -> dict[str, Any]:
    """Coverage and magnitude summary of the embeddings on ``items``."""
    embedded = [item for item in items if item.has_embedding]
    dimensions = len(embedded[0].embedding) if embedded else 0
    avg_magnitude = (
        sum(math.sqrt(sum(v * v for v in item.embedding)) for item in embedded) / len(embedded)
        if embedded else 0.0
    )

    if avg_magnitude > 0.1:
        quality = "Good"
    elif avg_magnitude > 0.05:
        quality = "Fair"
    else:
        quality = "Poor"

    return {
        "total": len(items),
        "with_embeddings": len(embedded),
        "without_embeddings": len(items) - len(embedded),
        "dimensions": dimensions,
        "completion_rate": round(len(embedded) / len(items) * 100) if items else 0,
        "is_complete": bool(items) and len(embedded) == len(items),
        "avg_magnitude": round(avg_magnitude, 3),
        "quality": quality,
    }
