"""
Stage 2: Embedding Generation
=============================
Semantic vectors for companies, employees and enrichment records.

Two strategies behind one call:
- Primary: OpenAI embeddings API, rate-limited per generator instance
- Fallback: deterministic hash-bucket vector, used whenever the API is
  disabled, rate-limited into an error, or returns anything unexpected

Both strategies produce vectors of the same length, so consumers never
branch on where a vector came from.
"""

import asyncio
import logging
import re
import time
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from openai import AsyncOpenAI

from ..models.schemas import (
    EmbeddingSource,
    EmbeddingStats,
    EmbeddingUpdate,
    EmbeddingVector,
    EntityKind,
    ResultSet,
)
from ..config.settings import EMBEDDING_CONFIG, BATCH_CONFIG
from ..core.errors import sanitize_error_message
from ..core.store import EntityStore
from ..core.utils import as_aware, parse_date, run_in_batches, utcnow
from ..core.vectors import normalize_vector
from ..text.normalizer import canonicalize, extract_keywords, merge_keywords

logger = logging.getLogger(__name__)

_WORD_SPLIT = re.compile(r"\W+")


# =============================================================================
# Rate Limiter
# =============================================================================

class RateLimiter:
    """
    Rolling-window request counter owned by a single generator.

    When the window's budget is spent, ``acquire`` waits out the rest of the
    window plus one second and starts a fresh window.
    """

    def __init__(
        self,
        max_per_window: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.max_per_window = max(max_per_window, 1)
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._window_start = clock()
        self._count = 0
        self._lock = asyncio.Lock()

    @property
    def used(self) -> int:
        return self._count

    async def acquire(self) -> None:
        async with self._lock:
            now = self._clock()
            if now - self._window_start >= self.window_seconds:
                self._window_start = now
                self._count = 0

            if self._count >= self.max_per_window:
                wait = self.window_seconds - (now - self._window_start) + 1.0
                logger.info(f"Embedding rate limit reached, waiting {wait:.1f}s")
                await self._sleep(wait)
                self._window_start = self._clock()
                self._count = 0

            self._count += 1


# =============================================================================
# Fallback Strategy
# =============================================================================

def _string_hash(word: str) -> int:
    """Deterministic signed 32-bit string hash (h = h * 31 + c)."""
    h = 0
    for char in word:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def fallback_embedding(text: str, dimensions: int = EMBEDDING_CONFIG["dimensions"]) -> List[float]:
    """
    Hash-bucket embedding: each unique word (length > 2) bumps one bucket,
    then the vector is L2-normalized. Empty text gives an all-zero vector.
    """
    vector = [0.0] * dimensions
    words = {w for w in _WORD_SPLIT.split((text or "").lower()) if len(w) > 2}
    for word in words:
        vector[abs(_string_hash(word)) % dimensions] += 1.0
    return normalize_vector(vector)


# =============================================================================
# Embedding Generator
# =============================================================================

class EmbeddingGenerator:
    """
    Produces an EmbeddingVector for any text. Never raises.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        max_input_chars: Optional[int] = None,
        rate_limiter: Optional[RateLimiter] = None,
        client: Optional[Any] = None,
    ):
        self.api_key = api_key if api_key is not None else EMBEDDING_CONFIG.get("api_key")
        self.model = model or EMBEDDING_CONFIG["model"]
        self.dimensions = dimensions or EMBEDDING_CONFIG["dimensions"]
        self.max_input_chars = max_input_chars or EMBEDDING_CONFIG["max_input_chars"]
        self.rate_limiter = rate_limiter or RateLimiter(EMBEDDING_CONFIG["rate_limit_per_minute"])
        self.client = client
        if self.client is None and self.api_key:
            self.client = AsyncOpenAI(api_key=self.api_key)

        self.stats = {"primary": 0, "fallback": 0, "primary_errors": 0}

    @property
    def primary_enabled(self) -> bool:
        return self.client is not None

    async def embed(self, text: str) -> EmbeddingVector:
        """
        Embed text with the primary API, falling back to the hash embedding.

        Args:
            text: Canonical text to embed

        Returns:
            EmbeddingVector of ``self.dimensions`` floats
        """
        source_text = (text or "")[: self.max_input_chars]

        if self.client is not None and source_text.strip():
            try:
                values = await self._embed_primary(source_text)
                self.stats["primary"] += 1
                return EmbeddingVector(
                    values=values,
                    generated_at=utcnow(),
                    source_text=source_text,
                    provider=EmbeddingSource.PRIMARY,
                )
            except Exception as e:
                self.stats["primary_errors"] += 1
                logger.warning(
                    f"Embedding API failed, using fallback: {sanitize_error_message(str(e))}"
                )

        self.stats["fallback"] += 1
        return EmbeddingVector(
            values=fallback_embedding(source_text, self.dimensions),
            generated_at=utcnow(),
            source_text=source_text,
            provider=EmbeddingSource.FALLBACK,
        )

    async def embed_many(
        self,
        texts: List[str],
        batch_size: int = BATCH_CONFIG["batch_size"],
        delay_seconds: float = BATCH_CONFIG["delay_seconds"],
    ) -> List[EmbeddingVector]:
        """Embed texts in fixed-size concurrent batches, order preserved."""
        return await run_in_batches(texts, self.embed, batch_size, delay_seconds)

    async def _embed_primary(self, text: str) -> List[float]:
        await self.rate_limiter.acquire()
        response = await self.client.embeddings.create(
            model=self.model,
            input=text,
            encoding_format="float",
        )
        values = [float(v) for v in response.data[0].embedding]
        if len(values) != self.dimensions:
            raise ValueError(
                f"Embedding has {len(values)} dimensions, expected {self.dimensions}"
            )
        return values


# =============================================================================
# Regeneration Policy
# =============================================================================

def needs_regeneration(
    entity: Dict[str, Any],
    is_new: bool = False,
    now: Optional[datetime] = None,
    staleness_days: int = EMBEDDING_CONFIG["staleness_days"],
) -> bool:
    """
    Whether an entity's embedding must be (re)generated.

    The same rule applies to every entity kind: new entities, entities
    without a vector and vectors older than the staleness window regenerate.
    """
    if is_new:
        return True
    if not entity.get("embedding"):
        return True

    generated_at = entity.get("embedding_generated_at")
    if isinstance(generated_at, str):
        generated_at = parse_date(generated_at)
    if not isinstance(generated_at, datetime):
        return True

    reference = as_aware(now) if now else utcnow()
    return reference - as_aware(generated_at) > timedelta(days=staleness_days)


# =============================================================================
# Entity Embedder
# =============================================================================

class EntityEmbedder:
    """
    Applies the regeneration policy to stored entities and writes back the
    embedding fields.
    """

    KEYWORD_KINDS = (EntityKind.COMPANY, EntityKind.EMPLOYEE)

    def __init__(
        self,
        generator: EmbeddingGenerator,
        store: Optional[EntityStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.generator = generator
        self.store = store
        self.clock = clock

    async def build_update(
        self, entity: Dict[str, Any], kind: Union[EntityKind, str]
    ) -> EmbeddingUpdate:
        """Canonicalize and embed an entity, regardless of staleness."""
        text = canonicalize(entity, kind)
        vector = await self.generator.embed(text)

        update = EmbeddingUpdate(
            embedding=vector.values,
            embedding_text=text[: EMBEDDING_CONFIG["embedding_text_chars"]],
            embedding_generated_at=self.clock(),
        )
        if kind in self.KEYWORD_KINDS:
            keywords = extract_keywords(text, limit=EMBEDDING_CONFIG["keyword_limit"])
            update.search_keywords = merge_keywords(entity.get("search_keywords"), keywords)
            update.semantic_summary = text[: EMBEDDING_CONFIG["semantic_summary_chars"]]
        return update

    async def embed_entity(
        self,
        entity: Dict[str, Any],
        kind: Union[EntityKind, str],
        is_new: bool = False,
        force: bool = False,
    ) -> Optional[EmbeddingUpdate]:
        """Return the embedding fields to write, or None when still fresh."""
        if not force and not needs_regeneration(entity, is_new, now=self.clock()):
            logger.debug(f"Embedding for {kind} {entity.get('id', '?')} is fresh, skipping")
            return None
        return await self.build_update(entity, kind)

    async def refresh(
        self,
        kind: Union[EntityKind, str],
        entity_id: str,
        is_new: bool = False,
        force: bool = False,
    ) -> bool:
        """
        Load an entity, regenerate its embedding if needed and store it.

        Returns:
            True when new embedding fields were written
        """
        if self.store is None:
            raise RuntimeError("EntityEmbedder.refresh needs an entity store")

        kind = EntityKind(kind)
        entity = await self.store.get(kind, entity_id)
        if entity is None:
            logger.warning(f"{kind.value} {entity_id} not found, nothing to embed")
            return False

        update = await self.embed_entity(entity, kind, is_new=is_new, force=force)
        if update is None:
            return False

        await self.store.update(kind, entity_id, update.to_fields())
        logger.info(f"Embedded {kind.value} {entity_id}")
        return True

    async def refresh_many(
        self,
        kind: Union[EntityKind, str],
        entity_ids: Optional[List[str]] = None,
        force: bool = False,
        batch_size: int = BATCH_CONFIG["batch_size"],
        delay_seconds: float = BATCH_CONFIG["delay_seconds"],
    ) -> Dict[str, int]:
        """Refresh many entities in concurrent batches."""
        if self.store is None:
            raise RuntimeError("EntityEmbedder.refresh_many needs an entity store")

        kind = EntityKind(kind)
        ids = entity_ids if entity_ids is not None else await self.store.list_ids(kind)

        async def _refresh(entity_id: str) -> bool:
            return await self.refresh(kind, entity_id, force=force)

        results = await run_in_batches(ids, _refresh, batch_size, delay_seconds)
        return {
            "processed": len(ids),
            "updated": sum(1 for r in results if r is True),
            "skipped": sum(1 for r in results if r is False),
            "failed": sum(1 for r in results if r is None),
        }

    async def embed_results(
        self,
        result_set: ResultSet,
        kind: Union[EntityKind, str] = EntityKind.COMPANY,
        batch_size: int = BATCH_CONFIG["batch_size"],
        delay_seconds: float = BATCH_CONFIG["delay_seconds"],
    ) -> List[Dict[str, Any]]:
        """
        Embed the items of a finished search job.

        Every item is treated as new. Items come back in their original order
        with the embedding fields merged in; an item whose embedding failed
        comes back unchanged.
        """
        kind = EntityKind(kind)

        async def _embed(item: Dict[str, Any]) -> Optional[EmbeddingUpdate]:
            return await self.embed_entity(item, kind, is_new=True)

        updates = await run_in_batches(result_set.items, _embed, batch_size, delay_seconds)

        embedded = []
        for item, update in zip(result_set.items, updates):
            if update is None:
                logger.warning(
                    f"No embedding for {kind.value} {item.get('id', '?')} from job {result_set.job_id}"
                )
                embedded.append(dict(item))
            else:
                embedded.append({**item, **update.to_fields()})

        logger.info(
            f"Embedded {len(embedded)} {kind.value} result(s) from job {result_set.job_id}"
        )
        return embedded

    async def stats(self, kind: Union[EntityKind, str]) -> EmbeddingStats:
        """Embedding coverage for one entity kind"""
        if self.store is None:
            raise RuntimeError("EntityEmbedder.stats needs an entity store")

        kind = EntityKind(kind)
        stats = EmbeddingStats(kind=kind)
        now = self.clock()
        for entity_id in await self.store.list_ids(kind):
            entity = await self.store.get(kind, entity_id) or {}
            stats.total += 1
            if entity.get("embedding"):
                stats.with_embeddings += 1
                if needs_regeneration(entity, now=now):
                    stats.outdated += 1
            else:
                stats.without_embeddings += 1
        return stats
