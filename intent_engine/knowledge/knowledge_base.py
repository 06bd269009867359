"""
Company Knowledge Base
======================
Collects documents about one company from any number of sources, embeds
them and answers semantic queries over them. Hits convert into evidence
items for intent scoring.

Sources plug in through the DataSourceCollector protocol. A collector that
finds nothing, or fails, leaves a gap in the knowledge base rather than
stopping the build.
"""

import hashlib
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..models.schemas import EvidenceItem, KnowledgeDocument, SearchHit
from ..config.settings import BATCH_CONFIG, KNOWLEDGE_BASE_CONFIG
from ..core.utils import run_in_batches
from ..core.vectors import cosine_similarity
from ..stages.stage2_embedding import EmbeddingGenerator

logger = logging.getLogger(__name__)


class DataSourceCollector(Protocol):
    """A source of raw documents about a company."""

    name: str

    async def collect(self, company_name: str, company_url: Optional[str]) -> List[Dict[str, Any]]:
        ...


class StaticDocumentCollector:
    """Serves documents fetched elsewhere, e.g. by a scraping job."""

    def __init__(self, name: str, documents: Sequence[Dict[str, Any]]):
        self.name = name
        self.documents = list(documents)

    async def collect(self, company_name: str, company_url: Optional[str]) -> List[Dict[str, Any]]:
        return list(self.documents)


def document_id(url: Optional[str], content: str) -> str:
    return hashlib.md5(f"{url or ''}{content[:100]}".encode("utf-8")).hexdigest()


class KnowledgeBase:
    """
    In-memory knowledge base for a single company.
    """

    def __init__(
        self,
        generator: EmbeddingGenerator,
        batch_size: int = BATCH_CONFIG["batch_size"],
        delay_seconds: float = BATCH_CONFIG["delay_seconds"],
    ):
        self.generator = generator
        self.batch_size = batch_size
        self.delay_seconds = delay_seconds
        self.documents: Dict[str, KnowledgeDocument] = {}
        self.source_counts: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self.documents)

    async def build(
        self,
        collectors: Sequence[DataSourceCollector],
        company_name: str,
        company_url: Optional[str] = None,
    ) -> int:
        """
        Run every collector and add its documents.

        Returns:
            Number of new documents added
        """
        async def _collect(collector: DataSourceCollector) -> List[Dict[str, Any]]:
            return await collector.collect(company_name, company_url)

        results = await run_in_batches(collectors, _collect, self.batch_size, self.delay_seconds)

        added = 0
        for collector, raw_documents in zip(collectors, results):
            if not raw_documents:
                self.source_counts.setdefault(collector.name, 0)
                continue
            count = await self.add_documents(collector.name, raw_documents)
            self.source_counts[collector.name] = self.source_counts.get(collector.name, 0) + count
            added += count

        logger.info(
            f"Knowledge base for {company_name}: {added} documents from "
            f"{sum(1 for c in self.source_counts.values() if c)} of {len(collectors)} sources"
        )
        return added

    async def add_documents(self, source: str, raw_documents: List[Dict[str, Any]]) -> int:
        """Normalize, de-duplicate and embed raw documents from one source."""
        new_documents = []
        for raw in raw_documents:
            content = (raw.get("content") or "").strip()
            if len(content) < KNOWLEDGE_BASE_CONFIG["min_content_chars"]:
                continue
            doc_id = document_id(raw.get("url"), content)
            if doc_id in self.documents or any(d.id == doc_id for d in new_documents):
                continue
            new_documents.append(KnowledgeDocument(
                id=doc_id,
                content=content,
                source=raw.get("source") or source,
                url=raw.get("url"),
                date=raw.get("date") or date.today().isoformat(),
                type=raw.get("type") or "web",
                confidence=raw.get("confidence", KNOWLEDGE_BASE_CONFIG["default_confidence"]),
            ))

        vectors = await self.generator.embed_many(
            [d.content for d in new_documents], self.batch_size, self.delay_seconds
        )
        for document, vector in zip(new_documents, vectors):
            document.embedding = vector.values
            self.documents[document.id] = document
        return len(new_documents)

    async def search(
        self,
        query: str,
        k: int = 5,
        min_similarity: float = KNOWLEDGE_BASE_CONFIG["min_similarity"],
    ) -> List[SearchHit]:
        """Top-k documents by cosine similarity to the query."""
        if not self.documents:
            return []

        query_vector = (await self.generator.embed(query)).values
        hits = []
        for document in self.documents.values():
            if not document.embedding:
                continue
            similarity = cosine_similarity(query_vector, document.embedding)
            if similarity >= min_similarity:
                hits.append(SearchHit(document=document, similarity=round(similarity, 4)))

        hits.sort(key=lambda h: h.similarity, reverse=True)
        return hits[:k]


def to_evidence(hits: List[SearchHit], summary_chars: int = 300) -> List[EvidenceItem]:
    """Convert search hits into evidence items for signal scoring."""
    return [
        EvidenceItem(
            source=hit.document.source,
            url=hit.document.url,
            date=hit.document.date,
            summary=hit.document.content[:summary_chars],
            confidence=min(1.0, max(0.0, hit.document.confidence)),
            source_type=hit.document.type,
        )
        for hit in hits
    ]
