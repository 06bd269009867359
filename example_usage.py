"""
Intent Engine - Usage Examples
==============================
This file demonstrates how to use the Intent Engine programmatically.
Examples 1-3 run offline; Example 4 needs an EXA_API_KEY.
"""

import asyncio
from datetime import date, timedelta


def _days_ago(days: int) -> str:
    return (date.today() - timedelta(days=days)).isoformat()


# =============================================================================
# EXAMPLE 1: Intent Scoring (Programmatic)
# =============================================================================

async def example_intent_scoring():
    """Score a raw signal report"""
    from intent_engine.engine import create_engine
    from intent_engine.models.schemas import RawSignalReport, SignalResult, EvidenceItem

    engine = create_engine(
        signals=["new_funding_round", "hiring_in_engineering_department", "expansion"],
        signal_weights={"new_funding_round": 2, "hiring_in_engineering_department": 1, "expansion": 1},
    )

    report = RawSignalReport(
        company="TechStartup Inc",
        website="https://techstartup.example",
        requested_signals=["new_funding_round", "hiring_in_engineering_department", "expansion"],
        results=[
            SignalResult(
                signal="new_funding_round",
                found=True,
                reasoning="Announced a $15M Series B",
                evidence=[
                    EvidenceItem(source="TechCrunch", url="https://techcrunch.example/a",
                                 date=_days_ago(12), summary="TechStartup raises $15M Series B",
                                 confidence=0.9, source_type="news"),
                    EvidenceItem(source="Press release", url="https://techstartup.example/press",
                                 date=_days_ago(13), summary="Series B led by Example Ventures",
                                 confidence=0.95, source_type="press_release"),
                ],
            ),
            SignalResult(
                signal="hiring_in_engineering_department",
                found=True,
                reasoning="Twelve open engineering roles",
                evidence=[
                    EvidenceItem(source="Careers page", url="https://techstartup.example/jobs",
                                 date=_days_ago(3), summary="12 open backend and platform roles",
                                 confidence=0.8, source_type="job_board"),
                ],
            ),
            SignalResult(signal="expansion", found=False),
        ],
    )

    result = await engine.calculate_intent_score(report)
    print(f"Score:      {result.score}/100 ({result.path.value} path)")
    print(f"Confidence: {result.confidence.value}")
    print(f"Timing:     {result.timing_recommendation.value}")
    print(f"Reason:     {result.reason}")
    for factor in result.factors:
        print(f"  - {factor.signal}: {factor.score} (weight {factor.weight})")


# =============================================================================
# EXAMPLE 2: Entity Embeddings
# =============================================================================

async def example_embeddings():
    """Embed a stored company and skip it while fresh"""
    from intent_engine.core.store import InMemoryEntityStore
    from intent_engine.models.schemas import EntityKind
    from intent_engine.stages.stage2_embedding import EmbeddingGenerator, EntityEmbedder

    store = InMemoryEntityStore()
    store.put(EntityKind.COMPANY, "c1", {
        "id": "c1",
        "name": "TechStartup Inc",
        "description": "B2B customer data platform",
        "industry": ["Software", "SaaS"],
        "technologies": ["AWS", "Python"],
        "hq_city": "San Francisco",
        "hq_country": "US",
    })

    embedder = EntityEmbedder(EmbeddingGenerator(), store=store)
    print(f"First refresh wrote fields:  {await embedder.refresh(EntityKind.COMPANY, 'c1')}")
    print(f"Second refresh wrote fields: {await embedder.refresh(EntityKind.COMPANY, 'c1')}")

    stored = await store.get(EntityKind.COMPANY, "c1")
    print(f"Keywords: {stored['search_keywords']}")
    print(f"Stats:    {(await embedder.stats(EntityKind.COMPANY)).model_dump()}")


# =============================================================================
# EXAMPLE 3: Event Scoring
# =============================================================================

def example_event_scoring():
    """Weighted trigger scores from business events"""
    from intent_engine.models.schemas import BusinessEvent
    from intent_engine.stages.event_scoring import score_events

    events = [
        BusinessEvent(event_name="new_funding_round", event_time=_days_ago(5)),
        BusinessEvent(event_name="new_product", event_time=_days_ago(40)),
        BusinessEvent(event_name="new_product", event_time=_days_ago(20)),
    ]
    result = score_events(events, ["new_funding_round", "new_product", "expansion"])
    print(f"Final: {result.final_intent_score} ({result.overall_confidence})")
    for signal in result.signal_breakdown:
        print(f"  - {signal.signal}: raw {signal.raw_score}, weight {signal.weight}")


# =============================================================================
# EXAMPLE 4: Provider Search
# =============================================================================

async def example_search():
    """Run a search job end to end and embed its results (needs EXA_API_KEY)"""
    import os
    from intent_engine.models.schemas import EntityKind, SearchJobSpec
    from intent_engine.stages.stage2_embedding import EmbeddingGenerator, EntityEmbedder
    from intent_engine.providers.websets import WebsetsClient
    from intent_engine.stages.stage1_search import SearchOrchestrator

    if not os.getenv("EXA_API_KEY"):
        print("EXA_API_KEY not set, skipping")
        return

    async with WebsetsClient() as client:
        orchestrator = SearchOrchestrator(client)
        result = await orchestrator.create_and_await_with_retry(
            SearchJobSpec(query="B2B fintech companies hiring engineers", count=10, min_results=5)
        )
        print(f"Job {result.job_id}: {len(result.items)} items (partial={result.is_partial})")

    embedded = await EntityEmbedder(EmbeddingGenerator()).embed_results(result, EntityKind.COMPANY)
    for item in embedded[:3]:
        print(f"  {item.get('id')}: {len(item.get('embedding', []))} dims, keywords {item.get('search_keywords', [])[:5]}")


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    from dotenv import load_dotenv
    from intent_engine.config.logging_config import setup_logging

    load_dotenv()
    setup_logging()

    print("\n" + "=" * 60)
    print("INTENT ENGINE - USAGE EXAMPLES")
    print("=" * 60 + "\n")

    print("\n[Example 1: Intent Scoring]")
    asyncio.run(example_intent_scoring())

    print("\n" + "-" * 60)
    print("\n[Example 2: Entity Embeddings]")
    asyncio.run(example_embeddings())

    print("\n" + "-" * 60)
    print("\n[Example 3: Event Scoring]")
    example_event_scoring()

    print("\n" + "-" * 60)
    print("\n[Example 4: Provider Search]")
    asyncio.run(example_search())

    print("\n" + "=" * 60)
    print("EXAMPLES COMPLETE")
    print("=" * 60)
