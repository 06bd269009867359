"""
Intent Engine - Lead Enrichment & Intent Scoring
================================================
An asynchronous pipeline for turning provider data into scored leads:
  Stage 1: Search & Enrichment (provider jobs, polling, retry)
  Stage 2: Embedding Generation (primary API + offline fallback)
  Stage 3: Evidence Scoring (deterministic, with rule-based fallback)
  Stage 4: AI Intent Scoring (validated model output + business rules)
"""

__version__ = "1.0.0"
__author__ = "Intent Engine Team"
