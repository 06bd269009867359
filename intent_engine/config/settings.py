"""
Configuration settings for the Intent Engine
"""

from typing import Dict, List, Any
import os


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


# =============================================================================
# LLM CONFIGURATION (OpenRouter)
# =============================================================================

LLM_CONFIG = {
    "provider": os.getenv("LLM_PROVIDER", "openrouter"),  # openrouter, openai
    "model": os.getenv("LLM_MODEL", "openai/gpt-4o-mini"),  # OpenRouter model format
    "api_key": os.getenv("OPENROUTER_API_KEY", ""),
    "openai_api_key": os.getenv("OPENAI_API_KEY", ""),
    "base_url": os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1"),
    "max_tokens": 1500,
    "temperature": 0.3,
    # OpenRouter specific headers
    "site_url": os.getenv("OPENROUTER_SITE_URL", "http://localhost:8000"),
    "app_name": os.getenv("OPENROUTER_APP_NAME", "Intent Engine"),
}

# =============================================================================
# EMBEDDING CONFIGURATION
# =============================================================================

EMBEDDING_CONFIG = {
    "model": os.getenv("EMBEDDING_MODEL", "text-embedding-3-small"),
    "api_key": os.getenv("OPENAI_API_KEY", ""),
    "dimensions": 1536,
    "max_input_chars": 8000,
    "rate_limit_per_minute": _env_int("EMBEDDING_RATE_LIMIT", 100),
    # Fixed in logic, not read from the environment
    "staleness_days": 30,
    "embedding_text_chars": 1000,
    "semantic_summary_chars": 500,
    "keyword_limit": 20,
}

# =============================================================================
# DATA PROVIDERS
# =============================================================================

WEBSETS_CONFIG = {
    "base_url": os.getenv("EXA_BASE_URL", "https://api.exa.ai"),
    "api_key": os.getenv("EXA_API_KEY", ""),
    "request_timeout": _env_float("EXA_REQUEST_TIMEOUT", 30.0),
    "entity_type": "company",
    "enrichment_format": "email",
}

COMPANY_DATA_CONFIG = {
    "base_url": os.getenv("CORESIGNAL_BASE_URL", "https://api.coresignal.com/cdapi/v2"),
    "api_key": os.getenv("CORESIGNAL_API_KEY", ""),
    "request_timeout": _env_float("CORESIGNAL_REQUEST_TIMEOUT", 30.0),
}

# =============================================================================
# POLLING, RETRY & BATCHING
# =============================================================================

POLLING_CONFIG = {
    "interval_seconds": _env_float("POLL_INTERVAL_SECONDS", 5.0),
    "max_attempts": _env_int("POLL_MAX_ATTEMPTS", 120),  # 5s x 120 = 10 minutes
    "max_consecutive_errors": 5,
}

RETRY_CONFIG = {
    "attempts": 3,
    "base_delay_seconds": 2.0,
    "multiplier": 2.0,
    "max_delay_seconds": 30.0,
}

BATCH_CONFIG = {
    "batch_size": 5,
    "delay_seconds": 0.2,
}

# Search job statuses reported by the provider
SEARCH_STATUS = {
    "success": ["idle", "completed"],
    "failure": ["paused", "canceled", "failed"],
}

ENRICHMENT_STATUS = {
    "success": ["completed"],
    "failure": ["canceled"],
}

# =============================================================================
# INTENT SCORING
# =============================================================================

SIGNAL_MULTIPLIERS = {
    "high_impact": {
        "signals": ["new_funding_round", "merger_and_acquisitions", "new_product"],
        "multiplier": 1.3,
    },
    "medium_impact": {
        "signals": ["hiring_in_engineering_department", "expansion", "new_partnership"],
        "multiplier": 1.1,
    },
    "default": 1.0,
}

EVIDENCE_SCORING = {
    "base": 30,
    # (minimum evidence items, bonus) checked top-down
    "quantity_bonus": [(5, 25), (3, 20), (1, 15)],
    "recency_bonus": [(3, 20), (1, 10)],
    "confidence_weight": 15,
    "recency_days": 90,
}

SCORING_THRESHOLDS = {
    "sufficiency_min_score": 40,
    "strong_signal": 60,
    "fallback_evidence_bonus": 3,
    "fallback_recency_bonus": 2,
}

INTENT_LEVELS = [
    (81, "Very High"),
    (61, "High"),
    (41, "Moderate"),
    (21, "Low"),
    (0, "No Intent"),
]

CONFIDENCE_BY_SOURCES = [
    (8, "very-high"),
    (5, "high"),
    (2, "medium"),
    (0, "low"),
]

TIMING_BY_SCORE = [
    (80, "immediate"),
    (60, "short-term"),
    (40, "long-term"),
    (0, "monitor"),
]

BUSINESS_RULES = {
    "unsupported_high_score": {"threshold": 50, "penalty": -8},
    "recent_signals": {"min_signals": 2, "bonus": 10},
    "source_diversity": {"min_types": 3, "bonus": 5},
    "negative_signal": {"patterns": ["decrease", "cost_cutting", "layoff"], "penalty": -15},
    "funding_and_hiring": {"funding": "new_funding_round", "hiring": "hiring", "bonus": 12},
    # Run the adjuster after the rule-based fallback as well
    "apply_to_fallback": os.getenv("APPLY_RULES_TO_FALLBACK", "false").lower() == "true",
}

MAX_WEIGHTED_SIGNALS = 5

# Event-based scoring: (minimum occurrences, points) and (maximum age in days, points)
EVENT_OCCURRENCE_POINTS = [(5, 50), (4, 44), (3, 37), (2, 29), (1, 19)]
EVENT_RECENCY_POINTS = [(7, 50), (14, 44), (30, 37), (45, 29), (60, 19), (90, 9)]

# =============================================================================
# KEYWORD EXTRACTION
# =============================================================================

STOP_WORDS = frozenset([
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "with", "by", "as", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "should",
    "can", "could", "may", "might", "must", "shall", "of", "from", "that",
    "this", "these", "those", "it", "its", "not", "no",
])

KEYWORD_LIMIT = 50

# =============================================================================
# KNOWLEDGE BASE
# =============================================================================

KNOWLEDGE_BASE_CONFIG = {
    "min_content_chars": 10,
    "default_confidence": 0.8,
    "min_similarity": 0.3,
}

# =============================================================================
# LOGGING
# =============================================================================

LOGGING_CONFIG = {
    "level": os.getenv("LOG_LEVEL", "INFO"),
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}
