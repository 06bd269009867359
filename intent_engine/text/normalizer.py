"""
Keyword & Text Normalizer
=========================
Builds the canonical text an entity is embedded from, and the keyword set
stored next to it for lexical lookups.

Each entity kind has its own template. Missing fields render as empty strings
so tokenization downstream stays stable.
"""

import json
import re
from typing import Any, Dict, Iterable, List, Optional, Union

from ..models.schemas import EntityKind
from ..config.settings import STOP_WORDS, KEYWORD_LIMIT

_SPLIT_PATTERN = re.compile(r"[\s\W]+")
_ALPHA_PATTERN = re.compile(r"^[a-z]+$")


# =============================================================================
# Field helpers
# =============================================================================

def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value).strip()


def _join(values: Any, key: Optional[str] = None) -> str:
    """Join a list of strings, or of dicts by ``key``."""
    if not values:
        return ""
    if isinstance(values, str):
        return values
    parts = []
    for value in values:
        if isinstance(value, dict):
            value = value.get(key) if key else None
        text = _text(value)
        if text:
            parts.append(text)
    return ", ".join(parts)


def _lines(pairs: Iterable[tuple]) -> str:
    return "\n".join(f"{label}: {_text(value)}" for label, value in pairs).strip()


# =============================================================================
# Templates
# =============================================================================

def _company_text(entity: Dict[str, Any]) -> str:
    location = " ".join(
        p for p in (_text(entity.get("hq_city")), _text(entity.get("hq_country"))) if p
    )
    return _lines([
        ("Company", entity.get("name") or entity.get("company_name")),
        ("Description", entity.get("description")),
        ("Industry", _join(entity.get("industry"))),
        ("Technologies", _join(entity.get("technologies"))),
        ("Location", location or entity.get("location")),
        ("Employee Count", entity.get("employees_count") or entity.get("employee_count")),
        ("Revenue", entity.get("revenue")),
        ("Funding Stage", entity.get("funding_stage")),
        ("Website", entity.get("website")),
    ])


def _employee_text(entity: Dict[str, Any]) -> str:
    experience = entity.get("total_experience_months")
    years = f"{int(experience) // 12} years" if isinstance(experience, (int, float)) else ""
    return _lines([
        ("Name", entity.get("full_name") or entity.get("name")),
        ("Title", entity.get("active_experience_title") or entity.get("headline") or entity.get("title")),
        ("Company", entity.get("company_name")),
        ("Department", entity.get("department")),
        ("Management Level", entity.get("management_level")),
        ("Skills", _join(entity.get("skills"))),
        ("Experience", years),
        ("Location", entity.get("location")),
        ("Summary", entity.get("summary")),
        ("Decision Maker", bool(entity.get("is_decision_maker"))),
    ])


def _enrichment_text(entity: Dict[str, Any]) -> str:
    data = entity.get("data") or entity
    return _lines([
        ("Company", data.get("company_name")),
        ("Description", data.get("description")),
        ("Industry", data.get("industry")),
        ("Employees", data.get("employees_count")),
        ("Revenue", data.get("revenue")),
        ("Last Funding", data.get("last_funding_round_amount_raised")),
        ("Technologies", _join(data.get("technologies_used"), "technology")),
        ("Key Executives", _join(data.get("key_executives"), "name")),
        ("Headquarters", data.get("hq_full_address")),
    ])


def _overview(entity: Dict[str, Any]) -> str:
    overview = entity.get("overview") or entity.get("summary") or ""
    if isinstance(overview, (dict, list)):
        overview = json.dumps(overview, default=str)
    return _text(overview)


def _default_text(entity: Dict[str, Any]) -> str:
    return json.dumps(entity, default=str)[:2000]


_TEMPLATES = {
    EntityKind.COMPANY: _company_text,
    EntityKind.EMPLOYEE: _employee_text,
    EntityKind.ENRICHMENT: _enrichment_text,
    EntityKind.GTM_INTELLIGENCE: lambda e: f"Company Analysis: {_overview(e)}".strip(),
    EntityKind.GTM_PERSONA_INTELLIGENCE: lambda e: f"Employee Analysis: {_overview(e)}".strip(),
}


def canonicalize(entity: Dict[str, Any], kind: Union[EntityKind, str]) -> str:
    """
    Render an entity as the text its embedding is generated from.

    Args:
        entity: Entity fields as a plain dict
        kind: Entity kind selecting the template

    Returns:
        Newline-joined "Label: value" text
    """
    try:
        kind = EntityKind(kind)
    except ValueError:
        return _default_text(entity)
    return _TEMPLATES[kind](entity or {})


# =============================================================================
# Keywords
# =============================================================================

def extract_keywords(text: str, limit: int = KEYWORD_LIMIT) -> List[str]:
    """
    Extract an ordered, de-duplicated keyword set from text.

    Stop words, tokens of two characters or fewer and tokens with anything
    other than ASCII letters are dropped.
    """
    if not text:
        return []

    keywords: List[str] = []
    seen = set()
    for token in _SPLIT_PATTERN.split(text.lower()):
        if len(token) <= 2 or token in STOP_WORDS or not _ALPHA_PATTERN.match(token):
            continue
        if token in seen:
            continue
        seen.add(token)
        keywords.append(token)
        if len(keywords) >= limit:
            break
    return keywords


def merge_keywords(existing: Optional[List[str]], new: List[str]) -> List[str]:
    """Union of two keyword lists, existing entries first."""
    merged = list(existing or [])
    for keyword in new:
        if keyword not in merged:
            merged.append(keyword)
    return merged
