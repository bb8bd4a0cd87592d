from __future__ import annotations

from rapidfuzz import fuzz


def _safe(value: str | None) -> str:
    return (value or "").strip()


def score_link(link, query: str) -> float:
    q = query.strip().lower()
    title_l = _safe(link.title).lower()
    description_l = _safe(link.description).lower()
    tags_l = " ".join(link.tags or []).lower()

    score = 0.0

    if q == title_l:
        score += 150
    elif title_l.startswith(q):
        score += 120
    elif q in title_l:
        score += 100

    if tags_l and q in tags_l:
        score += 90

    if description_l and q in description_l:
        score += 45

    fuzzy_title = fuzz.partial_ratio(q, title_l) if title_l else 0
    if fuzzy_title >= 72:
        score += fuzzy_title * 0.30

    fuzzy_tags = fuzz.partial_ratio(q, tags_l) if tags_l else 0
    if fuzzy_tags >= 80:
        score += fuzzy_tags * 0.20

    if description_l and len(q) >= 4:
        fuzzy_description = fuzz.partial_ratio(q, description_l[:6000])
        if fuzzy_description >= 88:
            score += fuzzy_description * 0.16

    return score


def search_links(links, query: str) -> list:
    """Return the links that match ``query``, in their incoming order.

    Callers pick the ordering, so the score only decides membership.
    """
    if not query or not query.strip():
        return []
    return [link for link in links if score_link(link, query) > 0]
