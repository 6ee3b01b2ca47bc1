import math
from datetime import datetime, timezone
from typing import Any, Iterable

SECONDS_PER_DAY = 60 * 60 * 24


def _credibility_score(analysis: Any) -> float:
    if hasattr(analysis, "credibility_analysis"):
        return float(analysis.credibility_analysis.score)
    try:
        return float((analysis or {}).get("credibility_analysis", {}).get("score") or 0)
    except (TypeError, ValueError):
        return 0.0


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def compute_stats(papers: Iterable[Any], now: datetime | None = None) -> dict[str, int]:
    """Summarize a user's saved papers for the dashboard header."""
    papers = list(papers)
    now = _as_aware(now or datetime.now(timezone.utc))

    total = len(papers)
    if not total:
        return {
            "total_papers": 0,
            "avg_credibility": 0,
            "papers_with_notes": 0,
            "days_since_last_analysis": 0,
        }

    mean = sum(_credibility_score(p.analysis) for p in papers) / total
    newest = max(_as_aware(p.created_at) for p in papers)
    elapsed = (now - newest).total_seconds() / SECONDS_PER_DAY

    return {
        "total_papers": total,
        "avg_credibility": math.floor(mean + 0.5),
        "papers_with_notes": sum(1 for p in papers if p.notes),
        "days_since_last_analysis": max(0, math.ceil(elapsed)),
    }
