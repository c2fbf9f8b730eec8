from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 100


def score_answers(answers: Iterable[Any]) -> int:
    return sum(1 for a in answers if a.is_correct)


def group_by_respondent(answers: Iterable[Any]) -> "OrderedDict[Any, List[Any]]":
    """Group answer rows by user_id, keeping first-seen order."""
    groups: "OrderedDict[Any, List[Any]]" = OrderedDict()
    for a in answers:
        groups.setdefault(a.user_id, []).append(a)
    return groups


def round_one_decimal(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def average_score(answers: Iterable[Any]) -> float:
    """
    Mean of the per-respondent correct counts, rounded to one decimal.

    A quiz nobody has answered averages 0.
    """
    groups = group_by_respondent(answers)
    if not groups:
        return 0
    total = sum(score_answers(rows) for rows in groups.values())
    return round_one_decimal(total / len(groups))


def respondent_summaries(answers: Iterable[Any], total_questions: int) -> List[Dict[str, Any]]:
    """
    One entry per respondent: score, total and date taken.

    The date taken is the respondent's earliest answer timestamp. Entries are
    returned oldest first.
    """
    out = []
    for user_id, rows in group_by_respondent(answers).items():
        out.append({
            "user_id": user_id,
            "score": score_answers(rows),
            "total": total_questions,
            "date_taken": min(a.created_at for a in rows),
            "answers": rows,
        })
    out.sort(key=lambda s: s["date_taken"])
    return out


def clamp_page(limit: int | None, skip: int | None) -> tuple[int, int]:
    if limit is None:
        limit = DEFAULT_PAGE_LIMIT
    if skip is None:
        skip = 0
    return max(0, min(limit, MAX_PAGE_LIMIT)), max(skip, 0)


def page_info(total: int, limit: int, skip: int) -> Dict[str, Any]:
    return {
        "total": total,
        "limit": limit,
        "skip": skip,
        "has_more": skip + limit < total,
    }
