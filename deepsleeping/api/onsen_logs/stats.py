# deepsleeping/api/onsen_logs/stats.py
import math
from typing import List, Optional

from deepsleeping.models.onsen_log import OnsenLog

AVERAGE_PLACEHOLDER = "–"


def average_sleep_score(logs: List[OnsenLog]) -> Optional[int]:
    """현재 기록들의 평균 수면 점수를 반올림(0.5 는 올림)한 값. 기록이 없으면 None."""
    if not logs:
        return None
    total = sum(float(log.sleepScore or 0) for log in logs)
    return int(math.floor(total / len(logs) + 0.5))


def format_average(value: Optional[int]) -> str:
    return AVERAGE_PLACEHOLDER if value is None else str(value)


def render_stars(rating: Optional[int]) -> str:
    """4 -> '★★★★☆ (4)', 평가가 없으면 '-'."""
    if not rating:
        return "-"
    return f"{'★' * rating}{'☆' * (5 - rating)} ({rating})"
