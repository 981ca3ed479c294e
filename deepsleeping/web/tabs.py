# deepsleeping/web/tabs.py
from enum import Enum
from typing import Optional


class Tab(Enum):
    LOGS = "logs"
    MAP = "map"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Tab":
        """쿼리 파라미터 값을 탭으로 변환합니다. 모르는 값은 목록 탭."""
        try:
            return cls(value)
        except ValueError:
            return cls.LOGS


def resolve_swipe(active: Tab, delta_x: float, threshold: int = 50) -> Tab:
    """
    가로 스와이프 거리로 다음 탭을 정합니다.
    오른쪽으로 threshold 를 넘게 밀면 지도 -> 목록, 왼쪽으로 넘게 밀면 목록 -> 지도.
    """
    if delta_x > threshold and active is Tab.MAP:
        return Tab.LOGS
    if delta_x < -threshold and active is Tab.LOGS:
        return Tab.MAP
    return active
