# deepsleeping/web/map_view.py
from dataclasses import dataclass, field, asdict
from typing import List, Optional, Dict, Any

from deepsleeping.models.onsen_log import OnsenLog

TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
TILE_ATTRIBUTION = '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors'
DEFAULT_ZOOM = 13
EMPTY_MESSAGE = "地図に表示できる座標付きデータがまだありません。"


@dataclass
class MapMarker:
    """마커 하나와 팝업에 보여줄 요약."""
    log_id: str
    lat: float
    lng: float
    onsenName: str
    date: str
    sleepScore: float
    rating: str


@dataclass
class MapView:
    center_lat: float
    center_lng: float
    zoom: int = DEFAULT_ZOOM
    tile_url: str = TILE_URL
    attribution: str = TILE_ATTRIBUTION
    markers: List[MapMarker] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_map_view(logs: List[OnsenLog]) -> Optional[MapView]:
    """
    좌표(lat, lng)를 모두 가진 기록만 마커로 만듭니다.
    표시할 기록이 없으면 None 을 반환하고, 화면에서는 안내 문구를 대신 보여줍니다.
    지도 중심은 첫 번째 기록의 위치입니다.
    """
    points = [log for log in logs if log.has_coordinates]
    if not points:
        return None

    first = points[0]
    markers = [
        MapMarker(
            log_id=log.log_id,
            lat=log.lat,
            lng=log.lng,
            onsenName=log.onsenName,
            date=log.date,
            sleepScore=log.sleepScore,
            rating=str(log.rating) if log.rating else "-",
        )
        for log in points
    ]
    return MapView(center_lat=first.lat, center_lng=first.lng, markers=markers)
