# deepsleeping/models/onsen_log.py
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Optional, Dict, Any
import logging

from firebase_admin import firestore

from deepsleeping.utils.datetime_utils import DateTimeUtils

COLLECTION_NAME = 'onsenLogs'


class _Unset:
    """부분 업데이트에서 '필드를 건드리지 않음'을 나타내는 센티널."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return 'UNSET'

    def __bool__(self):
        return False


UNSET = _Unset()


def _optional_number(value: Any) -> Optional[float]:
    # 구버전 문서는 좌표 대신 null 을 저장했습니다.
    if value is None or value == '':
        return None
    return float(value)


@dataclass
class OnsenLog:
    """
    Firestore 'onsenLogs' 컬렉션 문서 구조.
    필드명은 기존 컬렉션(onsenName, sleepScore, photoUrl, createdAt)을 그대로 따릅니다.
    """
    log_id: str
    date: str
    onsenName: str
    sleepScore: float
    rating: Optional[int] = None
    memo: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    photoUrl: Optional[str] = None
    createdAt: Optional[datetime] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    @classmethod
    def from_dict(cls, log_id: str, data: Dict[str, Any]) -> "OnsenLog":
        """
        Firestore 문서 딕셔너리로부터 OnsenLog 인스턴스를 생성합니다.
        null / 빈 문자열로 저장된 선택 필드는 '없음'으로 취급합니다.
        """
        rating = data.get('rating')
        if rating is not None:
            try:
                rating = int(rating)
            except (TypeError, ValueError):
                logging.warning(f"Invalid rating '{rating}' for onsen log {log_id}. Ignoring.")
                rating = None

        lat = _optional_number(data.get('lat'))
        lng = _optional_number(data.get('lng'))
        if (lat is None) != (lng is None):
            logging.warning(f"Onsen log {log_id} has only one coordinate. Dropping both.")
            lat = lng = None

        return cls(
            log_id=log_id,
            date=data.get('date', ''),
            onsenName=data.get('onsenName', ''),
            sleepScore=data.get('sleepScore', 0),
            rating=rating,
            memo=data.get('memo') or None,
            lat=lat,
            lng=lng,
            photoUrl=data.get('photoUrl') or None,
            createdAt=DateTimeUtils.from_firestore(data.get('createdAt')),
        )

    def to_response_dict(self) -> Dict[str, Any]:
        """API 응답용 딕셔너리. 값이 없는 선택 필드는 포함하지 않습니다."""
        result = {
            'log_id': self.log_id,
            'date': self.date,
            'onsenName': self.onsenName,
            'sleepScore': self.sleepScore,
            'rating': self.rating,
            'memo': self.memo,
            'lat': self.lat,
            'lng': self.lng,
            'photoUrl': self.photoUrl,
            'createdAt': DateTimeUtils.to_iso_string(self.createdAt),
        }
        return {k: v for k, v in result.items() if v is not None}


@dataclass
class OnsenLogInput:
    """신규 기록 생성 입력. 검증이 끝난 값만 담깁니다."""
    date: str
    onsenName: str
    sleepScore: float
    rating: int
    memo: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    photoUrl: Optional[str] = None

    def __post_init__(self):
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat 과 lng 는 함께 지정하거나 함께 생략해야 합니다.")

    def to_firestore(self) -> Dict[str, Any]:
        """값이 없는 선택 필드는 문서에서 생략하고, 생성 시각은 서버 타임스탬프로 기록합니다."""
        data = {
            'date': self.date,
            'onsenName': self.onsenName,
            'sleepScore': self.sleepScore,
            'rating': self.rating,
        }
        for key in ('memo', 'lat', 'lng', 'photoUrl'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        data['createdAt'] = firestore.SERVER_TIMESTAMP
        return data


@dataclass
class OnsenLogUpdate:
    """
    부분 업데이트 구조체.
    - UNSET: 해당 필드를 쓰기 대상에서 제외
    - None : 선택 필드를 문서에서 삭제 (memo, lat/lng, photoUrl)
    필수 필드(date, onsenName, sleepScore, rating)는 None 으로 지울 수 없습니다.
    """
    date: Any = UNSET
    onsenName: Any = UNSET
    sleepScore: Any = UNSET
    rating: Any = UNSET
    memo: Any = UNSET
    lat: Any = UNSET
    lng: Any = UNSET
    photoUrl: Any = UNSET

    REQUIRED_FIELDS = ('date', 'onsenName', 'sleepScore', 'rating')

    def __post_init__(self):
        for name in self.REQUIRED_FIELDS:
            if getattr(self, name) is None:
                raise ValueError(f"'{name}' 은(는) 삭제할 수 없는 필수 필드입니다.")
        lat_unset = self.lat is UNSET
        lng_unset = self.lng is UNSET
        if lat_unset != lng_unset or (not lat_unset and (self.lat is None) != (self.lng is None)):
            raise ValueError("lat 과 lng 는 함께 변경해야 합니다.")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OnsenLogUpdate":
        """스키마 검증을 거친 딕셔너리에서 존재하는 키만 반영합니다."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def changed_fields(self) -> Dict[str, Any]:
        """UNSET 이 아닌 필드만 모은 딕셔너리 (None 포함)."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNSET}

    def is_empty(self) -> bool:
        return not self.changed_fields()

    def to_firestore(self) -> Dict[str, Any]:
        """document.update 에 넘길 payload. None 은 DELETE_FIELD 로 변환됩니다."""
        return {
            key: (firestore.DELETE_FIELD if value is None else value)
            for key, value in self.changed_fields().items()
        }
