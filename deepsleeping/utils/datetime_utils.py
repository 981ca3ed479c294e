# deepsleeping/utils/datetime_utils.py
"""
온센 로그 전반에서 사용하는 날짜/시간 처리 유틸리티 모듈

- 기록 날짜는 'YYYY-MM-DD' 문자열로 저장합니다 (정렬 기준이 문자열 비교이므로 형식 고정).
- createdAt 은 Firestore 서버 타임스탬프이며 읽을 때 UTC datetime 으로 정규화합니다.
"""

import logging
import time
from datetime import datetime, date, timezone
from typing import Any, Optional, Union
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

DATE_FORMAT = '%Y-%m-%d'

# 연/월/일 중 빠진 부분이 있는지 확인할 때 쓰는 서로 다른 두 기본값 (둘 다 윤년)
_FILL_DEFAULTS = (datetime(2000, 1, 1), datetime(2004, 2, 2))

class DateTimeUtils:
    """시간/날짜 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def today_string() -> str:
        """폼의 기본값으로 쓰는 오늘 날짜 문자열 (UTC 기준)"""
        return DateTimeUtils.now().strftime(DATE_FORMAT)

    @staticmethod
    def now_epoch_ms() -> int:
        """사진 저장 경로에 붙이는 epoch 밀리초"""
        return int(time.time() * 1000)

    @staticmethod
    def normalize_date_string(value: Union[str, date]) -> str:
        """
        날짜 입력을 'YYYY-MM-DD' 문자열로 정규화합니다.

        지원 포맷:
        - 2024-05-01
        - 2024/05/01
        - date / datetime 객체

        연/월/일 중 하나라도 빠진 입력 (예: "5", "05-01") 은 거부합니다.
        """
        try:
            if isinstance(value, datetime):
                return value.date().strftime(DATE_FORMAT)
            if isinstance(value, date):
                return value.strftime(DATE_FORMAT)
            if not value or not value.strip():
                raise ValueError("빈 문자열은 파싱할 수 없습니다")
            # dateutil 은 빠진 부분을 기본값으로 채우므로, 기본값에 따라 결과가 달라지면 불완전한 날짜입니다.
            first, second = (
                dateutil_parser.parse(value.strip(), yearfirst=True, default=default).date()
                for default in _FILL_DEFAULTS
            )
            if first != second:
                raise ValueError("연/월/일이 모두 포함되어야 합니다")
            return first.strftime(DATE_FORMAT)
        except (ValueError, OverflowError, TypeError) as e:
            logger.error(f"날짜 문자열 파싱 실패: {value} - {e}")
            raise ValueError(f"잘못된 날짜 형식입니다: {value}")

    @staticmethod
    def from_firestore(obj: Any) -> Optional[datetime]:
        """
        Firestore 타임스탬프(DatetimeWithNanoseconds)나 datetime을 UTC datetime으로 변환합니다.
        서버 타임스탬프가 아직 확정되지 않은 로컬 스냅샷에서는 None 이 올 수 있습니다.
        """
        if obj is None:
            return None
        if isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)
        if hasattr(obj, 'timestamp'):
            return datetime.fromtimestamp(obj.timestamp(), tz=timezone.utc)
        logger.warning(f"알 수 없는 타임스탬프 형식: {obj!r} ({type(obj)})")
        return None

    @staticmethod
    def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
        """datetime 객체를 ISO 포맷 문자열로 변환 (Z 접미사)"""
        if dt is None:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')
