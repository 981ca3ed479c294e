# deepsleeping/services/geocoding_service.py
import logging
from typing import Dict, Optional

import requests
from flask import Flask

GEOCODING_URL = "https://maps.googleapis.com/maps/api/geocode/json"
# 온센 이름만으로는 해외 지명과 섞이므로 항상 이 한정어를 붙여서 조회합니다.
LOCALE_QUALIFIER = "温泉 日本"


class GeocodingError(Exception):
    """지오코딩 실패의 공통 부모 클래스. HTTP 상태와 에러 코드를 함께 가집니다."""
    status_code = 500
    error_code = "internal_error"


class GeocodingInputError(GeocodingError):
    status_code = 400
    error_code = "onsenName is required"


class GeocodingConfigError(GeocodingError):
    status_code = 500
    error_code = "geocoding_api_key_not_set"


class GeocodingUpstreamError(GeocodingError):
    status_code = 502
    error_code = "geocoding_http_error"


class GeocodingNotFoundError(GeocodingError):
    status_code = 404
    error_code = "no_result"


class GeocodingService:
    """
    온센 이름을 Google Geocoding API 로 조회해 첫 번째 결과의 좌표를 돌려주는 서비스.
    """

    def __init__(self, api_key: Optional[str] = None, timeout: float = 10, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def init_app(self, app: Flask):
        """앱 설정에서 API 키와 타임아웃을 읽어옵니다. 키가 없어도 앱은 기동됩니다."""
        self.api_key = app.config.get('GEOCODING_API_KEY')
        self.timeout = app.config.get('GEOCODING_TIMEOUT_SECONDS', self.timeout)
        if not self.api_key:
            logging.warning("GEOCODING_API_KEY is not set. Geocoding requests will fail.")
        else:
            logging.info("GeocodingService initialized.")

    def resolve(self, place_name) -> Dict[str, float]:
        """
        장소 이름을 좌표로 변환합니다.

        :param place_name: 사용자가 입력한 온센 이름
        :return: {'lat': float, 'lng': float}
        :raises GeocodingError: 입력 누락, 설정 누락, 상위 API 오류, 결과 없음
        """
        if not place_name or not isinstance(place_name, str) or not place_name.strip():
            raise GeocodingInputError("onsenName is required")

        if not self.api_key:
            logging.error("GEOCODING_API_KEY is not set")
            raise GeocodingConfigError("geocoding_api_key_not_set")

        address = f"{place_name.strip()} {LOCALE_QUALIFIER}"
        response = self.session.get(
            GEOCODING_URL,
            params={"address": address, "key": self.api_key},
            timeout=self.timeout,
        )

        if not response.ok:
            logging.error(f"Geocoding HTTP error {response.status_code}: {response.text[:200]}")
            raise GeocodingUpstreamError(f"geocoding_http_error ({response.status_code})")

        payload = response.json()
        results = payload.get("results") or []
        if payload.get("status") != "OK" or not results:
            logging.warning(f"Geocoding no result for '{place_name}': {payload.get('status')}")
            raise GeocodingNotFoundError("no_result")

        location = results[0]["geometry"]["location"]
        return {"lat": float(location["lat"]), "lng": float(location["lng"])}
