# deepsleeping/api/onsen_logs/submission.py
"""
온센 기록 제출 파이프라인

    idle -> validating -> geocoding -> photo-resize -> photo-upload -> persisting -> idle | error

- 검증 실패: 네트워크 호출 없이 ValidationError (필드별 메시지)
- 지오코딩 / 사진 단계 실패: 경고 로그만 남기고 해당 값 없이 계속 진행
- 저장 실패: 유일한 치명적 실패. SubmissionError 로 사용자에게 알리고 폼 입력은 그대로 둡니다.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from deepsleeping.api.onsen_logs.schemas import OnsenLogFormSchema
from deepsleeping.models.onsen_log import OnsenLog, OnsenLogInput, OnsenLogUpdate
from deepsleeping.services.geocoding_service import GeocodingError
from deepsleeping.services.image_service import resize_image_to_width, DEFAULT_TARGET_WIDTH, DEFAULT_JPEG_QUALITY
from deepsleeping.utils.datetime_utils import DateTimeUtils

SUBMIT_FAILED_MESSAGE = "登録に失敗しました。"


class SubmissionStage(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    GEOCODING = "geocoding"
    PHOTO_RESIZE = "photo-resize"
    PHOTO_UPLOAD = "photo-upload"
    PERSISTING = "persisting"
    ERROR = "error"


@dataclass
class PhotoUpload:
    """폼에서 받은 사진 파일."""
    data: bytes
    filename: str


@dataclass
class SubmissionResult:
    log: OnsenLog
    stages: List[SubmissionStage] = field(default_factory=list)
    # 건너뛴 best-effort 단계 (예: 'geocoding:no_result', 'photo-upload:failed')
    warnings: List[str] = field(default_factory=list)
    created: bool = True


class SubmissionError(Exception):
    """저장 단계 실패. message 는 화면에 그대로 보여줄 문구입니다."""
    def __init__(self, message: str = SUBMIT_FAILED_MESSAGE, stage: SubmissionStage = SubmissionStage.PERSISTING):
        super().__init__(message)
        self.message = message
        self.stage = stage


class OnsenLogSubmissionService:
    """폼 입력을 검증하고 지오코딩, 사진 업로드, 저장을 차례로 수행하는 서비스."""

    def __init__(self, log_service, geocoding_service, storage_service, feed=None,
                 photo_target_width: int = DEFAULT_TARGET_WIDTH, photo_quality: int = DEFAULT_JPEG_QUALITY):
        self.log_service = log_service
        self.geocoding_service = geocoding_service
        self.storage_service = storage_service
        self.feed = feed
        self.photo_target_width = photo_target_width
        self.photo_quality = photo_quality

    # ------------------------------------------------------------------
    # best-effort 단계
    # ------------------------------------------------------------------
    def _geocode(self, onsen_name: str, result: SubmissionResult) -> Optional[Dict[str, float]]:
        result.stages.append(SubmissionStage.GEOCODING)
        try:
            coords = self.geocoding_service.resolve(onsen_name)
        except GeocodingError as e:
            logging.warning(f"[submit] geocode failed ({e.status_code} {e.error_code}) for '{onsen_name}'")
            result.warnings.append(f"geocoding:{e.error_code}")
            return None
        except Exception as e:
            logging.warning(f"[submit] geocode error for '{onsen_name}': {e}")
            result.warnings.append("geocoding:internal_error")
            return None
        logging.info(f"[submit] geocode data {coords}")
        return coords

    def _upload_photo(self, photo: Optional[PhotoUpload], result: SubmissionResult) -> Optional[str]:
        if photo is None or not photo.data:
            return None

        result.stages.append(SubmissionStage.PHOTO_RESIZE)
        try:
            resized = resize_image_to_width(photo.data, self.photo_target_width, self.photo_quality)
        except Exception as e:
            logging.warning(f"[submit] image resize failed ({photo.filename}): {e}")
            result.warnings.append("photo-resize:failed")
            return None

        result.stages.append(SubmissionStage.PHOTO_UPLOAD)
        try:
            url = self.storage_service.upload_photo(resized, photo.filename, 'image/jpeg')
        except Exception as e:
            # 사진만 실패해도 기록 저장은 계속합니다.
            logging.warning(f"[submit] image upload failed ({photo.filename}): {e}")
            result.warnings.append("photo-upload:failed")
            return None
        logging.info(f"[submit] uploaded url {url}")
        return url

    def _publish(self, log: OnsenLog):
        if self.feed is None:
            return
        try:
            self.feed.apply_optimistic(log)
        except Exception as e:
            logging.warning(f"[submit] optimistic feed update failed: {e}")

    # ------------------------------------------------------------------
    # 생성
    # ------------------------------------------------------------------
    def submit(self, form_data: Dict[str, Any], photo: Optional[PhotoUpload] = None) -> SubmissionResult:
        """
        신규 기록 제출.

        :raises marshmallow.ValidationError: 입력 검증 실패 (네트워크 호출 없음)
        :raises SubmissionError: 저장 실패
        """
        logging.info("[submit] start")
        data = OnsenLogFormSchema().load(form_data)

        result = SubmissionResult(log=None, stages=[SubmissionStage.VALIDATING])
        coords = self._geocode(data['onsenName'], result) or {}
        photo_url = self._upload_photo(photo, result)

        log_input = OnsenLogInput(
            date=data['date'],
            onsenName=data['onsenName'],
            sleepScore=data['sleepScore'],
            rating=data['rating'],
            memo=data.get('memo'),
            lat=coords.get('lat'),
            lng=coords.get('lng'),
            photoUrl=photo_url,
        )

        result.stages.append(SubmissionStage.PERSISTING)
        try:
            log_id = self.log_service.create(log_input)
        except Exception as e:
            logging.error(f"[submit] failed: {e}", exc_info=True)
            result.stages.append(SubmissionStage.ERROR)
            raise SubmissionError()

        result.log = OnsenLog(
            log_id=log_id,
            date=log_input.date,
            onsenName=log_input.onsenName,
            sleepScore=log_input.sleepScore,
            rating=log_input.rating,
            memo=log_input.memo,
            lat=log_input.lat,
            lng=log_input.lng,
            photoUrl=log_input.photoUrl,
            createdAt=DateTimeUtils.now(),
        )
        result.stages.append(SubmissionStage.IDLE)
        self._publish(result.log)
        logging.info(f"[submit] done ({log_id})")
        return result

    # ------------------------------------------------------------------
    # 수정
    # ------------------------------------------------------------------
    def submit_edit(self, log_id: str, form_data: Dict[str, Any], photo: Optional[PhotoUpload] = None) -> SubmissionResult:
        """
        기존 기록 수정. 현재 값과 달라진 필드만 부분 업데이트합니다.
        지오코딩은 온센 이름이 바뀌었거나 좌표가 없을 때만 다시 수행하며,
        실패하면 기존 좌표를 유지합니다. 사진은 새 업로드가 성공했을 때만 교체됩니다.

        :raises marshmallow.ValidationError: 입력 검증 실패
        :raises FileNotFoundError: 기록이 없을 때
        :raises SubmissionError: 저장 실패
        """
        logging.info(f"[edit] start ({log_id})")
        data = OnsenLogFormSchema().load(form_data)

        current = self.log_service.get_by_id(log_id)
        if current is None:
            raise FileNotFoundError(f"해당 ID의 기록을 찾을 수 없습니다: {log_id}")

        result = SubmissionResult(log=current, stages=[SubmissionStage.VALIDATING], created=False)
        changes: Dict[str, Any] = {}
        for key in ('date', 'onsenName', 'sleepScore', 'rating'):
            if data[key] != getattr(current, key):
                changes[key] = data[key]
        new_memo = data.get('memo')
        if new_memo != current.memo:
            changes['memo'] = new_memo

        if 'onsenName' in changes or not current.has_coordinates:
            coords = self._geocode(data['onsenName'], result)
            if coords and (coords['lat'], coords['lng']) != (current.lat, current.lng):
                changes['lat'] = coords['lat']
                changes['lng'] = coords['lng']

        photo_url = self._upload_photo(photo, result)
        if photo_url:
            changes['photoUrl'] = photo_url

        update = OnsenLogUpdate(**changes)
        if update.is_empty():
            logging.info(f"[edit] no changes for {log_id}")
            result.stages.append(SubmissionStage.IDLE)
            return result

        result.stages.append(SubmissionStage.PERSISTING)
        try:
            result.log = self.log_service.update(log_id, update)
        except FileNotFoundError:
            raise
        except Exception as e:
            logging.error(f"[edit] failed ({log_id}): {e}", exc_info=True)
            result.stages.append(SubmissionStage.ERROR)
            raise SubmissionError()

        result.stages.append(SubmissionStage.IDLE)
        self._publish(result.log)
        logging.info(f"[edit] done ({log_id}) fields={list(changes.keys())}")
        return result
