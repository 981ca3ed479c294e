# deepsleeping/api/onsen_logs/services.py
import logging
from typing import Callable, List, Optional

from firebase_admin import firestore

from deepsleeping.models.onsen_log import COLLECTION_NAME, OnsenLog, OnsenLogInput, OnsenLogUpdate

DEFAULT_WINDOW = 100


class OnsenLogService:
    """'onsenLogs' 컬렉션의 생성, 조회, 부분 수정, 실시간 구독을 전담하는 서비스 클래스."""

    def __init__(self, db=None, window: int = DEFAULT_WINDOW):
        self.db = db if db is not None else firestore.client()
        self.logs_ref = self.db.collection(COLLECTION_NAME)
        self.window = window
        logging.info("OnsenLogService initialized.")

    def _recent_query(self, limit: Optional[int] = None):
        # 날짜 내림차순, 같은 날짜는 생성 시각 내림차순
        return (
            self.logs_ref
            .order_by('date', direction=firestore.Query.DESCENDING)
            .order_by('createdAt', direction=firestore.Query.DESCENDING)
            .limit(limit or self.window)
        )

    def create(self, log_input: OnsenLogInput) -> str:
        """새 기록을 저장하고 문서 ID 를 반환합니다. 저장소 오류는 재시도 없이 호출자에게 전달됩니다."""
        doc_ref = self.logs_ref.document()
        try:
            doc_ref.set(log_input.to_firestore())
        except Exception as e:
            logging.error(f"Onsen log 저장 실패 ({log_input.onsenName}): {e}", exc_info=True)
            raise
        logging.info(f"Onsen log created (Doc ID: {doc_ref.id})")
        return doc_ref.id

    def get_by_id(self, log_id: str) -> Optional[OnsenLog]:
        """수정 화면 채우기용 단건 조회. 없으면 None."""
        doc = self.logs_ref.document(log_id).get()
        if not doc.exists:
            return None
        return OnsenLog.from_dict(doc.id, doc.to_dict())

    def update(self, log_id: str, changes: OnsenLogUpdate) -> OnsenLog:
        """
        전달된 필드만 병합합니다. 버전 검사는 없으며 마지막 쓰기가 이깁니다.

        :raises FileNotFoundError: 문서가 없을 때
        :raises ValueError: 변경할 필드가 없을 때
        """
        doc_ref = self.logs_ref.document(log_id)
        if not doc_ref.get().exists:
            raise FileNotFoundError(f"해당 ID의 기록을 찾을 수 없습니다: {log_id}")
        if changes.is_empty():
            raise ValueError("수정할 데이터가 제공되지 않았습니다.")

        payload = changes.to_firestore()
        doc_ref.update(payload)
        logging.info(f"Onsen log {log_id} updated with fields: {list(payload.keys())}")

        updated = self.get_by_id(log_id)
        if not updated:
            raise RuntimeError("수정된 기록을 다시 조회할 수 없습니다.")
        return updated

    def list_recent(self, limit: Optional[int] = None) -> List[OnsenLog]:
        """구독과 같은 정렬/개수 제한으로 한 번만 조회합니다."""
        return [OnsenLog.from_dict(doc.id, doc.to_dict()) for doc in self._recent_query(limit).stream()]

    def subscribe(self, callback: Callable[[List[OnsenLog]], None]) -> Callable[[], None]:
        """
        최근 기록에 대한 실시간 쿼리를 등록합니다.
        변경이 있을 때마다 전체 결과 목록으로 callback 을 호출하며,
        반환된 함수를 호출하면 구독이 해제됩니다.
        """
        def on_snapshot(docs, changes, read_time):
            try:
                logs = [OnsenLog.from_dict(doc.id, doc.to_dict()) for doc in docs]
                callback(logs)
            except Exception as e:
                logging.error(f"Onsen log snapshot 처리 실패: {e}", exc_info=True)

        watch = self._recent_query().on_snapshot(on_snapshot)
        logging.info("Onsen log live query started.")

        def unsubscribe():
            watch.unsubscribe()
            logging.info("Onsen log live query stopped.")

        return unsubscribe
