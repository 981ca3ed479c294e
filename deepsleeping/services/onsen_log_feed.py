# deepsleeping/services/onsen_log_feed.py
"""
Firestore 실시간 구독 결과를 프로세스 안에서 공유하는 피드.

- Firestore watch 는 앱당 한 번만 시작합니다 (start 는 여러 번 불러도 안전).
- 스냅샷은 항상 '전체 목록'으로 들어오며 이전 상태를 통째로 교체합니다 (마지막 push 가 이김).
- 페이지와 SSE 스트림은 listen / stream 으로 스냅샷을 받아 가고, 끝나면 등록을 해제합니다.
"""

import logging
import queue
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional

from deepsleeping.models.onsen_log import OnsenLog

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(log: OnsenLog):
    return (log.date, log.createdAt or _EPOCH)


def _merge_optimistic(current: List[OnsenLog], log: OnsenLog, window: int) -> List[OnsenLog]:
    merged = [item for item in current if item.log_id != log.log_id]
    merged.append(log)
    merged.sort(key=_sort_key, reverse=True)
    return merged[:window]


class OnsenLogFeed:
    """최근 온센 기록의 최신 스냅샷을 캐시하고 구독자에게 전달합니다."""

    def __init__(self, log_service, window: int = 100):
        self.log_service = log_service
        self.window = window
        self._lock = threading.Lock()
        # 구독 시작/해제 전용 (스냅샷 콜백은 _lock 만 사용)
        self._start_lock = threading.Lock()
        self._latest: List[OnsenLog] = []
        self._received = False
        self._listeners: Dict[int, Callable[[List[OnsenLog]], None]] = {}
        self._next_listener_id = 0
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self):
        """Firestore 실시간 쿼리를 시작합니다. 이미 시작되었다면 아무 것도 하지 않습니다."""
        with self._start_lock:
            if self._unsubscribe is not None:
                return
            self._unsubscribe = self.log_service.subscribe(self._on_snapshot)
        logger.info("OnsenLogFeed started.")

    def close(self):
        """구독을 해제합니다. 앱 종료 시 호출됩니다."""
        with self._start_lock:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
            logger.info("OnsenLogFeed closed.")

    @property
    def started(self) -> bool:
        return self._unsubscribe is not None

    def _on_snapshot(self, logs: List[OnsenLog]):
        self._publish(list(logs))

    def _publish(self, logs: List[OnsenLog]):
        with self._lock:
            self._replace(logs)
            listeners = list(self._listeners.values())
        self._notify(listeners, logs)

    def _replace(self, logs: List[OnsenLog]):
        # _lock 을 잡은 상태에서만 호출합니다.
        self._latest = logs
        self._received = True

    def _notify(self, listeners, logs: List[OnsenLog]):
        for listener in listeners:
            try:
                listener(logs)
            except Exception as e:
                logger.error(f"Feed listener 호출 실패: {e}", exc_info=True)

    def latest(self) -> List[OnsenLog]:
        """
        캐시된 최신 스냅샷을 반환합니다.
        아직 첫 push 를 받지 못했다면 같은 조건으로 한 번 직접 조회합니다.
        """
        with self._lock:
            if self._received:
                return list(self._latest)
        return self.log_service.list_recent(self.window)

    def apply_optimistic(self, log: OnsenLog):
        """
        제출 직후 저장된 기록을 캐시에 먼저 반영합니다.
        다음 Firestore push 가 오면 그 스냅샷으로 다시 교체됩니다.
        구독 전에는 캐시를 두지 않고 매번 직접 조회합니다.
        병합과 교체는 한 번의 _lock 구간에서 수행합니다.
        """
        if not self.started:
            return
        with self._lock:
            if not self._received:
                # 첫 push 에 이 기록이 포함됩니다.
                return
            merged = _merge_optimistic(self._latest, log, self.window)
            self._replace(merged)
            listeners = list(self._listeners.values())
        self._notify(listeners, merged)

    def listen(self, callback: Callable[[List[OnsenLog]], None]) -> Callable[[], None]:
        """스냅샷 콜백을 등록하고, 등록 해제 함수를 반환합니다."""
        with self._lock:
            listener_id = self._next_listener_id
            self._next_listener_id += 1
            self._listeners[listener_id] = callback

        def remove():
            with self._lock:
                self._listeners.pop(listener_id, None)

        return remove

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def stream(self, heartbeat_seconds: Optional[float] = None) -> Iterator[Optional[List[OnsenLog]]]:
        """
        전체 스냅샷을 차례로 내보내는 제너레이터.
        처음에는 현재 스냅샷을 한 번 내보내고, 이후 push 가 올 때마다 내보냅니다.
        heartbeat_seconds 동안 변화가 없으면 None 을 내보냅니다 (연결 유지용).
        제너레이터를 닫으면 리스너가 해제됩니다.
        """
        events: "queue.Queue[List[OnsenLog]]" = queue.Queue()
        remove = self.listen(events.put)
        try:
            yield self.latest()
            while True:
                try:
                    yield events.get(timeout=heartbeat_seconds)
                except queue.Empty:
                    yield None
        finally:
            remove()
