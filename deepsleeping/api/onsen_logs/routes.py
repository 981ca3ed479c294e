# deepsleeping/api/onsen_logs/routes.py
import json
import logging
from flask import Blueprint, request, jsonify, current_app, Response, stream_with_context
from marshmallow import ValidationError

from deepsleeping.models.onsen_log import OnsenLogUpdate
from .schemas import OnsenLogUpdateSchema
from .stats import average_sleep_score
from .submission import SubmissionError

onsen_logs_bp = Blueprint('onsen_logs_bp', __name__)


def _snapshot_payload(logs):
    return {
        "records": [log.to_response_dict() for log in logs],
        "meta": {
            "count": len(logs),
            "average_sleep_score": average_sleep_score(logs),
        },
    }


@onsen_logs_bp.route('', methods=['GET'])
def list_onsen_logs():
    """최근 기록 목록(최대 100건)과 평균 수면 점수를 반환합니다."""
    feed = current_app.services['feed']
    try:
        return jsonify(_snapshot_payload(feed.latest())), 200
    except Exception as e:
        logging.error(f"Onsen log list API error: {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "記録の取得に失敗しました。"}), 500


@onsen_logs_bp.route('/<string:log_id>', methods=['GET'])
def get_onsen_log(log_id: str):
    """단건 조회 (수정 화면 채우기용)."""
    log_service = current_app.services['onsen_logs']
    log = log_service.get_by_id(log_id)
    if log is None:
        return jsonify({"error_code": "LOG_NOT_FOUND", "message": "記録が見つかりません。"}), 404
    return jsonify(log.to_response_dict()), 200


@onsen_logs_bp.route('', methods=['POST'])
def create_onsen_log():
    """
    JSON 본문으로 새 기록을 만듭니다. 폼과 같은 파이프라인(검증 -> 지오코딩 -> 저장)을 거칩니다.
    건너뛴 단계는 warnings 로 함께 돌려줍니다.
    """
    submission_service = current_app.services['submission']
    try:
        result = submission_service.submit(request.get_json(silent=True) or {})
        body = result.log.to_response_dict()
        body['warnings'] = result.warnings
        return jsonify(body), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except SubmissionError as e:
        return jsonify({"error_code": "LOG_CREATION_FAILED", "message": e.message}), 500


@onsen_logs_bp.route('/<string:log_id>', methods=['PATCH'])
def update_onsen_log(log_id: str):
    """보낸 필드만 수정합니다. 선택 필드에 null 을 보내면 삭제됩니다."""
    log_service = current_app.services['onsen_logs']
    feed = current_app.services['feed']
    try:
        update_data = OnsenLogUpdateSchema().load(request.get_json(silent=True) or {})
        updated = log_service.update(log_id, OnsenLogUpdate.from_dict(update_data))
        feed.apply_optimistic(updated)
        return jsonify(updated.to_response_dict()), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except FileNotFoundError as e:
        return jsonify({"error_code": "LOG_NOT_FOUND", "message": str(e)}), 404
    except ValueError as e:
        return jsonify({"error_code": "NOTHING_TO_UPDATE", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"Update onsen log API error (log_id: {log_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": SubmissionError().message}), 500


@onsen_logs_bp.route('/stream', methods=['GET'])
def stream_onsen_logs():
    """
    Server-Sent Events 로 전체 스냅샷을 계속 내보냅니다.
    클라이언트가 연결을 끊으면 제너레이터가 닫히면서 피드 리스너도 해제됩니다.
    """
    feed = current_app.services['feed']
    heartbeat = current_app.config['STREAM_HEARTBEAT_SECONDS']
    # 부팅 시 시작하지 않은 경우 첫 구독자가 실시간 쿼리를 시작합니다.
    feed.start()

    def generate():
        snapshots = feed.stream(heartbeat_seconds=heartbeat)
        try:
            for logs in snapshots:
                if logs is None:
                    yield ": keep-alive\n\n"
                    continue
                yield f"event: snapshot\ndata: {json.dumps(_snapshot_payload(logs), ensure_ascii=False)}\n\n"
        finally:
            snapshots.close()

    return Response(stream_with_context(generate()), mimetype='text/event-stream',
                    headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'})
