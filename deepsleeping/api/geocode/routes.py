# deepsleeping/api/geocode/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app

from deepsleeping.services.geocoding_service import GeocodingError

geocode_bp = Blueprint('geocode_bp', __name__)

@geocode_bp.route('', methods=['POST'])
def geocode():
    """
    온센 이름을 좌표로 변환하는 프록시 API.
    요청: {"onsenName": "別府温泉"} / 응답: {"lat": 33.28, "lng": 131.49}
    실패 응답은 {"error": "<code>"} 형식이며, 호출하는 쪽은 좌표 없이 계속 진행해도 됩니다.
    """
    geocoding_service = current_app.services['geocoding']
    try:
        body = request.get_json(silent=True)
        # 객체가 아닌 JSON 은 onsenName 이 없는 요청과 같게 처리합니다 (400).
        place_name = body.get('onsenName') if isinstance(body, dict) else None
        coords = geocoding_service.resolve(place_name)
        return jsonify(coords), 200
    except GeocodingError as e:
        return jsonify({"error": e.error_code}), e.status_code
    except Exception as e:
        logging.error(f"Geocode route error: {e}", exc_info=True)
        return jsonify({"error": "internal_error"}), 500
