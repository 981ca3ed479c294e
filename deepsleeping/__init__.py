# deepsleeping/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import atexit
import os
import logging
from typing import Any, Dict, Optional
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
import firebase_admin
from firebase_admin import credentials

# - 설정
from deepsleeping.core.config import config_by_name

# - 블루프린트
from deepsleeping.api.onsen_logs.routes import onsen_logs_bp
from deepsleeping.api.geocode.routes import geocode_bp
from deepsleeping.web.routes import web_bp

# - 서비스 모듈
from deepsleeping.services.storage_service import StorageService
from deepsleeping.services.geocoding_service import GeocodingService
from deepsleeping.services.onsen_log_feed import OnsenLogFeed
from deepsleeping.api.onsen_logs.services import OnsenLogService
from deepsleeping.api.onsen_logs.submission import OnsenLogSubmissionService


def init_firebase(app: Flask):
    """Firebase 앱을 프로세스당 한 번만 초기화합니다."""
    if firebase_admin._apps:
        return
    cred_path = app.config.get('FIREBASE_CREDENTIALS_PATH')
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
    })


def build_services(app: Flask) -> Dict[str, Any]:
    """
    서비스 인스턴스를 생성합니다.
    의존성이 없는 공용 서비스를 먼저 만들고, 이를 주입받는 도메인 서비스를 나중에 만듭니다.
    """
    services = {}

    try:
        storage_instance = StorageService()
        storage_instance.init_app(app)
        services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    geocoding_instance = GeocodingService()
    geocoding_instance.init_app(app)
    services['geocoding'] = geocoding_instance

    window = app.config.get('ONSEN_LOG_WINDOW', 100)
    services['onsen_logs'] = OnsenLogService(window=window)
    services['feed'] = OnsenLogFeed(services['onsen_logs'], window=window)
    services['submission'] = OnsenLogSubmissionService(
        log_service=services['onsen_logs'],
        geocoding_service=services['geocoding'],
        storage_service=services['storage'],
        feed=services['feed'],
        photo_target_width=app.config.get('PHOTO_TARGET_WIDTH', 600),
        photo_quality=app.config.get('PHOTO_JPEG_QUALITY', 80),
    )
    return services


def create_app(config_name: Optional[str] = None, services: Optional[Dict[str, Any]] = None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' / 'testing' / 'production'. 없으면 FLASK_ENV 를 따릅니다.
    :param services: 미리 만든 서비스 딕셔너리 (테스트에서 가짜 서비스를 주입할 때 사용)
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 외부 서비스 초기화 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    if services is None:
        init_firebase(app)
        app.services = build_services(app)
    else:
        app.services = dict(services)

    if app.config.get('START_FEED_ON_BOOT'):
        feed = app.services['feed']
        feed.start()
        atexit.register(feed.close)

    # =====================================================================================
    # 5. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(web_bp)
    app.register_blueprint(onsen_logs_bp, url_prefix='/api/onsen-logs')
    app.register_blueprint(geocode_bp, url_prefix='/api/geocode')

    # =====================================================================================
    # 6. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # abort(404) 같은 HTTP 예외는 Flask 기본 응답을 그대로 사용합니다.
        if isinstance(err, HTTPException):
            return err
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "サーバー内部で予期しないエラーが発生しました。"}
        return jsonify(response), 500

    # =====================================================================================
    # 7. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
