# deepsleeping/core/config.py

import os # 환경 변수를 읽기 위해 사용합니다.

class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # 세션/flash 메시지 서명용 키. 인증 기능은 없으므로 폼 에러 표시 용도로만 사용됩니다.
    SECRET_KEY = os.getenv('SECRET_KEY', 'deepsleeping-dev')

    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')
    # Google Geocoding API 키. 없으면 /api/geocode 는 500(geocoding_api_key_not_set)을 반환합니다.
    GEOCODING_API_KEY = os.getenv('GEOCODING_API_KEY')
    GEOCODING_TIMEOUT_SECONDS = float(os.getenv('GEOCODING_TIMEOUT_SECONDS', 10))

    # 업로드 전 사진을 이 폭(px)으로 축소하고 고정 JPEG 품질로 재인코딩합니다.
    PHOTO_TARGET_WIDTH = int(os.getenv('PHOTO_TARGET_WIDTH', 600))
    PHOTO_JPEG_QUALITY = int(os.getenv('PHOTO_JPEG_QUALITY', 80))

    # 실시간 구독으로 받아오는 최근 기록 개수
    ONSEN_LOG_WINDOW = int(os.getenv('ONSEN_LOG_WINDOW', 100))
    # 탭 전환으로 인식하는 가로 스와이프 최소 거리(px)
    SWIPE_THRESHOLD_PX = int(os.getenv('SWIPE_THRESHOLD_PX', 50))
    # SSE 스트림에 변화가 없을 때 keep-alive 주석을 보내는 간격(초)
    STREAM_HEARTBEAT_SECONDS = float(os.getenv('STREAM_HEARTBEAT_SECONDS', 25))

    # 앱 시작 시 Firestore 실시간 구독을 바로 시작할지 여부
    START_FEED_ON_BOOT = True

class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    # 개발용 Firebase 프로젝트의 서비스 계정 키 파일 경로
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')

class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = 'deepsleeping-test.appspot.com'
    GEOCODING_API_KEY = 'test-geocoding-key'
    # 테스트에서는 가짜 서비스를 주입하므로 구독을 자동으로 시작하지 않습니다.
    START_FEED_ON_BOOT = False

class ProductionConfig(Config):
    """운영 환경 설정 클래스입니다."""
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')

# FLASK_ENV 값에 따라 create_app 에서 적절한 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
