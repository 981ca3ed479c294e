# deepsleeping/services/storage_service.py
import logging
import re
from flask import Flask
from firebase_admin import storage

from deepsleeping.utils.datetime_utils import DateTimeUtils

PHOTO_FOLDER = 'onsenPhotos'
DEFAULT_PHOTO_NAME = 'photo.jpg'
# 경로 구분자와 제어 문자만 치환합니다. 일본어 파일명은 그대로 둡니다.
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/\x00-\x1f\x7f]')

class StorageService:
    """
    Firebase Storage 에 온센 사진을 올리고 공개 URL 을 돌려주는 서비스 클래스입니다.
    """

    def __init__(self, bucket=None):
        """
        버킷은 init_app 에서 주입됩니다. 테스트에서는 가짜 버킷을 직접 넘길 수 있습니다.
        """
        self.bucket = bucket

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 한 번만 호출되어 Storage 버킷을 설정합니다.

        :param app: Flask 애플리케이션 객체
        """
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET 설정이 .env 또는 설정 파일에 필요합니다.")

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    @staticmethod
    def build_photo_path(filename: str) -> str:
        """
        사진 저장 경로를 만듭니다: onsenPhotos/<epoch-millis>_<원본 파일명>

        :param filename: 사용자가 올린 원본 파일명
        """
        safe_name = _UNSAFE_FILENAME_CHARS.sub('_', filename or '').strip().lstrip('.')
        if not safe_name.strip('_ '):
            safe_name = DEFAULT_PHOTO_NAME
        return f"{PHOTO_FOLDER}/{DateTimeUtils.now_epoch_ms()}_{safe_name}"

    def upload_photo(self, data: bytes, filename: str, content_type: str = 'image/jpeg') -> str:
        """
        사진 바이트를 업로드하고 공개 URL 을 반환합니다.
        실패 시 예외를 그대로 올려 보내며, 호출하는 쪽에서 치명적이지 않은 실패로 처리합니다.

        :param data: 업로드할 이미지 바이트 (축소/재인코딩 완료된 JPEG)
        :param filename: 원본 파일명 (경로 생성에 사용)
        :param content_type: 업로드할 파일의 MIME 타입
        :return: 공개적으로 접근 가능한 URL
        """
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        file_path = self.build_photo_path(filename)
        blob = self.bucket.blob(file_path)
        try:
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
        except Exception as e:
            logging.error(f"사진 업로드 실패 ({file_path}): {e}", exc_info=True)
            raise

        logging.info(f"사진 업로드 완료: {file_path}")
        return blob.public_url
