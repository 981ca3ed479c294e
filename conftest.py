# conftest.py
"""
테스트 공용 픽스처

실제 Firebase 에 붙지 않도록 Firestore 컬렉션, Storage 버킷, 지오코딩 서비스를 메모리 구현으로 대체합니다.
"""

import io
import itertools
from datetime import datetime, timedelta, timezone

import pytest
from firebase_admin import firestore
from PIL import Image

from deepsleeping import create_app
from deepsleeping.api.onsen_logs.services import OnsenLogService
from deepsleeping.api.onsen_logs.submission import OnsenLogSubmissionService
from deepsleeping.services.geocoding_service import GeocodingNotFoundError
from deepsleeping.services.onsen_log_feed import OnsenLogFeed
from deepsleeping.services.storage_service import StorageService


# =====================================================================================
# Firestore 가짜 구현
# =====================================================================================
class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeWatch:
    def __init__(self, collection, query):
        self.collection = collection
        self.query = query
        self.active = True

    def unsubscribe(self):
        self.active = False
        if self in self.collection.watches:
            self.collection.watches.remove(self)


class FakeQuery:
    def __init__(self, collection, orders=None, limit_count=None):
        self.collection = collection
        self.orders = list(orders or [])
        self.limit_count = limit_count

    def order_by(self, field_path, direction=firestore.Query.ASCENDING):
        return FakeQuery(self.collection, self.orders + [(field_path, direction)], self.limit_count)

    def limit(self, count):
        return FakeQuery(self.collection, self.orders, count)

    def stream(self):
        docs = [FakeSnapshot(doc_id, data) for doc_id, data in self.collection.docs.items()]
        # 뒤쪽 정렬 키부터 안정 정렬을 반복해 다중 order_by 를 흉내 냅니다.
        for field_path, direction in reversed(self.orders):
            docs.sort(key=lambda d: d.to_dict().get(field_path),
                      reverse=direction == firestore.Query.DESCENDING)
        if self.limit_count is not None:
            docs = docs[:self.limit_count]
        return iter(docs)

    def on_snapshot(self, callback):
        watch = FakeWatch(self.collection, self)
        watch.callback = callback
        self.collection.watches.append(watch)
        callback(list(self.stream()), [], datetime.now(timezone.utc))
        return watch


class FakeDocumentRef:
    def __init__(self, collection, doc_id):
        self.collection = collection
        self.id = doc_id

    def get(self):
        return FakeSnapshot(self.id, self.collection.docs.get(self.id))

    def set(self, data):
        self.collection.check_writable()
        self.collection.docs[self.id] = self.collection.resolve_sentinels(data, {})
        self.collection.notify()

    def update(self, payload):
        self.collection.check_writable()
        if self.id not in self.collection.docs:
            raise KeyError(f"No document to update: {self.id}")
        current = dict(self.collection.docs[self.id])
        self.collection.docs[self.id] = self.collection.resolve_sentinels(payload, current)
        self.collection.updates.append((self.id, dict(payload)))
        self.collection.notify()


class FakeCollection(FakeQuery):
    def __init__(self, name):
        super().__init__(self)
        self.name = name
        self.docs = {}
        self.watches = []
        self.updates = []
        self.fail_writes = False
        self._ids = itertools.count(1)
        self._clock = datetime(2024, 5, 1, tzinfo=timezone.utc)

    def document(self, doc_id=None):
        return FakeDocumentRef(self, doc_id or f"log{next(self._ids)}")

    def check_writable(self):
        if self.fail_writes:
            raise ConnectionError("Firestore unavailable")

    def resolve_sentinels(self, payload, base):
        result = dict(base)
        for key, value in payload.items():
            if value is firestore.SERVER_TIMESTAMP:
                self._clock += timedelta(seconds=1)
                result[key] = self._clock
            elif value is firestore.DELETE_FIELD:
                result.pop(key, None)
            else:
                result[key] = value
        return result

    def notify(self):
        for watch in list(self.watches):
            watch.callback(list(watch.query.stream()), [], datetime.now(timezone.utc))


class FakeFirestore:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection(name))


# =====================================================================================
# Storage / 지오코딩 가짜 구현
# =====================================================================================
class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name
        self.data = None
        self.content_type = None
        self.is_public = False

    def upload_from_string(self, data, content_type=None):
        if self.bucket.fail_uploads:
            raise ConnectionError("Storage unavailable")
        self.data = data
        self.content_type = content_type
        self.bucket.uploaded[self.name] = self

    def make_public(self):
        self.is_public = True

    @property
    def public_url(self):
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}"


class FakeBucket:
    def __init__(self, name="deepsleeping-test.appspot.com"):
        self.name = name
        self.uploaded = {}
        self.fail_uploads = False

    def blob(self, name):
        return FakeBlob(self, name)


class FakeGeocoder:
    """resolve 호출을 기록하고, 미리 정한 좌표나 예외를 돌려줍니다."""

    def __init__(self, coords=None, error=None):
        self.coords = coords if coords is not None else {"lat": 33.28, "lng": 131.49}
        self.error = error
        self.calls = []

    def resolve(self, place_name):
        self.calls.append(place_name)
        if self.error is not None:
            raise self.error
        return dict(self.coords)


def make_jpeg_bytes(width=1200, height=800, color=(200, 120, 40), mode="RGB", fmt="JPEG"):
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


# =====================================================================================
# 픽스처
# =====================================================================================
@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def logs_collection(fake_db):
    return fake_db.collection('onsenLogs')


@pytest.fixture
def fake_bucket():
    return FakeBucket()


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder()


@pytest.fixture
def not_found_geocoder():
    return FakeGeocoder(error=GeocodingNotFoundError("no_result"))


@pytest.fixture
def log_service(fake_db):
    return OnsenLogService(db=fake_db)


@pytest.fixture
def storage_service(fake_bucket):
    return StorageService(bucket=fake_bucket)


@pytest.fixture
def feed(log_service):
    return OnsenLogFeed(log_service)


@pytest.fixture
def services(log_service, storage_service, fake_geocoder, feed):
    submission = OnsenLogSubmissionService(
        log_service=log_service,
        geocoding_service=fake_geocoder,
        storage_service=storage_service,
        feed=feed,
    )
    return {
        'storage': storage_service,
        'geocoding': fake_geocoder,
        'onsen_logs': log_service,
        'feed': feed,
        'submission': submission,
    }


@pytest.fixture
def app(services):
    app = create_app('testing', services=services)
    yield app
    services['feed'].close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def image_factory():
    return make_jpeg_bytes


@pytest.fixture
def jpeg_bytes():
    return make_jpeg_bytes()
