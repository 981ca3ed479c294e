# deepsleeping/api/onsen_logs/test_services.py
import pytest
from firebase_admin import firestore

from deepsleeping.models.onsen_log import OnsenLogInput, OnsenLogUpdate


def _input(date="2024-05-01", name="別府温泉", score=85, rating=4, **extra):
    return OnsenLogInput(date=date, onsenName=name, sleepScore=score, rating=rating, **extra)


def test_create_writes_document_with_server_timestamp(log_service, logs_collection):
    log_id = log_service.create(_input(memo="いいお湯"))

    stored = logs_collection.docs[log_id]
    assert stored["onsenName"] == "別府温泉"
    assert stored["memo"] == "いいお湯"
    assert stored["createdAt"] is not None
    assert "lat" not in stored and "photoUrl" not in stored


def test_create_propagates_store_errors(log_service, logs_collection):
    logs_collection.fail_writes = True
    with pytest.raises(ConnectionError):
        log_service.create(_input())
    assert logs_collection.docs == {}


def test_get_by_id_returns_none_for_missing(log_service):
    assert log_service.get_by_id("missing") is None


def test_update_changes_only_supplied_fields(log_service, logs_collection):
    """memo 만 보내면 memo 만 바뀌어야 함"""
    log_id = log_service.create(_input(memo="old", lat=33.28, lng=131.49))
    before = dict(logs_collection.docs[log_id])

    updated = log_service.update(log_id, OnsenLogUpdate(memo="new text"))

    after = logs_collection.docs[log_id]
    assert updated.memo == "new text"
    assert {k: v for k, v in after.items() if k != "memo"} == {k: v for k, v in before.items() if k != "memo"}
    assert logs_collection.updates == [(log_id, {"memo": "new text"})]


def test_update_none_removes_field(log_service, logs_collection):
    log_id = log_service.create(_input(memo="old"))
    log_service.update(log_id, OnsenLogUpdate(memo=None))

    assert "memo" not in logs_collection.docs[log_id]
    assert logs_collection.updates[0][1] == {"memo": firestore.DELETE_FIELD}


def test_update_missing_document_raises(log_service):
    with pytest.raises(FileNotFoundError):
        log_service.update("missing", OnsenLogUpdate(memo="x"))


def test_update_without_changes_raises(log_service):
    log_id = log_service.create(_input())
    with pytest.raises(ValueError):
        log_service.update(log_id, OnsenLogUpdate())


def test_list_recent_orders_by_date_then_created_at(log_service):
    first = log_service.create(_input(date="2024-05-01", name="A"))
    second = log_service.create(_input(date="2024-05-03", name="B"))
    third = log_service.create(_input(date="2024-05-01", name="C"))

    ids = [log.log_id for log in log_service.list_recent()]
    assert ids == [second, third, first]


def test_list_recent_is_capped(fake_db):
    from deepsleeping.api.onsen_logs.services import OnsenLogService

    service = OnsenLogService(db=fake_db, window=2)
    for day in range(1, 5):
        service.create(_input(date=f"2024-05-0{day}"))
    assert len(service.list_recent()) == 2


def test_subscribe_pushes_full_snapshots_until_unsubscribed(log_service, logs_collection):
    snapshots = []
    unsubscribe = log_service.subscribe(snapshots.append)

    log_service.create(_input(name="A"))
    log_service.create(_input(name="B"))
    assert [len(s) for s in snapshots] == [0, 1, 2]

    unsubscribe()
    assert logs_collection.watches == []
    log_service.create(_input(name="C"))
    assert len(snapshots) == 3
