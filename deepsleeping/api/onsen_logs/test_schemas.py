# deepsleeping/api/onsen_logs/test_schemas.py
import pytest
from marshmallow import ValidationError

from deepsleeping.api.onsen_logs.schemas import (
    OnsenLogFormSchema,
    OnsenLogUpdateSchema,
    REQUIRED_MESSAGE,
    SCORE_MESSAGE,
    RATING_MESSAGE,
)


def _form(**overrides):
    data = {"date": "2024-05-01", "onsenName": "別府温泉", "sleepScore": "85", "rating": "4", "memo": ""}
    data.update(overrides)
    return data


def test_form_schema_normalizes_values():
    data = OnsenLogFormSchema().load(_form(onsenName="  別府温泉  ", memo="  いいお湯 "))

    assert data == {"date": "2024-05-01", "onsenName": "別府温泉", "sleepScore": 85, "rating": 4, "memo": "いいお湯"}
    assert isinstance(data["sleepScore"], int)


def test_form_schema_drops_empty_memo():
    data = OnsenLogFormSchema().load(_form(memo="   "))
    assert "memo" not in data


def test_form_schema_keeps_fractional_score():
    assert OnsenLogFormSchema().load(_form(sleepScore="72.5"))["sleepScore"] == 72.5


@pytest.mark.parametrize("field_name", ["date", "onsenName", "sleepScore"])
def test_form_schema_requires_fields(field_name):
    """필수 입력이 비어 있거나 없으면 필드별 메시지"""
    with pytest.raises(ValidationError) as exc:
        OnsenLogFormSchema().load(_form(**{field_name: "  "}))
    assert exc.value.messages[field_name] == [REQUIRED_MESSAGE]

    data = _form()
    data.pop(field_name)
    with pytest.raises(ValidationError) as exc:
        OnsenLogFormSchema().load(data)
    assert field_name in exc.value.messages


@pytest.mark.parametrize("score", ["abc", "8x", "nan"])
def test_form_schema_rejects_non_numeric_score(score):
    with pytest.raises(ValidationError) as exc:
        OnsenLogFormSchema().load(_form(sleepScore=score))
    assert exc.value.messages["sleepScore"] == [SCORE_MESSAGE]


@pytest.mark.parametrize("rating", ["0", "6", "-1", "abc"])
def test_form_schema_rejects_rating_out_of_range(rating):
    with pytest.raises(ValidationError) as exc:
        OnsenLogFormSchema().load(_form(rating=rating))
    assert exc.value.messages["rating"] == [RATING_MESSAGE]


@pytest.mark.parametrize("rating", [4.9, "4.9", 1.5, True])
def test_form_schema_rejects_fractional_rating(rating):
    """소수 평가는 잘라내지 않고 거부"""
    with pytest.raises(ValidationError) as exc:
        OnsenLogFormSchema().load(_form(rating=rating))
    assert exc.value.messages["rating"] == [RATING_MESSAGE]


def test_form_schema_accepts_whole_float_rating():
    assert OnsenLogFormSchema().load(_form(rating=4.0))["rating"] == 4


def test_form_schema_accepts_json_numbers():
    data = OnsenLogFormSchema().load({"date": "2024/05/01", "onsenName": "別府温泉", "sleepScore": 85, "rating": 4})
    assert data["date"] == "2024-05-01"
    assert data["rating"] == 4


def test_form_schema_rejects_bad_date():
    with pytest.raises(ValidationError) as exc:
        OnsenLogFormSchema().load(_form(date="not-a-date"))
    assert "date" in exc.value.messages


@pytest.mark.parametrize("partial_date", ["5", "05-01", "2024-05", "May"])
def test_form_schema_rejects_partial_date(partial_date):
    """연/월/일 중 빠진 부분을 오늘 날짜로 채우지 않음"""
    with pytest.raises(ValidationError) as exc:
        OnsenLogFormSchema().load(_form(date=partial_date))
    assert "date" in exc.value.messages


def test_update_schema_only_returns_sent_keys():
    assert OnsenLogUpdateSchema().load({"memo": "new text"}) == {"memo": "new text"}


def test_update_schema_null_and_empty_memo_mean_clear():
    assert OnsenLogUpdateSchema().load({"memo": None}) == {"memo": None}
    assert OnsenLogUpdateSchema().load({"memo": "  "}) == {"memo": None}


def test_update_schema_requires_coordinate_pairs():
    with pytest.raises(ValidationError):
        OnsenLogUpdateSchema().load({"lat": 33.2})
    assert OnsenLogUpdateSchema().load({"lat": 33.2, "lng": 131.4}) == {"lat": 33.2, "lng": 131.4}


def test_update_schema_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        OnsenLogUpdateSchema().load({"createdAt": "2024-01-01"})


@pytest.mark.parametrize("rating", [None, 0, 6, 4.9])
def test_update_schema_rejects_clearing_or_invalid_rating(rating):
    with pytest.raises(ValidationError) as exc:
        OnsenLogUpdateSchema().load({"rating": rating})
    assert exc.value.messages["rating"] == [RATING_MESSAGE]


@pytest.mark.parametrize("body", ["x", [1], 3])
def test_schemas_reject_non_object_bodies(body):
    with pytest.raises(ValidationError):
        OnsenLogFormSchema().load(body)
    with pytest.raises(ValidationError):
        OnsenLogUpdateSchema().load(body)
