# deepsleeping/api/onsen_logs/schemas.py
from collections.abc import Mapping

from marshmallow import Schema, fields, validate, validates, pre_load, post_load, ValidationError, EXCLUDE

from deepsleeping.utils.datetime_utils import DateTimeUtils

REQUIRED_MESSAGE = "日付・温泉名・睡眠スコアは必須です。"
SCORE_MESSAGE = "睡眠スコアは数値で入力してください。"
RATING_MESSAGE = "評価は1〜5の範囲で指定してください。"
DATE_MESSAGE = "日付の形式が正しくありません。"


def _strip_strings(data):
    """문자열 값의 앞뒤 공백을 제거하고, 비어 있는 선택 입력은 키째로 뺍니다."""
    processed = {}
    for key, value in data.items():
        if isinstance(value, str):
            value = value.strip()
            if value == "" and key in ('memo', 'rating', 'lat', 'lng', 'photoUrl'):
                continue
        processed[key] = value
    return processed


def _compact_number(value: float):
    """85.0 처럼 정수인 점수는 int 로 저장합니다."""
    return int(value) if float(value).is_integer() else value


class WholeNumber(fields.Integer):
    """
    폼에서 오는 "4" 같은 문자열은 받되, 4.9 처럼 소수부가 있는 값은 잘라내지 않고 거부합니다.
    """

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, bool):
            raise self.make_error("invalid")
        if isinstance(value, float) and not value.is_integer():
            raise self.make_error("invalid")
        return super()._deserialize(value, attr, data, **kwargs)


class OnsenLogFormSchema(Schema):
    """
    신규 기록 / 수정 폼 입력 검증 스키마.
    HTML 폼(문자열)과 JSON 본문 모두 이 스키마를 거칩니다.
    """
    date = fields.Str(required=True, validate=validate.Length(min=1),
                      error_messages={"required": REQUIRED_MESSAGE, "null": REQUIRED_MESSAGE})
    onsenName = fields.Str(required=True, validate=validate.Length(min=1, error=REQUIRED_MESSAGE),
                           error_messages={"required": REQUIRED_MESSAGE, "null": REQUIRED_MESSAGE})
    sleepScore = fields.Float(required=True, allow_nan=False,
                              error_messages={"required": REQUIRED_MESSAGE, "null": REQUIRED_MESSAGE,
                                              "invalid": SCORE_MESSAGE, "special": SCORE_MESSAGE})
    rating = WholeNumber(required=True, validate=validate.Range(min=1, max=5, error=RATING_MESSAGE),
                         error_messages={"required": RATING_MESSAGE, "null": RATING_MESSAGE, "invalid": RATING_MESSAGE})
    memo = fields.Str(required=False, allow_none=True)

    class Meta:
        # 폼에는 photo 등 다른 필드가 섞여 들어옵니다.
        unknown = EXCLUDE

    @pre_load
    def preprocess_data(self, data, **kwargs):
        # 객체가 아닌 본문은 marshmallow 가 "Invalid input type." 으로 거부합니다.
        if not isinstance(data, Mapping):
            return data
        processed = _strip_strings(data)
        # 빈 필수 입력은 '누락'과 같은 메시지로 처리합니다.
        for key in ('date', 'onsenName', 'sleepScore'):
            if processed.get(key) == "":
                processed.pop(key)
        return processed

    @validates('date')
    def validate_date(self, value, **kwargs):
        try:
            DateTimeUtils.normalize_date_string(value)
        except ValueError:
            raise ValidationError(DATE_MESSAGE)

    @post_load
    def normalize(self, data, **kwargs):
        data['date'] = DateTimeUtils.normalize_date_string(data['date'])
        data['sleepScore'] = _compact_number(data['sleepScore'])
        if not data.get('memo'):
            data.pop('memo', None)
        return data


class OnsenLogUpdateSchema(Schema):
    """
    PATCH /api/onsen-logs/<log_id> 부분 업데이트 스키마.
    보낸 키만 반영되며, 선택 필드에 null 을 보내면 해당 필드가 삭제됩니다.
    """
    date = fields.Str(validate=validate.Length(min=1))
    onsenName = fields.Str(validate=validate.Length(min=1, error=REQUIRED_MESSAGE))
    sleepScore = fields.Float(allow_nan=False, error_messages={"invalid": SCORE_MESSAGE, "special": SCORE_MESSAGE})
    rating = WholeNumber(validate=validate.Range(min=1, max=5, error=RATING_MESSAGE),
                         error_messages={"invalid": RATING_MESSAGE, "null": RATING_MESSAGE})
    memo = fields.Str(allow_none=True)
    lat = fields.Float(allow_none=True, validate=validate.Range(min=-90, max=90))
    lng = fields.Float(allow_none=True, validate=validate.Range(min=-180, max=180))
    photoUrl = fields.URL(allow_none=True)

    @pre_load
    def preprocess_data(self, data, **kwargs):
        if not isinstance(data, Mapping):
            return data
        processed = {}
        for key, value in data.items():
            if isinstance(value, str):
                value = value.strip()
                # 빈 메모는 삭제 요청으로 취급합니다.
                if key == 'memo' and value == "":
                    value = None
            processed[key] = value
        return processed

    @validates('date')
    def validate_date(self, value, **kwargs):
        try:
            DateTimeUtils.normalize_date_string(value)
        except ValueError:
            raise ValidationError(DATE_MESSAGE)

    @post_load
    def normalize(self, data, **kwargs):
        if 'date' in data:
            data['date'] = DateTimeUtils.normalize_date_string(data['date'])
        if 'sleepScore' in data:
            data['sleepScore'] = _compact_number(data['sleepScore'])
        if ('lat' in data) != ('lng' in data) or (data.get('lat') is None) != (data.get('lng') is None):
            raise ValidationError("lat と lng は同時に指定してください。", 'lat')
        return data
