# deepsleeping/web/routes.py
import logging
from flask import Blueprint, request, render_template, redirect, url_for, current_app, abort
from marshmallow import ValidationError

from deepsleeping.api.onsen_logs.stats import average_sleep_score, format_average, render_stars
from deepsleeping.api.onsen_logs.submission import PhotoUpload, SubmissionError
from deepsleeping.utils.datetime_utils import DateTimeUtils
from deepsleeping.web.map_view import build_map_view, EMPTY_MESSAGE
from deepsleeping.web.tabs import Tab, resolve_swipe

web_bp = Blueprint('web_bp', __name__)

DEFAULT_RATING = 3


def _photo_from_request():
    """업로드 필드가 비어 있으면 None."""
    file = request.files.get('photo')
    if not file or not file.filename:
        return None
    return PhotoUpload(data=file.read(), filename=file.filename)


def _form_values(source=None):
    values = {"date": DateTimeUtils.today_string(), "onsenName": "", "sleepScore": "", "memo": "", "rating": DEFAULT_RATING}
    if source:
        values.update(source)
    return values


def _errors_by_field(messages):
    # marshmallow 는 필드마다 메시지 리스트를 돌려줍니다. 화면에는 첫 번째만 표시합니다.
    errors = {}
    for key, value in messages.items():
        errors[key] = value[0] if isinstance(value, list) and value else str(value)
    return errors


@web_bp.route('/', methods=['GET'])
def home():
    """목록 / 지도 두 탭과 평균 수면 점수를 보여주는 홈 화면."""
    feed = current_app.services['feed']
    active = Tab.parse(request.args.get('tab'))
    swipe_dx = request.args.get('swipe_dx', type=float)
    if swipe_dx is not None:
        active = resolve_swipe(active, swipe_dx, current_app.config.get('SWIPE_THRESHOLD_PX', 50))

    logs = feed.latest()
    return render_template(
        'home.html',
        active_tab=active.value,
        logs=logs,
        average=format_average(average_sleep_score(logs)),
        map_view=build_map_view(logs),
        map_empty_message=EMPTY_MESSAGE,
        render_stars=render_stars,
        swipe_threshold=current_app.config.get('SWIPE_THRESHOLD_PX', 50),
    )


@web_bp.route('/add', methods=['GET', 'POST'])
def add_log():
    """신규 기록 작성 화면. 성공하면 홈으로 돌아갑니다."""
    if request.method == 'GET':
        return render_template('log_form.html', mode='add', values=_form_values(), errors={}, error=None)

    submission_service = current_app.services['submission']
    form = request.form.to_dict()
    try:
        submission_service.submit(form, _photo_from_request())
    except ValidationError as err:
        return render_template('log_form.html', mode='add', values=_form_values(form),
                               errors=_errors_by_field(err.messages), error=None), 400
    except SubmissionError as e:
        # 입력값은 그대로 두고 다시 시도할 수 있게 합니다.
        return render_template('log_form.html', mode='add', values=_form_values(form),
                               errors={}, error=e.message), 500
    return redirect(url_for('web_bp.home'))


@web_bp.route('/logs/<string:log_id>/edit', methods=['GET', 'POST'])
def edit_log(log_id: str):
    """기존 기록 수정 화면. 현재 값으로 폼을 채웁니다."""
    log_service = current_app.services['onsen_logs']
    submission_service = current_app.services['submission']

    if request.method == 'GET':
        log = log_service.get_by_id(log_id)
        if log is None:
            abort(404)
        values = _form_values({
            "date": log.date,
            "onsenName": log.onsenName,
            "sleepScore": log.sleepScore,
            "memo": log.memo or "",
            "rating": log.rating or DEFAULT_RATING,
        })
        return render_template('log_form.html', mode='edit', log_id=log_id, values=values, errors={}, error=None)

    form = request.form.to_dict()
    try:
        submission_service.submit_edit(log_id, form, _photo_from_request())
    except ValidationError as err:
        return render_template('log_form.html', mode='edit', log_id=log_id, values=_form_values(form),
                               errors=_errors_by_field(err.messages), error=None), 400
    except FileNotFoundError:
        abort(404)
    except SubmissionError as e:
        logging.warning(f"Edit submission failed for {log_id}: {e.message}")
        return render_template('log_form.html', mode='edit', log_id=log_id, values=_form_values(form),
                               errors={}, error=e.message), 500
    return redirect(url_for('web_bp.home'))
