from datetime import datetime
from flask import Blueprint, jsonify, request
from models.users import public_profile
from utils.attendance import AttendanceBoard, filter_profiles
from utils.auth import current_user, role_required
from utils.errors import BulkWritePartialFailure, InvalidSetting
from utils.services import portal

monitor_bp = Blueprint("monitor", __name__, url_prefix="/monitor/attendance")


def _date(value):
    if not value:
        return portal().clock().strftime("%Y-%m-%d")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise InvalidSetting(f"Bad date: {value}") from None
    return value


def _board(date):
    return AttendanceBoard(portal().store, date, clock=portal().clock, chunk_size=portal().chunk_size)


# ==========================================================
# VIEW ATTENDANCE BOARD
# ==========================================================
@monitor_bp.route("")
@role_required("mayor", "monitor")
def view_attendance():
    date = _date(request.args.get("date"))
    profiles = filter_profiles(portal().profiles.list_profiles(), request.args.get("q", ""))
    board = _board(date)
    return jsonify(
        date=date,
        profiles=[public_profile(p) for p in profiles],
        records=board.records,
    )


# ==========================================================
# BULK MARK (everyone matching the current search)
# ==========================================================
@monitor_bp.route("/bulk", methods=["POST"])
@role_required("mayor", "monitor")
def bulk_mark():
    data = request.get_json(silent=True) or request.form
    date = _date(data.get("date"))
    targets = filter_profiles(portal().profiles.list_profiles(), data.get("q", ""))
    board = _board(date)

    try:
        written = board.bulk_mark([p["id"] for p in targets], data.get("status"), current_user()["id"])
    except BulkWritePartialFailure as exc:
        body = exc.to_dict()
        body["records"] = board.records
        return jsonify(body), exc.status_code

    return jsonify(date=date, updated=written, records=board.records)


# ==========================================================
# MARK ONE STUDENT
# ==========================================================
@monitor_bp.route("/<user_id>", methods=["POST"])
@role_required("mayor", "monitor")
def mark(user_id):
    data = request.get_json(silent=True) or request.form
    date = _date(data.get("date"))
    board = _board(date)
    record = board.mark(user_id, data.get("status"), current_user()["id"])
    return jsonify(date=date, record=record)
