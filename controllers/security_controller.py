from flask import Blueprint, jsonify, request
from utils.auth import current_user, login_required
from utils.services import portal

security_bp = Blueprint("security", __name__, url_prefix="/settings/security")


def _session():
    return portal().reset_sessions.get(current_user()["id"])


def _state(reset_session, message=None):
    body = reset_session.to_dict()
    body["days_remaining"] = portal().reset_flow.cooldown(reset_session.user_id)
    if message:
        body["message"] = message
    return jsonify(body)


# -----------------------------
# STATUS
# -----------------------------
@security_bp.route("")
@login_required
def status():
    return _state(_session())


# -----------------------------
# OPEN SECURITY SCREEN
# -----------------------------
@security_bp.route("/start", methods=["POST"])
@login_required
def start():
    return _state(portal().reset_sessions.open(current_user()["id"]))


# -----------------------------
# STEP 1: REQUEST CODE / ADMIN TOKEN
# -----------------------------
@security_bp.route("/request-code", methods=["POST"])
@login_required
def request_code():
    reset_session = portal().reset_flow.request_code(_session())
    if reset_session.fallback_code:
        return _state(reset_session, "Email service unavailable. Use the code shown below.")
    email = portal().credentials.get_current_user_email(reset_session.user_id)
    return _state(reset_session, f"Verification code sent to {email}")


@security_bp.route("/use-admin-token", methods=["POST"])
@login_required
def use_admin_token():
    return _state(portal().reset_flow.use_bypass_token(_session()))


# -----------------------------
# STEP 2: VERIFY
# -----------------------------
@security_bp.route("/verify", methods=["POST"])
@login_required
def verify():
    data = request.get_json(silent=True) or request.form
    reset_session = portal().reset_flow.verify(_session(), data.get("token", ""))
    return _state(reset_session, "Token verified successfully.")


# -----------------------------
# STEP 3: SET PASSWORD
# -----------------------------
@security_bp.route("/password", methods=["POST"])
@login_required
def set_password():
    data = request.get_json(silent=True) or request.form
    reset_session = portal().reset_flow.set_password(
        _session(), data.get("new_password", ""), data.get("confirm_password", "")
    )
    flow = portal().reset_flow
    return _state(
        reset_session,
        "Password updated successfully. You are now restricted from changing it "
        f"for {flow.cooldown_days} days.",
    )


@security_bp.route("/cancel", methods=["POST"])
@login_required
def cancel():
    return _state(portal().reset_flow.cancel(_session()))
