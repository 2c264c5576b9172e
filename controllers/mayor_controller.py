from datetime import datetime
from flask import Blueprint, jsonify, request
from models.event import EVENT_TYPES, Event
from models.users import public_profile
from utils.auth import role_required
from utils.broadcast import broadcast_notification
from utils.errors import InvalidSetting, NotFound
from utils.services import portal
from utils.tokens import active_tokens, issue_token, revoke_token, token_candidates

mayor_bp = Blueprint("mayor", __name__, url_prefix="/mayor")


# ======================================
# OVERVIEW
# ======================================
@mayor_bp.route("/stats")
@role_required("mayor")
def stats():
    store = portal().store
    return jsonify(
        users=portal().profiles.count(),
        events=store.count("events"),
        collections=store.count("collections"),
    )


# ======================================
# SECURITY TOKENS
# ======================================
@mayor_bp.route("/tokens")
@role_required("mayor")
def list_tokens():
    tokens = [
        {"user": public_profile(p), "token": p["special_password_token"]}
        for p in active_tokens(portal().profiles)
    ]
    return jsonify(tokens=tokens)


@mayor_bp.route("/tokens/candidates")
@role_required("mayor")
def candidates():
    users = token_candidates(portal().profiles, request.args.get("q", ""))
    return jsonify(users=[public_profile(u) for u in users])


@mayor_bp.route("/tokens/<user_id>", methods=["POST"])
@role_required("mayor")
def generate_token(user_id):
    token = issue_token(portal().profiles, user_id)
    return jsonify(user_id=user_id, token=token), 201


@mayor_bp.route("/tokens/<user_id>", methods=["DELETE"])
@role_required("mayor")
def delete_token(user_id):
    revoke_token(portal().profiles, user_id)
    return jsonify(user_id=user_id, message="Token revoked.")


# ======================================
# BROADCAST
# ======================================
@mayor_bp.route("/broadcast", methods=["POST"])
@role_required("mayor")
def broadcast():
    data = request.get_json(silent=True) or request.form
    result = broadcast_notification(
        portal().store,
        data.get("title"),
        data.get("message"),
        broadcast_id=data.get("broadcast_id"),
        clock=portal().clock,
        chunk_size=portal().chunk_size,
    )
    result["message"] = f"Broadcast successfully sent to {result['sent']} users."
    return jsonify(result)


# ======================================
# EVENTS
# ======================================
@mayor_bp.route("/events", methods=["GET", "POST"])
@role_required("mayor")
def events():
    if request.method == "POST":
        data = request.get_json(silent=True) or request.form
        title = (data.get("title") or "").strip()
        event_date = (data.get("event_date") or "").strip()
        event_type = data.get("event_type") or "general"
        if not title:
            raise InvalidSetting("Event title is required.")
        try:
            datetime.strptime(event_date, "%Y-%m-%d")
        except ValueError:
            raise InvalidSetting(f"Bad event date: {event_date}") from None
        if event_type not in EVENT_TYPES:
            raise InvalidSetting(f"Unknown event type: {event_type}")

        event = Event(title, event_date, event_time=data.get("event_time") or None,
                      event_type=event_type, created_at=portal().clock())
        event_id = portal().events.create(event)
        return jsonify(id=event_id, message="Event created."), 201

    return jsonify(events=portal().events.list_events())


@mayor_bp.route("/events/<event_id>", methods=["DELETE"])
@role_required("mayor")
def delete_event(event_id):
    if not portal().events.delete(event_id):
        raise NotFound("Event not found.")
    return jsonify(id=event_id, message="Event deleted.")


# ======================================
# SYSTEM SETTINGS
# ======================================
@mayor_bp.route("/settings", methods=["GET", "POST"])
@role_required("mayor")
def system_settings():
    settings = portal().settings
    if request.method == "POST":
        data = request.get_json(silent=True) or request.form
        url = (data.get("treasurer_portal_url") or "").strip()
        if not url.startswith(("http://", "https://")):
            raise InvalidSetting("Treasurer portal URL must start with http:// or https://")
        settings.set_treasurer_url(url)
        return jsonify(treasurer_portal_url=url, message="Configuration saved successfully.")

    return jsonify(treasurer_portal_url=settings.treasurer_url())
