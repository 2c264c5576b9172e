import json
import queue

from flask import Blueprint, Response, current_app, jsonify
from utils.auth import current_user, login_required
from utils.errors import NotFound
from utils.services import portal

notifications_bp = Blueprint("notifications", __name__, url_prefix="/notifications")


@notifications_bp.route("")
@login_required
def list_notifications():
    items = portal().notifications.for_user(current_user()["id"], limit=100)
    return jsonify(notifications=items, unread=sum(1 for n in items if not n.get("is_read")))


@notifications_bp.route("/<notification_id>/read", methods=["POST"])
@login_required
def mark_read(notification_id):
    if not portal().notifications.mark_read(current_user()["id"], notification_id):
        raise NotFound("Notification not found.")
    return jsonify(id=notification_id, is_read=True)


# Server-sent events; the listener lives exactly as long as the client connection.
# Idle streams send a keep-alive comment so a closed socket is noticed on the next write.
@notifications_bp.route("/stream")
@login_required
def stream():
    events = queue.Queue()
    subscription = portal().notifications.watch(current_user()["id"], events.put)
    keepalive = current_app.config.get("STREAM_KEEPALIVE_SECONDS", 15)

    def generate():
        try:
            while True:
                try:
                    items = events.get(timeout=keepalive)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                yield f"data: {json.dumps(items, default=str)}\n\n"
        finally:
            subscription.unsubscribe()

    return Response(generate(), mimetype="text/event-stream")
