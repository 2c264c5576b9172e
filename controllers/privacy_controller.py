from flask import Blueprint, jsonify, request
from utils.auth import current_user, login_required
from utils.privacy import read_privacy, save_privacy
from utils.services import portal

privacy_bp = Blueprint("privacy", __name__, url_prefix="/settings/privacy")


@privacy_bp.route("", methods=["GET", "POST"])
@login_required
def privacy():
    user = current_user()
    if request.method == "POST":
        data = request.get_json(silent=True) or request.form
        settings = save_privacy(portal().profiles, user["id"], data, mirror=portal().mirror)
        return jsonify(privacy=settings, message="Privacy settings saved.")

    return jsonify(privacy=read_privacy(user))
