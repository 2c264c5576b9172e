from flask import Blueprint, jsonify, request, session
from models.users import public_profile
from utils.auth import current_user, login_required, logout_user
from utils.services import portal

auth_bp = Blueprint("auth", __name__)


# Login
@auth_bp.route("/", methods=["GET", "POST"])
@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "POST":
        data = request.get_json(silent=True) or request.form
        email = data.get("email")
        password = data.get("password")

        user = portal().credentials.verify(email, password) if email and password else None
        if user:
            # Save user info in session
            session["user_id"] = user["id"]
            session["user_name"] = user.get("full_name")
            return jsonify(message=f"Welcome {user.get('full_name')}!", user=public_profile(user))

        return jsonify(error="InvalidCredentials", message="Invalid email or password"), 401

    return jsonify(message="Please log in.")


# Logout
@auth_bp.route("/logout")
def logout():
    user_id = session.get("user_id")
    if user_id:
        # Abandon any half-finished password change
        portal().reset_sessions.discard(user_id)
    return logout_user()


# View Profile
@auth_bp.route("/profile")
@login_required
def view_profile():
    return jsonify(user=public_profile(current_user()))
