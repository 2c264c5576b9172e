from functools import wraps
from flask import g, jsonify, session

from utils.services import portal


def current_user():
    if "current_user" in g:
        return g.current_user

    user_id = session.get("user_id")
    g.current_user = portal().profiles.get(user_id) if user_id else None
    return g.current_user


# This decorator makes sure that only logged-in users can access protected pages
def login_required(view_function):
    @wraps(view_function)
    def decorated_function(*args, **kwargs):
        if not current_user():
            return jsonify(error="Unauthorized", message="Please log in to access this page."), 401
        return view_function(*args, **kwargs)
    return decorated_function


def role_required(*roles):
    def decorator(view_function):
        @wraps(view_function)
        def decorated_function(*args, **kwargs):
            user = current_user()
            if not user:
                return jsonify(error="Unauthorized", message="Please log in to access this page."), 401
            if user.get("role") not in roles:
                return jsonify(error="Forbidden", message="You do not have permission for this page."), 403
            return view_function(*args, **kwargs)
        return decorated_function
    return decorator


def logout_user():
    session.clear()
    g.pop("current_user", None)
    return jsonify(message="You have been logged out successfully.")
