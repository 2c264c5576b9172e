from flask import Blueprint, jsonify, request
from models.post import COMMENTS, POSTS
from utils.auth import current_user, login_required
from utils.discussion import add_comment, delete_comment, toggle_reaction
from utils.errors import InvalidSetting, NotFound
from utils.services import portal

posts_bp = Blueprint("posts", __name__, url_prefix="/posts")


def _payload():
    return request.get_json(silent=True) or request.form


# ======================================
# POST WITH COMMENTS
# ======================================
@posts_bp.route("/<post_id>")
@login_required
def view_post(post_id):
    post = portal().posts.get(post_id)
    if not post:
        raise NotFound("Post not found.")
    return jsonify(post=post, comments=portal().posts.comments(post_id))


# ======================================
# COMMENTS
# ======================================
@posts_bp.route("/<post_id>/comments", methods=["POST"])
@login_required
def create_comment(post_id):
    data = _payload()
    comment_id = add_comment(
        portal().store, post_id, current_user(), data.get("content"),
        parent_id=data.get("parent_id") or None, clock=portal().clock,
    )
    return jsonify(id=comment_id), 201


@posts_bp.route("/<post_id>/comments/<comment_id>", methods=["PUT"])
@login_required
def edit_comment(post_id, comment_id):
    content = (_payload().get("content") or "").strip()
    if not content:
        raise InvalidSetting("Comment cannot be empty.")
    comment = portal().posts.get_comment(comment_id)
    if not comment or comment.get("post_id") != post_id:
        raise NotFound("Comment not found.")
    if not portal().posts.edit_comment(comment_id, current_user()["id"], content):
        raise NotFound("Comment not found.")
    return jsonify(id=comment_id, content=content, is_edited=True)


@posts_bp.route("/<post_id>/comments/<comment_id>", methods=["DELETE"])
@login_required
def remove_comment(post_id, comment_id):
    delete_comment(portal().store, post_id, comment_id, current_user()["id"])
    return jsonify(id=comment_id, message="Comment deleted.")


# ======================================
# REACTIONS
# ======================================
@posts_bp.route("/<post_id>/reactions", methods=["POST"])
@login_required
def react_to_post(post_id):
    reaction = toggle_reaction(portal().store, POSTS, post_id, current_user(),
                               _payload().get("emoji"), clock=portal().clock)
    return jsonify(id=post_id, reaction=reaction)


@posts_bp.route("/<post_id>/comments/<comment_id>/reactions", methods=["POST"])
@login_required
def react_to_comment(post_id, comment_id):
    comment = portal().posts.get_comment(comment_id)
    if not comment or comment.get("post_id") != post_id:
        raise NotFound("Comment not found.")
    reaction = toggle_reaction(portal().store, COMMENTS, comment_id, current_user(),
                               _payload().get("emoji"), clock=portal().clock)
    return jsonify(id=comment_id, reaction=reaction)
