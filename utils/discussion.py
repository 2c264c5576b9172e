"""
utils/discussion.py
-----------------
Comments and emoji reactions on posts.

Each user holds at most one reaction per post or comment. Reactions are
stored as `reactions.<emoji>` lists of user ids and changed with
array-union/array-remove, so concurrent reactions from different users
never overwrite each other. A post's `reply_count` moves by increment in
the same batch that adds or removes the comment.
"""

from models.notification import COLLECTION as NOTIFICATIONS, Notification
from models.post import COMMENTS, HEART, POSTS, REACTION_EMOJIS, Comment
from utils.db import ArrayRemove, ArrayUnion, Increment
from utils.errors import Forbidden, InvalidSetting, NotFound
from utils.password_reset import utc_now


def current_reaction(reactions, user_id):
    for emoji, user_ids in (reactions or {}).items():
        if isinstance(user_ids, list) and user_id in user_ids:
            return emoji
    return None


def _post_reactions(post):
    reactions = dict(post.get("reactions") or {})
    if post.get("likes") and HEART not in reactions:
        reactions[HEART] = list(post["likes"])
    return reactions


def _notify(batch, store, recipient, title, message, notification_type, post_id, created_at):
    doc = Notification(recipient, title, message, notification_type=notification_type,
                       created_at=created_at).to_dict()
    doc["event_id"] = post_id
    batch.set(NOTIFICATIONS, store.new_id(), doc)


# ==========================================================
# COMMENTS
# ==========================================================
def add_comment(store, post_id, author, content, parent_id=None, clock=utc_now):
    content = (content or "").strip()
    if not content:
        raise InvalidSetting("Comment cannot be empty.")

    post = store.get(POSTS, post_id)
    if not post:
        raise NotFound("Post not found.")
    parent = None
    if parent_id:
        parent = store.get(COMMENTS, parent_id)
        if not parent or parent.get("post_id") != post_id:
            raise NotFound("Comment not found.")

    now = clock()
    comment_id = store.new_id()
    sender = author.get("full_name") or "Someone"

    batch = store.batch()
    batch.set(COMMENTS, comment_id,
              Comment(post_id, author["id"], content, parent_id=parent_id, created_at=now).to_dict())
    batch.update(POSTS, post_id, {"reply_count": Increment(1)})

    if parent:
        if parent.get("user_id") != author["id"]:
            _notify(batch, store, parent["user_id"], "New Reply",
                    f"{sender} replied to your comment.", "comment", post_id, now)
    elif post.get("user_id") and post["user_id"] != author["id"]:
        _notify(batch, store, post["user_id"], "New Comment",
                f"{sender} commented on your post.", "comment", post_id, now)

    batch.commit()
    return comment_id


def delete_comment(store, post_id, comment_id, user_id):
    comment = store.get(COMMENTS, comment_id)
    if not comment or comment.get("post_id") != post_id:
        raise NotFound("Comment not found.")
    if comment.get("user_id") != user_id:
        raise Forbidden("You can only delete your own comments.")

    batch = store.batch()
    batch.delete(COMMENTS, comment_id)
    batch.update(POSTS, post_id, {"reply_count": Increment(-1)})
    batch.commit()


# ==========================================================
# REACTIONS
# ==========================================================
def toggle_reaction(store, collection, doc_id, user, emoji, clock=utc_now):
    """
    React with `emoji`, switch an earlier reaction to it, or take it back
    when it is already the user's reaction. Returns the user's reaction
    afterwards (None when removed).
    """
    if emoji not in REACTION_EMOJIS:
        raise InvalidSetting(f"Unsupported reaction: {emoji}")
    if collection not in (POSTS, COMMENTS):
        raise InvalidSetting(f"Cannot react to {collection}.")

    target = store.get(collection, doc_id)
    if not target:
        raise NotFound("Post not found." if collection == POSTS else "Comment not found.")

    on_post = collection == POSTS
    reactions = _post_reactions(target) if on_post else target.get("reactions")
    user_id = user["id"]
    existing = current_reaction(reactions, user_id)
    batch = store.batch()

    def change(key, sentinel_type):
        updates = {f"reactions.{key}": sentinel_type(user_id)}
        if on_post and key == HEART:
            updates["likes"] = sentinel_type(user_id)
        batch.update(collection, doc_id, updates)

    if existing == emoji:
        change(emoji, ArrayRemove)
        result = None
    else:
        if existing:
            change(existing, ArrayRemove)
        change(emoji, ArrayUnion)
        result = emoji

        owner = target.get("user_id")
        if owner and owner != user_id and not existing:
            sender = user.get("full_name") or "Someone"
            what = "post" if on_post else "comment"
            post_id = doc_id if on_post else target.get("post_id")
            _notify(batch, store, owner, "New Reaction",
                    f"{sender} reacted {emoji} to your {what}.", "reaction", post_id, clock())

    batch.commit()
    return result
