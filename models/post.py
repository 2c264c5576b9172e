from datetime import datetime, timezone

POSTS = "posts"
COMMENTS = "comments"

REACTION_EMOJIS = ("👍", "❤️", "😂", "😮", "😢", "😡")
# Older posts kept hearts in a flat `likes` list before reactions existed
HEART = "❤️"


class Comment:

    def __init__(self, post_id, user_id, content, parent_id=None, created_at=None):
        self.post_id = post_id
        self.user_id = user_id
        self.content = content
        self.parent_id = parent_id
        self.created_at = created_at or datetime.now(timezone.utc)

    def to_dict(self):
        data = {
            "post_id": self.post_id,
            "user_id": self.user_id,
            "content": self.content,
            "reactions": {},
            "is_edited": False,
            "created_at": self.created_at,
        }
        if self.parent_id:
            data["parent_id"] = self.parent_id
        return data


class PostStore:

    def __init__(self, store):
        self._store = store

    def get(self, post_id):
        return self._store.get(POSTS, post_id)

    def get_comment(self, comment_id):
        return self._store.get(COMMENTS, comment_id)

    def comments(self, post_id):
        return self._store.query(COMMENTS, {"post_id": post_id}, order_by="created_at")

    def edit_comment(self, comment_id, user_id, content):
        # Only the author may edit; a missing or foreign comment matches nothing
        return self._store.update(
            COMMENTS, comment_id, {"content": content, "is_edited": True},
            expected={"user_id": user_id},
        )
