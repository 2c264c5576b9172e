"""
utils/broadcast.py
-----------------
Announcement broadcast: one notification document per registered user.
"""

import logging

from models.notification import COLLECTION, Notification
from models.users import ProfileStore
from utils.bulk_write import BATCH_CHUNK_SIZE, commit_in_chunks
from utils.errors import InvalidSetting, NotFound
from utils.password_reset import utc_now

logger = logging.getLogger(__name__)


def broadcast_notification(store, title, message, broadcast_id=None, clock=utc_now,
                           chunk_size=BATCH_CHUNK_SIZE):
    """
    Send `title`/`message` to every user. Notification ids are
    `<broadcast_id>_<user_id>`, so retrying with the same broadcast_id
    rewrites the same documents instead of adding duplicates.
    """
    title = (title or "").strip()
    message = (message or "").strip()
    if not title or not message:
        raise InvalidSetting("Title and message are required.")

    user_ids = ProfileStore(store).all_ids()
    if not user_ids:
        raise NotFound("No users found to broadcast to.")

    broadcast_id = broadcast_id or store.new_id()
    created_at = clock()

    writes = []
    for uid in user_ids:
        doc = Notification(uid, f"📢 {title}", message, created_at=created_at).to_dict()
        doc["broadcast_id"] = broadcast_id
        writes.append((COLLECTION, f"{broadcast_id}_{uid}", doc))

    sent = commit_in_chunks(store, writes, chunk_size)
    logger.info("Broadcast %s sent to %d users", broadcast_id, sent)
    return {"broadcast_id": broadcast_id, "sent": sent}
