# models/__init__.py

from .users import User, ProfileStore, public_profile
from .attendance import AttendanceRecord, AttendanceStore
from .notification import Notification, NotificationStore
from .settings import SettingsStore
from .event import Event, EventStore
from .post import Comment, PostStore

__all__ = [
    "User",
    "ProfileStore",
    "public_profile",
    "AttendanceRecord",
    "AttendanceStore",
    "Notification",
    "NotificationStore",
    "SettingsStore",
    "Event",
    "EventStore",
    "Comment",
    "PostStore",
]
