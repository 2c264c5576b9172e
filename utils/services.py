"""
utils/services.py
-----------------
The collaborators every controller works through, built once per app and
kept on app.extensions so tests can swap in fakes.
"""

from flask import current_app

from models.event import EventStore
from models.notification import NotificationStore
from models.post import PostStore
from models.settings import SettingsStore
from models.users import ProfileStore
from utils.password_reset import PasswordResetFlow, ResetSessionRegistry, utc_now


class PortalServices:

    def __init__(self, config, store, credentials, mailer, mirror=None, clock=utc_now):
        self.config = config
        self.store = store
        self.credentials = credentials
        self.mailer = mailer
        self.mirror = mirror
        self.clock = clock

        self.profiles = ProfileStore(store)
        self.notifications = NotificationStore(store)
        self.events = EventStore(store)
        self.posts = PostStore(store)
        self.settings = SettingsStore(store, config.get("TREASURER_PORTAL_URL"))
        self.reset_flow = PasswordResetFlow.from_config(
            config, self.profiles, credentials, mailer, clock=clock
        )
        self.reset_sessions = ResetSessionRegistry()

    @property
    def chunk_size(self):
        return self.config.get("BATCH_CHUNK_SIZE", 450)


def portal():
    return current_app.extensions["portal"]
