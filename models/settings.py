COLLECTION = "system_settings"
GLOBAL_CONFIG = "global_config"


class SettingsStore:

    def __init__(self, store, default_treasurer_url):
        self._store = store
        self._default_treasurer_url = default_treasurer_url

    def treasurer_url(self):
        doc = self._store.get(COLLECTION, GLOBAL_CONFIG) or {}
        return doc.get("treasurer_portal_url") or self._default_treasurer_url

    def set_treasurer_url(self, url):
        self._store.set(COLLECTION, GLOBAL_CONFIG, {"treasurer_portal_url": url}, merge=True)
