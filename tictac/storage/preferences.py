"""
Preferences Store - Per-account user preferences with defaults.
"""

from __future__ import annotations
from typing import Any

from .backend import KeyValueStore
from .records import PreferencesRecord, load_record, save_record


PREFERENCES_KEY = "tictac.preferences"


class PreferencesStore:
    def __init__(self, backend: KeyValueStore, key: str = PREFERENCES_KEY):
        self.backend = backend
        self.key = key

    def get(self, account: str) -> PreferencesRecord:
        """Stored preferences for account, or defaults if absent, corrupt or someone else's."""
        record = load_record(self.backend, self.key, PreferencesRecord)
        if record is None or record.account != account:
            return PreferencesRecord(account=account)
        return record

    def save(self, account: str, prefs: PreferencesRecord) -> PreferencesRecord:
        record = prefs.model_copy(update={"account": account})
        save_record(self.backend, self.key, record)
        return record

    def update(self, account: str, **changes: Any) -> PreferencesRecord:
        """Apply a partial update on top of the current preferences."""
        merged = self.get(account).model_dump()
        merged.update(changes)
        merged["account"] = account
        return self.save(account, PreferencesRecord.model_validate(merged))
