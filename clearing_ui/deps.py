# clearing_ui/deps.py
from __future__ import annotations

from .domain import stores
from .util.osselot import OsselotLookupHelper

_osselot: OsselotLookupHelper | None = None


def get_user_store() -> stores.InMemoryUserStore:
    return stores.get_user_store()

def get_folder_store() -> stores.InMemoryFolderStore:
    return stores.get_folder_store()

def get_osselot_helper() -> OsselotLookupHelper:
    global _osselot
    if _osselot is None:
        _osselot = OsselotLookupHelper()
    return _osselot
