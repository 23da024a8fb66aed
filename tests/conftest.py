"""Shared fixtures: seeded in-memory stores, sessions and a test client."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from clearing_ui import deps
from clearing_ui.api.auth import close_session, open_session
from clearing_ui.domain import stores
from clearing_ui.domain.models import (
    Folder,
    PermLevel,
    Session,
    UploadEntry,
    UserRecord,
)
from clearing_ui.main import app
from clearing_ui.util.osselot import OsselotLookupHelper

ADMIN_PASSWORD = "fossy-secret"


@pytest.fixture
def folder_store(monkeypatch):
    """Root folder with one reusable child holding two uploads."""
    store = stores.InMemoryFolderStore()
    store.ensure_top_level_folder()
    store.add_folder(Folder(id=2, name="Projects", parent_id=1))
    store.add_folder(Folder(id=3, name="Archive", parent_id=1, reusable=False))
    store.add_upload(
        1,
        UploadEntry(
            id=12,
            group_id=2,
            filename="busybox-1.36.zip",
            timestamp=datetime(2024, 4, 2, 8, 0, 0),
            status="Closed",
        ),
    )
    store.add_upload(
        2,
        UploadEntry(
            id=10,
            group_id=2,
            filename="zlib-1.3.tar.gz",
            timestamp=datetime(2024, 5, 1, 12, 30, 0),
            status="Open",
        ),
    )
    store.add_upload(
        2,
        UploadEntry(
            id=11,
            group_id=5,
            filename="openssl-3.0.tar.gz",
            timestamp=datetime(2024, 5, 3, 9, 15, 0),
            status="In Progress",
        ),
    )
    monkeypatch.setattr(stores, "_folder_store", store)
    return store


@pytest.fixture
def user_store(monkeypatch, folder_store):
    store = stores.InMemoryUserStore(folders=folder_store)
    store.add_user(
        UserRecord(
            user_pk=1,
            user_name="fossy",
            root_folder_fk=1,
            group_fk=2,
            user_email="fossy@example.com",
            user_perm=PermLevel.ADMIN,
            user_agent_list="agent_nomos",
            user_pass=stores.hash_password(ADMIN_PASSWORD),
        )
    )
    store.add_user(
        UserRecord(
            user_pk=2,
            user_name="alice",
            root_folder_fk=1,
            group_fk=2,
            upload_visibility="private",
            default_folder_fk=2,
            user_desc="Release engineer",
            user_email="alice@example.com",
            email_notify="",
            default_bucketpool_fk=4,
            user_perm=PermLevel.WRITE,
            user_agent_list="agent_nomos,agent_monk",
            user_pass="old-hash",
        )
    )
    monkeypatch.setattr(stores, "_user_store", store)
    return store


@pytest.fixture
def admin_session():
    return Session(user_id=1, group_id=2, user_perm=PermLevel.ADMIN)


@pytest.fixture
def user_session():
    return Session(user_id=2, group_id=2, user_perm=PermLevel.WRITE)


@pytest.fixture
def admin_headers(admin_session):
    token = open_session(admin_session)
    yield {"X-Authorization": token}
    close_session(token)


@pytest.fixture
def user_headers(user_session):
    token = open_session(user_session)
    yield {"X-Authorization": token}
    close_session(token)


@pytest.fixture
def lookup():
    helper = MagicMock(spec=OsselotLookupHelper)
    helper.get_versions.return_value = ["1.2.13", "1.3"]
    return helper


@pytest.fixture
def client(user_store, lookup):
    app.dependency_overrides[deps.get_osselot_helper] = lambda: lookup
    yield TestClient(app)
    app.dependency_overrides.clear()
