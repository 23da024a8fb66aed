"""Tests for the in-memory user and folder stores."""

import pytest

from clearing_ui.core.config import Settings, get_settings
from clearing_ui.domain import stores
from clearing_ui.domain.models import Folder, PermLevel, UserUpdateRequest


def make_request(**overrides):
    fields = dict(
        user_pk=2,
        user_name="alice",
        root_folder_fk=1,
        default_group_fk=2,
        public="private",
        default_folder_fk=2,
        user_desc="",
        user_status="active",
        user_email="alice@example.com",
        email_notify="",
        default_bucketpool_fk=None,
        user_perm=PermLevel.WRITE,
        user_agent_list="agent_nomos",
    )
    fields.update(overrides)
    return UserUpdateRequest(**fields)


class TestUserStore:
    def test_valid_update(self, user_store):
        assert user_store.update_user(make_request(user_desc="QA")) == []
        assert user_store.get_user_by_pk(2).user_desc == "QA"

    def test_lookup_by_name(self, user_store):
        assert user_store.get_user_by_name("fossy").user_pk == 1
        assert user_store.get_user_by_name("ghost") is None

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"user_pk": 42}, "User 42 does not exist."),
            ({"user_name": "  "}, "Username must be specified."),
            ({"user_name": "fossy"}, "User fossy already exists."),
            ({"user_email": "alice"}, "Invalid email address."),
            ({"pass1": "a", "pass2": "b"}, "Passwords did not match."),
            ({"pass1": "", "pass2": ""}, "Blank password requires the blank password option."),
            ({"default_folder_fk": 99}, "Folder 99 does not exist."),
            ({"user_agent_list": "agent_nomos,agent_bogus"}, "Unknown agents: agent_bogus"),
        ],
    )
    def test_validation(self, user_store, overrides, message):
        errors = user_store.update_user(make_request(**overrides))

        assert message in errors
        assert user_store.get_user_by_pk(2).user_name == "alice"

    def test_blank_password_with_option(self, user_store):
        errors = user_store.update_user(make_request(pass1="", pass2="", blank_pass="on"))

        assert errors == []
        assert user_store.get_user_by_pk(2).user_pass == ""

    def test_password_is_hashed(self, user_store):
        user_store.update_user(make_request(pass1="n3w", pass2="n3w"))

        stored = user_store.get_user_by_pk(2).user_pass
        assert stored != "n3w"
        assert stores.verify_password("n3w", stored)

    def test_verify_unknown_hash_format(self):
        assert stores.verify_password("x", "plain-text") is False


class TestFolderStore:
    def test_structure_is_depth_first(self, folder_store):
        folder_store.add_folder(Folder(id=4, name="Libs", parent_id=2))

        structure = folder_store.get_folder_structure(1)

        assert [(n.folder.id, n.depth) for n in structure] == [(1, 0), (3, 1), (2, 1), (4, 2)]

    def test_unknown_root(self, folder_store):
        assert folder_store.get_folder_structure(99) == []

    def test_reusable_folders(self, folder_store):
        structure = folder_store.get_folder_structure(1)
        assert not folder_store.is_without_reusable_folders(structure)

        archive_only = folder_store.get_folder_structure(3)
        assert folder_store.is_without_reusable_folders(archive_only)

    def test_root_folder_defaults_to_top_level(self, folder_store):
        assert folder_store.get_root_folder(7).id == stores.TOP_LEVEL_FOLDER_ID
        folder_store.set_root_folder(7, 2)
        assert folder_store.get_root_folder(7).id == 2

    def test_uploads_filtered_by_group(self, folder_store):
        assert [u.id for u in folder_store.get_folder_uploads(2, 2)] == [10]
        assert [u.id for u in folder_store.get_folder_uploads(2, 5)] == [11]
        assert folder_store.get_folder_uploads(3, 2) == []

    def test_all_folder_ids(self, folder_store):
        assert folder_store.get_all_folder_ids() == [1, 2, 3]

    def test_ensure_top_level_folder_is_idempotent(self):
        store = stores.InMemoryFolderStore()
        store.ensure_top_level_folder()
        store.ensure_top_level_folder()

        assert store.get_all_folder_ids() == [stores.TOP_LEVEL_FOLDER_ID]


class TestDefaultAdmin:
    def test_seeded_into_empty_store(self):
        settings = Settings(DEFAULT_ADMIN_USERNAME="root", DEFAULT_ADMIN_PASSWORD="pw")
        store = stores.InMemoryUserStore()

        admin = stores.seed_default_admin(store, settings)

        assert store.get_user_by_name("root") == admin
        assert admin.user_pk == 1
        assert admin.user_perm is PermLevel.ADMIN
        assert admin.root_folder_fk == stores.TOP_LEVEL_FOLDER_ID
        assert stores.verify_password("pw", admin.user_pass)

    def test_existing_user_is_left_alone(self, user_store):
        before = user_store.get_user_by_pk(1)

        admin = stores.seed_default_admin(
            user_store, Settings(DEFAULT_ADMIN_USERNAME="fossy", DEFAULT_ADMIN_PASSWORD="other")
        )

        assert admin == before
        assert not stores.verify_password("other", admin.user_pass)

    def test_fresh_store_getter_seeds_admin(self, monkeypatch):
        monkeypatch.setattr(stores, "_folder_store", None)
        monkeypatch.setattr(stores, "_user_store", None)

        store = stores.get_user_store()

        admin = store.get_user_by_name(get_settings().DEFAULT_ADMIN_USERNAME)
        assert admin is not None
        assert admin.user_perm is PermLevel.ADMIN
