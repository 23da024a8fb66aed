# clearing_ui/domain/stores.py
import re
from typing import Dict, List, Optional

from loguru import logger
from passlib.context import CryptContext

from ..core.config import Settings, get_settings
from .agents import unknown_agents
from .models import (
    Folder,
    FolderNode,
    FolderStructure,
    PermLevel,
    UploadEntry,
    UserRecord,
    UserUpdateRequest,
)

_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

TOP_LEVEL_FOLDER_ID = 1
TOP_LEVEL_FOLDER_NAME = "Software Repository"


def hash_password(pw: str) -> str:
    return _pwd.hash(pw)


def verify_password(pw: str, hashed: str) -> bool:
    try:
        return _pwd.verify(pw, hashed)
    except ValueError:
        # not a hash passlib knows, e.g. a legacy value
        return False


# ---------------------------------------------------------
# Base classes
# ---------------------------------------------------------
class UserStore:
    def get_user_by_pk(self, user_pk: int) -> Optional[UserRecord]:
        raise NotImplementedError

    def update_user(self, request: UserUpdateRequest) -> List[str]:
        """Apply the update; return validation messages (empty on success)."""
        raise NotImplementedError


class FolderStore:
    def ensure_top_level_folder(self) -> None:
        raise NotImplementedError

    def get_root_folder(self, user_id: int) -> Folder:
        raise NotImplementedError

    def get_folder_structure(self, root_id: int) -> FolderStructure:
        raise NotImplementedError

    def is_without_reusable_folders(self, structure: FolderStructure) -> bool:
        raise NotImplementedError

    def get_all_folder_ids(self) -> List[int]:
        raise NotImplementedError

    def get_folder_uploads(self, folder_id: int, group_id: int) -> List[UploadEntry]:
        raise NotImplementedError


# ---------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------
class InMemoryUserStore(UserStore):
    def __init__(self, folders: Optional["InMemoryFolderStore"] = None):
        self._users: Dict[int, UserRecord] = {}
        self._folders = folders

    def add_user(self, user: UserRecord) -> UserRecord:
        self._users[user.user_pk] = user
        return user

    def get_user_by_pk(self, user_pk: int) -> Optional[UserRecord]:
        return self._users.get(user_pk)

    def get_user_by_name(self, user_name: str) -> Optional[UserRecord]:
        return next((u for u in self._users.values() if u.user_name == user_name), None)

    def validate(self, request: UserUpdateRequest) -> List[str]:
        errors: List[str] = []
        if request.user_pk not in self._users:
            errors.append(f"User {request.user_pk} does not exist.")

        name = request.user_name.strip()
        if not name:
            errors.append("Username must be specified.")
        elif any(
            u.user_name == name and u.user_pk != request.user_pk
            for u in self._users.values()
        ):
            errors.append(f"User {name} already exists.")

        if request.user_email and not EMAIL_PATTERN.match(request.user_email):
            errors.append("Invalid email address.")

        if request.pass1 != request.pass2:
            errors.append("Passwords did not match.")
        elif request.pass1 == "" and not request.blank_pass:
            errors.append("Blank password requires the blank password option.")

        if (
            self._folders is not None
            and request.default_folder_fk is not None
            and not self._folders.has_folder(request.default_folder_fk)
        ):
            errors.append(f"Folder {request.default_folder_fk} does not exist.")

        bad_agents = unknown_agents(
            a for a in request.user_agent_list.split(",") if a
        )
        if bad_agents:
            errors.append("Unknown agents: " + ", ".join(bad_agents))
        return errors

    def update_user(self, request: UserUpdateRequest) -> List[str]:
        errors = self.validate(request)
        if errors:
            logger.info("Rejected update of user {}: {}", request.user_pk, errors)
            return errors

        current = self._users[request.user_pk]
        password = current.user_pass
        if request.pass1:
            password = hash_password(request.pass1)
        elif request.pass1 == "" and request.blank_pass:
            password = ""

        self._users[request.user_pk] = UserRecord(
            user_pk=request.user_pk,
            user_name=request.user_name.strip(),
            root_folder_fk=request.root_folder_fk,
            group_fk=request.default_group_fk,
            upload_visibility=request.public,
            default_folder_fk=request.default_folder_fk,
            user_desc=request.user_desc,
            user_status=request.user_status,
            user_email=request.user_email,
            email_notify=request.email_notify,
            default_bucketpool_fk=request.default_bucketpool_fk,
            user_perm=request.user_perm,
            user_agent_list=request.user_agent_list,
            user_pass=password,
        )
        logger.info("Updated user {}", request.user_pk)
        return []


class InMemoryFolderStore(FolderStore):
    def __init__(self):
        self._folders: Dict[int, Folder] = {}
        self._uploads: Dict[int, List[UploadEntry]] = {}
        self._user_roots: Dict[int, int] = {}

    def has_folder(self, folder_id: int) -> bool:
        return folder_id in self._folders

    def add_folder(self, folder: Folder) -> Folder:
        self._folders[folder.id] = folder
        return folder

    def add_upload(self, folder_id: int, upload: UploadEntry) -> UploadEntry:
        self._uploads.setdefault(folder_id, []).append(upload)
        return upload

    def set_root_folder(self, user_id: int, folder_id: int) -> None:
        self._user_roots[user_id] = folder_id

    def ensure_top_level_folder(self) -> None:
        if TOP_LEVEL_FOLDER_ID not in self._folders:
            self.add_folder(Folder(id=TOP_LEVEL_FOLDER_ID, name=TOP_LEVEL_FOLDER_NAME))

    def get_root_folder(self, user_id: int) -> Folder:
        folder_id = self._user_roots.get(user_id, TOP_LEVEL_FOLDER_ID)
        if folder_id not in self._folders:
            self.ensure_top_level_folder()
            folder_id = TOP_LEVEL_FOLDER_ID
        return self._folders[folder_id]

    def get_folder_structure(self, root_id: int) -> FolderStructure:
        """Depth-first list of the folder tree below (and including) root_id."""
        out: FolderStructure = []
        if root_id not in self._folders:
            return out

        def walk(folder: Folder, depth: int) -> None:
            out.append(FolderNode(folder=folder, depth=depth))
            children = sorted(
                (f for f in self._folders.values() if f.parent_id == folder.id),
                key=lambda f: f.name,
            )
            for child in children:
                walk(child, depth + 1)

        walk(self._folders[root_id], 0)
        return out

    def is_without_reusable_folders(self, structure: FolderStructure) -> bool:
        return not any(
            node.folder.reusable and self._uploads.get(node.folder.id)
            for node in structure
        )

    def get_all_folder_ids(self) -> List[int]:
        return sorted(self._folders)

    def get_folder_uploads(self, folder_id: int, group_id: int) -> List[UploadEntry]:
        return [
            up for up in self._uploads.get(folder_id, []) if up.group_id == group_id
        ]


_folder_store: InMemoryFolderStore | None = None
_user_store: InMemoryUserStore | None = None


def get_folder_store() -> InMemoryFolderStore:
    global _folder_store
    if _folder_store is None:
        _folder_store = InMemoryFolderStore()
        _folder_store.ensure_top_level_folder()
    return _folder_store


def seed_default_admin(
    store: InMemoryUserStore, settings: Optional[Settings] = None
) -> UserRecord:
    """Add the configured administrator unless a user of that name exists."""
    settings = settings or get_settings()
    existing = store.get_user_by_name(settings.DEFAULT_ADMIN_USERNAME)
    if existing is not None:
        return existing
    user_pk = max(store._users, default=0) + 1
    logger.info("Seeding default admin user {}", settings.DEFAULT_ADMIN_USERNAME)
    return store.add_user(
        UserRecord(
            user_pk=user_pk,
            user_name=settings.DEFAULT_ADMIN_USERNAME,
            root_folder_fk=TOP_LEVEL_FOLDER_ID,
            group_fk=1,
            user_desc="Default Administrator",
            user_perm=PermLevel.ADMIN,
            user_pass=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
        )
    )


def get_user_store() -> InMemoryUserStore:
    global _user_store
    if _user_store is None:
        _user_store = InMemoryUserStore(folders=get_folder_store())
        seed_default_admin(_user_store)
    return _user_store
