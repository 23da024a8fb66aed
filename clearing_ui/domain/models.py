# clearing_ui/domain/models.py
from datetime import datetime
from enum import IntEnum
from typing import List, Optional

from pydantic import BaseModel


class PermLevel(IntEnum):
    NONE = 0
    READ = 1
    WRITE = 3
    CADMIN = 5
    ADMIN = 10


class UserRecord(BaseModel):
    """
    A user row as persisted by the user store.
    """

    user_pk: int
    user_name: str
    root_folder_fk: int
    group_fk: int
    upload_visibility: str = "protected"
    default_folder_fk: Optional[int] = None
    user_desc: str = ""
    user_status: str = "active"
    user_email: str = ""
    email_notify: str = ""
    default_bucketpool_fk: Optional[int] = None
    user_perm: PermLevel = PermLevel.NONE
    user_agent_list: str = ""
    user_pass: str = ""


class UserUpdateRequest(BaseModel):
    """
    Normalized update produced from a partial REST payload and the stored
    record. Every field is populated; password fields stay None unless a new
    password was supplied.
    """

    user_pk: int
    user_name: str
    root_folder_fk: int
    default_group_fk: int
    public: str
    default_folder_fk: Optional[int] = None
    user_desc: str
    pass1: Optional[str] = None
    pass2: Optional[str] = None
    blank_pass: str = ""
    user_status: str
    user_email: str
    email_notify: str
    default_bucketpool_fk: Optional[int] = None
    user_perm: PermLevel
    user_agent_list: str


class UploadEntry(BaseModel):
    id: int
    group_id: int
    filename: str
    timestamp: datetime
    status: str


class Folder(BaseModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    reusable: bool = True


class FolderNode(BaseModel):
    folder: Folder
    depth: int


class Session(BaseModel):
    """
    The caller behind the current request.
    """

    user_id: int
    group_id: int
    user_perm: PermLevel = PermLevel.NONE

    @property
    def is_admin(self) -> bool:
        return self.user_perm >= PermLevel.ADMIN


FolderStructure = List[FolderNode]
