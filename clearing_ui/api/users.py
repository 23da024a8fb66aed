# clearing_ui/api/users.py
import json
from typing import Any, Dict, List, Mapping, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError

from .. import deps
from ..domain.agents import expand_agent_list, list_agents, user_agents
from ..domain.models import PermLevel, Session, UserRecord, UserUpdateRequest
from ..domain.stores import UserStore
from .auth import require_session
from .schemas import Info, InfoType

router = APIRouter()

ACCESS_LEVELS: Dict[str, PermLevel] = {
    "none": PermLevel.NONE,
    "read_only": PermLevel.READ,
    "read_write": PermLevel.WRITE,
    "clearing_admin": PermLevel.CADMIN,
    "admin": PermLevel.ADMIN,
}

# An accessLevel outside ACCESS_LEVELS drops the user to no access rather
# than keeping the stored permission.
UNRECOGNIZED_ACCESS_LEVEL = PermLevel.NONE

# UserUpdateRequest field -> payload key, for error messages
PAYLOAD_KEYS: Dict[str, str] = {
    "user_pk": "id",
    "user_name": "name",
    "root_folder_fk": "rootFolderId",
    "default_group_fk": "defaultGroup",
    "public": "defaultVisibility",
    "default_folder_fk": "defaultFolderId",
    "user_desc": "description",
    "pass1": "user_pass",
    "pass2": "user_pass",
    "user_status": "user_status",
    "user_email": "email",
    "default_bucketpool_fk": "defaultBucketpool",
}


class InvalidUpdate(ValueError):
    """A payload value that cannot be mapped onto a user record."""


def describe_validation_error(error: ValidationError) -> List[str]:
    messages = []
    for err in error.errors():
        field = str(err["loc"][0]) if err["loc"] else ""
        messages.append(f"{PAYLOAD_KEYS.get(field, field)}: {err['msg']}")
    return messages


# Payload key under "agents" -> agent name
AGENT_KEYS: Dict[str, str] = {
    "mime": "agent_mimetype",
    "monk": "agent_monk",
    "ojo": "agent_ojo",
    "copyright_email_author": "agent_copyright",
    "ecc": "agent_ecc",
    "keyword": "agent_keyword",
    "nomos": "agent_nomos",
    "package": "agent_pkgagent",
    "reso": "agent_reso",
    "heritage": "agent_shagent",
}


def map_access_level(level: str) -> PermLevel:
    if not isinstance(level, str):
        raise InvalidUpdate(f"accessLevel: expected a string, got {type(level).__name__}")
    return ACCESS_LEVELS.get(level, UNRECOGNIZED_ACCESS_LEVEL)


def merge_agent_selection(existing: str, proposed: Any) -> str:
    """
    Combine the stored agent list with the agent flags of an update.

    ``proposed`` is a mapping of payload keys (see AGENT_KEYS) to booleans,
    or the same mapping JSON-encoded. Every known agent the update does not
    switch on is disabled, including agents enabled in ``existing``. Stored
    names that are not known agents are kept.
    """
    if isinstance(proposed, str):
        try:
            proposed = json.loads(proposed)
        except ValueError:
            proposed = {}
    if not isinstance(proposed, Mapping):
        proposed = {}

    new_flags: Dict[str, int] = {}
    for key, agent in AGENT_KEYS.items():
        if proposed.get(key) is not None:
            new_flags[agent] = 1 if proposed[key] else 0
    for name in list_agents():
        new_flags.setdefault(name, 0)

    flags = expand_agent_list(existing)
    flags.update(new_flags)
    return user_agents(flags)


class UserHelper:
    """
    Applies REST user edits on top of the stored record.
    """

    def __init__(self, user_pk: int):
        self.user_pk = user_pk

    def create_update_request(
        self, details: Mapping[str, Any], user: UserRecord
    ) -> UserUpdateRequest:
        def pick(key: str, fallback):
            value = details.get(key)
            return fallback if value is None else value

        if details.get("accessLevel") is not None:
            user_perm = map_access_level(details["accessLevel"])
        else:
            user_perm = user.user_perm

        if details.get("agents") is not None:
            agent_list = merge_agent_selection(user.user_agent_list, details["agents"])
        else:
            agent_list = user.user_agent_list

        new_pass: Optional[str] = details.get("user_pass")

        return UserUpdateRequest(
            user_pk=pick("id", self.user_pk),
            user_name=pick("name", user.user_name),
            root_folder_fk=pick("rootFolderId", user.root_folder_fk),
            default_group_fk=pick("defaultGroup", user.group_fk),
            public=pick("defaultVisibility", user.upload_visibility),
            default_folder_fk=pick("defaultFolderId", user.default_folder_fk),
            user_desc=pick("description", user.user_desc),
            pass1=new_pass,
            pass2=new_pass,
            blank_pass=str(details.get("_blank_pass") or ""),
            user_status=pick("user_status", user.user_status),
            user_email=pick("email", user.user_email),
            email_notify="y" if details.get("emailNotification") else user.email_notify,
            default_bucketpool_fk=pick("defaultBucketpool", user.default_bucketpool_fk),
            user_perm=user_perm,
            user_agent_list=agent_list,
        )

    def modify_user_details(
        self, details: Mapping[str, Any], session: Session, users: UserStore
    ) -> Info:
        if not session.is_admin:
            return Info(code=403, message="The session owner is not an admin!")

        user = users.get_user_by_pk(self.user_pk)
        if user is None:
            return Info(
                code=404,
                message=f"User {self.user_pk} does not exist.",
                type=InfoType.ERROR,
            )

        try:
            request = self.create_update_request(details, user)
        except ValidationError as e:
            messages = describe_validation_error(e)
            return Info(code=400, message=" ".join(messages), type=InfoType.ERROR)
        except InvalidUpdate as e:
            return Info(code=400, message=str(e), type=InfoType.ERROR)

        errors = users.update_user(request)
        if errors:
            return Info(code=400, message=" ".join(errors), type=InfoType.ERROR)
        return Info(code=200, message="User updated successfully!")


@router.patch("/users/{user_id}", response_model=Info)
def modify_user(
    user_id: int,
    body: Dict[str, Any] = Body(...),
    session: Session = Depends(require_session),
    users: UserStore = Depends(deps.get_user_store),
):
    """
    Edit a user. Only administrators may call this; unspecified fields keep
    their stored values.
    """
    info = UserHelper(user_id).modify_user_details(body, session, users)
    logger.info("PATCH /users/{} by {} -> {}", user_id, session.user_id, info.code)
    return JSONResponse(status_code=info.code, content=info.model_dump(mode="json"))
