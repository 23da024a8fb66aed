# clearing_ui/api/schemas.py
from enum import Enum

from pydantic import BaseModel


class InfoType(str, Enum):
    INFO = "INFO"
    ERROR = "ERROR"


class Info(BaseModel):
    """
    Status result returned by user-administration operations.
    """

    code: int
    message: str
    type: InfoType = InfoType.INFO


class AuthenticationRequest(BaseModel):
    username: str
    password: str
