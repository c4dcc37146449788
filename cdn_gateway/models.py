"""
Pydantic models for storage entries and API payloads.

Responses are serialized with camelCase keys (``mimeType``, ``totalSize``)
to match what the web UI consumes.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Storage models
class FileInfo(CamelModel):
    name: str
    path: str  # normalized storage key
    type: Literal["file", "directory"]
    size: Optional[int] = None
    mime_type: Optional[str] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None


class ListResponse(CamelModel):
    path: str
    items: List[FileInfo]
    total_size: int
    total_count: int


# Auth models
class Session(BaseModel):
    """Authenticated session kept in the session store"""

    id: str
    username: str
    created_at: float  # Unix timestamp
    last_activity: float  # Unix timestamp


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class UserResponse(BaseModel):
    username: str


# File operation requests
class MkdirRequest(BaseModel):
    path: str = ""


class MoveRequest(BaseModel):
    src: str = ""
    dst: str = ""


class RenameRequest(CamelModel):
    path: str = ""
    new_name: str = ""


# Operation results
class OperationResult(CamelModel):
    success: bool = True
    path: Optional[str] = None
    url: Optional[str] = None


class MoveResult(CamelModel):
    success: bool = True
    src: str
    dst: str
