"""Root and error DTOs."""
from __future__ import annotations

from pydantic import BaseModel


class RootView(BaseModel):
    servname: str
    version: str
    servertime: int


class ErrorMessage(BaseModel):
    httpcode: int
    httpstatus: str
    appcode: int | None = None
    apperror: str | None = None
    message: str | None = None
    callid: str | None = None
    time: int
