"""FastAPI dependencies."""
from __future__ import annotations

from fastapi import Header, Request

from assemblyhomology.build import AppContext
from assemblyhomology.core.assembly_homology import AssemblyHomology
from assemblyhomology.domain.ids import Token, is_blank


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_assembly_homology(request: Request) -> AssemblyHomology:
    return get_context(request).assembly_homology


def get_token(authorization: str | None = Header(default=None)) -> Token | None:
    """The caller's token from the Authorization header, if any."""
    if is_blank(authorization):
        return None
    return Token(authorization)
