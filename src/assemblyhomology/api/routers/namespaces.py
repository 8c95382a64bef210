"""Namespaces router: listing, lookup and distance search."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path

from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool

from assemblyhomology.api.deps import get_assembly_homology, get_context, get_token
from assemblyhomology.api.schemas.namespaces import NamespaceView, SearchResponse
from assemblyhomology.build import AppContext
from assemblyhomology.core.assembly_homology import AssemblyHomology
from assemblyhomology.domain.exceptions import IllegalParameterError, MissingParameterError
from assemblyhomology.domain.ids import NamespaceID, Token, is_blank
from assemblyhomology.domain.models import Namespace
from assemblyhomology.minhash.comparator import Cancellation

router = APIRouter(prefix="/namespace", tags=["namespaces"])


def _view(ah: AssemblyHomology, ns: Namespace) -> NamespaceView:
    return NamespaceView.from_namespace(ns, ah.get_auth_source(ns))


def _parse_namespace_ids(ids: str) -> list[NamespaceID]:
    if is_blank(ids):
        raise MissingParameterError("namespaces")
    return [NamespaceID(i.strip()) for i in ids.split(",")]


def _parse_max(max_: str | None) -> int:
    if max_ is None:
        return -1
    try:
        return int(max_)
    except ValueError:
        raise IllegalParameterError(f"Illegal value for max: {max_}") from None


@router.get("", response_model=list[NamespaceView])
def list_namespaces(ah: AssemblyHomology = Depends(get_assembly_homology)) -> list[NamespaceView]:
    return [_view(ah, ns) for ns in ah.get_namespaces()]


@router.get("/{namespace}", response_model=NamespaceView)
def get_namespace(
    namespace: str,
    ah: AssemblyHomology = Depends(get_assembly_homology),
) -> NamespaceView:
    return _view(ah, ah.get_namespace(NamespaceID(namespace)))


@router.post("/{namespace}/search", response_model=SearchResponse)
async def search_namespaces(
    request: Request,
    namespace: str,
    notstrict: str | None = None,
    max_: str | None = Query(default=None, alias="max"),
    token: Token | None = Depends(get_token),
    ctx: AppContext = Depends(get_context),
) -> SearchResponse:
    ah = ctx.assembly_homology
    max_return = _parse_max(max_)
    strict = notstrict is None
    namespaces = await run_in_threadpool(ah.get_namespaces, _parse_namespace_ids(namespace))
    # the upload suffix depends on the implementation, so mixed implementations
    # fail here as 30001 and never reach IncompatibleNamespacesError (30020)
    impls = {ns.sketch_database.implementation_name for ns in namespaces}
    if len({i.key for i in impls}) != 1:
        raise IllegalParameterError(
            "Selected namespaces must have the same MinHash implementation"
        )
    ext = ah.get_expected_file_extension(next(iter(impls))) or ""
    body = await request.body()

    temp_dir = Path(ctx.settings.TEMP_DIR)
    temp_dir.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(prefix="assyhomol_input", suffix=".tmp" + ext, dir=temp_dir)
    sketch = Path(name)
    cancellation = Cancellation()
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(body)
        matches = await run_in_threadpool(
            ah.measure_distance,
            [ns.id for ns in namespaces],
            sketch,
            max_return,
            strict,
            token,
            cancellation,
        )
    finally:
        cancellation.cancel()
        sketch.unlink(missing_ok=True)
    return SearchResponse.from_matches(matches, [_view(ah, ns) for ns in matches.namespaces])
