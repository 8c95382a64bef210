"""KBase workspace authenticated filter factory.

Filters built here contact the KBase workspace for the workspaces the caller
can read, including public ones, and pass on only distances whose sequence IDs
are UPAs in those workspaces.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping

import httpx

from assemblyhomology.domain.exceptions import (
    DistanceFilterAuthenticationError,
    DistanceFilterError,
    FilterFactoryInitializationError,
)
from assemblyhomology.domain.ids import FilterID, Token
from assemblyhomology.filters.factory import DistanceFilterFactory
from assemblyhomology.filters.workspace import WorkspaceFilter, is_valid_upa
from assemblyhomology.minhash.sinks import DistanceSink

log = logging.getLogger(__name__)

ENVIRONMENTS = ("prod", "appdev", "next", "ci")
MIN_WORKSPACE_VERSION = (0, 8, 0)

_LOGIN_FAILED = "Login failed! Server responded with code 401 Unauthorized"


class WorkspaceClientError(Exception):
    """The workspace returned an error or could not be reached."""


def _parse_version(ver: str) -> tuple[int, ...]:
    core = ver.strip().split("-", 1)[0].split("+", 1)[0]
    try:
        return tuple(int(p) for p in core.split("."))
    except ValueError:
        raise WorkspaceClientError(f"Unparseable workspace version: {ver}") from None


class WorkspaceClient:
    """Minimal JSON-RPC 1.1 client for the methods the filter needs."""

    def __init__(
        self,
        url: str,
        token: Token | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": token.token} if token is not None else {}
        self._url = url
        self._client = httpx.Client(timeout=timeout, headers=headers, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "WorkspaceClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _call(self, method: str, params: list[Any]) -> Any:
        body = {
            "method": f"Workspace.{method}",
            "params": params,
            "version": "1.1",
            "id": uuid.uuid4().hex,
        }
        try:
            resp = self._client.post(self._url, json=body)
        except httpx.HTTPError as e:
            raise WorkspaceClientError(str(e)) from e
        try:
            payload = resp.json()
        except ValueError:
            raise WorkspaceClientError(
                f"Workspace returned non-JSON response with status {resp.status_code}"
            ) from None
        error = payload.get("error") if isinstance(payload, dict) else None
        if error:
            msg = error.get("message") if isinstance(error, dict) else str(error)
            raise WorkspaceClientError(msg or f"Workspace error, status {resp.status_code}")
        if not resp.is_success:
            raise WorkspaceClientError(f"Workspace returned status {resp.status_code}")
        result = payload.get("result")
        if not isinstance(result, list) or not result:
            raise WorkspaceClientError("Workspace response is missing a result")
        return result[0]

    def ver(self) -> str:
        return self._call("ver", [])

    def list_workspace_ids(self, exclude_global: bool = False) -> dict[str, list[int]]:
        return self._call("list_workspace_ids", [{"excludeGlobal": int(exclude_global)}])


class KBaseAuthenticatedFilterFactory(DistanceFilterFactory):
    """Config keys: ``url`` (required), the workspace service URL, and ``env``,
    one of prod, appdev, next or ci (default prod). The environment lets one
    service host namespaces from several KBase deployments.
    """

    def __init__(
        self,
        config: Mapping[str, str],
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if config is None:
            raise TypeError("config")
        env = config.get("env", ENVIRONMENTS[0])
        if env not in ENVIRONMENTS:
            raise FilterFactoryInitializationError(
                f"Illegal KBase filter environment value: {env}"
            )
        self._id = FilterID("kbase" + env)
        self._transport = transport
        self._url = self._check_url(config.get("url"))
        self._insecure = httpx.URL(self._url).scheme != "https"
        if self._insecure:
            log.warning(
                "Workspace url %s is insecure. It is strongly recommended to use https.",
                self._url,
            )

    def _check_url(self, url: str | None) -> str:
        if not url or not url.strip():
            raise FilterFactoryInitializationError("KBase filter requires key 'url' in config")
        url = url.strip()
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL:
            raise FilterFactoryInitializationError(f"KBase filter url malformed: {url}") from None
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise FilterFactoryInitializationError(f"KBase filter url malformed: {url}")
        try:
            with WorkspaceClient(url, transport=self._transport) as cli:
                ver = cli.ver()
            version = _parse_version(ver)
        except WorkspaceClientError as e:
            raise FilterFactoryInitializationError(
                f"KBase filter failed contacting workspace at url {url}: {e}"
            ) from e
        if version < MIN_WORKSPACE_VERSION:
            raise FilterFactoryInitializationError(
                f"KBase filter requires workspace version >= 0.8.0, was {ver}"
            )
        return url

    @property
    def id(self) -> FilterID:
        return self._id

    @property
    def auth_source(self) -> str:
        return self._id.name

    @property
    def url(self) -> str:
        return self._url

    def get_filter(self, downstream: DistanceSink, token: Token | None = None) -> WorkspaceFilter:
        try:
            with WorkspaceClient(self._url, token, transport=self._transport) as cli:
                ids = cli.list_workspace_ids(exclude_global=False)
        except WorkspaceClientError as e:
            if _LOGIN_FAILED in str(e):
                raise DistanceFilterAuthenticationError("Invalid token") from e
            raise DistanceFilterError(str(e)) from e
        permitted = set(ids.get("workspaces", []))
        permitted.update(ids.get("pub", []))
        return WorkspaceFilter(permitted, downstream)

    def validate_id(self, sequence_id: str) -> bool:
        return is_valid_upa(sequence_id)
