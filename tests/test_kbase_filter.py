"""Tests for the KBase workspace filter factory, against a mocked workspace."""
import json

import httpx
import pytest

from assemblyhomology.domain.exceptions import (
    DistanceFilterAuthenticationError,
    DistanceFilterError,
    FilterFactoryInitializationError,
)
from assemblyhomology.domain.ids import FilterID, SketchDBName, Token
from assemblyhomology.domain.models import DistanceRecord
from assemblyhomology.filters.kbase import KBaseAuthenticatedFilterFactory, WorkspaceFilter
from assemblyhomology.minhash.sinks import DefaultDistanceCollector

URL = "https://kbase.us/services/ws"


def _workspace(version="0.8.2", ids=None, list_error=None, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if calls is not None:
            calls.append((body, request.headers.get("Authorization")))
        if body["method"] == "Workspace.ver":
            return httpx.Response(200, json={"version": "1.1", "result": [version]})
        if body["method"] == "Workspace.list_workspace_ids":
            if list_error is not None:
                return httpx.Response(500, json={
                    "version": "1.1",
                    "error": {"name": "JSONRPCError", "code": -32400, "message": list_error},
                })
            return httpx.Response(200, json={"version": "1.1", "result": [ids or {}]})
        return httpx.Response(500, json={"error": {"message": "no such method"}})
    return httpx.MockTransport(handler)


def test_factory_ids_per_environment():
    f = KBaseAuthenticatedFilterFactory({"url": URL}, transport=_workspace())
    assert f.id == FilterID("kbaseprod")
    assert f.auth_source == "kbaseprod"
    assert f.url == URL
    f = KBaseAuthenticatedFilterFactory({"url": URL, "env": "ci"}, transport=_workspace())
    assert f.id == FilterID("kbaseci")


def test_factory_rejects_bad_env():
    with pytest.raises(FilterFactoryInitializationError,
                       match="Illegal KBase filter environment value: mars"):
        KBaseAuthenticatedFilterFactory({"url": URL, "env": "mars"}, transport=_workspace())


@pytest.mark.parametrize("config, msg", [
    ({}, "KBase filter requires key 'url' in config"),
    ({"url": "  "}, "KBase filter requires key 'url' in config"),
    ({"url": "not a url"}, "KBase filter url malformed: not a url"),
])
def test_factory_rejects_bad_url(config, msg):
    with pytest.raises(FilterFactoryInitializationError, match=msg):
        KBaseAuthenticatedFilterFactory(config, transport=_workspace())


def test_factory_rejects_old_workspace():
    with pytest.raises(FilterFactoryInitializationError,
                       match=r"requires workspace version >= 0.8.0, was 0.7.9"):
        KBaseAuthenticatedFilterFactory({"url": URL}, transport=_workspace(version="0.7.9"))


def test_factory_reports_unreachable_workspace():
    def down(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(FilterFactoryInitializationError,
                       match="KBase filter failed contacting workspace at url"):
        KBaseAuthenticatedFilterFactory({"url": URL}, transport=httpx.MockTransport(down))


def test_insecure_url_logs_warning(caplog):
    KBaseAuthenticatedFilterFactory({"url": "http://localhost/ws"}, transport=_workspace())
    assert "insecure" in caplog.text


def test_get_filter_uses_readable_and_public_workspaces():
    calls = []
    transport = _workspace(ids={"workspaces": [2, 6], "pub": [8]}, calls=calls)
    f = KBaseAuthenticatedFilterFactory({"url": URL}, transport=transport)
    collector = DefaultDistanceCollector(10)
    filt = f.get_filter(collector, Token("tok"))
    assert isinstance(filt, WorkspaceFilter)
    assert filt.workspace_ids == frozenset({2, 6, 8})

    body, auth = calls[-1]
    assert body["method"] == "Workspace.list_workspace_ids"
    assert body["params"] == [{"excludeGlobal": 0}]
    assert auth == "tok"

    filt.accept(DistanceRecord(0.1, SketchDBName("db"), "8_1_1"))
    filt.accept(DistanceRecord(0.1, SketchDBName("db"), "9_1_1"))
    assert [d.sequence_id for d in collector.get_distances()] == ["8_1_1"]


def test_get_filter_without_token_sends_no_header():
    calls = []
    f = KBaseAuthenticatedFilterFactory(
        {"url": URL}, transport=_workspace(ids={"workspaces": [], "pub": [1]}, calls=calls)
    )
    f.get_filter(DefaultDistanceCollector(1))
    assert calls[-1][1] is None


def test_get_filter_bad_token():
    transport = _workspace(
        list_error="Login failed! Server responded with code 401 Unauthorized"
    )
    f = KBaseAuthenticatedFilterFactory({"url": URL}, transport=transport)
    with pytest.raises(DistanceFilterAuthenticationError, match="Invalid token"):
        f.get_filter(DefaultDistanceCollector(1), Token("bad"))


def test_get_filter_other_workspace_error():
    f = KBaseAuthenticatedFilterFactory(
        {"url": URL}, transport=_workspace(list_error="Something broke")
    )
    with pytest.raises(DistanceFilterError, match="Something broke") as exc:
        f.get_filter(DefaultDistanceCollector(1))
    assert not isinstance(exc.value, DistanceFilterAuthenticationError)


def test_validate_id():
    f = KBaseAuthenticatedFilterFactory({"url": URL}, transport=_workspace())
    assert f.validate_id("1_2_3")
    assert not f.validate_id("1_2")
