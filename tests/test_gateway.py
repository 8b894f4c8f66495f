from __future__ import annotations

import logging

import httpx
import pytest

from contextkeeper.core.errors import StorageRejected, StorageUnavailable
from contextkeeper.database.gateway import StorageGateway
from tests.conftest import ALICE, BOB
from tests.fakes import api_error

NOW = "2025-11-01T10:00:00+00:00"


def _workspace_row(user_id: str = ALICE, name: str = "Research") -> dict:
    return {"user_id": user_id, "name": name, "description": None, "created_at": NOW, "updated_at": NOW}


def _tab_rows(*urls: str) -> list[dict]:
    return [{"url": url, "title": None, "favicon_url": None, "position": i} for i, url in enumerate(urls)]


def test_reads_are_scoped_to_owner(gateway: StorageGateway) -> None:
    gateway.insert_one("groups", {"user_id": ALICE, "name": "a", "created_at": NOW})
    gateway.insert_one("groups", {"user_id": BOB, "name": "b", "created_at": NOW})

    assert [g["name"] for g in gateway.select("groups", ALICE)] == ["a"]
    assert [g["name"] for g in gateway.select("groups", BOB)] == ["b"]


@pytest.mark.parametrize("owner", ["", None])
def test_unscoped_operations_are_refused(gateway: StorageGateway, fake_supabase, owner) -> None:
    with pytest.raises(ValueError):
        gateway.select("workspaces", owner)
    with pytest.raises(ValueError):
        gateway.delete("workspaces", owner, {"id": 1})
    assert fake_supabase.calls == []


def test_update_and_delete_need_a_filter(gateway: StorageGateway) -> None:
    with pytest.raises(ValueError):
        gateway.update("workspaces", ALICE, {}, {"name": "x"})
    with pytest.raises(ValueError):
        gateway.delete("workspaces", ALICE, {})


def test_no_match_is_an_empty_result(gateway: StorageGateway) -> None:
    assert gateway.select("workspaces", ALICE, {"id": 42}) == []
    assert gateway.update("workspaces", ALICE, {"id": 42}, {"name": "x"}) is None
    assert gateway.delete("workspaces", ALICE, {"id": 42}) == []


def test_children_are_scoped_through_parent_owner(gateway: StorageGateway) -> None:
    workspace = gateway.create_workspace_with_tabs(_workspace_row(), _tab_rows("https://b.com", "https://a.com"))

    tabs = gateway.select_children(
        "tabs", "workspaces", "workspace_id", workspace["id"], ALICE, order_by=(("position", False),)
    )
    assert [t["url"] for t in tabs] == ["https://b.com", "https://a.com"]
    assert all("workspaces" not in t for t in tabs)

    assert gateway.select_children("tabs", "workspaces", "workspace_id", workspace["id"], BOB) == []


def test_count_is_per_owner(gateway: StorageGateway) -> None:
    gateway.create_workspace_with_tabs(_workspace_row(), _tab_rows("https://a.com"))
    gateway.create_workspace_with_tabs(_workspace_row(), _tab_rows("https://a.com"))
    gateway.create_workspace_with_tabs(_workspace_row(BOB), _tab_rows("https://a.com"))

    assert gateway.count("workspaces", ALICE) == 2
    assert gateway.count("workspaces", BOB) == 1


def test_count_does_not_fetch_rows(gateway: StorageGateway, fake_supabase) -> None:
    gateway.create_workspace_with_tabs(_workspace_row(), _tab_rows("https://a.com"))

    assert gateway.count("workspaces", ALICE) == 1
    assert fake_supabase.last_query.count_mode == "exact"
    assert fake_supabase.last_query.head is True


@pytest.mark.parametrize("code", ["PGRST000", "PGRST001", "PGRST002", "503"])
def test_connection_errors_are_unavailable(gateway: StorageGateway, fake_supabase, code: str) -> None:
    fake_supabase.fail_query("groups", "select", api_error(code, "could not connect"))
    with pytest.raises(StorageUnavailable) as excinfo:
        gateway.select("groups", ALICE)
    assert excinfo.value.retryable
    assert excinfo.value.detail == "could not connect"


def test_transport_errors_are_unavailable(gateway: StorageGateway, fake_supabase) -> None:
    fake_supabase.fail_query("groups", "insert", httpx.ReadTimeout("timed out"))
    with pytest.raises(StorageUnavailable):
        gateway.insert_one("groups", {"user_id": ALICE, "name": "a"})


def test_constraint_errors_are_rejected(gateway: StorageGateway, fake_supabase) -> None:
    fake_supabase.fail_query("groups", "insert", api_error("23502", 'null value in column "name"'))
    with pytest.raises(StorageRejected) as excinfo:
        gateway.insert_one("groups", {"user_id": ALICE})
    assert not excinfo.value.retryable
    assert "null value" in excinfo.value.detail


def test_unknown_write_mode_is_refused(fake_supabase) -> None:
    with pytest.raises(ValueError):
        StorageGateway(fake_supabase, atomic_write_mode="best-effort")


def test_rpc_write_is_a_single_call(gateway: StorageGateway, fake_supabase) -> None:
    workspace = gateway.create_workspace_with_tabs(_workspace_row(), _tab_rows("https://a.com", "https://b.com"))

    assert fake_supabase.calls == [("create_workspace_with_tabs", "rpc")]
    assert [t["url"] for t in workspace["tabs"]] == ["https://a.com", "https://b.com"]
    assert {t["workspace_id"] for t in workspace["tabs"]} == {workspace["id"]}


@pytest.mark.parametrize("write_mode", ["rpc", "compensating"])
def test_failed_tab_insert_leaves_nothing_behind(gateway: StorageGateway, fake_supabase) -> None:
    fake_supabase.fail_on_row("tabs", 3, api_error("23502", 'null value in column "url"'))

    with pytest.raises(StorageRejected):
        gateway.create_workspace_with_tabs(
            _workspace_row(), _tab_rows("https://a.com", "https://b.com", "https://c.com")
        )

    assert fake_supabase.rows("workspaces") == []
    assert fake_supabase.rows("tabs") == []


@pytest.mark.parametrize("write_mode", ["compensating"])
def test_compensating_write_inserts_parent_then_tabs(gateway: StorageGateway, fake_supabase) -> None:
    workspace = gateway.create_workspace_with_tabs(_workspace_row(), _tab_rows("https://a.com", "https://b.com"))

    assert fake_supabase.calls == [("workspaces", "insert"), ("tabs", "insert")]
    assert [t["position"] for t in workspace["tabs"]] == [0, 1]
    assert len(fake_supabase.rows("tabs", workspace_id=workspace["id"])) == 2


@pytest.mark.parametrize("write_mode", ["compensating"])
def test_compensating_cleanup_failure_is_logged_and_original_error_raised(
    gateway: StorageGateway, fake_supabase, caplog: pytest.LogCaptureFixture
) -> None:
    fake_supabase.fail_query("tabs", "insert", api_error("23514", "bad tab"))
    fake_supabase.fail_query("workspaces", "delete", httpx.ConnectError("connection reset"))

    with caplog.at_level(logging.ERROR, logger="contextkeeper.database.gateway"):
        with pytest.raises(StorageRejected) as excinfo:
            gateway.create_workspace_with_tabs(_workspace_row(), _tab_rows("https://a.com"))

    assert excinfo.value.detail == "bad tab"
    assert "left without tabs" in caplog.text
    # The orphan is what the fallback cannot prevent
    assert len(fake_supabase.rows("workspaces")) == 1
