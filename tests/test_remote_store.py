from __future__ import annotations

from typing import Any, Dict, List

import pytest

from conftest import API_BASE, FakeApi
from testdash.services.entities import record_id, run_spec
from testdash.services.errors import ConfigurationError, TransientRemoteError
from testdash.services.remote_store import RemoteStore
from testdash.services.store import StoreConfig


def _record_id(item: Dict[str, Any]) -> str:
    return item.get("id") or ""


def _store(**overrides: Any) -> RemoteStore:
    config = StoreConfig(storage_key="widgets", endpoint="widgets", **overrides)
    return RemoteStore(API_BASE, config, _record_id)


@pytest.mark.unit
def test_get_items_returns_payload_verbatim(fake_api: FakeApi) -> None:
    fake_api.collections["widgets"] = [{"id": "a", "v": 1}]

    assert _store().get_items() == [{"id": "a", "v": 1}]
    assert fake_api.calls == [("GET", f"{API_BASE}/widgets", None)]


@pytest.mark.unit
def test_get_items_applies_transform_response(fake_api: FakeApi) -> None:
    fake_api.collections["widgets"] = [{"id": "a", "v": 1}, {"id": "b", "v": 2}]

    def _only_even(data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [item for item in data if item["v"] % 2 == 0]

    assert _store(transform_response=_only_even).get_items() == [{"id": "b", "v": 2}]


@pytest.mark.unit
def test_get_items_raises_on_error_status(fake_api: FakeApi) -> None:
    fake_api.failures["GET"] = 500

    with pytest.raises(TransientRemoteError) as excinfo:
        _store().get_items()
    assert excinfo.value.status == 500


@pytest.mark.unit
def test_network_failure_raises_transient_error(fake_api: FakeApi) -> None:
    fake_api.offline = True

    with pytest.raises(TransientRemoteError):
        _store().get_items()


@pytest.mark.unit
def test_save_item_with_identity_uses_put(fake_api: FakeApi) -> None:
    saved = _store().save_item({"id": "a b", "v": 1})

    method, url, payload = fake_api.calls[-1]
    assert method == "PUT"
    assert url == f"{API_BASE}/widgets/a%20b"
    assert payload == {"id": "a b", "v": 1}
    assert saved == {"id": "a b", "v": 1}


@pytest.mark.unit
def test_save_item_without_identity_posts_transformed_body(fake_api: FakeApi) -> None:
    store = _store(transform_request=lambda item: {**item, "wire": True})

    saved = store.save_item({"id": "", "v": 1})

    method, url, payload = fake_api.calls[-1]
    assert method == "POST"
    assert url == f"{API_BASE}/widgets"
    assert payload == {"id": "", "v": 1, "wire": True}
    assert saved["id"] == "srv-1"


@pytest.mark.unit
def test_save_item_raises_on_error_status(fake_api: FakeApi) -> None:
    fake_api.failures["PUT"] = 503

    with pytest.raises(TransientRemoteError):
        _store().save_item({"id": "a"})


@pytest.mark.unit
def test_delete_item_reports_success_without_raising(fake_api: FakeApi) -> None:
    fake_api.collections["widgets"] = [{"id": "a"}]
    store = _store()

    assert store.delete_item("a") is True
    assert store.delete_item("a") is False
    assert fake_api.collections["widgets"] == []


@pytest.mark.unit
def test_delete_item_raises_when_unreachable(fake_api: FakeApi) -> None:
    fake_api.offline = True

    with pytest.raises(TransientRemoteError):
        _store().delete_item("a")


@pytest.mark.unit
def test_get_item_by_id_filters_the_full_list(fake_api: FakeApi) -> None:
    fake_api.collections["widgets"] = [{"id": "a"}, {"id": "b", "v": 2}]
    store = _store()

    assert store.get_item_by_id("b") == {"id": "b", "v": 2}
    assert store.get_item_by_id("zzz") is None
    assert [call[0] for call in fake_api.calls] == ["GET", "GET"]


@pytest.mark.unit
@pytest.mark.parametrize("base_url", ["", "localhost:3001/api", "ftp://host/api"])
def test_malformed_base_url_fails_fast(base_url: str) -> None:
    with pytest.raises(ConfigurationError):
        RemoteStore(base_url, StoreConfig(storage_key="k", endpoint="widgets"), _record_id)


@pytest.mark.unit
def test_missing_endpoint_or_identity_fails_fast() -> None:
    with pytest.raises(ConfigurationError):
        RemoteStore(API_BASE, StoreConfig(storage_key="k", endpoint="/"), _record_id)
    with pytest.raises(ConfigurationError):
        RemoteStore(API_BASE, StoreConfig(storage_key="k", endpoint="widgets"), None)  # type: ignore[arg-type]


@pytest.mark.unit
def test_save_item_keeps_the_sent_item_when_the_echo_is_filtered_out(fake_api: FakeApi) -> None:
    fake_api.extra[("PUT", "test-runs/r1")] = {"id": "r1", "definition_id": "d1", "commands": ["x"]}
    store = RemoteStore(API_BASE, run_spec().config, record_id)
    run = {"id": "r1", "name": "n", "definitionId": "d1", "command": ["x"]}

    saved = store.save_item(run)

    assert saved == run
    assert fake_api.calls[-1][2]["definition_id"] == "d1"
