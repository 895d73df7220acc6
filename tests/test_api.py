import json
import pytest
import respx
from fastapi.testclient import TestClient
from httpx import Response
from leader_router.config import settings
from leader_router.errors import MalformedTable, RpcError
from leader_router.main import app
from leader_router.pubkey import encode_pubkey
from leader_router.rpc import ChainRpcClient
from tests.conftest import CURRENT_SLOT, EU_LEADER, MAINNET_SCHEDULE, RPC_URL

def test_health(test_client):
    """Test health endpoint"""
    response = test_client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["geo_table_records"] == 5
    assert data["rpc_url"] == settings.rpc_url

def test_route_success(test_client):
    """Test routing response shape"""
    response = test_client.get("/route")
    assert response.status_code == 200
    assert response.json() == {
        "slot": CURRENT_SLOT,
        "leader": encode_pubkey(EU_LEADER),
        "leader_geo": "EU",
        "closest_region": "Frankfurt",
    }

def test_route_accepts_post_without_params(test_client):
    """Test the procedure ignores request bodies"""
    response = test_client.post("/route", json={})
    assert response.status_code == 200
    assert response.json()["closest_region"] == "Frankfurt"

def test_route_failure_is_structured(test_client, stub_rpc):
    """Test upstream failures produce a structured error and no result"""
    stub_rpc.failures["get_leader_schedule"] = RpcError("getLeaderSchedule", "node is behind")

    response = test_client.get("/route")
    assert response.status_code == 500
    data = response.json()
    assert data["code"] == 500
    assert data["message"] == "leader routing procedure failed"
    assert data["data"]["stage"] == "get_leader_schedule"
    assert "node is behind" in data["data"]["details"]
    assert "closest_region" not in data

def test_metrics(test_client):
    """Test routing metrics are exported"""
    test_client.get("/route")
    response = test_client.get("/metrics")
    assert response.status_code == 200
    assert "routing_requests_total" in response.text
    assert "geo_table_records" in response.text

def test_metrics_disabled(test_client, monkeypatch):
    """Test metrics endpoint can be turned off"""
    monkeypatch.setattr(settings, "enable_metrics", False)
    response = test_client.get("/metrics")
    assert response.status_code == 404

def test_malformed_table_refuses_startup(tmp_path, monkeypatch):
    """Test the service will not start with a corrupt table"""
    path = tmp_path / "leader_geo_map.bin"
    path.write_bytes(b"\x00" * 34)
    monkeypatch.setattr(settings, "geo_table_path", str(path))

    with pytest.raises(MalformedTable):
        with TestClient(app):
            pass

def test_missing_table_refuses_startup(tmp_path, monkeypatch):
    """Test the service will not start without a table"""
    monkeypatch.setattr(settings, "geo_table_path", str(tmp_path / "missing.bin"))

    with pytest.raises(MalformedTable):
        with TestClient(app):
            pass

def test_malformed_leader_schedule_is_structured(test_client, stub_rpc):
    """Test a leader with a non-list slot value fails at resolve_leader"""
    stub_rpc.leader_schedule = {encode_pubkey(EU_LEADER): None}

    response = test_client.get("/route")
    assert response.status_code == 500
    data = response.json()
    assert data["code"] == 500
    assert data["data"]["stage"] == "resolve_leader"
    assert "closest_region" not in data

@respx.mock
def test_malformed_rpc_leader_schedule_is_structured(test_client):
    """Test a malformed getLeaderSchedule payload fails at get_leader_schedule"""
    def rpc_reply(request):
        method = json.loads(request.content)["method"]
        result = {
            "getSlot": CURRENT_SLOT,
            "getEpochSchedule": MAINNET_SCHEDULE.model_dump(by_alias=True),
            "getLeaderSchedule": {encode_pubkey(EU_LEADER): None},
        }[method]
        return Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})

    respx.post(RPC_URL).mock(side_effect=rpc_reply)
    app.state.rpc = ChainRpcClient(RPC_URL)

    response = test_client.get("/route")
    assert response.status_code == 500
    data = response.json()["data"]
    assert data["stage"] == "get_leader_schedule"
    assert "malformed leader schedule" in data["details"]
