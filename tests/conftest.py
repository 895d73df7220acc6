"""Pytest configuration and fixtures for the leader router tests"""
import pytest
from fastapi.testclient import TestClient
from leader_router.config import settings
from leader_router.geo_rules import GeoBucket
from leader_router.geo_table import GeoTable
from leader_router.main import app
from leader_router.models import EpochSchedule
from leader_router.pubkey import encode_pubkey

RPC_URL = "http://rpc.test"

# Mainnet-like schedule: no warmup, 432k-slot epochs
MAINNET_SCHEDULE = EpochSchedule(
    slots_per_epoch=432000,
    leader_schedule_slot_offset=432000,
    warmup=False,
    first_normal_epoch=0,
    first_normal_slot=0,
)

# Slot 400403429 is index 371429 of epoch 926 under MAINNET_SCHEDULE
CURRENT_SLOT = 400403429
CURRENT_EPOCH_START = 926 * 432000
CURRENT_SLOT_INDEX = 371429


def pubkey(n: int) -> bytes:
    return bytes([n]) * 32


EU_LEADER = pubkey(1)
NA_LEADER = pubkey(2)
APAC_LEADER = pubkey(3)
ME_LEADER = pubkey(4)
UNKNOWN_LEADER = pubkey(5)
UNMAPPED_LEADER = pubkey(9)


class StubRpc:
    """In-memory stand-in for ChainRpcClient"""

    def __init__(self, slot, epoch_schedule, leader_schedule=None, cluster_nodes=None):
        self.slot = slot
        self.epoch_schedule = epoch_schedule
        self.leader_schedule = leader_schedule or {}
        self.cluster_nodes = cluster_nodes or []
        self.failures = {}
        self.calls = []

    def _record(self, method, *args):
        self.calls.append((method,) + args)
        if method in self.failures:
            raise self.failures[method]

    async def get_slot(self):
        self._record("get_slot")
        return self.slot

    async def get_epoch_schedule(self):
        self._record("get_epoch_schedule")
        return self.epoch_schedule

    async def get_leader_schedule(self, slot):
        self._record("get_leader_schedule", slot)
        return self.leader_schedule

    async def get_cluster_nodes(self):
        self._record("get_cluster_nodes")
        return list(self.cluster_nodes)

    async def close(self):
        pass

    def called(self, method):
        return [call for call in self.calls if call[0] == method]


def leader_schedule_for(leader: bytes, slot_index: int = CURRENT_SLOT_INDEX) -> dict:
    """Schedule giving the current slot to leader and its neighbours to another key"""
    other = APAC_LEADER if leader != APAC_LEADER else NA_LEADER
    return {
        encode_pubkey(leader): [slot_index],
        encode_pubkey(other): [slot_index - 1, slot_index + 1],
    }


@pytest.fixture
def geo_table():
    """Table with one leader per known bucket plus an explicit UNKNOWN"""
    return GeoTable.from_records([
        (ME_LEADER, GeoBucket.ME),
        (EU_LEADER, GeoBucket.EU),
        (APAC_LEADER, GeoBucket.APAC),
        (UNKNOWN_LEADER, GeoBucket.UNKNOWN),
        (NA_LEADER, GeoBucket.NA),
    ])


@pytest.fixture
def stub_rpc():
    """RPC stub where the current slot belongs to the EU leader"""
    return StubRpc(CURRENT_SLOT, MAINNET_SCHEDULE, leader_schedule_for(EU_LEADER))


@pytest.fixture
def geo_table_file(tmp_path, geo_table):
    """Geo table serialized to disk"""
    path = tmp_path / "leader_geo_map.bin"
    path.write_bytes(geo_table.to_bytes())
    return path


@pytest.fixture
def test_client(geo_table_file, stub_rpc, monkeypatch):
    """API client with the geo table loaded from disk and the RPC stubbed"""
    monkeypatch.setattr(settings, "geo_table_path", str(geo_table_file))
    with TestClient(app) as client:
        real_rpc = app.state.rpc
        app.state.rpc = stub_rpc
        yield client
        app.state.rpc = real_rpc
