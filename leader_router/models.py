from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from leader_router.geo_rules import Region

class EpochSchedule(BaseModel):
    """Epoch schedule as returned by getEpochSchedule"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    slots_per_epoch: int = Field(alias="slotsPerEpoch", ge=0)
    leader_schedule_slot_offset: int = Field(alias="leaderScheduleSlotOffset", ge=0)
    warmup: bool
    first_normal_epoch: int = Field(alias="firstNormalEpoch", ge=0)
    first_normal_slot: int = Field(alias="firstNormalSlot", ge=0)

class ClusterNode(BaseModel):
    """One entry of getClusterNodes"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    pubkey: str
    tpu_quic: Optional[str] = Field(default=None, alias="tpuQuic")
    tpu: Optional[str] = None
    gossip: Optional[str] = None
    rpc: Optional[str] = None

class RoutingResult(BaseModel):
    """Routing procedure success response"""
    slot: int
    leader: str
    leader_geo: str
    closest_region: Region

class ErrorData(BaseModel):
    """Which stage failed and why"""
    stage: str
    details: str

class ErrorResponse(BaseModel):
    """Routing procedure failure response"""
    code: int
    message: str
    data: ErrorData

class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    environment: str
    rpc_url: str
    geo_table_records: int

class MapMetadata(BaseModel):
    """Provenance sidecar written next to the geo table"""
    schema_version: int = 1
    generated_at: int  # unix seconds
    rpc_url: str
    rpc_slot: int
    db_path: str
    db_content_hash: str  # sha256 hex
    record_size_bytes: int
    table_size_bytes: int
    table_content_hash: str  # sha256 hex
    total_nodes: int
    mapped_nodes: int
    unknown_nodes: int
    unknown_rate: float  # fraction of total_nodes, 0.0 when empty
