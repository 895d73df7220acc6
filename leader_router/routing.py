"""
Leader routing procedure.

Resolves the current slot to its leader, looks the leader up in the geo
table and picks the closest region. Every step is tagged with a stage name;
any failure aborts the whole invocation with a RoutingError. The procedure
has no side effects, so callers may retry freely.
"""
import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Protocol, TypeVar
from leader_router.epoch import get_epoch_and_slot_index, get_first_slot_in_epoch
from leader_router.errors import RpcError, UpstreamRpcFailure
from leader_router.geo_rules import GeoBucket, closest_region
from leader_router.geo_table import GeoTable
from leader_router.leader_schedule import LeaderSchedule
from leader_router.models import EpochSchedule, RoutingResult
from leader_router.pubkey import encode_pubkey

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChainRpc(Protocol):
    async def get_slot(self) -> int: ...

    async def get_epoch_schedule(self) -> EpochSchedule: ...

    async def get_leader_schedule(self, slot: int) -> Dict[str, List[int]]: ...


async def _fetch(stage: str, call: Awaitable[T]) -> T:
    try:
        return await call
    except RpcError as e:
        raise UpstreamRpcFailure(stage, str(e)) from e


async def _gather_or_cancel(*calls: Awaitable[Any]) -> List[Any]:
    """Run calls concurrently; the first failure cancels the rest before it propagates"""
    tasks = [asyncio.ensure_future(call) for call in calls]
    try:
        return await asyncio.gather(*tasks)
    except Exception:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def route_current_leader(rpc: ChainRpc, geo_table: GeoTable) -> RoutingResult:
    """Resolve the current leader and its closest region"""
    # Slot and epoch schedule are independent; fetch both at once
    slot, schedule = await _gather_or_cancel(
        _fetch("get_slot", rpc.get_slot()),
        _fetch("get_epoch_schedule", rpc.get_epoch_schedule()),
    )

    epoch, slot_index = get_epoch_and_slot_index(slot, schedule)

    epoch_start = get_first_slot_in_epoch(epoch, schedule)
    raw_schedule = await _fetch(
        "get_leader_schedule", rpc.get_leader_schedule(epoch_start)
    )
    leader = LeaderSchedule.from_rpc(raw_schedule).leader_at(slot_index)

    bucket = geo_table.lookup(leader)
    leader_geo = (bucket or GeoBucket.UNKNOWN).label
    region = closest_region(bucket, leader)

    result = RoutingResult(
        slot=slot,
        leader=encode_pubkey(leader),
        leader_geo=leader_geo,
        closest_region=region,
    )
    logger.info(
        "slot=%d epoch=%d leader=%s leader_geo=%s closest_region=%s",
        slot, epoch, result.leader, leader_geo, region.value,
    )
    return result
