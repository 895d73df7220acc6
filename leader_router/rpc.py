"""JSON-RPC 2.0 client for the upstream chain node"""
import itertools
from typing import Any, Dict, List, Optional
import httpx
from pydantic import NonNegativeInt, TypeAdapter, ValidationError
from leader_router.errors import RpcError
from leader_router.models import ClusterNode, EpochSchedule

# {base58 leader identity: [slot index within the epoch, ...]}
LEADER_SCHEDULE_ADAPTER = TypeAdapter(Dict[str, List[NonNegativeInt]])


class ChainRpcClient:
    """Async client for the handful of chain RPC methods the router needs"""

    def __init__(self, rpc_url: str, timeout: float = 10.0):
        self.rpc_url = rpc_url
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._ids = itertools.count(1)

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        request = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            response = await self._client.post(self.rpc_url, json=request)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise RpcError(method, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise RpcError(method, f"invalid JSON response: {e}") from e

        if not isinstance(payload, dict):
            raise RpcError(method, "response is not a JSON object")
        if payload.get("error") is not None:
            raise RpcError(method, str(payload["error"]))
        if "result" not in payload:
            raise RpcError(method, "response missing result")
        return payload["result"]

    async def get_slot(self) -> int:
        """Current slot"""
        result = await self._call("getSlot")
        if not isinstance(result, int) or isinstance(result, bool) or result < 0:
            raise RpcError("getSlot", f"expected unsigned integer result, got {result!r}")
        return result

    async def get_epoch_schedule(self) -> EpochSchedule:
        result = await self._call("getEpochSchedule")
        try:
            return EpochSchedule.model_validate(result)
        except ValidationError as e:
            raise RpcError("getEpochSchedule", f"malformed epoch schedule: {e}") from e

    async def get_leader_schedule(self, slot: int) -> Dict[str, List[int]]:
        """Leader schedule of the epoch containing slot"""
        result = await self._call("getLeaderSchedule", [slot])
        if result is None:
            raise RpcError("getLeaderSchedule", f"no leader schedule available for slot {slot}")
        try:
            return LEADER_SCHEDULE_ADAPTER.validate_python(result, strict=True)
        except ValidationError as e:
            raise RpcError("getLeaderSchedule", f"malformed leader schedule: {e}") from e

    async def get_cluster_nodes(self) -> List[ClusterNode]:
        """Node registry; entries without a pubkey are skipped"""
        result = await self._call("getClusterNodes")
        if not isinstance(result, list):
            raise RpcError("getClusterNodes", "response missing result array")

        nodes = []
        for entry in result:
            if not isinstance(entry, dict) or not isinstance(entry.get("pubkey"), str):
                continue
            try:
                nodes.append(ClusterNode.model_validate(entry))
            except ValidationError:
                continue
        return nodes
