"""Error taxonomy for leader routing and the geo map builder"""
from typing import Optional

ERROR_CODE_INTERNAL = 500
ERROR_MESSAGE = "leader routing procedure failed"


class RpcError(Exception):
    """Chain RPC call failed (transport, HTTP status, JSON-RPC error or bad payload)"""

    def __init__(self, method: str, details: str):
        super().__init__(f"RPC {method} error: {details}")
        self.method = method
        self.details = details


class RoutingError(Exception):
    """Base error for a routing invocation, tagged with the stage that failed"""

    code = ERROR_CODE_INTERNAL

    def __init__(self, stage: str, details: str):
        super().__init__(f"{stage}: {details}")
        self.stage = stage
        self.details = details

    def to_error_response(self) -> dict:
        """Structured error payload returned at the invocation boundary"""
        return {
            "code": self.code,
            "message": ERROR_MESSAGE,
            "data": {"stage": self.stage, "details": self.details},
        }


class UpstreamRpcFailure(RoutingError):
    pass


class InvalidSchedule(RoutingError):
    def __init__(self, details: str):
        super().__init__("resolve_epoch", details)


class LeaderNotFound(RoutingError):
    def __init__(self, slot_index: int, details: Optional[str] = None):
        super().__init__(
            "resolve_leader",
            details or f"no leader assigned to slot index {slot_index}",
        )
        self.slot_index = slot_index


class LeaderScheduleConflict(RoutingError):
    def __init__(self, slot_index: int, first: str, second: str):
        super().__init__(
            "resolve_leader",
            f"slot index {slot_index} assigned to both {first} and {second}",
        )
        self.slot_index = slot_index


class MalformedTable(RoutingError):
    def __init__(self, details: str):
        super().__init__("load_geo_table", details)


class GeoDbFailure(Exception):
    """Geolocation database could not be opened or a lookup failed"""
