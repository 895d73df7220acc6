"""Leader schedule inverse index (slot index -> leader)"""
from typing import Dict, Iterable, Mapping
from leader_router.errors import LeaderNotFound, LeaderScheduleConflict, RoutingError
from leader_router.pubkey import decode_pubkey


class LeaderSchedule:
    """
    Per-epoch leader schedule, indexed by in-epoch slot index.

    The index is built in one pass over every leader's slot list, so each
    query is a dictionary lookup.
    """

    def __init__(self, slot_leaders: Dict[int, bytes]):
        self._slot_leaders = slot_leaders

    @classmethod
    def from_rpc(cls, schedule: Mapping[str, Iterable[int]]) -> "LeaderSchedule":
        """Build from a getLeaderSchedule result ({base58 pubkey: [slot index, ...]})"""
        slot_leaders: Dict[int, bytes] = {}
        owners: Dict[int, str] = {}

        for leader, slot_indices in schedule.items():
            try:
                pubkey = decode_pubkey(leader)
            except ValueError as e:
                raise RoutingError("resolve_leader", f"invalid leader identity: {e}") from e

            if not isinstance(slot_indices, (list, tuple)):
                raise RoutingError(
                    "resolve_leader", f"slot indices for {leader} are not a list: {slot_indices!r}"
                )
            for slot_index in slot_indices:
                if slot_index in slot_leaders:
                    raise LeaderScheduleConflict(slot_index, owners[slot_index], leader)
                slot_leaders[slot_index] = pubkey
                owners[slot_index] = leader

        return cls(slot_leaders)

    def leader_at(self, slot_index: int) -> bytes:
        """Raw pubkey of the leader owning slot_index"""
        try:
            return self._slot_leaders[slot_index]
        except KeyError:
            raise LeaderNotFound(slot_index) from None

    def __len__(self) -> int:
        return len(self._slot_leaders)
