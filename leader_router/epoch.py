"""
Slot/epoch arithmetic.

With warmup enabled, epoch 0 is MINIMUM_SLOTS_PER_EPOCH long and each
following epoch doubles until reaching slots_per_epoch, at which point
normal epochs begin at first_normal_epoch / first_normal_slot.
"""
from typing import Tuple
from leader_router.errors import InvalidSchedule
from leader_router.models import EpochSchedule

MINIMUM_SLOTS_PER_EPOCH = 32


def _check_schedule(schedule: EpochSchedule):
    if schedule.slots_per_epoch == 0:
        raise InvalidSchedule("epoch schedule has slots_per_epoch == 0")


def _warmup_epoch_length(epoch: int, schedule: EpochSchedule) -> int:
    return min(MINIMUM_SLOTS_PER_EPOCH << epoch, schedule.slots_per_epoch)


def get_slots_in_epoch(epoch: int, schedule: EpochSchedule) -> int:
    """Number of slots in the given epoch"""
    _check_schedule(schedule)
    if epoch < schedule.first_normal_epoch:
        return _warmup_epoch_length(epoch, schedule)
    return schedule.slots_per_epoch


def get_epoch_and_slot_index(slot: int, schedule: EpochSchedule) -> Tuple[int, int]:
    """Return (epoch, slot index within that epoch) for an absolute slot"""
    _check_schedule(schedule)

    if slot >= schedule.first_normal_slot:
        offset = slot - schedule.first_normal_slot
        epoch = schedule.first_normal_epoch + offset // schedule.slots_per_epoch
        return epoch, offset % schedule.slots_per_epoch

    # Warmup: walk epochs from 0 until the cumulative length passes slot
    epoch = 0
    epoch_start = 0
    while True:
        length = _warmup_epoch_length(epoch, schedule)
        if slot < epoch_start + length:
            return epoch, slot - epoch_start
        epoch_start += length
        epoch += 1


def get_first_slot_in_epoch(epoch: int, schedule: EpochSchedule) -> int:
    """Absolute slot at which the given epoch starts"""
    _check_schedule(schedule)

    if epoch >= schedule.first_normal_epoch:
        return (
            schedule.first_normal_slot
            + (epoch - schedule.first_normal_epoch) * schedule.slots_per_epoch
        )

    first_slot = 0
    for warmup_epoch in range(epoch):
        first_slot += _warmup_epoch_length(warmup_epoch, schedule)
    return first_slot
