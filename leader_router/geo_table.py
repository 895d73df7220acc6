"""
Binary leader geo table.

File format: fixed 33-byte records [32-byte pubkey][1-byte GeoBucket tag],
sorted ascending by pubkey bytes, no header, no padding. The checksum lives
in the metadata sidecar, not in the table.
"""
import logging
from bisect import bisect_left
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union
from leader_router.errors import MalformedTable
from leader_router.geo_rules import GeoBucket
from leader_router.pubkey import PUBKEY_SIZE

logger = logging.getLogger(__name__)

RECORD_SIZE = PUBKEY_SIZE + 1


class GeoTable:
    """Immutable, sorted pubkey -> GeoBucket lookup"""

    __slots__ = ("_keys", "_buckets")

    def __init__(self, keys: List[bytes], buckets: List[GeoBucket]):
        self._keys = tuple(keys)
        self._buckets = tuple(buckets)

    @classmethod
    def from_bytes(cls, data: bytes) -> "GeoTable":
        """Parse and validate a serialized table"""
        if len(data) % RECORD_SIZE != 0:
            raise MalformedTable(
                f"table size {len(data)} is not a multiple of record size {RECORD_SIZE}"
            )

        keys = []
        buckets = []
        for offset in range(0, len(data), RECORD_SIZE):
            key = bytes(data[offset:offset + PUBKEY_SIZE])
            tag = data[offset + PUBKEY_SIZE]

            if keys and key <= keys[-1]:
                raise MalformedTable(
                    f"record {offset // RECORD_SIZE} is out of order or duplicated"
                )
            try:
                bucket = GeoBucket(tag)
            except ValueError:
                raise MalformedTable(
                    f"record {offset // RECORD_SIZE} has unknown geo tag {tag}"
                ) from None

            keys.append(key)
            buckets.append(bucket)

        return cls(keys, buckets)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "GeoTable":
        """Read the whole artifact into memory"""
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise MalformedTable(f"cannot read geo table {path}: {e}") from e

        table = cls.from_bytes(data)
        logger.info("Loaded geo table %s (%d records)", path, len(table))
        return table

    @classmethod
    def from_records(cls, records: Iterable[Tuple[bytes, GeoBucket]]) -> "GeoTable":
        """Build from (pubkey, bucket) pairs in any order; keys must be unique"""
        ordered = sorted(records, key=lambda record: record[0])
        keys = []
        buckets = []
        for key, bucket in ordered:
            if len(key) != PUBKEY_SIZE:
                raise ValueError(f"pubkey must be {PUBKEY_SIZE} bytes, got {len(key)}")
            if keys and key == keys[-1]:
                raise ValueError(f"duplicate pubkey {key.hex()}")
            keys.append(bytes(key))
            buckets.append(GeoBucket(bucket))
        return cls(keys, buckets)

    def lookup(self, pubkey: bytes) -> Optional[GeoBucket]:
        """Binary search for pubkey, None when absent"""
        index = bisect_left(self._keys, pubkey)
        if index < len(self._keys) and self._keys[index] == pubkey:
            return self._buckets[index]
        return None

    def records(self) -> Iterator[Tuple[bytes, GeoBucket]]:
        return zip(self._keys, self._buckets)

    def to_bytes(self) -> bytes:
        out = bytearray()
        for key, bucket in self.records():
            out += key
            out.append(bucket)
        return bytes(out)

    @property
    def size_bytes(self) -> int:
        return len(self._keys) * RECORD_SIZE

    def __len__(self) -> int:
        return len(self._keys)
