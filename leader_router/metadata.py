"""Metadata sidecar describing how a geo table was produced"""
import time
from pathlib import Path
from typing import Optional, Union
from leader_router.fileio import atomic_write_bytes, sha256_file_hex, sha256_hex
from leader_router.geo_rules import GeoBucket
from leader_router.geo_table import RECORD_SIZE, GeoTable
from leader_router.models import MapMetadata


def metadata_path_for_map(map_path: Union[str, Path]) -> Path:
    """leader_geo_map.bin -> leader_geo_map.meta.json"""
    return Path(map_path).with_suffix(".meta.json")


def build_map_metadata(
    table: GeoTable,
    db_path: Union[str, Path],
    rpc_url: str,
    rpc_slot: int,
    generated_at: Optional[int] = None,
) -> MapMetadata:
    """Counts and content hashes for a table, computed before it is written"""
    total_nodes = len(table)
    unknown_nodes = sum(1 for _, bucket in table.records() if bucket == GeoBucket.UNKNOWN)

    return MapMetadata(
        generated_at=int(time.time()) if generated_at is None else generated_at,
        rpc_url=rpc_url,
        rpc_slot=rpc_slot,
        db_path=str(db_path),
        db_content_hash=sha256_file_hex(db_path),
        record_size_bytes=RECORD_SIZE,
        table_size_bytes=table.size_bytes,
        table_content_hash=sha256_hex(table.to_bytes()),
        total_nodes=total_nodes,
        mapped_nodes=total_nodes - unknown_nodes,
        unknown_nodes=unknown_nodes,
        unknown_rate=unknown_nodes / total_nodes if total_nodes else 0.0,
    )


def write_map_metadata(metadata: MapMetadata, map_path: Union[str, Path]) -> Path:
    """Write the sidecar next to the table, returns its path"""
    path = metadata_path_for_map(map_path)
    atomic_write_bytes(path, metadata.model_dump_json(indent=2).encode())
    return path
