"""
Offline builder for the leader geo table.
Run with: python -m leader_router.geo_mapper --output data/leader_geo_map.bin
"""
import argparse
import asyncio
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, Union
from leader_router.config import settings
from leader_router.errors import GeoDbFailure, RpcError
from leader_router.fileio import atomic_write_bytes
from leader_router.geo_rules import GeoBucket
from leader_router.geo_table import GeoTable
from leader_router.geolocation import GeoLocator, extract_ip
from leader_router.logging_config import configure_logging
from leader_router.metadata import build_map_metadata, metadata_path_for_map, write_map_metadata
from leader_router.models import ClusterNode, MapMetadata
from leader_router.pubkey import decode_pubkey
from leader_router.rpc import ChainRpcClient

logger = logging.getLogger(__name__)

# Contact addresses in order of preference
ADDRESS_FIELDS = ("tpu_quic", "tpu", "gossip", "rpc")


class NodeRegistry(Protocol):
    async def get_cluster_nodes(self) -> List[ClusterNode]: ...

    async def get_slot(self) -> int: ...


class Locator(Protocol):
    def bucket(self, ip: str) -> GeoBucket: ...


@dataclass(frozen=True)
class NodeRow:
    pubkey: bytes
    ip: str


@dataclass
class BuildResult:
    table: GeoTable
    metadata: MapMetadata
    metadata_path: Path


def preferred_ip(node: ClusterNode) -> Optional[str]:
    """First parsable IP among the node's contact addresses"""
    for field in ADDRESS_FIELDS:
        socket = getattr(node, field)
        if socket:
            ip = extract_ip(socket)
            if ip is not None:
                return ip
    return None


def rows_from_nodes(nodes: Iterable[ClusterNode]) -> List[NodeRow]:
    """Keep nodes with a valid pubkey and a usable address"""
    rows = []
    for node in nodes:
        try:
            pubkey = decode_pubkey(node.pubkey)
        except ValueError:
            logger.debug("Skipping node with invalid pubkey %r", node.pubkey)
            continue
        ip = preferred_ip(node)
        if ip is None:
            continue
        rows.append(NodeRow(pubkey=pubkey, ip=ip))
    return rows


def resolve_buckets(rows: List[NodeRow], locator: Locator, workers: int) -> List[GeoBucket]:
    """Geolocate every row; order of the result matches rows"""
    if workers <= 1:
        return [locator.bucket(row.ip) for row in rows]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(lambda row: locator.bucket(row.ip), rows))


def merge_rows(rows: List[NodeRow], buckets: List[GeoBucket]) -> List[Tuple[bytes, GeoBucket]]:
    """Collapse duplicate identities, a known bucket wins over UNKNOWN"""
    merged: Dict[bytes, GeoBucket] = {}
    for row, bucket in zip(rows, buckets):
        existing = merged.get(row.pubkey)
        if existing is None or (existing == GeoBucket.UNKNOWN and bucket != GeoBucket.UNKNOWN):
            merged[row.pubkey] = bucket
    return sorted(merged.items())


async def build_geo_map(
    rpc: NodeRegistry,
    locator: Locator,
    output_path: Union[str, Path],
    rpc_url: str,
    db_path: Union[str, Path],
    workers: int = 1,
) -> BuildResult:
    """Fetch the node registry, geolocate it and write table plus sidecar"""
    nodes = await rpc.get_cluster_nodes()
    rows = rows_from_nodes(nodes)
    logger.info("Fetched %d candidate leader rows from %s", len(rows), rpc_url)
    if not rows:
        logger.warning("No rows found; output map will be empty")

    buckets = resolve_buckets(rows, locator, workers)
    rpc_slot = await rpc.get_slot()

    # Single-threaded, sorted serialization keeps output independent of fetch order
    table = GeoTable.from_records(merge_rows(rows, buckets))
    metadata = build_map_metadata(table, db_path, rpc_url, rpc_slot)

    # Never leave a sidecar describing a different table
    atomic_write_bytes(output_path, table.to_bytes())
    logger.info("Wrote %d records (%d bytes) to %s", len(table), table.size_bytes, output_path)
    try:
        metadata_path = write_map_metadata(metadata, output_path)
    except OSError:
        metadata_path_for_map(output_path).unlink(missing_ok=True)
        raise
    logger.info(
        "stats: total_nodes=%d mapped_nodes=%d unknown_nodes=%d unknown_rate=%.2f%% output_bytes=%d",
        metadata.total_nodes, metadata.mapped_nodes, metadata.unknown_nodes,
        metadata.unknown_rate * 100, metadata.table_size_bytes,
    )
    return BuildResult(table=table, metadata=metadata, metadata_path=metadata_path)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="leader-geo-mapper",
        description="Build the leader geo table from the cluster node registry",
    )
    parser.add_argument("--output", required=True, help="path of the leader_geo_map.bin to write")
    parser.add_argument("--rpc-url", default=settings.rpc_url, help="chain RPC endpoint")
    parser.add_argument("--db", default=settings.geo_db_path, help="GeoLite2 MMDB path")
    parser.add_argument(
        "--workers", type=int, default=settings.builder_workers,
        help="threads used for geolocation lookups",
    )
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> BuildResult:
    with GeoLocator(args.db) as locator:
        async with ChainRpcClient(args.rpc_url, timeout=settings.rpc_timeout) as rpc:
            return await build_geo_map(
                rpc, locator, args.output, args.rpc_url, args.db, workers=args.workers
            )


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point, returns the process exit status"""
    args = parse_args(argv)
    configure_logging(settings.log_level)

    try:
        result = asyncio.run(_run(args))
    except (RpcError, GeoDbFailure, OSError, ValueError) as e:
        print(f"geo-mapper failed: {e}", file=sys.stderr)
        return 1

    logger.info("Metadata written to %s", result.metadata_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
