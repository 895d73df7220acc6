"""Offline IP geolocation through a MaxMind MMDB database"""
import ipaddress
from pathlib import Path
from typing import Optional, Union
import maxminddb
from leader_router.errors import GeoDbFailure
from leader_router.geo_rules import GeoBucket, bucket_from_country_iso


class GeoLocator:
    """Read-only MMDB reader, safe to share between worker threads"""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        try:
            self._reader = maxminddb.open_database(str(self.db_path))
        except (OSError, maxminddb.InvalidDatabaseError) as e:
            raise GeoDbFailure(f"cannot open geolocation database {self.db_path}: {e}") from e

    def close(self):
        self._reader.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def country_code(self, ip: str) -> Optional[str]:
        """ISO country code for ip, None when the database has no answer"""
        try:
            record = self._reader.get(ip)
        except (ValueError, maxminddb.InvalidDatabaseError) as e:
            raise GeoDbFailure(f"geolocation lookup failed for {ip}: {e}") from e

        if not isinstance(record, dict):
            return None
        for key in ("country", "registered_country"):
            iso_code = (record.get(key) or {}).get("iso_code")
            if iso_code:
                return iso_code
        return None

    def bucket(self, ip: str) -> GeoBucket:
        iso_code = self.country_code(ip)
        if iso_code is None:
            return GeoBucket.UNKNOWN
        return bucket_from_country_iso(iso_code)


def extract_ip(socket: str) -> Optional[str]:
    """Host part of a socket address ("1.2.3.4:8001", "[::1]:8001") as a normalized IP"""
    socket = socket.strip()
    candidates = [socket]
    if socket.startswith("[") and "]" in socket:
        candidates.append(socket[1:socket.index("]")])
    elif ":" in socket:
        candidates.append(socket.rsplit(":", 1)[0])

    for candidate in candidates:
        try:
            return str(ipaddress.ip_address(candidate))
        except ValueError:
            continue
    return None
