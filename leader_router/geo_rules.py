"""
Geo buckets, country coarsening and region selection.

The on-disk bucket tags and the fallback region order are part of the
table contract: changing either reshuffles routing for existing tables.
"""
from enum import Enum, IntEnum
from typing import Optional, Union

FNV_OFFSET_BASIS = 0xcbf29ce484222325
FNV_PRIME = 0x100000001b3
U64_MASK = 0xFFFFFFFFFFFFFFFF


class GeoBucket(IntEnum):
    UNKNOWN = 0
    EU = 1
    NA = 2
    APAC = 3
    ME = 4

    @property
    def label(self) -> str:
        return self.name


class Region(str, Enum):
    DUBAI = "Dubai"
    FRANKFURT = "Frankfurt"
    NEW_YORK = "NewYork"
    TOKYO = "Tokyo"


# Fixed order for hash fallback, indexed by fnv1a64(pubkey) % 4
FALLBACK_REGIONS = (Region.DUBAI, Region.FRANKFURT, Region.NEW_YORK, Region.TOKYO)

EU_COUNTRIES = {"DE", "FR", "NL", "GB", "CH", "SE", "NO", "PL", "ES", "IT"}
ME_COUNTRIES = {"AE", "SA", "IL", "TR", "QA", "BH", "OM", "KW"}
NA_COUNTRIES = {"US", "CA", "MX"}
APAC_COUNTRIES = {"JP", "KR", "SG", "HK", "TW", "IN", "AU", "NZ"}

# First match wins, in this order
REGION_RULES = (
    ({"EU"} | EU_COUNTRIES, Region.FRANKFURT),
    ({"ME"} | ME_COUNTRIES, Region.DUBAI),
    ({"NA"} | NA_COUNTRIES, Region.NEW_YORK),
    ({"APAC"} | APAC_COUNTRIES, Region.TOKYO),
)


def bucket_from_country_iso(iso_code: str) -> GeoBucket:
    """Coarsen an ISO 3166 alpha-2 country code to a geo bucket"""
    code = iso_code.strip().upper()
    if code in EU_COUNTRIES:
        return GeoBucket.EU
    if code in ME_COUNTRIES:
        return GeoBucket.ME
    if code in NA_COUNTRIES:
        return GeoBucket.NA
    if code in APAC_COUNTRIES:
        return GeoBucket.APAC
    return GeoBucket.UNKNOWN


def region_from_geo(geo: Optional[Union[str, GeoBucket]]) -> Optional[Region]:
    """Map a bucket label or country code to its region, None when unmapped"""
    if geo is None:
        return None
    label = geo.label if isinstance(geo, GeoBucket) else geo.strip().upper()
    for codes, region in REGION_RULES:
        if label in codes:
            return region
    return None


def fnv1a64(data: bytes) -> int:
    """64-bit FNV-1a digest"""
    digest = FNV_OFFSET_BASIS
    for byte in data:
        digest = ((digest ^ byte) * FNV_PRIME) & U64_MASK
    return digest


def fallback_region(pubkey: bytes) -> Region:
    """Stable region for a leader with no usable geography"""
    return FALLBACK_REGIONS[fnv1a64(pubkey) % len(FALLBACK_REGIONS)]


def closest_region(geo: Optional[Union[str, GeoBucket]], pubkey: bytes) -> Region:
    """Region for a leader: geography first, hash fallback otherwise"""
    region = region_from_geo(geo)
    if region is None:
        region = fallback_region(pubkey)
    return region
