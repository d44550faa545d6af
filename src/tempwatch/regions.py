# static region table: stable key -> display name and provider coordinates
# read-only, loaded at import time; grid points follow the KMA 5km forecast grid

from __future__ import annotations
from typing import Dict, List, Optional
from .models import GridPoint, Region

_DAEGU_MID = "11H10701"

REGIONS: Dict[str, Region] = {
    r.key: r
    for r in (
        Region("daegu-jung", "Daegu Jung-gu", GridPoint(89, 90), _DAEGU_MID, 35.8694, 128.6062),
        Region("daegu-suseong", "Daegu Suseong-gu", GridPoint(90, 89), _DAEGU_MID, 35.8582, 128.6306),
        Region("daegu-dalseo", "Daegu Dalseo-gu", GridPoint(88, 89), _DAEGU_MID, 35.8299, 128.5327),
        Region("daegu-buk", "Daegu Buk-gu", GridPoint(89, 91), _DAEGU_MID, 35.8858, 128.5828),
        Region("daegu-dong", "Daegu Dong-gu", GridPoint(90, 90), _DAEGU_MID, 35.8866, 128.6355),
        Region("daegu-nam", "Daegu Nam-gu", GridPoint(88, 88), _DAEGU_MID, 35.8460, 128.5975),
        Region("daegu-seo", "Daegu Seo-gu", GridPoint(87, 89), _DAEGU_MID, 35.8718, 128.5592),
        Region("daegu-dalseong", "Daegu Dalseong-gun", GridPoint(85, 86), _DAEGU_MID, 35.7746, 128.4314),
        Region("gumi", "Gumi", GridPoint(76, 100), "11H10602", 36.1283, 128.3377),
        Region("pohang", "Pohang", GridPoint(102, 95), "11H10201", 36.0357, 129.3565),
        Region("gyeongju", "Gyeongju", GridPoint(100, 89), "11H10202", 35.8488, 129.2152),
        Region("andong", "Andong", GridPoint(91, 106), "11H10501", 36.5684, 128.7297),
        Region("gimcheon", "Gimcheon", GridPoint(77, 97), "11H10601", 36.1118, 128.1135),
        Region("yeongcheon", "Yeongcheon", GridPoint(94, 90), "11H10702", 35.9754, 128.9463),
        Region("cheongdo", "Cheongdo", GridPoint(89, 87), "11H10704", 35.6322, 128.7303),
    )
}

DEFAULT_REGION = "daegu-jung"


def get_region(key: str, table: Optional[Dict[str, Region]] = None) -> Optional[Region]:
    return (REGIONS if table is None else table).get(key)


def region_keys(table: Optional[Dict[str, Region]] = None) -> List[str]:
    # lexicographic, same order the extreme tie-break uses
    return sorted(REGIONS if table is None else table)


def display_name(key: str, table: Optional[Dict[str, Region]] = None) -> str:
    region = get_region(key, table)
    return region.display_name if region else key
