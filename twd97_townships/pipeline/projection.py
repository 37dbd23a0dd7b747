"""TWD97 (TM2, 121E) to WGS84 inverse Transverse Mercator projection.

The footprint-latitude series below is evaluated term by term in double
precision. Reordering the arithmetic shifts results by more than the
rounding noise, so keep the expressions as they are.
"""

from __future__ import annotations

import math
from typing import Iterable

from twd97_townships.common.models import CoordinatePair, CoordinateRecord, LatLng

# GRS80 ellipsoid and Taiwan TM2 zone parameters.
SEMI_MAJOR_AXIS = 6378137.0
SEMI_MINOR_AXIS = 6356752.314245
CENTRAL_MERIDIAN_DEG = 121
SCALE_FACTOR = 0.9999
FALSE_EASTING = 250000
FALSE_NORTHING = 0


def twd97_to_wgs84(x: float, y: float) -> LatLng:
    a = SEMI_MAJOR_AXIS
    b = SEMI_MINOR_AXIS
    long0 = CENTRAL_MERIDIAN_DEG * math.pi / 180
    k0 = SCALE_FACTOR

    e = math.sqrt(1 - (b**2) / (a**2))
    e2 = e**2 / (1 - e**2)

    xx = x - FALSE_EASTING
    M = (y - FALSE_NORTHING) / k0

    mu = M / (a * (1 - e**2 / 4 - 3 * e**4 / 64 - 5 * e**6 / 256))
    e1 = (1 - math.sqrt(1 - e**2)) / (1 + math.sqrt(1 - e**2))

    J1 = (3 * e1) / 2 - (27 * e1**3) / 32
    J2 = (21 * e1**2) / 16 - (55 * e1**4) / 32
    J3 = (151 * e1**3) / 96
    J4 = (1097 * e1**4) / 512

    fp = mu + J1 * math.sin(2 * mu) + J2 * math.sin(4 * mu) + J3 * math.sin(6 * mu) + J4 * math.sin(8 * mu)

    C1 = e2 * math.cos(fp) ** 2
    T1 = math.tan(fp) ** 2
    R1 = a * (1 - e**2) / math.pow(1 - e**2 * math.sin(fp) ** 2, 1.5)
    N1 = a / math.sqrt(1 - e**2 * math.sin(fp) ** 2)
    D = xx / (N1 * k0)

    Q1 = N1 * math.tan(fp) / R1
    Q2 = (D**2) / 2
    Q3 = (5 + 3 * T1 + 10 * C1 - 4 * C1**2 - 9 * e2) * (D**4) / 24
    Q4 = (61 + 90 * T1 + 298 * C1 + 45 * T1**2 - 252 * e2 - 3 * C1**2) * (D**6) / 720
    lat = fp - Q1 * (Q2 - Q3 + Q4)

    Q5 = D
    Q6 = (1 + 2 * T1 + C1) * (D**3) / 6
    Q7 = (5 - 2 * C1 + 28 * T1 - 3 * C1**2 + 8 * e2 + 24 * T1**2) * (D**5) / 120
    lng = long0 + (Q5 - Q6 + Q7) / math.cos(fp)

    lat = (lat * 180) / math.pi
    lng = (lng * 180) / math.pi

    return LatLng(lat=lat, lng=lng)


def build_records(pairs: Iterable[CoordinatePair]) -> list[CoordinateRecord]:
    """Convert parsed pairs into pending records with 1-based ids."""
    records: list[CoordinateRecord] = []
    for index, pair in enumerate(pairs, start=1):
        point = twd97_to_wgs84(pair.x, pair.y)
        records.append(
            CoordinateRecord(
                id=index,
                original_x=pair.x,
                original_y=pair.y,
                lat=point.lat,
                lng=point.lng,
            )
        )
    return records
