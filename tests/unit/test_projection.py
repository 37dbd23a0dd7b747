import pytest
from pyproj import Transformer

from twd97_townships.common.models import CoordinatePair, RecordStatus
from twd97_townships.pipeline.projection import build_records, twd97_to_wgs84

TWD97_TO_WGS84 = Transformer.from_crs("EPSG:3826", "EPSG:4326", always_xy=True)


def test_central_meridian_at_origin_maps_to_121_east():
    point = twd97_to_wgs84(250000, 0)

    assert point.lat == 0.0
    assert point.lng == pytest.approx(121.0, abs=1e-12)


def test_conversion_is_deterministic():
    first = twd97_to_wgs84(201234.5, 2655678.9)
    second = twd97_to_wgs84(201234.5, 2655678.9)

    assert first == second


@pytest.mark.parametrize(
    ("x", "y"),
    [
        (204512.3, 2662310.8),
        (201234.5, 2655678.9),
        (196875.0, 2650010.2),
        (302000.0, 2770000.0),
        (250000.0, 2500000.0),
    ],
)
def test_matches_pyproj_tm2_zone_121(x, y):
    expected_lon, expected_lat = TWD97_TO_WGS84.transform(x, y)

    point = twd97_to_wgs84(x, y)

    assert point.lat == pytest.approx(expected_lat, abs=1e-6)
    assert point.lng == pytest.approx(expected_lon, abs=1e-6)


@pytest.mark.parametrize(
    ("x", "y", "lat", "lng"),
    [
        (204512.3, 2662310.8, 24.065150551074986, 120.55268709810925),
        (201234.5, 2655678.9, 24.005172055235018, 120.52067722425841),
        (302000, 2770000, 25.037228189073552, 121.51530843459274),
    ],
)
def test_matches_reference_series_exactly(x, y, lat, lng):
    point = twd97_to_wgs84(x, y)

    assert point.lat == lat
    assert point.lng == lng


def test_west_of_false_easting_is_west_of_central_meridian():
    west = twd97_to_wgs84(200000, 2660000)
    east = twd97_to_wgs84(300000, 2660000)

    assert west.lng < 121.0 < east.lng
    assert twd97_to_wgs84(200000, 2670000).lat > west.lat


def test_build_records_assigns_one_based_ids_and_pending_status():
    pairs = [CoordinatePair(x=201234.5, y=2655678.9), CoordinatePair(x=204512.3, y=2662310.8)]

    records = build_records(pairs)

    assert [record.id for record in records] == [1, 2]
    assert all(record.status is RecordStatus.PENDING for record in records)
    assert all(record.township is None for record in records)
    assert records[0].original_x == 201234.5
    expected = twd97_to_wgs84(204512.3, 2662310.8)
    assert (records[1].lat, records[1].lng) == (expected.lat, expected.lng)


def test_build_records_empty():
    assert build_records([]) == []
