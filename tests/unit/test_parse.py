from twd97_townships.common.models import CoordinatePair
from twd97_townships.pipeline.parse import iter_coordinates, parse_coordinates, parser_options


def test_parse_drops_header_and_unparsable_lines():
    text = "點位名稱,X,Y\nA,201234.5,2655678.9\nnot,a,pair"

    assert parse_coordinates(text) == [CoordinatePair(x=201234.5, y=2655678.9)]


def test_parse_rejects_values_below_plausibility_bounds():
    assert parse_coordinates("small,50,50") == []
    assert parse_coordinates("east-only,201234.5,50") == []


def test_parse_reads_last_two_tokens_with_mixed_delimiters():
    text = "\n".join(
        [
            "P1\tsite north\t204512.3\t2662310.8",
            "P2   201234.5   2655678.9",
            "P3, 196875.0 ,2650010.2",
            "210002.7 2641520.4",
        ]
    )

    pairs = parse_coordinates(text)

    assert pairs == [
        CoordinatePair(x=204512.3, y=2662310.8),
        CoordinatePair(x=201234.5, y=2655678.9),
        CoordinatePair(x=196875.0, y=2650010.2),
        CoordinatePair(x=210002.7, y=2641520.4),
    ]


def test_parse_tolerates_crlf_and_blank_lines():
    text = "A,201234.5,2655678.9\r\n\r\nB,204512.3,2662310.8\r\n"

    assert len(parse_coordinates(text)) == 2


def test_parse_rejects_non_finite_numbers():
    assert parse_coordinates("A,inf,inf\nB,nan,2655678.9") == []


def test_parse_empty_or_header_only_input():
    assert parse_coordinates("") == []
    assert parse_coordinates("點位名稱,X,Y\n") == []


def test_iter_coordinates_is_lazy_single_pass():
    gen = iter_coordinates("A,201234.5,2655678.9\nB,204512.3,2662310.8")

    assert next(gen) == CoordinatePair(x=201234.5, y=2655678.9)
    assert list(gen) == [CoordinatePair(x=204512.3, y=2662310.8)]
    assert list(gen) == []


def test_parser_options_from_config_section():
    options = parser_options({"header_markers": ["NAME"], "min_easting": 0, "min_northing": 0})

    assert parse_coordinates("NAME,E,N\nA,10,20", **options) == [CoordinatePair(x=10.0, y=20.0)]
