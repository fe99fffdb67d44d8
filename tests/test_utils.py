from unmatte.mode import resolve_pixel_mode
from unmatte.utils import (
    format_number_compact,
    key_value_pairs_to_string,
    print_config_line,
    split_into_parts,
)


def test_split_into_parts_covers_range_in_order():
    assert split_into_parts(10, 3) == [(0, 4), (4, 8), (8, 10)]
    assert split_into_parts(2, 8) == [(0, 1), (1, 2)]
    assert split_into_parts(0, 4) == []


def test_key_value_formatting():
    line = key_value_pairs_to_string(
        [("Size", "3x2"), ("Pixels", 12345), ("Threshold", 0.05), ("Trim", True)]
    )
    assert line == "Size: 3x2  Pixels: 12,345  Threshold: 0.05  Trim: on"
    assert format_number_compact(2.0) == "2"


def test_config_line_routes_by_debug(capsys):
    print_config_line("run", [("Jobs", 2)], debug=False)
    print_config_line("run", [("Jobs", 2)], debug=True)
    assert capsys.readouterr().out.splitlines() == [
        "[run] Jobs: 2",
        "[debug] [run] Jobs: 2",
    ]


def test_pixel_mode_resolution():
    assert resolve_pixel_mode(True, 0) == "strict"
    assert resolve_pixel_mode(False, 0) == "min_alpha"
    assert resolve_pixel_mode(False, 2) == "mixed"
