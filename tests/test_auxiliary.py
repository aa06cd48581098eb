from __future__ import annotations

import pytest

from auxiliary import format_bytes, format_path_for_display, normalize_extension, parse_size, split_csv_arg


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2048", 2048),
        ("10K", 10 * 1024),
        ("500M", 500 * 1024**2),
        ("500mb", 500 * 1024**2),
        ("1.5G", int(1.5 * 1024**3)),
        ("3GiB", 3 * 1024**3),
        (" 7 B ", 7),
    ],
)
def test_parse_size_accepts_suffixes(value, expected):
    assert parse_size(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "-5M", "M", "inf", "-inf", "nan", "infG", "1e400"])
def test_parse_size_rejects_bad_values(value):
    with pytest.raises(ValueError):
        parse_size(value)


def test_normalize_extension_adds_dot_and_lowercases():
    assert normalize_extension("BAK") == ".bak"
    assert normalize_extension(".Tmp") == ".tmp"
    with pytest.raises(ValueError):
        normalize_extension(" . ")


def test_format_bytes_units():
    assert format_bytes(789) == "789 B"
    assert format_bytes(12 * 1024) == "12.0 KiB"
    assert format_bytes(600 * 1024**2) == "600.0 MiB"
    assert format_bytes(2 * 1024**3) == "2.0 GiB"


def test_format_path_for_display_replaces_home_prefix_only():
    assert format_path_for_display("/home/u/data/x", home_path="/home/u") == "~/data/x"
    assert format_path_for_display("/srv/home/u", home_path="/home/u") == "/srv/home/u"


def test_format_path_for_display_replaces_undecodable_bytes():
    assert format_path_for_display("/data/bad\udcff.bin", home_path="/home/u") == "/data/bad\ufffd.bin"


def test_split_csv_arg_drops_blanks():
    assert split_csv_arg(" node_modules, ,.git,") == ["node_modules", ".git"]
    assert split_csv_arg(None) == []
