from datetime import datetime, timezone

import pytest

from s5storage.strutil import humanize_bytes, to_json


@pytest.mark.parametrize(
    "size, want",
    [
        (22 * 10000, "214.8K"),
        (27 * 10000, "263.7K"),
        (22 * 10000 + 27 * 1000, "241.2K"),
    ],
)
def test_humanize_bytes_with_suffix(size, want):
    assert humanize_bytes(size) == want


@pytest.mark.parametrize("size, want", [(0, "0"), (22, "22"), (49, "49"), (84, "84"), (1024, "1024")])
def test_humanize_bytes_small_values_are_plain(size, want):
    assert humanize_bytes(size) == want


def test_humanize_bytes_just_above_kilo():
    assert humanize_bytes(1025) == "1.0K"


def test_humanize_bytes_uses_largest_divisor():
    assert humanize_bytes((1 << 30) + 1).endswith("G")
    assert humanize_bytes((1 << 40) * 3).endswith("T")


def test_to_json_is_compact():
    assert to_json({"source": "s3://bucket/key", "count": 1, "size": 22}) == (
        '{"source":"s3://bucket/key","count":1,"size":22}'
    )


def test_to_json_escapes_html_characters():
    assert to_json("a<b>&c") == '"a\\u003cb\\u003e\\u0026c"'


def test_to_json_keeps_unicode():
    assert to_json("中文") == '"中文"'


def test_to_json_formats_times():
    moment = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert to_json({"t": moment}) == '{"t":"2020-01-02T03:04:05Z"}'


def test_to_json_rejects_unknown_objects():
    with pytest.raises(TypeError):
        to_json(object())