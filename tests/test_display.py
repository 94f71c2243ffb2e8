import pytest

from ipmonitor.display import (
    DEFAULT_UPDATE_DELAY_MS,
    Style,
    color_pairs,
    format_large_number,
    format_packet_drops,
    next_screen_update,
    screen_update_rate,
    standard_styles,
)


def test_small_number_unscaled():
    text = format_large_number(12345)
    assert len(text) == 9
    assert text.strip() == "12345"


@pytest.mark.parametrize(
    "value,suffix",
    [
        (100000000, "k"),
        (1000000000, "M"),
        (1000000000000, "G"),
        (1000000000000000, "T"),
    ],
)
def test_scaled_number_suffix(value, suffix):
    text = format_large_number(value)
    assert len(text) == 9
    assert text.endswith(suffix)


@pytest.mark.parametrize(
    "value,unit",
    [(123456789, 1000), (98765432109, 1000000), (5000000000000, 1000000000)],
)
def test_scaled_number_never_exceeds_value(value, unit):
    scaled = int(format_large_number(value)[:-1])
    assert scaled * unit <= value < (scaled + 1) * unit


def test_just_below_threshold_is_plain():
    text = format_large_number(100000000 - 1)
    assert text.strip().isdigit()


def test_packet_drops_label():
    text = format_packet_drops(5)
    assert text.startswith(" Drops: ")
    assert text.split() == ["Drops:", "5"]


def test_default_update_rate():
    assert screen_update_rate(0) == DEFAULT_UPDATE_DELAY_MS


def test_configured_update_rate_in_milliseconds():
    assert screen_update_rate(2) == 2000


def test_next_screen_update_adds_interval():
    assert next_screen_update(10.0, 1) == pytest.approx(11.0)
    assert next_screen_update(5.0, 0) == pytest.approx(5.0 + DEFAULT_UPDATE_DELAY_MS / 1000)


def test_color_and_mono_share_names():
    assert standard_styles(True).keys() == standard_styles(False).keys()


def test_color_status_bar_matches_std():
    styles = standard_styles(True)
    assert styles["status_bar"] == styles["std"]
    assert styles["std"] == Style(pair=14, bold=True)


def test_mono_uses_no_colour_pairs():
    assert all(style.pair is None for style in standard_styles(False).values())
    assert standard_styles(False)["std"].reverse


def test_colour_styles_refer_to_defined_pairs():
    pairs = color_pairs()
    used = {s.pair for s in standard_styles(True).values()}
    assert used <= pairs.keys()


def test_color_pair_fourteen():
    assert color_pairs()[14] == ("yellow", "blue")