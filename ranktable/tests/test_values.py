import pytest

from ranktable.values import (
    describe_estimation,
    format_numeric_value,
    individual_values,
    is_estimated,
    is_numeric_value,
    normalize,
    split_estimates,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("82.1/79.4", "80.8"),
        ("90%/80%", "85.0%"),
        ("82.1/unknown", "82.1"),
        ("75.5?", "75.5"),
        ("70/72", "71"),
        ("70/71", "70.5"),
        ("1.25/1.5", "1.38"),
        ("  ", ""),
        ("", ""),
        (None, ""),
        ("/ /", ""),
        ("88?/", "88"),
        (" GPT-4 ", "GPT-4"),
        ("1k/2k", "1k"),
        ("-2/4", "1"),
    ],
)
def test_normalize(raw, expected) -> None:
    assert normalize(raw) == expected


def test_normalize_counts_estimated_values_in_mean() -> None:
    assert normalize("80?/90") == "85"


def test_is_estimated() -> None:
    assert is_estimated("75.5?/80") is True
    assert is_estimated("75.5/80") is False
    assert is_estimated(None) is False


def test_individual_values_trims_and_drops_empty_segments() -> None:
    assert individual_values(" 1 / /2? ") == ["1", "2?"]
    assert individual_values("") == []


def test_split_estimates() -> None:
    info = split_estimates("80/85?/90")
    assert info.has_estimated is True
    assert info.estimated == ["85?"]
    assert info.confirmed == ["80", "90"]
    assert info.all_values == ["80", "85?", "90"]


def test_describe_estimation_for_single_value() -> None:
    assert describe_estimation("65?") == "此值为推测值"
    assert describe_estimation("65") is None
    assert describe_estimation("") is None


def test_describe_estimation_for_multi_value() -> None:
    assert describe_estimation("80/90?") == "确定值: 80\n推测值: 90\n显示平均值: 85"


def test_numeric_helpers() -> None:
    assert is_numeric_value("42.5%") is True
    assert is_numeric_value("n/a") is False
    assert format_numeric_value("42.56") == "42.6"
    assert format_numeric_value("42%") == "42%"
    assert format_numeric_value("7") == "7"
    assert format_numeric_value("n/a") == "n/a"
