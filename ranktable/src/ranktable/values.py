"""Cell value helpers for multi-value (`a/b`) and estimated (`75?`) entries.

A raw cell may hold several `/`-separated sub-values; any sub-value may carry a
`?` marking it as estimated. Raw values are stored untouched; these helpers only
derive display strings from them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

ESTIMATE_MARKER = "?"
PERCENT_SIGN = "%"
VALUE_SEPARATOR = "/"

_STRICT_NUMBER_RE = re.compile(r"^-?\d*\.?\d+$")
_DECIMALS_RE = re.compile(r"\.(\d+)")
_LEADING_NUMBER_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)")


def _strip_marker(value: str) -> str:
    return value.replace(ESTIMATE_MARKER, "")


def _bare_number(part: str) -> str:
    return _strip_marker(part).replace(PERCENT_SIGN, "")


def _to_fixed(value: float, places: int) -> str:
    # Half-up on the exact binary value, the way the table front end formats numbers.
    quantum = Decimal(1).scaleb(-places)
    return format(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP), "f")


def _plain_number(value: float) -> str:
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def individual_values(raw: str | None) -> list[str]:
    """Split a raw cell into its trimmed, non-empty sub-values."""

    if not raw or not raw.strip():
        return []
    return [part.strip() for part in raw.split(VALUE_SEPARATOR) if part.strip()]


def is_estimated(raw: str | None) -> bool:
    return bool(raw) and ESTIMATE_MARKER in raw


def normalize(raw: str | None) -> str:
    """Aggregate a raw cell into its display value.

    All-numeric multi-values are averaged (percent inputs give one decimal and a
    `%` suffix, otherwise the widest input precision is kept). When any
    sub-value is not a plain number the first sub-value is returned; stored
    tables rely on that fallback, so it stays as is.
    """

    if not raw or not raw.strip():
        return ""

    if VALUE_SEPARATOR not in raw:
        return _strip_marker(raw).strip()

    parts = individual_values(raw)
    if not parts:
        return ""
    if len(parts) == 1:
        return _strip_marker(parts[0]).strip()

    numbers: list[float] = []
    for part in parts:
        cleaned = _bare_number(part)
        if not _STRICT_NUMBER_RE.match(cleaned):
            return _strip_marker(parts[0]).strip()
        numbers.append(float(cleaned))

    total = 0.0
    for number in numbers:
        total += number
    mean = total / len(numbers)

    if any(PERCENT_SIGN in part for part in parts):
        return f"{_to_fixed(mean, 1)}{PERCENT_SIGN}"

    decimal_places = 0
    for part in parts:
        match = _DECIMALS_RE.search(_bare_number(part))
        if match:
            decimal_places = max(decimal_places, len(match.group(1)))

    if decimal_places > 0:
        return _to_fixed(mean, decimal_places)
    return _plain_number(mean)


@dataclass(slots=True)
class EstimationInfo:
    has_estimated: bool = False
    estimated: list[str] = field(default_factory=list)
    confirmed: list[str] = field(default_factory=list)
    all_values: list[str] = field(default_factory=list)


def split_estimates(raw: str | None) -> EstimationInfo:
    values = individual_values(raw)
    estimated = [value for value in values if ESTIMATE_MARKER in value]
    confirmed = [value for value in values if ESTIMATE_MARKER not in value]
    return EstimationInfo(
        has_estimated=bool(estimated),
        estimated=estimated,
        confirmed=confirmed,
        all_values=values,
    )


def describe_estimation(raw: str | None) -> str | None:
    """Multi-line tooltip listing confirmed values, estimated values and the display value."""

    if not raw or not raw.strip():
        return None

    info = split_estimates(raw)
    if len(info.all_values) <= 1:
        return "此值为推测值" if info.has_estimated else None

    lines: list[str] = []
    if info.confirmed:
        lines.append(f"确定值: {', '.join(info.confirmed)}")
    if info.estimated:
        lines.append(f"推测值: {', '.join(_strip_marker(value) for value in info.estimated)}")
    lines.append(f"显示平均值: {normalize(raw)}")
    return "\n".join(lines)


def _leading_number(raw: str) -> float | None:
    match = _LEADING_NUMBER_RE.match(_bare_number(raw))
    if not match:
        return None
    return float(match.group(0))


def is_numeric_value(raw: str | None) -> bool:
    if not raw or not raw.strip():
        return False
    return _leading_number(raw) is not None


def format_numeric_value(raw: str) -> str:
    """Display form of a single numeric value; non-numeric input is returned unchanged."""

    number = _leading_number(raw) if raw and raw.strip() else None
    if number is None:
        return raw

    if PERCENT_SIGN in raw:
        return f"{_plain_number(number)}{PERCENT_SIGN}"
    if number.is_integer():
        return _plain_number(number)
    return _to_fixed(number, 1)
