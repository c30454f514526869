"""Volume units: millilitre/ounce conversion and free-text volume parsing.

Volumes are stored in millilitres everywhere; ounces only exist on screen.
"""

from __future__ import annotations

import re

_OZ_PER_ML = 0.033814
_ML_PER_OZ_LABEL = 29.5735    # used when reading "12 oz" off a product label

_VOLUME_RE = re.compile(r"([0-9]+(?:[.,][0-9]+)?)\s*(fl\s*oz|floz|ml|cl|oz|l)\b")

_UNIT_FACTORS = {
    "ml": 1.0,
    "cl": 10.0,
    "l": 1000.0,
    "oz": _ML_PER_OZ_LABEL,
    "floz": _ML_PER_OZ_LABEL,
}


def ml_to_oz(ml: float) -> float:
    return ml * _OZ_PER_ML


def oz_to_ml(oz: float) -> float:
    return oz / _OZ_PER_ML


def parse_volume(text: str) -> int | None:
    """Read a volume such as "330 ml", "1.5l", "33 cl" or "12 fl oz".

    A bare number is taken as millilitres. Returns None when nothing
    usable is found.
    """
    clean = text.strip().lower()
    if not clean:
        return None

    match = _VOLUME_RE.search(clean)
    if match:
        number = float(match.group(1).replace(",", "."))
        unit = re.sub(r"\s+", "", match.group(2))
        return int(number * _UNIT_FACTORS[unit])

    try:
        return int(float(clean))
    except ValueError:
        return None


def format_volume(ml: float, use_ounces: bool = False) -> str:
    if use_ounces:
        return f"{ml_to_oz(ml):.0f} oz"
    return f"{ml:.0f} ml"
