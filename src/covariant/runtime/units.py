"""
Unit conversion for length and angle literals.

All lengths are stored in millimeters and all angles in radians.
"""

import math

from ..syntax.ast import AngleUnit, LengthUnit


MM_PER_UNIT = {
    LengthUnit.MM: 1.0,
    LengthUnit.CM: 10.0,
    LengthUnit.M: 1000.0,
    LengthUnit.IN: 25.4,
}

RAD_PER_UNIT = {
    AngleUnit.DEG: math.pi / 180.0,
    AngleUnit.RAD: 1.0,
}


def length_to_mm(value: float, unit: LengthUnit) -> float:
    """Convert a length in ``unit`` to millimeters."""
    return value * MM_PER_UNIT[unit]


def angle_to_rad(value: float, unit: AngleUnit) -> float:
    """Convert an angle in ``unit`` to radians."""
    return value * RAD_PER_UNIT[unit]
