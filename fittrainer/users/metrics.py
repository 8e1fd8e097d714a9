"""Profile-derived numbers shown on client and coach views."""

from datetime import date


def calculate_age(date_of_birth: date | None, as_of: date) -> int | None:
    """Age in whole years on `as_of`; the birthday itself counts."""
    if date_of_birth is None:
        return None
    age = as_of.year - date_of_birth.year
    if (as_of.month, as_of.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def calculate_bmi(height_cm: float | None, weight_kg: float | None) -> float | None:
    """Body-mass index to one decimal, or None when height or weight is missing."""
    if not height_cm or not weight_kg:
        return None
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 1)
