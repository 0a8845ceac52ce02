"""General helpers and exception types shared across thermosmart."""

import logging

logger = logging.getLogger(__name__)


class InputDataError(ValueError):
    """
    Raised when a molecular system cannot be evaluated: no atoms loaded,
    frequency data missing, or inconsistent array lengths.
    """


class ResourceExhaustedError(RuntimeError):
    """
    Raised when the memory monitor refuses an allocation for a unit of
    work.
    """


def is_float(string):
    """Return True if `string` parses as a float."""
    try:
        float(string)
        return True
    except (TypeError, ValueError):
        return False


def parse_concentration(concentration):
    """
    Interpret a concentration setting in mol/L.

    Returns None when no concentration is requested ("0", 0, None or
    empty) and when the value cannot be used; unusable values are
    reported with a warning and the concentration term is dropped.
    """
    if concentration is None:
        return None
    text = str(concentration).strip()
    if text in ("", "0"):
        return None
    if not is_float(text):
        logger.warning(
            f"Concentration '{concentration}' is not a number; "
            "falling back to the pressure-based standard state."
        )
        return None
    value = float(text)
    if value <= 0.0:
        if value < 0.0:
            logger.warning(
                f"Concentration {value} mol/L is negative; "
                "falling back to the pressure-based standard state."
            )
        return None
    return value


def frange_count(low, high, step):
    """
    Number of points in the inclusive range low..high with `step`.

    A tolerance of 1e-9 steps absorbs binary round-off so that, for
    example, 298.15..398.15 with step 10 yields 11 points.
    """
    if step <= 0:
        raise ValueError(f"Scan step must be positive, got {step}.")
    if high < low:
        raise ValueError(
            f"Scan upper bound {high} is below lower bound {low}."
        )
    return int((high - low) / step + 1e-9) + 1
