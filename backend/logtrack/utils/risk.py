import math

from logtrack.schemas import Severity

# Rule-based findings are never certain
CONFIDENCE_CEILING = 95

def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (Python's round() is banker's rounding)"""
    return int(math.floor(value + 0.5))

def cap_confidence(score: float, ceiling: int = CONFIDENCE_CEILING) -> int:
    """
    Convert a raw rule score into a confidence percentage.
    Result is rounded and clamped to [0, ceiling].
    """
    return max(0, min(ceiling, round_half_up(score)))

def severity_for(is_critical: bool) -> Severity:
    return Severity.CRITICAL if is_critical else Severity.WARNING
