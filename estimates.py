"""
Construction cost estimation.

unit = area * base rate (by project type) * quality multiplier, split into
four weighted categories. Unknown project types and quality levels fall back
to ``DEFAULT_BASE_RATE`` and ``DEFAULT_MULTIPLIER``.
"""

import math
from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any, Dict, Optional

from errors import InvalidInput

DEFAULT_BASE_RATE = 1500.0
DEFAULT_MULTIPLIER = 1.0

BASE_RATES = MappingProxyType({
    "3BHK": 1500.0,
    "2BHK": 1400.0,
    "1BHK": 1300.0,
    "Villa": 2000.0,
    "Commercial": 2500.0,
})

QUALITY_MULTIPLIERS = MappingProxyType({
    "Low": 0.8,
    "Medium": 1.0,
    "High": 1.5,
    "Luxury": 2.0,
})

# weights sum to 1.0
COST_WEIGHTS = MappingProxyType({
    "material": 0.40,
    "labor": 0.35,
    "design": 0.15,
    "permit": 0.10,
})


@dataclass(frozen=True)
class CostBreakdown:
    material_cost: float
    labor_cost: float
    design_cost: float
    permit_cost: float
    total_cost: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def rounded(self) -> Dict[str, int]:
        # halves round up, not to even
        return {k: math.floor(v + 0.5) for k, v in asdict(self).items()}


def base_rate_for(project_type: Optional[str]) -> float:
    return BASE_RATES.get(project_type, DEFAULT_BASE_RATE)


def multiplier_for(quality_level: Optional[str]) -> float:
    return QUALITY_MULTIPLIERS.get(quality_level, DEFAULT_MULTIPLIER)


def parse_area(value: Any) -> float:
    if value is None or isinstance(value, bool):
        raise InvalidInput("area is required")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidInput("area is required")
    try:
        area = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"area must be a number, got {value!r}")
    if not math.isfinite(area) or area <= 0:
        raise InvalidInput("area must be a positive number")
    return area


def estimate(project_type: Optional[str], area: Any, quality_level: Optional[str]) -> CostBreakdown:
    unit = parse_area(area) * base_rate_for(project_type) * multiplier_for(quality_level)
    material = unit * COST_WEIGHTS["material"]
    labor = unit * COST_WEIGHTS["labor"]
    design = unit * COST_WEIGHTS["design"]
    permit = unit * COST_WEIGHTS["permit"]
    total = material + labor + design + permit
    if not math.isfinite(total):
        raise InvalidInput("area is too large to estimate")
    return CostBreakdown(
        material_cost=material,
        labor_cost=labor,
        design_cost=design,
        permit_cost=permit,
        total_cost=total,
    )
