"""
StoreCore RSVP Import - Pricing Calculator

cost = (staff.default_cost / staff.default_duration) * reservation duration
Rounding to the currency's display precision is left to the caller.
"""

from typing import Optional

from pydantic import BaseModel, Field

from core.validators import validate_staff_pricing


class StaffPricing(BaseModel):
    """A service staff member's default rate card"""
    name: str = Field(default="", max_length=200)
    default_cost: float = Field(..., ge=0)
    default_duration: int = Field(..., ge=0)  # minutes

    @property
    def rate_per_minute(self) -> float:
        if self.default_duration <= 0:
            return 0.0
        return self.default_cost / self.default_duration


def calculate_cost(pricing: StaffPricing, duration_minutes: int) -> float:
    """Unrounded cost of a reservation of the given length"""
    rate = pricing.rate_per_minute
    if rate <= 0 or duration_minutes <= 0:
        return 0.0
    return rate * duration_minutes


def require_staff_pricing(staff: Optional[StaffPricing]) -> StaffPricing:
    """
    Precondition of every import: a staff record to price against.
    Raises MissingPricingBasisException when absent.
    """
    validate_staff_pricing(staff.model_dump() if staff is not None else None)
    return staff
