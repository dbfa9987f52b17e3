"""
Pricing from the staff rate card
"""
import pytest
from pydantic import ValidationError

from core.exceptions import MissingPricingBasisException, ValidationException
from core.validators import validate_staff_pricing
from rsvp_pricing import StaffPricing, calculate_cost, require_staff_pricing


class TestCalculateCost:
    def test_proportional_to_duration(self, staff):
        assert calculate_cost(staff, 60) == 1200
        assert calculate_cost(staff, 90) == 1800

    def test_not_rounded(self):
        pricing = StaffPricing(default_cost=1000, default_duration=60)
        assert calculate_cost(pricing, 50) == pytest.approx(833.3333, rel=1e-4)

    def test_zero_default_duration_means_free(self):
        pricing = StaffPricing(default_cost=1000, default_duration=0)
        assert pricing.rate_per_minute == 0
        assert calculate_cost(pricing, 60) == 0

    def test_zero_duration(self, staff):
        assert calculate_cost(staff, 0) == 0

    def test_negative_rate_card_rejected(self):
        with pytest.raises(ValidationError):
            StaffPricing(default_cost=-1, default_duration=60)


class TestPricingPrecondition:
    def test_missing_staff(self):
        with pytest.raises(MissingPricingBasisException) as exc_info:
            require_staff_pricing(None)
        assert exc_info.value.status_code == 400
        assert exc_info.value.error_code == "MISSING_PRICING_BASIS"
        assert "service staff" in exc_info.value.detail

    def test_present_staff_is_returned(self, staff):
        assert require_staff_pricing(staff) is staff

    def test_validator_rejects_incomplete_rate_card(self):
        with pytest.raises(ValidationException, match="Staff default duration is required"):
            validate_staff_pricing({"default_cost": 100})
