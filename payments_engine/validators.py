"""
Formula Validation for the Instructor Payment Engine

Formulas are stored as loosely typed JSON. They are validated when read,
before any calculation runs, so a malformed formula fails with a clear
message instead of deep inside a calculator.
"""

from decimal import Decimal

from .errors import FormulaValidationError
from .models import CategoryRequirements, Formula, PaymentParameters


class FormulaValidator:
    """Validates a formula according to business rules."""

    def validate(self, formula: Formula) -> None:
        """
        Run all validations. Raises FormulaValidationError if any check fails.
        """
        for category, requirements in formula.category_requirements.items():
            self._validate_requirements(category.value, requirements)

        for category, parameters in formula.payment_parameters.items():
            self._validate_parameters(category.value, parameters)

    def _validate_requirements(self, category: str, requirements: CategoryRequirements) -> None:
        checks = {
            "ocupacion": requirements.occupancy,
            "clases": requirements.classes,
            "localesEnLima": requirements.locations,
            "dobleteos": requirements.double_shifts,
            "horariosNoPrime": requirements.non_prime_hours,
        }
        for name, value in checks.items():
            if value < 0:
                raise FormulaValidationError(
                    f"{category}: requirement {name} cannot be negative, got: {value}"
                )

        if requirements.occupancy > 100:
            raise FormulaValidationError(
                f"{category}: requirement ocupacion must be between 0 and 100, got: {requirements.occupancy}"
            )

    def _validate_parameters(self, category: str, parameters: PaymentParameters) -> None:
        amounts = {
            "cuotaFija": parameters.fixed_quota,
            "minimoGarantizado": parameters.guaranteed_minimum,
            "tarifaFullHouse": parameters.full_house_rate,
            "maximo": parameters.maximum,
        }
        for name, value in amounts.items():
            if value is not None and value < 0:
                raise FormulaValidationError(f"{category}: {name} cannot be negative, got: {value}")

        for i, tier in enumerate(parameters.tiers):
            if tier.reservation_threshold < 0:
                raise FormulaValidationError(
                    f"{category}: tier {i} numeroReservas cannot be negative, "
                    f"got: {tier.reservation_threshold}"
                )
            if tier.rate < Decimal("0"):
                raise FormulaValidationError(
                    f"{category}: tier {i} tarifa cannot be negative, got: {tier.rate}"
                )
