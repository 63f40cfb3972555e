"""
Class Payment Calculator

Prices a single class from its category's tariff table.
All use Decimal for precision; rounding happens only when displayed.
"""

from decimal import ROUND_HALF_UP, Decimal
from zoneinfo import ZoneInfo

from ..config import CURRENCY_SYMBOL
from ..errors import MissingTariffError
from ..models import (
    Category,
    ClassCalculationResult,
    ClassRecord,
    Discipline,
    Formula,
    PaymentParameters,
)
from .metrics import round_percentage, to_local

FULL_HOUSE_MARKER = "full house"


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places using ROUND_HALF_UP."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def fmt_money(value: Decimal) -> str:
    """Format an amount as currency for the calculation trail."""
    return f"{CURRENCY_SYMBOL}{quantize_money(value):,.2f}"


def is_full_house_by_cover(special_text: str | None) -> bool:
    """Case-insensitive substring match on "full house" (with the space)."""
    return bool(special_text) and FULL_HOUSE_MARKER in special_text.lower()


def versus_divisor(clase: ClassRecord) -> int | None:
    """Number of instructors sharing the class payment, or None when not split."""
    if clase.is_versus and clase.versus_number is not None and clase.versus_number > 1:
        return clase.versus_number
    return None


class ClassPaymentCalculator:
    """Calculates the amount paid for one class. Hours and days are shown in `tz`."""

    def __init__(self, tz: ZoneInfo | None = None):
        self.tz = tz

    def calculate(
        self,
        clase: ClassRecord,
        category: Category,
        formula: Formula,
        discipline: Discipline,
        logs: list[str],
    ) -> ClassCalculationResult:
        """
        Price a class. Order of operations:
        1. Full house by cover marker (reservations forced to capacity)
        2. Versus detection
        3. Tariff selection (full house rate, tier, or highest tier)
        4. tariff × reservations
        5. + fixed quota
        6. Raise to guaranteed minimum
        7. Lower to maximum cap
        8. Divide by versus number

        Raises MissingTariffError when the category has no payment parameters.
        """
        logs.append(f"Calculating payment for class {clase.id}...")

        reservations = clase.total_reservations
        capacity = clase.spots

        full_house_by_cover = is_full_house_by_cover(clase.special_text)
        if full_house_by_cover:
            reservations = capacity
            logs.append(f"FULL HOUSE by cover detected for class {clase.id}")

        divisor = versus_divisor(clase)
        if divisor is not None:
            logs.append(f"VERSUS class detected ({divisor} instructors)")

        params = formula.payment_parameters.get(category)
        if params is None:
            logs.append(f"Error calculating payment for class {clase.id}: no tariff for {category.value}")
            raise MissingTariffError(category.value)

        tariff, tariff_type = self.select_tariff(params, reservations, capacity)
        logs.append(f"Tariff selected: {fmt_money(tariff)} ({tariff_type})")

        amount = self.apply_limits(tariff * Decimal(reservations), params, logs)

        if divisor is not None:
            amount = amount / Decimal(divisor)
            logs.append(f"Versus split: amount divided by {divisor} = {fmt_money(amount)}")

        occupancy = round_percentage(reservations, capacity)
        detail = (
            f"{reservations} reservations × {fmt_money(tariff)} = {fmt_money(amount)} ({tariff_type})"
        )
        local_date = to_local(clase.date, self.tz) if clase.date else None
        class_day = local_date.date().isoformat() if local_date else "unknown date"
        logs.append(f"CLASS PAYMENT [{clase.id}]: {discipline.name} - {class_day}")
        logs.append(f"   Amount: {quantize_money(amount)} | Category: {category.value}")
        logs.append(f"   Reservations: {reservations}/{capacity} ({occupancy}% occupancy)")
        logs.append(f"   Detail: {detail}")

        return ClassCalculationResult(
            class_id=clase.id,
            calculated_amount=amount,
            discipline_id=clase.discipline_id,
            discipline_name=discipline.name,
            class_date=clase.date,
            calculation_detail=detail,
            category=category,
            is_versus=clase.is_versus,
            versus_number=clase.versus_number,
            is_full_house=full_house_by_cover,
            studio=clase.studio,
            hour=local_date.strftime("%H:%M") if local_date else "",
            spots=capacity,
            total_reservations=reservations,
            occupancy=occupancy,
            tariff=tariff,
            tariff_type=tariff_type,
        )

    def select_tariff(
        self, params: PaymentParameters, reservations: int, capacity: int
    ) -> tuple[Decimal, str]:
        """
        Pick the rate per reservation.

        Full house uses the full house rate. Otherwise the first tier (ascending)
        whose threshold is >= reservations wins; past every threshold the
        highest tier applies. No tiers means a zero tariff.
        """
        if capacity > 0 and reservations >= capacity:
            return params.full_house_rate or Decimal("0"), "Full House"

        tiers = params.sorted_tiers
        for tier in tiers:
            if reservations <= tier.reservation_threshold:
                return tier.rate, f"Up to {tier.reservation_threshold} reservations"

        if tiers:
            return tiers[-1].rate, "Tarifa máxima"

        return Decimal("0"), "No tariff"

    def apply_limits(self, amount: Decimal, params: PaymentParameters, logs: list[str]) -> Decimal:
        """Add the fixed quota, then clamp to the guaranteed minimum and the maximum (in that order)."""
        if params.fixed_quota is not None and params.fixed_quota > 0:
            amount += params.fixed_quota
            logs.append(f"Fixed quota added: {fmt_money(params.fixed_quota)}")

        if params.guaranteed_minimum and params.guaranteed_minimum > amount:
            amount = params.guaranteed_minimum
            logs.append(f"Guaranteed minimum applied: {fmt_money(amount)}")

        if params.maximum and params.maximum < amount:
            amount = params.maximum
            logs.append(f"Maximum cap applied: {fmt_money(amount)}")

        return amount
