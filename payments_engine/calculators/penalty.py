"""
Penalty Calculator

Converts accumulated penalty points into a capped discount percentage.
"""

from ..config import MAX_PENALTY_DISCOUNT_PERCENT, PENALTY_ALLOWANCE_PERCENT
from ..models import Discipline, Penalty, PenaltyCalculation, PenaltyDetail

GENERAL = "General"


class PenaltyCalculator:
    """Calculates the penalty discount for a period."""

    def calculate(
        self,
        penalties: list[Penalty],
        total_classes: int,
        disciplines: dict[str, Discipline],
        logs: list[str] | None = None,
    ) -> PenaltyCalculation:
        """
        max_allowed = floor(total_classes × 10%)
        excess      = max(0, total_points - max_allowed)
        discount %  = min(excess, 10)

        Only active penalties count; callers may pass the full list.
        """
        logs = logs if logs is not None else []
        active = [p for p in penalties if p.active]
        if not active:
            return PenaltyCalculation()

        max_allowed = total_classes * PENALTY_ALLOWANCE_PERCENT // 100
        total_points = sum(p.points for p in active)
        excess = max(0, total_points - max_allowed)
        discount = min(excess, MAX_PENALTY_DISCOUNT_PERCENT)

        logs.append(
            f"Penalties: {total_points} total points, {max_allowed} allowed "
            f"({PENALTY_ALLOWANCE_PERCENT}% of {total_classes} classes), {excess} excess"
        )
        logs.append(f"Penalty discount: {discount}%")

        details = [
            PenaltyDetail(
                type=p.type,
                points=p.points,
                description=p.description,
                applied_at=p.applied_at,
                discipline_id=p.discipline_id,
                discipline_name=self._discipline_name(p.discipline_id, disciplines),
            )
            for p in active
        ]

        return PenaltyCalculation(
            total_points=total_points,
            max_allowed_points=max_allowed,
            excess_points=excess,
            discount_percentage=discount,
            details=details,
        )

    @staticmethod
    def _discipline_name(discipline_id: str | None, disciplines: dict[str, Discipline]) -> str:
        if discipline_id is None:
            return GENERAL
        discipline = disciplines.get(discipline_id)
        return discipline.name if discipline else discipline_id
