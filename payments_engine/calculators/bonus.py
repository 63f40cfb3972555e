"""
Bonus Aggregator

Sums covers, brandings, theme rides and workshops into an instructor's
bonus total for a period.
"""

from decimal import Decimal

from ..config import BRANDING_BONUS_RATE, COVER_BONUS_RATE, THEME_RIDE_BONUS_RATE
from ..models import BonusCalculation, BonusCollections
from .class_payment import fmt_money

APPROVED = "APPROVED"


class BonusAggregator:
    """Calculates additional bonuses. Empty collections give an all-zero result."""

    def calculate(self, collections: BonusCollections, logs: list[str] | None = None) -> BonusCalculation:
        """
        cover      = approved covers with bonus payment × 80
        branding   = sum(branding.number) × 5
        theme ride = sum(theme_ride.number) × 30
        workshop   = sum(workshop.payment)
        versus     = 0 (versus is settled per class)
        """
        logs = logs if logs is not None else []

        bonused_covers = [
            c for c in collections.covers if c.bonus_payment and c.justification == APPROVED
        ]
        cover = len(bonused_covers) * COVER_BONUS_RATE
        logs.append(
            f"Covers with bonus: {len(bonused_covers)} x {fmt_money(COVER_BONUS_RATE)} = {fmt_money(cover)}"
        )

        branding_count = sum(b.number for b in collections.brandings)
        branding = branding_count * BRANDING_BONUS_RATE
        logs.append(
            f"Brandings: {branding_count} x {fmt_money(BRANDING_BONUS_RATE)} = {fmt_money(branding)}"
        )

        theme_ride_count = sum(t.number for t in collections.theme_rides)
        theme_ride = theme_ride_count * THEME_RIDE_BONUS_RATE
        logs.append(
            f"Theme rides: {theme_ride_count} x {fmt_money(THEME_RIDE_BONUS_RATE)} = {fmt_money(theme_ride)}"
        )

        workshop = sum((w.payment for w in collections.workshops), Decimal("0"))
        logs.append(f"Workshops: {fmt_money(workshop)}")

        versus = Decimal("0")

        return BonusCalculation(
            cover=cover,
            branding=branding,
            theme_ride=theme_ride,
            workshop=workshop,
            versus=versus,
            total=cover + branding + theme_ride + workshop + versus,
        )
