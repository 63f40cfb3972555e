"""
Settlement Calculator

Turns a payment calculation into the payable amount once the penalty
discount and any manual adjustment are applied.
"""

from decimal import Decimal

from ..config import RETENTION_RATE
from ..models import AdjustmentType, PaymentCalculationData, Settlement


class SettlementCalculator:
    """Calculates the payable amount for an instructor."""

    def __init__(self, retention_rate: Decimal = RETENTION_RATE):
        self.retention_rate = retention_rate

    def calculate(
        self,
        data: PaymentCalculationData,
        adjustment: Decimal = Decimal("0"),
        adjustment_type: AdjustmentType = AdjustmentType.FIXED,
    ) -> Settlement:
        """
        Payable = Subtotal - Retention

        Subtotal = Base Amount
                 + Bonuses
                 - Penalty Discount (base × discount%)
                 + Adjustment (fixed amount, or % of base)
        Retention = Subtotal × 8%
        """
        base = data.base_amount
        penalty_amount = base * Decimal(data.penalties.discount_percentage) / Decimal("100")

        if AdjustmentType(adjustment_type) == AdjustmentType.PERCENTAGE:
            adjustment_amount = base * adjustment / Decimal("100")
        else:
            adjustment_amount = adjustment

        subtotal = base + data.bonuses.total - penalty_amount + adjustment_amount
        retention = subtotal * self.retention_rate

        return Settlement(
            base_amount=base,
            bonuses_total=data.bonuses.total,
            penalty_amount=penalty_amount,
            adjustment_amount=adjustment_amount,
            subtotal=subtotal,
            retention=retention,
            payable=subtotal - retention,
        )
