"""
Output Builder

Constructs the JSON-safe API response from calculation results.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from .calculators.class_payment import quantize_money
from .models import (
    BonusCalculation,
    ClassCalculationResult,
    InstructorRunResult,
    PaymentCalculationData,
    PenaltyCalculation,
    PeriodRunSummary,
    Settlement,
)


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places."""
    return float(quantize_money(value))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class OutputBuilder:
    """Builds the final output response."""

    def build(self, data: PaymentCalculationData) -> dict:
        """Construct the complete payment response from a calculation."""
        return {
            "instructor_id": data.instructor_id,
            "period_id": data.period_id,
            "base_amount": to_money(data.base_amount),
            "bonuses": self._build_bonuses(data.bonuses),
            "penalties": self._build_penalties(data.penalties),
            "retention": to_money(data.retention),
            "final_payment": to_money(data.final_payment),
            "categories": {k: v.value for k, v in data.categories.items()},
            "category_evaluations": {
                k: self._build_evaluations(v) for k, v in data.category_evaluations.items()
            },
            "skipped_disciplines": list(data.skipped_disciplines),
            "class_calculations": [self._build_class(c) for c in data.class_calculations],
            "logs": list(data.logs),
        }

    def build_period(self, summary: PeriodRunSummary) -> dict:
        """Construct the batch summary for a period run."""
        return {
            "period_id": summary.period_id,
            "message": (
                f"Calculation completed: {summary.count('success')} successful, "
                f"{summary.count('error')} errors, {summary.count('skipped')} skipped"
            ),
            "summary": {
                "total": len(summary.results),
                "success": summary.count("success"),
                "errors": summary.count("error"),
                "skipped": summary.count("skipped"),
            },
            "instructor_logs": [self._build_run_result(r) for r in summary.results],
        }

    def _build_run_result(self, result: InstructorRunResult) -> dict:
        output = {
            "instructor_id": result.instructor_id,
            "instructor_name": result.instructor_name,
            "status": result.status,
            "message": result.message,
            "logs": list(result.logs),
        }
        if result.data is not None:
            output["details"] = self.build(result.data)
        if result.settlement is not None:
            output["settlement"] = self._build_settlement(result.settlement)
        if result.error:
            output["error"] = result.error
        return output

    def _build_class(self, result: ClassCalculationResult) -> dict:
        return {
            "class_id": result.class_id,
            "calculated_amount": to_money(result.calculated_amount),
            "discipline_id": result.discipline_id,
            "discipline_name": result.discipline_name,
            "class_date": _iso(result.class_date),
            "calculation_detail": result.calculation_detail,
            "category": result.category.value,
            "is_versus": result.is_versus,
            "versus_number": result.versus_number,
            "is_full_house": result.is_full_house,
            "studio": result.studio,
            "hour": result.hour,
            "spots": result.spots,
            "total_reservations": result.total_reservations,
            "occupancy": result.occupancy,
            "tariff": to_money(result.tariff),
            "tariff_type": result.tariff_type,
        }

    def _build_bonuses(self, bonuses: BonusCalculation) -> dict:
        return {
            "cover": to_money(bonuses.cover),
            "branding": to_money(bonuses.branding),
            "theme_ride": to_money(bonuses.theme_ride),
            "workshop": to_money(bonuses.workshop),
            "versus": to_money(bonuses.versus),
            "total": to_money(bonuses.total),
        }

    def _build_penalties(self, penalties: PenaltyCalculation) -> dict:
        return {
            "total_points": penalties.total_points,
            "max_allowed_points": penalties.max_allowed_points,
            "excess_points": penalties.excess_points,
            "discount_percentage": penalties.discount_percentage,
            "details": [
                {
                    "type": d.type,
                    "points": d.points,
                    "description": d.description,
                    "applied_at": _iso(d.applied_at),
                    "discipline_id": d.discipline_id,
                    "discipline_name": d.discipline_name,
                }
                for d in penalties.details
            ],
        }

    def _build_settlement(self, settlement: Settlement) -> dict:
        return {
            "base_amount": to_money(settlement.base_amount),
            "bonuses_total": to_money(settlement.bonuses_total),
            "penalty_amount": to_money(settlement.penalty_amount),
            "adjustment_amount": to_money(settlement.adjustment_amount),
            "subtotal": to_money(settlement.subtotal),
            "retention": to_money(settlement.retention),
            "payable": to_money(settlement.payable),
        }

    def _build_evaluations(self, evaluations: list) -> list:
        return [
            {
                "category": e.category.value,
                "category_key": e.category_key,
                "category_label": e.category_label,
                "all_meets": e.all_meets,
                "criteria": [
                    {
                        "key": c.key,
                        "label": c.label,
                        "current": str(c.current),
                        "required": str(c.required),
                        "meets": c.meets,
                    }
                    for c in e.criteria
                ],
            }
            for e in evaluations
        ]
