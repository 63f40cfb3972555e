"""
Payment Processor - Main Orchestrator

Coordinates the instructor payment pipeline through discrete, testable steps.
"""

import logging
from decimal import Decimal
from typing import Any

from .calculators import (
    BonusAggregator,
    CategoryResolver,
    ClassPaymentCalculator,
    MetricsCalculator,
    PenaltyCalculator,
    SettlementCalculator,
    evaluate_all_categories,
)
from .calculators.class_payment import fmt_money
from .config import EngineConfig
from .datasource import InMemoryDataSource, PaymentDataSource, require_formula
from .errors import (
    InstructorNotFoundError,
    MissingFormulaError,
    NoClassesError,
    PaymentEngineError,
)
from .models import (
    AdjustmentType,
    Category,
    ClassRecord,
    Discipline,
    DisciplineMetrics,
    InstructorGraph,
    InstructorRunResult,
    PaymentCalculationData,
    PeriodRunSummary,
)
from .output import OutputBuilder
from .validators import FormulaValidator

logger = logging.getLogger(__name__)


class PaymentProcessor:
    """
    Main orchestrator for instructor payments.

    Implements a clear pipeline pattern:
    1. Load Instructor Graph
    2. Group Classes by Discipline
    3. Resolve Category per Discipline
    4. Price Each Class
    5. Calculate Bonuses
    6. Calculate Penalties
    7. Apply Retention
    8. Build Result
    """

    def __init__(self, datasource: PaymentDataSource, config: EngineConfig | None = None):
        self.datasource = datasource
        self.config = config or EngineConfig()
        self.validator = FormulaValidator()
        self.metrics_calculator = MetricsCalculator(
            policy=self.config.non_prime_policy, tz=self.config.tzinfo
        )
        self.category_resolver = CategoryResolver(datasource, self.metrics_calculator)
        self.class_calculator = ClassPaymentCalculator(tz=self.config.tzinfo)
        self.bonus_aggregator = BonusAggregator()
        self.penalty_calculator = PenaltyCalculator()
        self.settlement_calculator = SettlementCalculator(self.config.retention_rate)

    def calculate_instructor_payment(
        self,
        instructor_id: str,
        period_id: str,
        tenant_id: str,
        logs: list[str] | None = None,
    ) -> PaymentCalculationData:
        """
        Calculate the payment of one instructor for one period.

        Raises:
            InstructorNotFoundError: instructor absent for the tenant
            NoClassesError: no classes in the period
            MissingTariffError: a resolved category has no tariff table
        """
        logs = logs if logs is not None else []

        # Step 1: Load instructor graph
        graph = self.datasource.fetch_instructor_graph(instructor_id, period_id, tenant_id)
        if graph is None:
            raise InstructorNotFoundError(instructor_id, tenant_id)

        logs.append(f"Instructor classes: {len(graph.classes)}")
        logs.append(f"Instructor penalties: {len(graph.penalties)}")

        if not graph.classes:
            raise NoClassesError(instructor_id, period_id)

        data = PaymentCalculationData(
            instructor_id=instructor_id, period_id=period_id, logs=logs
        )

        # Steps 2-4: Price classes discipline by discipline
        for discipline_id, classes in self._group_by_discipline(graph.classes).items():
            self._price_discipline(graph, discipline_id, classes, period_id, tenant_id, data)

        logs.append(f"Total amount from classes: {fmt_money(data.base_amount)}")

        # Step 5: Bonuses
        data.bonuses = self.bonus_aggregator.calculate(graph.bonuses, logs)

        # Step 6: Penalties (informational, not subtracted here)
        data.penalties = self.penalty_calculator.calculate(
            [p for p in graph.penalties if p.active],
            len(graph.classes),
            graph.disciplines,
            logs,
        )

        # Step 7: Retention on base amount only
        data.retention = data.base_amount * self.config.retention_rate
        logs.append(
            f"Retention ({self.config.retention_rate * 100:.0f}%): {fmt_money(data.retention)}"
        )

        # Step 8: Final payment
        data.final_payment = data.base_amount + data.bonuses.total - data.retention
        logs.append(f"Final payment: {fmt_money(data.final_payment)}")

        logger.info(
            "Calculated payment for instructor %s, period %s: %s",
            instructor_id, period_id, data.final_payment,
        )
        return data

    def calculate_period(
        self,
        period_id: str,
        tenant_id: str,
        adjustments: dict[str, dict[str, Any]] | None = None,
    ) -> PeriodRunSummary:
        """
        Calculate every active instructor of a tenant for a period.

        Each instructor is independent: errors (including a malformed
        adjustment) become an 'error' entry and instructors without classes
        become 'skipped'; the batch continues. Every entry keeps its own
        calculation trail.
        """
        adjustments = adjustments or {}
        summary = PeriodRunSummary(period_id=period_id, tenant_id=tenant_id)

        for instructor in self.datasource.list_active_instructors(tenant_id):
            entry = InstructorRunResult(
                instructor_id=instructor.id,
                instructor_name=instructor.name,
                status="success",
            )
            try:
                entry.data = self.calculate_instructor_payment(
                    instructor.id, period_id, tenant_id, entry.logs
                )
                amount, adjustment_type = parse_adjustment(adjustments.get(instructor.id))
                entry.settlement = self.settlement_calculator.calculate(
                    entry.data, amount, adjustment_type
                )
                entry.message = f"Payment calculated: {fmt_money(entry.settlement.payable)}"
            except NoClassesError as e:
                entry.status = "skipped"
                entry.message = "No classes in this period"
                logger.info(str(e))
            except (PaymentEngineError, ArithmeticError, ValueError) as e:
                entry.status = "error"
                entry.message = "Error calculating payment"
                entry.error = str(e)
                entry.logs.append(f"Error: {e}")
                logger.error("Payment calculation failed for %s: %s", instructor.id, e)

            summary.results.append(entry)

        logger.info(
            "Period %s done: %d success, %d errors, %d skipped",
            period_id, summary.count("success"), summary.count("error"), summary.count("skipped"),
        )
        return summary

    def _price_discipline(
        self,
        graph: InstructorGraph,
        discipline_id: str,
        classes: list[ClassRecord],
        period_id: str,
        tenant_id: str,
        data: PaymentCalculationData,
    ) -> None:
        logs = data.logs
        discipline = self._discipline(graph, discipline_id)

        try:
            formula = require_formula(self.datasource, discipline_id, period_id, tenant_id)
        except MissingFormulaError as e:
            logger.warning("%s, skipping %d classes", e, len(classes))
            logs.append(f"No formula found for discipline {discipline.name}, skipping...")
            data.skipped_disciplines.append(discipline_id)
            return

        self.validator.validate(formula)

        category, metrics = self._category_for(graph, discipline, period_id, tenant_id, logs)
        data.categories[discipline_id] = category
        if metrics is not None:
            data.category_evaluations[discipline_id] = evaluate_all_categories(
                formula.category_requirements, metrics
            )

        for clase in classes:
            result = self.class_calculator.calculate(clase, category, formula, discipline, logs)
            data.base_amount += result.calculated_amount
            data.class_calculations.append(result)
            logs.append(f"Running total: {fmt_money(data.base_amount)}")

    def _category_for(
        self,
        graph: InstructorGraph,
        discipline: Discipline,
        period_id: str,
        tenant_id: str,
        logs: list[str],
    ) -> tuple[Category, DisciplineMetrics | None]:
        """Manual category wins verbatim; anything else is recomputed."""
        for existing in graph.categories:
            if existing.discipline_id == discipline.id and existing.is_manual:
                logs.append(f"Using manual category for {discipline.name}: {existing.category.value}")
                return existing.category, None

        category, metrics = self.category_resolver.resolve_with_metrics(
            graph.instructor.id, discipline.id, period_id, tenant_id, logs
        )
        logs.append(f"Category calculated for {discipline.name}: {category.value}")
        return category, metrics

    def _discipline(self, graph: InstructorGraph, discipline_id: str) -> Discipline:
        discipline = graph.disciplines.get(discipline_id) or self.datasource.fetch_discipline(discipline_id)
        return discipline or Discipline(id=discipline_id, name=discipline_id)

    @staticmethod
    def _group_by_discipline(classes: list[ClassRecord]) -> dict[str, list[ClassRecord]]:
        groups: dict[str, list[ClassRecord]] = {}
        for clase in classes:
            groups.setdefault(clase.discipline_id, []).append(clase)
        return groups


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def parse_adjustment(raw: dict[str, Any] | None) -> tuple[Decimal, AdjustmentType]:
    """
    Read an instructor's manual adjustment: {"adjustment": n, "adjustmentType": "FIXED"|"PERCENTAGE"}.

    Raises ValueError (or decimal.InvalidOperation) for malformed values.
    """
    if raw is None:
        return Decimal("0"), AdjustmentType.FIXED
    if not isinstance(raw, dict):
        raise ValueError(f"Adjustment must be an object, got: {raw!r}")
    amount = Decimal(str(raw.get("adjustment", 0)))
    adjustment_type = AdjustmentType(raw.get("adjustmentType", AdjustmentType.FIXED.value))
    return amount, adjustment_type


def calculate_payment_from_dict(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Calculate one instructor's payment from a JSON-style payload:
        {"instructor_id", "period_id", "tenant_id", "data": {...}}

    Engine errors carry the calculation trail up to the failure in `e.logs`.
    """
    tenant_id = payload["tenant_id"]
    datasource = InMemoryDataSource.from_dict(payload.get("data") or {}, tenant_id=tenant_id)
    processor = PaymentProcessor(datasource, EngineConfig.from_env())
    logs: list[str] = []
    try:
        result = processor.calculate_instructor_payment(
            payload["instructor_id"], payload["period_id"], tenant_id, logs
        )
    except PaymentEngineError as e:
        e.logs = list(logs)
        raise
    return OutputBuilder().build(result)


def calculate_period_from_dict(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Calculate a whole period from a JSON-style payload:
        {"period_id", "tenant_id", "data": {...}, "adjustments": {...}}
    """
    tenant_id = payload["tenant_id"]
    datasource = InMemoryDataSource.from_dict(payload.get("data") or {}, tenant_id=tenant_id)
    processor = PaymentProcessor(datasource, EngineConfig.from_env())
    summary = processor.calculate_period(payload["period_id"], tenant_id, payload.get("adjustments"))
    return OutputBuilder().build_period(summary)
