"""
Category Resolver

Resolves the authoritative category of an instructor for a discipline and
period, honoring manual assignments, and persists the result.
"""

import logging
from dataclasses import dataclass, field

from ..datasource import PaymentDataSource
from ..models import (
    CATEGORY_PRIORITY,
    Category,
    CategoryRequirements,
    DisciplineMetrics,
)
from ..validators import FormulaValidator
from .metrics import MetricsCalculator

logger = logging.getLogger(__name__)


@dataclass
class Criterion:
    key: str
    label: str
    current: object
    required: object
    meets: bool


@dataclass
class CategoryEvaluation:
    category: Category
    criteria: list[Criterion] = field(default_factory=list)
    all_meets: bool = False

    @property
    def category_key(self) -> str:
        return self.category.storage_key

    @property
    def category_label(self) -> str:
        return self.category.label


def evaluate_criteria(requirements: CategoryRequirements, metrics: DisciplineMetrics) -> list[Criterion]:
    """
    Compare metrics against one category's requirements.

    Classes are compared as the raw period total, the same rule the resolver
    uses when it persists a category.
    """
    return [
        Criterion(
            "ocupacion", "Ocupación",
            metrics.average_occupancy, requirements.occupancy,
            metrics.average_occupancy >= requirements.occupancy,
        ),
        Criterion(
            "clases", "Clases",
            metrics.total_classes, requirements.classes,
            metrics.total_classes >= requirements.classes,
        ),
        Criterion(
            "localesEnLima", "Locales en Lima",
            metrics.total_locations, requirements.locations,
            metrics.total_locations >= requirements.locations,
        ),
        Criterion(
            "dobleteos", "Dobleteos",
            metrics.total_double_shifts, requirements.double_shifts,
            metrics.total_double_shifts >= requirements.double_shifts,
        ),
        Criterion(
            "horariosNoPrime", "Horarios No Prime",
            metrics.non_prime_hours, requirements.non_prime_hours,
            metrics.non_prime_hours >= requirements.non_prime_hours,
        ),
        Criterion(
            "participacionEventos", "Participación en Eventos",
            metrics.event_participation, requirements.event_participation_required,
            not requirements.event_participation_required or metrics.event_participation,
        ),
        Criterion(
            "lineamientos", "Cumple Lineamientos",
            metrics.meets_guidelines, requirements.guidelines_required,
            not requirements.guidelines_required or metrics.meets_guidelines,
        ),
    ]


def meets_requirements(requirements: CategoryRequirements, metrics: DisciplineMetrics) -> bool:
    return all(c.meets for c in evaluate_criteria(requirements, metrics))


def evaluate_all_categories(
    requirements: dict[Category, CategoryRequirements],
    metrics: DisciplineMetrics,
) -> list[CategoryEvaluation]:
    """Criteria report for every category, lowest rank first."""
    evaluations = []
    for category in reversed(CATEGORY_PRIORITY):
        category_requirements = requirements.get(category)
        if category_requirements is None:
            evaluations.append(CategoryEvaluation(category=category))
            continue

        criteria = evaluate_criteria(category_requirements, metrics)
        evaluations.append(
            CategoryEvaluation(
                category=category,
                criteria=criteria,
                all_meets=all(c.meets for c in criteria),
            )
        )
    return evaluations


class CategoryResolver:
    """Resolves and persists an instructor's category for one discipline and period."""

    def __init__(
        self,
        datasource: PaymentDataSource,
        metrics_calculator: MetricsCalculator | None = None,
    ):
        self.datasource = datasource
        self.metrics_calculator = metrics_calculator or MetricsCalculator()
        self.validator = FormulaValidator()

    def resolve(
        self,
        instructor_id: str,
        discipline_id: str,
        period_id: str,
        tenant_id: str,
        logs: list[str],
    ) -> Category:
        """
        Resolve the category. Priority order:
        1. Manual assignment (returned verbatim, nothing recomputed)
        2. No formula -> INSTRUCTOR
        3. Highest category whose requirements are all met
        """
        category, _ = self.resolve_with_metrics(instructor_id, discipline_id, period_id, tenant_id, logs)
        return category

    def resolve_with_metrics(
        self,
        instructor_id: str,
        discipline_id: str,
        period_id: str,
        tenant_id: str,
        logs: list[str],
    ) -> tuple[Category, DisciplineMetrics | None]:
        """Same as resolve(); metrics are None when nothing was computed."""
        ds = self.datasource

        manual = ds.find_manual_category(instructor_id, discipline_id, period_id, tenant_id)
        if manual is not None:
            logs.append(f"Using existing manual category: {manual.category.value}")
            return manual.category, None

        formula = ds.fetch_formula(discipline_id, period_id, tenant_id)
        if formula is None:
            logger.warning(
                "No formula for discipline %s in period %s, defaulting %s to INSTRUCTOR",
                discipline_id, period_id, instructor_id,
            )
            logs.append("No formula found, using INSTRUCTOR by default")
            return Category.INSTRUCTOR, None

        self.validator.validate(formula)

        metrics = self.calculate_metrics(instructor_id, discipline_id, period_id, tenant_id)
        logs.append(f"Metrics calculated: {metrics.to_dict()}")

        category = self.determine_category(formula.category_requirements, metrics, logs)

        ds.upsert_category(instructor_id, discipline_id, period_id, tenant_id, category, metrics)
        logger.info(
            "Resolved category %s for instructor %s, discipline %s, period %s",
            category.value, instructor_id, discipline_id, period_id,
        )
        return category, metrics

    def calculate_metrics(
        self, instructor_id: str, discipline_id: str, period_id: str, tenant_id: str
    ) -> DisciplineMetrics:
        ds = self.datasource
        classes = ds.fetch_classes(instructor_id, discipline_id, period_id, tenant_id)
        return self.metrics_calculator.calculate(
            classes,
            ds.fetch_discipline(discipline_id),
            ds.fetch_instructor_extra_info(instructor_id),
        )

    def determine_category(
        self,
        requirements: dict[Category, CategoryRequirements],
        metrics: DisciplineMetrics,
        logs: list[str],
    ) -> Category:
        """First (highest) category whose requirements are all met, else INSTRUCTOR."""
        for category in CATEGORY_PRIORITY:
            category_requirements = requirements.get(category)
            if category_requirements is None:
                logs.append(f"No requirements found for {category.storage_key}")
                continue

            meets = meets_requirements(category_requirements, metrics)
            logs.append(
                f"Evaluating {category.value}: meets={meets} "
                f"(occupancy: {metrics.average_occupancy}% vs {category_requirements.occupancy}%, "
                f"classes: {metrics.total_classes} vs {category_requirements.classes}, "
                f"locations: {metrics.total_locations} vs {category_requirements.locations}, "
                f"double shifts: {metrics.total_double_shifts} vs {category_requirements.double_shifts}, "
                f"non-prime: {metrics.non_prime_hours} vs {category_requirements.non_prime_hours}, "
                f"events: {metrics.event_participation} vs {category_requirements.event_participation_required})"
            )
            if meets:
                logs.append(f"Category determined: {category.value}")
                return category

        logs.append(f"Category determined: {Category.INSTRUCTOR.value}")
        return Category.INSTRUCTOR
