"""
Metrics Calculator

Computes the per-discipline performance metrics a category is resolved from.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from zoneinfo import ZoneInfo

from ..config import NonPrimeHourPolicy
from ..models import ClassRecord, Discipline, DisciplineMetrics, InstructorExtraInfo

DOUBLE_SHIFT_WINDOW = timedelta(hours=1)


def round_percentage(numerator, denominator) -> int:
    """100 × numerator / denominator, rounded half-up. Zero when denominator is 0."""
    if not denominator:
        return 0
    value = Decimal(numerator) * Decimal("100") / Decimal(denominator)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_local(moment: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Naive wall-clock time in `tz`. Naive inputs are already local."""
    if moment.tzinfo is None:
        return moment
    if tz is not None:
        moment = moment.astimezone(tz)
    return moment.replace(tzinfo=None)


class MetricsCalculator:
    """Calculates DisciplineMetrics from an instructor's classes."""

    def __init__(self, policy: NonPrimeHourPolicy | None = None, tz: ZoneInfo | None = None):
        self.policy = policy or NonPrimeHourPolicy()
        self.tz = tz

    def calculate(
        self,
        classes: list[ClassRecord],
        discipline: Discipline | None,
        extra_info: InstructorExtraInfo,
    ) -> DisciplineMetrics:
        total_reservations = sum(c.total_reservations for c in classes)
        total_spots = sum(c.spots for c in classes)

        return DisciplineMetrics(
            total_classes=len(classes),
            average_occupancy=round_percentage(total_reservations, total_spots),
            total_locations=len({c.studio for c in classes if c.studio}),
            total_double_shifts=self.count_double_shifts(classes),
            non_prime_hours=self.count_non_prime_hours(classes, discipline),
            event_participation=extra_info.event_participation,
            meets_guidelines=extra_info.meets_guidelines,
        )

    def local_time(self, moment: datetime) -> datetime:
        """Naive wall-clock time in the studio timezone."""
        return to_local(moment, self.tz)

    def count_double_shifts(self, classes: list[ClassRecord]) -> int:
        """
        Count adjacent classes on the same local date starting at most one hour apart.

        Classes without a parseable date are left out of the grouping.
        """
        if len(classes) <= 1:
            return 0

        by_date: dict = defaultdict(list)
        for clase in classes:
            if clase.date is None:
                continue
            moment = self.local_time(clase.date)
            by_date[moment.date()].append(moment)

        total = 0
        for moments in by_date.values():
            moments.sort()
            for current, following in zip(moments, moments[1:]):
                gap = following - current
                if timedelta(0) <= gap <= DOUBLE_SHIFT_WINDOW:
                    total += 1
        return total

    def count_non_prime_hours(self, classes: list[ClassRecord], discipline: Discipline | None) -> int:
        if not self.policy.applies_to(discipline):
            return 0

        count = 0
        for clase in classes:
            if clase.date is None:
                continue
            hour = self.local_time(clase.date).strftime("%H:%M")
            if self.policy.is_non_prime(clase.studio, hour):
                count += 1
        return count
