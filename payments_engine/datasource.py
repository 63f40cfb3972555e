"""
Data Source Seam

The engine never talks to storage directly. It reads and writes through a
PaymentDataSource; InMemoryDataSource backs the HTTP entry points (which
receive the data in the request payload) and the tests.
"""

from dataclasses import replace
from typing import Protocol

from .errors import MissingFormulaError
from .models import (
    Branding,
    BonusCollections,
    Category,
    ClassRecord,
    Cover,
    Discipline,
    DisciplineMetrics,
    Formula,
    Instructor,
    InstructorCategory,
    InstructorExtraInfo,
    InstructorGraph,
    Penalty,
    ThemeRide,
    Workshop,
)


class PaymentDataSource(Protocol):
    def fetch_classes(
        self, instructor_id: str, discipline_id: str, period_id: str, tenant_id: str
    ) -> list[ClassRecord]: ...

    def fetch_formula(self, discipline_id: str, period_id: str, tenant_id: str) -> Formula | None: ...

    def fetch_discipline(self, discipline_id: str) -> Discipline | None: ...

    def fetch_instructor_extra_info(self, instructor_id: str) -> InstructorExtraInfo: ...

    def find_manual_category(
        self, instructor_id: str, discipline_id: str, period_id: str, tenant_id: str
    ) -> InstructorCategory | None: ...

    def upsert_category(
        self,
        instructor_id: str,
        discipline_id: str,
        period_id: str,
        tenant_id: str,
        category: Category,
        metrics: DisciplineMetrics,
    ) -> None: ...

    def fetch_instructor_graph(
        self, instructor_id: str, period_id: str, tenant_id: str
    ) -> InstructorGraph | None: ...

    def list_active_instructors(self, tenant_id: str) -> list[Instructor]: ...


class InMemoryDataSource:
    """PaymentDataSource over plain Python collections."""

    def __init__(
        self,
        instructors: list[Instructor] | None = None,
        disciplines: list[Discipline] | None = None,
        classes: list[ClassRecord] | None = None,
        formulas: list[Formula] | None = None,
        categories: list[InstructorCategory] | None = None,
        penalties: list[Penalty] | None = None,
        covers: dict[str, list[Cover]] | None = None,
        brandings: dict[str, list[Branding]] | None = None,
        theme_rides: dict[str, list[ThemeRide]] | None = None,
        workshops: dict[str, list[Workshop]] | None = None,
    ):
        self.instructors = {i.id: i for i in instructors or []}
        self.disciplines = {d.id: d for d in disciplines or []}
        self.classes = list(classes or [])
        self.formulas = {(f.discipline_id, f.period_id, f.tenant_id): f for f in formulas or []}
        self.categories = {
            (c.instructor_id, c.discipline_id, c.period_id, c.tenant_id): c for c in categories or []
        }
        self.penalties = list(penalties or [])
        # Bonus records are keyed by "instructorId:periodId"
        self.covers = covers or {}
        self.brandings = brandings or {}
        self.theme_rides = theme_rides or {}
        self.workshops = workshops or {}
        self.upsert_count = 0

    @staticmethod
    def bonus_key(instructor_id: str, period_id: str) -> str:
        return f"{instructor_id}:{period_id}"

    def _classes_for(self, instructor_id: str, period_id: str) -> list[ClassRecord]:
        return [
            c for c in self.classes
            if c.instructor_id == instructor_id and c.period_id == period_id
        ]

    def fetch_classes(self, instructor_id, discipline_id, period_id, tenant_id):
        return [
            c for c in self._classes_for(instructor_id, period_id)
            if c.discipline_id == discipline_id
        ]

    def fetch_formula(self, discipline_id, period_id, tenant_id):
        return self.formulas.get((discipline_id, period_id, tenant_id))

    def fetch_discipline(self, discipline_id):
        return self.disciplines.get(discipline_id)

    def fetch_instructor_extra_info(self, instructor_id):
        instructor = self.instructors.get(instructor_id)
        if instructor is None:
            return InstructorExtraInfo()
        return instructor.extra_info

    def find_manual_category(self, instructor_id, discipline_id, period_id, tenant_id):
        existing = self.categories.get((instructor_id, discipline_id, period_id, tenant_id))
        if existing is not None and existing.is_manual:
            return existing
        return None

    def upsert_category(self, instructor_id, discipline_id, period_id, tenant_id, category, metrics):
        key = (instructor_id, discipline_id, period_id, tenant_id)
        existing = self.categories.get(key)
        if existing is not None and existing.is_manual:
            return
        self.upsert_count += 1
        if existing is None:
            self.categories[key] = InstructorCategory(
                instructor_id=instructor_id,
                discipline_id=discipline_id,
                period_id=period_id,
                tenant_id=tenant_id,
                category=category,
                is_manual=False,
                metrics=metrics.to_dict(),
            )
        else:
            self.categories[key] = replace(existing, category=category, metrics=metrics.to_dict())

    def fetch_instructor_graph(self, instructor_id, period_id, tenant_id):
        instructor = self.instructors.get(instructor_id)
        if instructor is None or instructor.tenant_id != tenant_id:
            return None

        key = self.bonus_key(instructor_id, period_id)
        return InstructorGraph(
            instructor=instructor,
            classes=self._classes_for(instructor_id, period_id),
            penalties=[
                p for p in self.penalties
                if p.instructor_id == instructor_id and p.period_id == period_id
            ],
            categories=[
                c for (i, _, p, t), c in self.categories.items()
                if i == instructor_id and p == period_id and t == tenant_id
            ],
            bonuses=BonusCollections(
                covers=tuple(self.covers.get(key, [])),
                brandings=tuple(self.brandings.get(key, [])),
                theme_rides=tuple(self.theme_rides.get(key, [])),
                workshops=tuple(self.workshops.get(key, [])),
            ),
            disciplines=dict(self.disciplines),
        )

    def list_active_instructors(self, tenant_id):
        return [i for i in self.instructors.values() if i.active and i.tenant_id == tenant_id]

    @classmethod
    def from_dict(cls, data: dict, tenant_id: str = "") -> "InMemoryDataSource":
        """
        Build a data source from a JSON payload.

        Bonus collections are given per instructor and period:
            {"covers": {"<instructorId>:<periodId>": [...]}, ...}
        Records without a tenantId inherit `tenant_id`.
        """

        def with_tenant(record: dict) -> dict:
            if tenant_id and not record.get("tenantId"):
                return {**record, "tenantId": tenant_id}
            return record

        def grouped(key, factory):
            return {
                group: [factory(item) for item in items]
                for group, items in (data.get(key) or {}).items()
            }

        return cls(
            instructors=[Instructor.from_dict(with_tenant(i)) for i in data.get("instructors", [])],
            disciplines=[Discipline.from_dict(d) for d in data.get("disciplines", [])],
            classes=[ClassRecord.from_dict(c) for c in data.get("classes", [])],
            formulas=[Formula.from_dict(with_tenant(f)) for f in data.get("formulas", [])],
            categories=[
                InstructorCategory.from_dict(with_tenant(c)) for c in data.get("categories", [])
            ],
            penalties=[Penalty.from_dict(p) for p in data.get("penalties", [])],
            covers=grouped("covers", Cover.from_dict),
            brandings=grouped("brandings", Branding.from_dict),
            theme_rides=grouped("themeRides", ThemeRide.from_dict),
            workshops=grouped("workshops", Workshop.from_dict),
        )


def require_formula(
    datasource: PaymentDataSource, discipline_id: str, period_id: str, tenant_id: str
) -> Formula:
    """Fetch a formula, raising MissingFormulaError when the discipline has none for the period."""
    formula = datasource.fetch_formula(discipline_id, period_id, tenant_id)
    if formula is None:
        raise MissingFormulaError(discipline_id, period_id)
    return formula
