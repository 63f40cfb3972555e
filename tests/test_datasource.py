"""Tests for the in-memory data source."""

from decimal import Decimal

import pytest

from payments_engine.datasource import InMemoryDataSource, require_formula
from payments_engine.errors import MissingFormulaError
from payments_engine.models import Category, DisciplineMetrics, InstructorCategory


class TestFromDict:

    def test_records_inherit_tenant(self, payment_payload):
        datasource = InMemoryDataSource.from_dict(payment_payload["data"], tenant_id="t1")

        assert datasource.instructors["i1"].tenant_id == "t1"
        assert datasource.fetch_formula("d1", "p1", "t1") is not None
        assert datasource.fetch_formula("d1", "p1", "other") is None

    def test_bonus_collections_keyed_by_instructor_and_period(self, payment_payload):
        payment_payload["data"]["workshops"] = {
            "i1:p1": [{"id": "w1", "name": "Técnica", "payment": 120}],
        }
        datasource = InMemoryDataSource.from_dict(payment_payload["data"], tenant_id="t1")

        graph = datasource.fetch_instructor_graph("i1", "p1", "t1")
        assert graph.bonuses.workshops[0].payment == Decimal("120")
        assert datasource.fetch_instructor_graph("i1", "p2", "t1").bonuses.workshops == ()

    def test_unparseable_date_becomes_none(self, payment_payload):
        payment_payload["data"]["classes"][0]["date"] = "not a date"
        datasource = InMemoryDataSource.from_dict(payment_payload["data"], tenant_id="t1")
        assert datasource.classes[0].date is None


class TestInstructorGraph:

    @pytest.fixture
    def datasource(self, payment_payload):
        return InMemoryDataSource.from_dict(payment_payload["data"], tenant_id="t1")

    def test_graph_scoped_to_period(self, datasource):
        graph = datasource.fetch_instructor_graph("i1", "p1", "t1")
        assert [c.id for c in graph.classes] == ["c1"]
        assert datasource.fetch_instructor_graph("i1", "p2", "t1").classes == []

    def test_unknown_instructor(self, datasource):
        assert datasource.fetch_instructor_graph("nobody", "p1", "t1") is None

    def test_other_tenant_cannot_see_instructor(self, datasource):
        assert datasource.fetch_instructor_graph("i1", "p1", "t2") is None


class TestUpsertCategory:

    def test_insert_then_update(self):
        datasource = InMemoryDataSource()
        metrics = DisciplineMetrics(total_classes=4)

        datasource.upsert_category("i1", "d1", "p1", "t1", Category.INSTRUCTOR, metrics)
        datasource.upsert_category("i1", "d1", "p1", "t1", Category.AMBASSADOR, metrics)

        assert len(datasource.categories) == 1
        stored = datasource.categories[("i1", "d1", "p1", "t1")]
        assert stored.category == Category.AMBASSADOR
        assert stored.metrics["totalClasses"] == 4

    def test_manual_record_never_overwritten(self):
        manual = InstructorCategory(
            instructor_id="i1", discipline_id="d1", period_id="p1", tenant_id="t1",
            category=Category.SENIOR_AMBASSADOR, is_manual=True,
        )
        datasource = InMemoryDataSource(categories=[manual])

        datasource.upsert_category("i1", "d1", "p1", "t1", Category.INSTRUCTOR, DisciplineMetrics())

        assert datasource.categories[("i1", "d1", "p1", "t1")] == manual
        assert datasource.upsert_count == 0


class TestRequireFormula:

    def test_returns_formula(self, payment_payload):
        datasource = InMemoryDataSource.from_dict(payment_payload["data"], tenant_id="t1")
        assert require_formula(datasource, "d1", "p1", "t1").discipline_id == "d1"

    def test_missing_formula_raises(self):
        with pytest.raises(MissingFormulaError, match="No formula for discipline d2 in period p1"):
            require_formula(InMemoryDataSource(), "d2", "p1", "t1")
