"""
Integration Tests for the Payment Processor

Tests run complete instructor and period calculations through
InMemoryDataSource and verify amounts against hand-computed values.
"""

from decimal import Decimal

import pytest

from payments_engine import Category, InMemoryDataSource, PaymentProcessor
from payments_engine.errors import InstructorNotFoundError, MissingTariffError, NoClassesError
from payments_engine.processor import calculate_payment_from_dict, calculate_period_from_dict


def build_processor(payload):
    datasource = InMemoryDataSource.from_dict(payload["data"], tenant_id=payload["tenant_id"])
    return PaymentProcessor(datasource), datasource


class TestInstructorPayment:
    """
    Base scenario: one Síclo class, 45 reservations, INSTRUCTOR table.

    Base:      45 × 3      = 135.00
    Retention: 135 × 8%    =  10.80
    Final:     135 - 10.80 = 124.20
    """

    def test_single_class_payment(self, payment_payload):
        processor, datasource = build_processor(payment_payload)

        result = processor.calculate_instructor_payment("i1", "p1", "t1")

        assert result.base_amount == Decimal("135")
        assert result.retention == Decimal("10.80")
        assert result.final_payment == Decimal("124.20")
        assert result.categories == {"d1": Category.INSTRUCTOR}
        assert result.bonuses.total == Decimal("0")
        assert result.penalties.discount_percentage == 0
        assert len(result.class_calculations) == 1
        assert result.class_calculations[0].hour == "07:00"
        assert datasource.upsert_count == 1

    def test_trail_uses_studio_local_time(self, payment_payload):
        """03:30Z on the 4th is 22:30 on the 3rd in Lima."""
        payment_payload["data"]["classes"][0]["date"] = "2025-03-04T03:30:00Z"
        processor, _ = build_processor(payment_payload)
        logs = []

        result = processor.calculate_instructor_payment("i1", "p1", "t1", logs)

        assert result.class_calculations[0].hour == "22:30"
        assert "CLASS PAYMENT [c1]: Síclo - 2025-03-03" in logs

    def test_evaluations_reported_for_recomputed_category(self, payment_payload):
        processor, _ = build_processor(payment_payload)

        result = processor.calculate_instructor_payment("i1", "p1", "t1")

        evaluations = result.category_evaluations["d1"]
        assert [e.category for e in evaluations][0] == Category.INSTRUCTOR
        junior = evaluations[1]
        assert junior.all_meets is False
        assert next(c for c in junior.criteria if c.key == "clases").meets is False

    def test_logs_trail_is_collected(self, payment_payload):
        processor, _ = build_processor(payment_payload)
        logs = []

        result = processor.calculate_instructor_payment("i1", "p1", "t1", logs)

        assert result.logs is logs
        assert "Instructor classes: 1" in logs
        assert "Final payment: S/.124.20" in logs

    def test_bonuses_added_penalties_reported_only(self, payment_payload):
        """
        Approved cover: +80
        2 penalty points on 1 class -> 2% discount, not subtracted here
        Final: 135 + 80 - 10.80 = 204.20
        """
        payment_payload["data"]["covers"] = {
            "i1:p1": [{"id": "cv1", "bonusPayment": True, "justification": "APPROVED"}],
        }
        payment_payload["data"]["penalties"] = [
            {"instructorId": "i1", "periodId": "p1", "points": 2, "type": "NO_SHOW", "disciplineId": "d1"},
        ]
        processor, _ = build_processor(payment_payload)

        result = processor.calculate_instructor_payment("i1", "p1", "t1")

        assert result.bonuses.total == Decimal("80")
        assert result.penalties.discount_percentage == 2
        assert result.final_payment == Decimal("204.20")

    def test_manual_category_used_verbatim(self, payment_payload):
        """Manual junior: 45 × 4 = 180, nothing persisted or evaluated."""
        payment_payload["data"]["categories"] = [
            {
                "instructorId": "i1",
                "disciplineId": "d1",
                "periodId": "p1",
                "category": "EMBAJADOR_JUNIOR",
                "isManual": True,
            },
        ]
        processor, datasource = build_processor(payment_payload)

        result = processor.calculate_instructor_payment("i1", "p1", "t1")

        assert result.categories["d1"] == Category.JUNIOR_AMBASSADOR
        assert result.base_amount == Decimal("180")
        assert result.category_evaluations == {}
        assert datasource.upsert_count == 0

    def test_discipline_without_formula_is_skipped(self, payment_payload):
        payment_payload["data"]["classes"].append({
            "id": "c2",
            "instructorId": "i1",
            "disciplineId": "d2",
            "periodId": "p1",
            "date": "2025-03-04T12:00:00Z",
            "studio": "San Isidro",
            "spots": 20,
            "totalReservations": 20,
        })
        processor, _ = build_processor(payment_payload)
        logs = []

        result = processor.calculate_instructor_payment("i1", "p1", "t1", logs)

        assert result.skipped_disciplines == ["d2"]
        assert result.base_amount == Decimal("135")
        assert "d2" not in result.categories
        assert "No formula found for discipline Barre, skipping..." in logs

    def test_unknown_instructor(self, payment_payload):
        processor, _ = build_processor(payment_payload)
        with pytest.raises(InstructorNotFoundError):
            processor.calculate_instructor_payment("ghost", "p1", "t1")

    def test_instructor_from_other_tenant(self, payment_payload):
        processor, _ = build_processor(payment_payload)
        with pytest.raises(InstructorNotFoundError):
            processor.calculate_instructor_payment("i1", "p1", "t2")

    def test_no_classes_in_period(self, payment_payload):
        processor, _ = build_processor(payment_payload)
        with pytest.raises(NoClassesError):
            processor.calculate_instructor_payment("i1", "p2", "t1")

    def test_category_without_tariff_raises(self, payment_payload):
        payment_payload["data"]["categories"] = [
            {
                "instructorId": "i1",
                "disciplineId": "d1",
                "periodId": "p1",
                "category": "EMBAJADOR",
                "isManual": True,
            },
        ]
        processor, _ = build_processor(payment_payload)
        with pytest.raises(MissingTariffError):
            processor.calculate_instructor_payment("i1", "p1", "t1")

    def test_recalculation_is_idempotent(self, payment_payload):
        processor, datasource = build_processor(payment_payload)

        first = processor.calculate_instructor_payment("i1", "p1", "t1")
        second = processor.calculate_instructor_payment("i1", "p1", "t1")

        assert first.final_payment == second.final_payment
        assert len(datasource.categories) == 1


class TestPeriodRun:
    """Batch over every active instructor of a tenant."""

    @pytest.fixture
    def period_payload(self, payment_payload):
        data = payment_payload["data"]
        data["instructors"] += [
            {"id": "i2", "name": "Luis Paredes"},
            {"id": "i3", "name": "Carla Ríos"},
            {"id": "i4", "name": "Inactive", "active": False},
        ]
        data["classes"].append({
            "id": "c3",
            "instructorId": "i3",
            "disciplineId": "d1",
            "periodId": "p1",
            "date": "2025-03-05T12:00:00Z",
            "studio": "Reducto",
            "spots": 50,
            "totalReservations": 30,
        })
        # Ambassador has no tariff table, so i3 fails
        data["categories"] = [
            {
                "instructorId": "i3",
                "disciplineId": "d1",
                "periodId": "p1",
                "category": "EMBAJADOR",
                "isManual": True,
            },
        ]
        return payment_payload

    def test_statuses_per_instructor(self, period_payload):
        processor, _ = build_processor(period_payload)

        summary = processor.calculate_period("p1", "t1")

        statuses = {r.instructor_id: r.status for r in summary.results}
        assert statuses == {"i1": "success", "i2": "skipped", "i3": "error"}
        failed = next(r for r in summary.results if r.instructor_id == "i3")
        assert failed.error == "No payment parameters found for category: AMBASSADOR"

    def test_settlement_with_adjustment(self, period_payload):
        """
        Subtotal:  135 + 10 = 145
        Retention: 145 × 8% = 11.60
        Payable:   133.40
        """
        processor, _ = build_processor(period_payload)

        summary = processor.calculate_period(
            "p1", "t1", {"i1": {"adjustment": 10, "adjustmentType": "FIXED"}}
        )

        success = next(r for r in summary.results if r.status == "success")
        assert success.settlement.subtotal == Decimal("145")
        assert success.settlement.payable == Decimal("133.40")
        assert success.message == "Payment calculated: S/.133.40"


class TestConvenienceFunctions:

    def test_calculate_payment_from_dict(self, payment_payload):
        result = calculate_payment_from_dict(payment_payload)

        assert result["base_amount"] == 135.0
        assert result["retention"] == 10.8
        assert result["final_payment"] == 124.2
        assert result["categories"] == {"d1": "INSTRUCTOR"}

    def test_calculate_period_from_dict(self, payment_payload):
        payload = {
            "period_id": "p1",
            "tenant_id": "t1",
            "data": payment_payload["data"],
        }

        result = calculate_period_from_dict(payload)

        assert result["summary"] == {"total": 1, "success": 1, "errors": 0, "skipped": 0}
        assert result["message"] == "Calculation completed: 1 successful, 0 errors, 0 skipped"
        assert result["instructor_logs"][0]["settlement"]["payable"] == 124.2


class TestPeriodRunIsolation:
    """One instructor's failure never costs another instructor's result."""

    @pytest.fixture
    def two_instructor_payload(self, payment_payload):
        data = payment_payload["data"]
        data["instructors"].append({"id": "i2", "name": "Luis Paredes"})
        data["classes"].append({
            "id": "c2",
            "instructorId": "i2",
            "disciplineId": "d1",
            "periodId": "p1",
            "date": "2025-03-04T12:00:00Z",
            "studio": "Reducto",
            "spots": 50,
            "totalReservations": 45,
        })
        return payment_payload

    @pytest.mark.parametrize(
        "adjustment",
        [
            {"adjustment": "abc"},
            {"adjustmentType": "percent"},
            "10",
        ],
    )
    def test_malformed_adjustment_is_an_error_entry(self, two_instructor_payload, adjustment):
        processor, _ = build_processor(two_instructor_payload)

        summary = processor.calculate_period("p1", "t1", {"i2": adjustment})

        statuses = {r.instructor_id: r.status for r in summary.results}
        assert statuses == {"i1": "success", "i2": "error"}
        valid = next(r for r in summary.results if r.instructor_id == "i1")
        assert valid.settlement.payable == Decimal("124.20")

    def test_error_entry_keeps_calculation_trail(self, payment_payload):
        payment_payload["data"]["categories"] = [
            {
                "instructorId": "i1",
                "disciplineId": "d1",
                "periodId": "p1",
                "category": "EMBAJADOR",
                "isManual": True,
            },
        ]
        processor, _ = build_processor(payment_payload)

        entry = processor.calculate_period("p1", "t1").results[0]

        assert entry.status == "error"
        assert "Error calculating payment for class c1: no tariff for AMBASSADOR" in entry.logs
        assert entry.logs[-1] == "Error: No payment parameters found for category: AMBASSADOR"

    def test_success_entry_keeps_calculation_trail(self, payment_payload):
        processor, _ = build_processor(payment_payload)

        entry = processor.calculate_period("p1", "t1").results[0]

        assert "Final payment: S/.124.20" in entry.logs

    def test_single_payment_error_carries_trail(self, payment_payload):
        payment_payload["data"]["categories"] = [
            {
                "instructorId": "i1",
                "disciplineId": "d1",
                "periodId": "p1",
                "category": "EMBAJADOR",
                "isManual": True,
            },
        ]

        with pytest.raises(MissingTariffError) as excinfo:
            calculate_payment_from_dict(payment_payload)

        assert "Instructor classes: 1" in excinfo.value.logs
        assert "Error calculating payment for class c1: no tariff for AMBASSADOR" in excinfo.value.logs
