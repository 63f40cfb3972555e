"""
Tests for formula parsing and validation.
"""

import pytest

from payments_engine.errors import FormulaValidationError
from payments_engine.models import Category, Formula
from payments_engine.validators import FormulaValidator


def formula_dict(requirements=None, parameters=None):
    return {
        "disciplineId": "d1",
        "periodId": "p1",
        "tenantId": "t1",
        "categoryRequirements": requirements or {},
        "paymentParameters": parameters or {},
    }


class TestFormulaParsing:
    """Test Formula.from_dict against the stored JSON shape."""

    def test_storage_keys_map_to_categories(self):
        formula = Formula.from_dict(formula_dict(
            requirements={"EMBAJADOR_SENIOR": {"ocupacion": 80, "clases": 40}},
            parameters={
                "EMBAJADOR_JUNIOR": {
                    "cuotaFija": 10,
                    "tarifas": [{"numeroReservas": 30, "tarifa": 2.5}],
                },
            },
        ))

        senior = formula.category_requirements[Category.SENIOR_AMBASSADOR]
        assert senior.occupancy == 80
        assert senior.classes == 40
        junior = formula.payment_parameters[Category.JUNIOR_AMBASSADOR]
        assert junior.fixed_quota == 10
        assert str(junior.tiers[0].rate) == "2.5"
        assert junior.maximum is None

    def test_unknown_category_key(self):
        with pytest.raises(FormulaValidationError, match="Unknown category key"):
            Formula.from_dict(formula_dict(requirements={"MASTER": {}}))

    def test_malformed_tier(self):
        with pytest.raises(FormulaValidationError, match="Malformed formula"):
            Formula.from_dict(formula_dict(parameters={"INSTRUCTOR": {"tarifas": [{"numeroReservas": 10}]}}))

    def test_non_object_sections(self):
        payload = formula_dict()
        payload["paymentParameters"] = [1, 2]
        with pytest.raises(FormulaValidationError):
            Formula.from_dict(payload)

    def test_validation_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            Formula.from_dict(formula_dict(requirements={"MASTER": {}}))


class TestFormulaValidator:

    @pytest.fixture
    def validator(self):
        return FormulaValidator()

    def test_valid_formula_passes(self, validator):
        formula = Formula.from_dict(formula_dict(
            requirements={"EMBAJADOR": {"ocupacion": 100, "clases": 0}},
            parameters={"INSTRUCTOR": {"tarifas": [{"numeroReservas": 0, "tarifa": 0}]}},
        ))
        validator.validate(formula)

    def test_negative_requirement(self, validator):
        formula = Formula.from_dict(formula_dict(requirements={"EMBAJADOR": {"dobleteos": -1}}))
        with pytest.raises(FormulaValidationError, match="dobleteos"):
            validator.validate(formula)

    def test_occupancy_above_100(self, validator):
        formula = Formula.from_dict(formula_dict(requirements={"EMBAJADOR": {"ocupacion": 101}}))
        with pytest.raises(FormulaValidationError, match="between 0 and 100"):
            validator.validate(formula)

    def test_negative_minimum(self, validator):
        formula = Formula.from_dict(formula_dict(parameters={"INSTRUCTOR": {"minimoGarantizado": -5}}))
        with pytest.raises(FormulaValidationError, match="minimoGarantizado"):
            validator.validate(formula)

    def test_negative_tier_rate(self, validator):
        formula = Formula.from_dict(formula_dict(
            parameters={"INSTRUCTOR": {"tarifas": [{"numeroReservas": 10, "tarifa": -1}]}}
        ))
        with pytest.raises(FormulaValidationError, match="tarifa"):
            validator.validate(formula)
