"""
Errors raised by the payment engine.

Callers catch these per instructor; nothing inside the engine swallows them.
"""


class PaymentEngineError(Exception):
    """Base class for all engine errors. `logs` holds the calculation trail up to the failure."""

    logs: tuple = ()


class InstructorNotFoundError(PaymentEngineError):
    def __init__(self, instructor_id: str, tenant_id: str):
        super().__init__(f"Instructor {instructor_id} not found for tenant {tenant_id}")
        self.instructor_id = instructor_id
        self.tenant_id = tenant_id


class NoClassesError(PaymentEngineError):
    def __init__(self, instructor_id: str, period_id: str):
        super().__init__(f"Instructor {instructor_id} has no classes in period {period_id}")
        self.instructor_id = instructor_id
        self.period_id = period_id


class MissingFormulaError(PaymentEngineError):
    def __init__(self, discipline_id: str, period_id: str):
        super().__init__(f"No formula for discipline {discipline_id} in period {period_id}")
        self.discipline_id = discipline_id
        self.period_id = period_id


class MissingTariffError(PaymentEngineError):
    def __init__(self, category: str):
        super().__init__(f"No payment parameters found for category: {category}")
        self.category = category


class FormulaValidationError(PaymentEngineError, ValueError):
    """Stored formula JSON does not have the expected shape or values."""
