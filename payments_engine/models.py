"""
Domain Models for the Instructor Payment Engine

These dataclasses provide type-safe representations of all business entities.
All monetary values use Decimal for precision.

`from_dict` constructors read the stored JSON shape, which keeps the
Spanish storage keys (tarifas, numeroReservas, cuotaFija, ocupacion, ...).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .errors import FormulaValidationError


def to_decimal(value, default: str = "0") -> Decimal:
    """Build a Decimal from a stored number without float artifacts."""
    if value is None:
        return Decimal(default)
    return Decimal(str(value))


def parse_datetime(value) -> datetime | None:
    """Parse an ISO timestamp. Unparseable values become None."""
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


# =============================================================================
# CATEGORIES
# =============================================================================


class Category(str, Enum):
    """Instructor qualification tier, lowest to highest."""

    INSTRUCTOR = "INSTRUCTOR"
    JUNIOR_AMBASSADOR = "JUNIOR_AMBASSADOR"
    AMBASSADOR = "AMBASSADOR"
    SENIOR_AMBASSADOR = "SENIOR_AMBASSADOR"

    @property
    def storage_key(self) -> str:
        return STORAGE_KEYS[self]

    @property
    def label(self) -> str:
        return LABELS[self]

    @classmethod
    def parse(cls, key: str) -> "Category":
        """Accept either the enum name or the stored Spanish key."""
        if key in cls.__members__:
            return cls[key]
        for category, storage_key in STORAGE_KEYS.items():
            if storage_key == key:
                return category
        raise FormulaValidationError(f"Unknown category key: {key!r}")


STORAGE_KEYS = {
    Category.INSTRUCTOR: "INSTRUCTOR",
    Category.JUNIOR_AMBASSADOR: "EMBAJADOR_JUNIOR",
    Category.AMBASSADOR: "EMBAJADOR",
    Category.SENIOR_AMBASSADOR: "EMBAJADOR_SENIOR",
}

LABELS = {
    Category.INSTRUCTOR: "Instructor",
    Category.JUNIOR_AMBASSADOR: "Embajador Junior",
    Category.AMBASSADOR: "Embajador",
    Category.SENIOR_AMBASSADOR: "Embajador Senior",
}

# Highest rank first
CATEGORY_PRIORITY = [
    Category.SENIOR_AMBASSADOR,
    Category.AMBASSADOR,
    Category.JUNIOR_AMBASSADOR,
    Category.INSTRUCTOR,
]


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass(frozen=True)
class Discipline:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> "Discipline":
        return cls(id=data["id"], name=data.get("name", ""))


@dataclass(frozen=True)
class ClassRecord:
    """A single taught class. `date` is None when the stored value is unparseable."""

    id: str
    instructor_id: str
    discipline_id: str
    period_id: str
    date: datetime | None
    studio: str = ""
    room: str = ""
    spots: int = 0
    total_reservations: int = 0
    special_text: str | None = None
    is_versus: bool = False
    versus_number: int | None = None

    @property
    def occupancy(self) -> Decimal:
        if self.spots <= 0:
            return Decimal("0")
        return Decimal(self.total_reservations) / Decimal(self.spots)

    @classmethod
    def from_dict(cls, data: dict) -> "ClassRecord":
        versus = data.get("versusNumber")
        return cls(
            id=str(data["id"]),
            instructor_id=data["instructorId"],
            discipline_id=data["disciplineId"],
            period_id=data["periodId"],
            date=parse_datetime(data.get("date")),
            studio=data.get("studio") or "",
            room=data.get("room") or "",
            spots=int(data.get("spots") or 0),
            total_reservations=int(data.get("totalReservations") or 0),
            special_text=data.get("specialText"),
            is_versus=bool(data.get("isVersus", False)),
            versus_number=int(versus) if versus is not None else None,
        )


@dataclass(frozen=True)
class CategoryRequirements:
    """Thresholds an instructor must reach to qualify for a category."""

    occupancy: Decimal = Decimal("0")
    classes: Decimal = Decimal("0")
    locations: Decimal = Decimal("0")
    double_shifts: Decimal = Decimal("0")
    non_prime_hours: Decimal = Decimal("0")
    event_participation_required: bool = False
    guidelines_required: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "CategoryRequirements":
        return cls(
            occupancy=to_decimal(data.get("ocupacion")),
            classes=to_decimal(data.get("clases")),
            locations=to_decimal(data.get("localesEnLima")),
            double_shifts=to_decimal(data.get("dobleteos")),
            non_prime_hours=to_decimal(data.get("horariosNoPrime")),
            event_participation_required=bool(data.get("participacionEventos", False)),
            guidelines_required=bool(data.get("lineamientos", False)),
        )


@dataclass(frozen=True)
class TariffTier:
    """Rate paid per reservation up to (and including) a reservation threshold."""

    reservation_threshold: int
    rate: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "TariffTier":
        return cls(
            reservation_threshold=int(data["numeroReservas"]),
            rate=to_decimal(data["tarifa"]),
        )


@dataclass(frozen=True)
class PaymentParameters:
    """Tariff table of a single category."""

    fixed_quota: Decimal | None = None
    guaranteed_minimum: Decimal | None = None
    tiers: tuple[TariffTier, ...] = ()
    full_house_rate: Decimal | None = None
    maximum: Decimal | None = None
    bonus: bool | None = None

    @property
    def sorted_tiers(self) -> list[TariffTier]:
        return sorted(self.tiers, key=lambda t: t.reservation_threshold)

    @classmethod
    def from_dict(cls, data: dict) -> "PaymentParameters":
        def optional(key):
            value = data.get(key)
            return to_decimal(value) if value is not None else None

        return cls(
            fixed_quota=optional("cuotaFija"),
            guaranteed_minimum=optional("minimoGarantizado"),
            tiers=tuple(TariffTier.from_dict(t) for t in data.get("tarifas") or []),
            full_house_rate=optional("tarifaFullHouse"),
            maximum=optional("maximo"),
            bonus=data.get("bono"),
        )


@dataclass(frozen=True)
class Formula:
    """Per discipline, per period configuration of requirements and tariffs."""

    discipline_id: str
    period_id: str
    tenant_id: str
    category_requirements: dict[Category, CategoryRequirements] = field(default_factory=dict)
    payment_parameters: dict[Category, PaymentParameters] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Formula":
        requirements = data.get("categoryRequirements") or {}
        parameters = data.get("paymentParameters") or {}
        if not isinstance(requirements, dict) or not isinstance(parameters, dict):
            raise FormulaValidationError(
                "categoryRequirements and paymentParameters must be objects"
            )
        try:
            return cls(
                discipline_id=data["disciplineId"],
                period_id=data["periodId"],
                tenant_id=data.get("tenantId", ""),
                category_requirements={
                    Category.parse(k): CategoryRequirements.from_dict(v)
                    for k, v in requirements.items()
                },
                payment_parameters={
                    Category.parse(k): PaymentParameters.from_dict(v)
                    for k, v in parameters.items()
                },
            )
        except FormulaValidationError:
            raise
        except (KeyError, TypeError, ValueError, ArithmeticError, AttributeError) as e:
            raise FormulaValidationError(f"Malformed formula: {e!r}") from e


@dataclass(frozen=True)
class InstructorExtraInfo:
    event_participation: bool = False
    meets_guidelines: bool = True

    @classmethod
    def from_dict(cls, data: dict | None) -> "InstructorExtraInfo":
        data = data or {}
        event = data.get("eventParticipation")
        guidelines = data.get("meetsGuidelines")
        return cls(
            event_participation=bool(event) if event is not None else False,
            meets_guidelines=bool(guidelines) if guidelines is not None else True,
        )


@dataclass(frozen=True)
class Penalty:
    instructor_id: str
    period_id: str
    points: int
    type: str = ""
    description: str = ""
    applied_at: datetime | None = None
    discipline_id: str | None = None
    active: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "Penalty":
        return cls(
            instructor_id=data["instructorId"],
            period_id=data["periodId"],
            points=int(data.get("points", 0)),
            type=data.get("type", ""),
            description=data.get("description") or "",
            applied_at=parse_datetime(data.get("appliedAt")),
            discipline_id=data.get("disciplineId"),
            active=bool(data.get("active", True)),
        )


@dataclass(frozen=True)
class Cover:
    id: str
    bonus_payment: bool = False
    justification: str = "PENDING"

    @classmethod
    def from_dict(cls, data: dict) -> "Cover":
        return cls(
            id=str(data.get("id", "")),
            bonus_payment=bool(data.get("bonusPayment", False)),
            justification=data.get("justification") or "PENDING",
        )


@dataclass(frozen=True)
class Branding:
    id: str
    number: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "Branding":
        return cls(id=str(data.get("id", "")), number=int(data.get("number", 0)))


@dataclass(frozen=True)
class ThemeRide:
    id: str
    number: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "ThemeRide":
        return cls(id=str(data.get("id", "")), number=int(data.get("number", 0)))


@dataclass(frozen=True)
class Workshop:
    id: str
    name: str = ""
    payment: Decimal = Decimal("0")

    @classmethod
    def from_dict(cls, data: dict) -> "Workshop":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            payment=to_decimal(data.get("payment")),
        )


@dataclass(frozen=True)
class BonusCollections:
    """An instructor's period-scoped bonus-contributing records."""

    covers: tuple[Cover, ...] = ()
    brandings: tuple[Branding, ...] = ()
    theme_rides: tuple[ThemeRide, ...] = ()
    workshops: tuple[Workshop, ...] = ()


@dataclass
class DisciplineMetrics:
    """Per discipline performance metrics used to resolve a category."""

    total_classes: int = 0
    average_occupancy: int = 0
    total_locations: int = 0
    total_double_shifts: int = 0
    non_prime_hours: int = 0
    event_participation: bool = False
    meets_guidelines: bool = True

    def to_dict(self) -> dict:
        return {
            "totalClasses": self.total_classes,
            "averageOccupancy": self.average_occupancy,
            "totalLocations": self.total_locations,
            "totalDoubleShifts": self.total_double_shifts,
            "nonPrimeHours": self.non_prime_hours,
            "eventParticipation": self.event_participation,
            "meetsGuidelines": self.meets_guidelines,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DisciplineMetrics":
        return cls(
            total_classes=int(data.get("totalClasses", 0)),
            average_occupancy=int(data.get("averageOccupancy", 0)),
            total_locations=int(data.get("totalLocations", 0)),
            total_double_shifts=int(data.get("totalDoubleShifts", 0)),
            non_prime_hours=int(data.get("nonPrimeHours", 0)),
            event_participation=bool(data.get("eventParticipation", False)),
            meets_guidelines=bool(data.get("meetsGuidelines", True)),
        )


@dataclass(frozen=True)
class InstructorCategory:
    instructor_id: str
    discipline_id: str
    period_id: str
    tenant_id: str
    category: Category
    is_manual: bool = False
    metrics: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "InstructorCategory":
        return cls(
            instructor_id=data["instructorId"],
            discipline_id=data["disciplineId"],
            period_id=data["periodId"],
            tenant_id=data.get("tenantId", ""),
            category=Category.parse(data["category"]),
            is_manual=bool(data.get("isManual", False)),
            metrics=dict(data.get("metrics") or {}),
        )


@dataclass(frozen=True)
class Instructor:
    id: str
    name: str
    tenant_id: str
    active: bool = True
    extra_info: InstructorExtraInfo = field(default_factory=InstructorExtraInfo)

    @classmethod
    def from_dict(cls, data: dict) -> "Instructor":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            tenant_id=data.get("tenantId", ""),
            active=bool(data.get("active", True)),
            extra_info=InstructorExtraInfo.from_dict(data.get("extraInfo")),
        )


@dataclass
class InstructorGraph:
    """Everything the orchestrator needs for one instructor and period."""

    instructor: Instructor
    classes: list[ClassRecord] = field(default_factory=list)
    penalties: list[Penalty] = field(default_factory=list)
    categories: list[InstructorCategory] = field(default_factory=list)
    bonuses: BonusCollections = field(default_factory=BonusCollections)
    disciplines: dict[str, Discipline] = field(default_factory=dict)


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class ClassCalculationResult:
    """Priced class with its audit trail."""

    class_id: str
    calculated_amount: Decimal
    discipline_id: str
    discipline_name: str
    class_date: datetime | None
    calculation_detail: str
    category: Category
    is_versus: bool
    versus_number: int | None
    is_full_house: bool
    studio: str
    hour: str
    spots: int
    total_reservations: int
    occupancy: int
    tariff: Decimal = Decimal("0")
    tariff_type: str = ""


@dataclass
class BonusCalculation:
    cover: Decimal = Decimal("0")
    branding: Decimal = Decimal("0")
    theme_ride: Decimal = Decimal("0")
    workshop: Decimal = Decimal("0")
    versus: Decimal = Decimal("0")
    total: Decimal = Decimal("0")


@dataclass
class PenaltyDetail:
    type: str
    points: int
    description: str
    applied_at: datetime | None
    discipline_id: str | None
    discipline_name: str


@dataclass
class PenaltyCalculation:
    """Penalty points turned into a capped discount percentage."""

    total_points: int = 0
    max_allowed_points: int = 0
    excess_points: int = 0
    discount_percentage: int = 0
    details: list[PenaltyDetail] = field(default_factory=list)


@dataclass
class PaymentCalculationData:
    """
    Result of a single instructor/period calculation.

    Note: final_payment = base_amount + bonuses.total - retention.
    The penalty discount is reported in `penalties` but NOT subtracted here;
    SettlementCalculator computes the payable amount.
    """

    instructor_id: str
    period_id: str
    base_amount: Decimal = Decimal("0")
    bonuses: BonusCalculation = field(default_factory=BonusCalculation)
    penalties: PenaltyCalculation = field(default_factory=PenaltyCalculation)
    retention: Decimal = Decimal("0")
    final_payment: Decimal = Decimal("0")
    class_calculations: list[ClassCalculationResult] = field(default_factory=list)
    categories: dict[str, Category] = field(default_factory=dict)
    # discipline id -> list of CategoryEvaluation (recomputed categories only)
    category_evaluations: dict[str, list] = field(default_factory=dict)
    skipped_disciplines: list[str] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)


class AdjustmentType(str, Enum):
    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"


@dataclass
class Settlement:
    """Payable amount once penalty discount and manual adjustment are applied."""

    base_amount: Decimal = Decimal("0")
    bonuses_total: Decimal = Decimal("0")
    penalty_amount: Decimal = Decimal("0")
    adjustment_amount: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")
    retention: Decimal = Decimal("0")
    payable: Decimal = Decimal("0")


@dataclass
class InstructorRunResult:
    """Outcome of one instructor inside a period batch."""

    instructor_id: str
    instructor_name: str
    status: str  # 'success', 'error' or 'skipped'
    message: str = ""
    data: PaymentCalculationData | None = None
    settlement: Settlement | None = None
    error: str | None = None
    logs: list[str] = field(default_factory=list)


@dataclass
class PeriodRunSummary:
    period_id: str
    tenant_id: str
    results: list[InstructorRunResult] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for r in self.results if r.status == status)
