"""
Engine configuration.

Business constants live here as module constants. Deployment-specific values
(timezone, non-prime disciplines, retention) are read from the environment
through EngineConfig.from_env().
"""

import os
import re
from dataclasses import dataclass, field
from decimal import Decimal
from zoneinfo import ZoneInfo

from .models import Discipline

RETENTION_RATE = Decimal("0.08")

# Bonus unit rates
COVER_BONUS_RATE = Decimal("80")
BRANDING_BONUS_RATE = Decimal("5")
THEME_RIDE_BONUS_RATE = Decimal("30")

# Permitted penalty points as a percentage of the period's class count
PENALTY_ALLOWANCE_PERCENT = 10
MAX_PENALTY_DISCOUNT_PERCENT = 10

CURRENCY_SYMBOL = "S/."

DEFAULT_TIMEZONE = "America/Lima"
DEFAULT_NON_PRIME_DISCIPLINES = ("Síclo",)

# Format: { studio: { "HH:MM", ... } } in 24-hour time
NON_PRIME_SCHEDULE: dict[str, frozenset[str]] = {
    "Reducto": frozenset({"08:00", "09:00", "13:00", "18:00"}),
    "San Isidro": frozenset({"09:00", "13:00"}),
    "Primavera": frozenset({"09:00", "13:00", "18:00"}),
    "Estancia": frozenset({"06:00", "09:15", "18:00"}),
}

_TWELVE_HOUR = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*(am|pm)\s*$", re.IGNORECASE)


def normalize_hour(hour: str) -> str:
    """Convert "h:mm am/pm" to 24-hour "HH:MM". Other values pass through."""
    match = _TWELVE_HOUR.match(hour.replace(".", ""))
    if not match:
        return hour.strip()

    hours = int(match.group(1))
    minutes = match.group(2) or "00"
    suffix = match.group(3).lower()
    if suffix == "pm" and hours < 12:
        hours += 12
    elif suffix == "am" and hours == 12:
        hours = 0
    return f"{hours:02d}:{minutes}"


@dataclass(frozen=True)
class NonPrimeHourPolicy:
    """
    Decides which studio/time slots count as non-prime.

    Only disciplines listed in `disciplines` (by name or id) are scored;
    every other discipline always reports zero non-prime hours.
    """

    disciplines: frozenset[str] = frozenset(DEFAULT_NON_PRIME_DISCIPLINES)
    schedule: dict[str, frozenset[str]] = field(default_factory=lambda: dict(NON_PRIME_SCHEDULE))

    def applies_to(self, discipline: Discipline | None) -> bool:
        if discipline is None:
            return False
        return discipline.name in self.disciplines or discipline.id in self.disciplines

    def is_non_prime(self, studio: str, hour: str) -> bool:
        normalized = normalize_hour(hour)
        studio_lower = (studio or "").lower()
        for configured_studio, slots in self.schedule.items():
            # Configured name contained in the class studio ("Síclo Reducto 2")
            if configured_studio.lower() in studio_lower and normalized in slots:
                return True
        return False


@dataclass(frozen=True)
class EngineConfig:
    environment: str = "dev"
    timezone: str = DEFAULT_TIMEZONE
    retention_rate: Decimal = RETENTION_RATE
    non_prime_policy: NonPrimeHourPolicy = field(default_factory=NonPrimeHourPolicy)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        raw = os.environ.get("NON_PRIME_DISCIPLINES")
        if raw:
            disciplines = frozenset(d.strip() for d in raw.split(",") if d.strip())
        else:
            disciplines = frozenset(DEFAULT_NON_PRIME_DISCIPLINES)

        return cls(
            environment=os.environ.get("ENVIRONMENT", "dev"),
            timezone=os.environ.get("STUDIO_TIMEZONE", DEFAULT_TIMEZONE),
            retention_rate=Decimal(os.environ.get("RETENTION_RATE", str(RETENTION_RATE))),
            non_prime_policy=NonPrimeHourPolicy(disciplines=disciplines),
        )
