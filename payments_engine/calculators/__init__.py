"""
Calculators Package

Provides all calculation components for instructor payments.
"""

from .bonus import BonusAggregator
from .category import CategoryResolver, evaluate_all_categories
from .class_payment import ClassPaymentCalculator
from .metrics import MetricsCalculator
from .penalty import PenaltyCalculator
from .settlement import SettlementCalculator

__all__ = [
    "MetricsCalculator",
    "CategoryResolver",
    "ClassPaymentCalculator",
    "BonusAggregator",
    "PenaltyCalculator",
    "SettlementCalculator",
    "evaluate_all_categories",
]
