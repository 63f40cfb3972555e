"""
STUDIO INSTRUCTOR PAYMENT ENGINE
Categories, class tariffs, bonuses and penalties per instructor and period.
"""

from .datasource import InMemoryDataSource, PaymentDataSource
from .models import Category, PaymentCalculationData
from .processor import PaymentProcessor

__all__ = [
    'PaymentProcessor',
    'PaymentDataSource',
    'InMemoryDataSource',
    'Category',
    'PaymentCalculationData',
]
