"""
Invoice number generation
"""
import random
from typing import Optional, Protocol

from agency_crm.core.config import settings


class InvoiceNumberGenerator(Protocol):
    def next_number(self) -> str:
        ...


class RandomInvoiceNumberGenerator:
    """
    Produces `<prefix>-<n digits>` with a random numeric suffix.

    Numbers are not checked against existing invoices; with four digits a
    collision is possible and surfaces as a unique-constraint error on insert.
    """

    def __init__(self, prefix: Optional[str] = None, digits: int = 4, rng: Optional[random.Random] = None):
        self.prefix = prefix or settings.INVOICE_NUMBER_PREFIX
        self.digits = digits
        self._rng = rng or random.Random()

    def next_number(self) -> str:
        low = 10 ** (self.digits - 1)
        high = 10 ** self.digits - 1
        return f"{self.prefix}-{self._rng.randint(low, high)}"


default_number_generator = RandomInvoiceNumberGenerator()
