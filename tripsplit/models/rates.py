from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from pydantic import field_validator

from tripsplit.models.base import ValueModel
from tripsplit.utils.currency import normalize_code


class ExchangeRateSnapshot(ValueModel):
    """
    Rates into ``base_currency``, quoted per major unit (1 EUR = rate USD).

    The base currency is always at parity and need not be listed.
    """
    base_currency: str
    rates: Dict[str, Decimal] = {}
    as_of: datetime

    @field_validator("base_currency")
    @classmethod
    def _base_code(cls, value: str) -> str:
        return normalize_code(value)

    @field_validator("rates")
    @classmethod
    def _positive_rates(cls, value: Dict[str, Decimal]) -> Dict[str, Decimal]:
        normalized = {}
        for code, rate in value.items():
            if rate <= 0:
                raise ValueError(f"Rate for {code} must be positive, got {rate}")
            normalized[normalize_code(code)] = rate
        return normalized

    def rate_for(self, currency: str) -> Optional[Decimal]:
        """Rate-to-base for ``currency``, or None when the snapshot lacks it."""
        code = currency.upper()
        if code == self.base_currency:
            return Decimal(1)
        return self.rates.get(code)
