"""
CurrencyNormalizer - folds per-currency balances into one base-currency net
balance per participant.

Rounding happens once per participant, after every currency has been
accumulated as an exact Decimal. The rounded balances can then miss zero by a
few minor units; that residual is pushed onto the participant with the
largest absolute balance so the debt simplifier always sees an exact
zero-sum input.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from decimal import Decimal, localcontext
from typing import Dict, Iterable, List

from tripsplit.core.config import settings
from tripsplit.core.exceptions import (
    ImbalancedLedgerError,
    MissingExchangeRateError,
    StaleExchangeRateError,
)
from tripsplit.models.rates import ExchangeRateSnapshot
from tripsplit.models.settlement import NetBalance
from tripsplit.services.balance_aggregator import Balances
from tripsplit.utils.currency import conversion_factor

logger = logging.getLogger(__name__)

# Enough digits for any realistic minor-unit total times an exchange rate
_PRECISION = 50


def check_rate_freshness(rates: ExchangeRateSnapshot, now: datetime, max_age_hours: int) -> None:
    """Reject a rate snapshot older than ``max_age_hours`` (0 disables the check)."""
    if max_age_hours <= 0:
        return
    as_of = rates.as_of
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if now - as_of > timedelta(hours=max_age_hours):
        raise StaleExchangeRateError(rates.as_of, max_age_hours)


class CurrencyNormalizer:
    """Converts Balances into NetBalances in the rate snapshot's base currency."""

    def __init__(
        self,
        rates: ExchangeRateSnapshot,
        rounding: str = settings.SETTLEMENT_ROUNDING,
        residual_units_per_participant: int = settings.SETTLEMENT_RESIDUAL_UNITS_PER_PARTICIPANT
    ):
        self.rates = rates
        self.base_currency = rates.base_currency
        self.rounding = rounding
        self.residual_units_per_participant = residual_units_per_participant

    def normalize(self, balances: Balances, participant_ids: Iterable[str] = ()) -> List[NetBalance]:
        """
        Returns one NetBalance per participant, sorted by participant id.

        Participants listed in ``participant_ids`` with no ledger activity get a
        zero balance. The result always sums to exactly zero.
        """
        rounded = self.convert(balances)
        for participant_id in participant_ids:
            rounded.setdefault(participant_id, 0)

        rounded = self._absorb_residual(rounded)

        return [
            NetBalance(participant_id=participant_id, amount_minor=amount)
            for participant_id, amount in sorted(rounded.items())
        ]

    def convert(self, amounts: Balances) -> Dict[str, int]:
        """
        Sum each participant's amounts in base minor units, rounding once at the end.

        No residual handling: used as-is for display totals (paid, owed).
        """
        factors = self._conversion_factors(amounts)
        exact: Dict[str, Decimal] = defaultdict(Decimal)

        with localcontext() as ctx:
            ctx.prec = _PRECISION
            for (participant_id, currency), amount_minor in amounts.items():
                exact[participant_id] += Decimal(amount_minor) * factors[currency]

            return {
                participant_id: int(total.quantize(Decimal(1), rounding=self.rounding))
                for participant_id, total in sorted(exact.items())
            }

    def _conversion_factors(self, amounts: Balances) -> Dict[str, Decimal]:
        factors = {}
        for currency in sorted({currency for _, currency in amounts}):
            rate = self.rates.rate_for(currency)
            if rate is None:
                logger.warning(
                    "Missing exchange rate",
                    extra={"currency": currency, "base_currency": self.base_currency}
                )
                raise MissingExchangeRateError(currency, self.base_currency)
            factors[currency] = conversion_factor(rate, currency, self.base_currency)
        return factors

    def _absorb_residual(self, rounded: Dict[str, int]) -> Dict[str, int]:
        residual = sum(rounded.values())
        if residual == 0:
            return rounded

        # Every rounded participant contributes up to half a unit, including
        # those whose balance rounds to zero
        tolerance = self.residual_units_per_participant * max(len(rounded), 1)
        if abs(residual) > tolerance:
            raise ImbalancedLedgerError(
                f"Normalized balances miss zero by {residual} minor units (tolerance {tolerance})",
                residual_minor=residual
            )

        # Largest absolute balance takes the residual; ties go to the lowest id
        target = min(rounded, key=lambda pid: (-abs(rounded[pid]), pid))
        adjusted = dict(rounded)
        adjusted[target] -= residual

        logger.debug(
            "Absorbed rounding residual",
            extra={"participant_id": target, "residual_minor": residual}
        )
        return adjusted
