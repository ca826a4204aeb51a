from typing import FrozenSet

from pydantic import field_validator

from tripsplit.models.base import ValueModel
from tripsplit.utils.currency import normalize_code


class TripContext(ValueModel):
    """Trip metadata the engine needs: base currency and who belongs to the trip."""
    trip_id: str
    base_currency: str
    participant_ids: FrozenSet[str] = frozenset()

    @field_validator("base_currency")
    @classmethod
    def _base_code(cls, value: str) -> str:
        return normalize_code(value)
