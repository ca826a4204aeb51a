from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValueModel(BaseModel):
    """Immutable value object. Engine inputs and outputs are never mutated in place."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        from_attributes=True
    )
