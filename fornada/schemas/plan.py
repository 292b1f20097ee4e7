"""Plan schemas."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class PlanResponse(BaseModel):
    """Plan response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    benefits: list[str]
    price: Decimal
