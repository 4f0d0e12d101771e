from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4


class BillingInterval(str, Enum):
    MONTH = "month"
    YEAR = "year"
    ONE_TIME = "one_time"


@dataclass(frozen=True, slots=True)
class MembershipTier:
    id: UUID
    organization_id: UUID
    name: str
    price: Decimal
    interval: BillingInterval = BillingInterval.MONTH
    position: int = 0
    is_active: bool = True
    description: str | None = None
    features: tuple[str, ...] = ()

    @staticmethod
    def new(
        *,
        organization_id: UUID,
        name: str,
        price: Decimal,
        interval: BillingInterval = BillingInterval.MONTH,
        position: int = 0,
        description: str | None = None,
        features: tuple[str, ...] = (),
    ) -> MembershipTier:
        return MembershipTier(
            id=uuid4(),
            organization_id=organization_id,
            name=name,
            price=price,
            interval=interval,
            position=position,
            description=description,
            features=features,
        )

    @property
    def is_free(self) -> bool:
        return self.price == 0
