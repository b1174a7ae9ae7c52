from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PurchasablePlan:
    code: str
    name: str
    amount_cents: int
    price_id: str


class PlanCatalog:
    """Plans that can be bought through checkout. ``free`` is never listed."""

    def __init__(self, plans: list[PurchasablePlan]):
        self._plans = {plan.code: plan for plan in plans}

    def get(self, code: str) -> PurchasablePlan | None:
        return self._plans.get(code)

    def list(self) -> list[PurchasablePlan]:
        return list(self._plans.values())


def build_plan_catalog(*, pro_price_id: str, enterprise_price_id: str) -> PlanCatalog:
    return PlanCatalog(
        [
            PurchasablePlan(code="pro", name="Pro", amount_cents=2900, price_id=pro_price_id),
            PurchasablePlan(
                code="enterprise",
                name="Enterprise",
                amount_cents=9900,
                price_id=enterprise_price_id,
            ),
        ]
    )
