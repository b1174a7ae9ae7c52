from __future__ import annotations

from app.application.dto.billing import PlanOutput
from app.domain.entities.plan import PlanCatalog


class ListPlansUseCase:
    def __init__(self, *, plan_catalog: PlanCatalog):
        self._plan_catalog = plan_catalog

    def execute(self) -> list[PlanOutput]:
        return [
            PlanOutput(
                plan=plan.code,
                name=plan.name,
                amount_cents=plan.amount_cents,
                price_id=plan.price_id,
            )
            for plan in self._plan_catalog.list()
        ]
