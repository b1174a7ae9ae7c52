from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from app.api.deps import (
    get_create_checkout_session_use_case,
    get_list_plans_use_case,
    get_process_stripe_webhook_use_case,
)
from app.api.schemas.billing import (
    CheckoutRequest,
    CheckoutResponse,
    PlanResponse,
    StripeWebhookResponse,
)
from app.application.dto.billing import CreateCheckoutSessionInput, StripeWebhookInput
from app.application.use_cases.create_checkout_session import CreateCheckoutSessionUseCase
from app.application.use_cases.list_plans import ListPlansUseCase
from app.application.use_cases.process_stripe_webhook import ProcessStripeWebhookUseCase
from app.domain.exceptions import (
    BillingError,
    CheckoutError,
    CheckoutValidationError,
    PaymentProviderNotConfiguredError,
    ProfileCreationError,
    ProfileStoreError,
)


router = APIRouter()


@router.post("/checkout", response_model=CheckoutResponse)
@router.post("/api/stripe/checkout", response_model=CheckoutResponse)
def create_checkout_session(
    req: CheckoutRequest,
    use_case: CreateCheckoutSessionUseCase = Depends(get_create_checkout_session_use_case),
):
    try:
        output = use_case.execute(
            CreateCheckoutSessionInput(
                plan=req.plan,
                user_id=req.user_id,
                email=req.email,
            )
        )
    except PaymentProviderNotConfiguredError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except CheckoutValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except (ProfileCreationError, CheckoutError) as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return CheckoutResponse(url=output.checkout_url)


@router.get("/billing/plans", response_model=list[PlanResponse])
def list_plans(
    use_case: ListPlansUseCase = Depends(get_list_plans_use_case),
):
    return [
        PlanResponse(plan=row.plan, name=row.name, amount=row.amount_cents, price_id=row.price_id)
        for row in use_case.execute()
    ]


@router.post("/stripe/webhook", response_model=StripeWebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(..., alias="Stripe-Signature"),
    use_case: ProcessStripeWebhookUseCase = Depends(get_process_stripe_webhook_use_case),
):
    payload = await request.body()
    try:
        output = use_case.execute(
            StripeWebhookInput(
                signature=stripe_signature,
                payload=payload,
            )
        )
    except BillingError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ProfileStoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return StripeWebhookResponse(event_type=output.event_type, handled=output.handled)
