from __future__ import annotations

import logging

from app.application.dto.billing import (
    CheckoutStage,
    CreateCheckoutSessionInput,
    CreateCheckoutSessionOutput,
)
from app.application.ports.profile_store_port import ProfileStorePort
from app.application.ports.stripe_port import StripePort
from app.domain.entities.plan import PlanCatalog
from app.domain.entities.profile import Profile, placeholder_email
from app.domain.exceptions import (
    CheckoutError,
    CheckoutValidationError,
    PaymentProviderNotConfiguredError,
    ProfileCreationError,
    ProfileStoreError,
)

from .auth_common import utcnow


logger = logging.getLogger(__name__)


class CreateCheckoutSessionUseCase:
    """Ensure a profile and a Stripe customer exist, then open a hosted checkout.

    Each call walks ``validating -> ensuring_user -> ensuring_customer ->
    creating_session -> done``; any failure ends in ``failed``. Concurrent calls
    for the same user are not de-duplicated and may each create a customer; only
    the first customer id is persisted because the store write is set-if-null.
    """

    def __init__(
        self,
        *,
        profile_store: ProfileStorePort,
        stripe_port: StripePort | None,
        plan_catalog: PlanCatalog,
        app_url: str,
    ):
        self._profile_store = profile_store
        self._stripe_port = stripe_port
        self._plan_catalog = plan_catalog
        self._app_url = app_url.rstrip("/")

    def execute(self, command: CreateCheckoutSessionInput) -> CreateCheckoutSessionOutput:
        stage: CheckoutStage = "validating"
        if self._stripe_port is None:
            raise PaymentProviderNotConfiguredError(
                "Stripe is not configured. Add STRIPE_SECRET_KEY to the environment."
            )
        if not command.plan or not command.user_id:
            raise CheckoutValidationError("Missing required fields: plan or userId")
        plan = self._plan_catalog.get(command.plan) if isinstance(command.plan, str) else None
        if plan is None:
            raise CheckoutValidationError("Invalid plan selected")
        if not isinstance(command.user_id, str):
            raise CheckoutValidationError("Invalid userId")
        if command.email is not None and not isinstance(command.email, str):
            raise CheckoutValidationError("Invalid email")

        user_id = command.user_id
        try:
            stage = self._enter("ensuring_user", user_id)
            profile = self._ensure_profile(user_id=user_id, email=command.email)

            stage = self._enter("ensuring_customer", user_id)
            customer_id = self._ensure_customer(profile)

            stage = self._enter("creating_session", user_id)
            result = self._stripe_port.create_checkout_session(
                customer_id=customer_id,
                price_id=plan.price_id,
                success_url=f"{self._app_url}/billing?success=true&plan={plan.code}",
                cancel_url=f"{self._app_url}/billing?canceled=true",
                metadata={"user_id": user_id, "plan": plan.code},
            )
        except ProfileCreationError:
            logger.warning("checkout: failed stage=%s user_id=%s", stage, user_id)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("checkout: failed stage=%s user_id=%s", stage, user_id)
            raise CheckoutError("Failed to create checkout session", stage=stage) from exc

        self._enter("done", user_id)
        return CreateCheckoutSessionOutput(
            checkout_session_id=result.id,
            checkout_url=result.url,
            stripe_customer_id=customer_id,
        )

    @staticmethod
    def _enter(stage: CheckoutStage, user_id: str) -> CheckoutStage:
        logger.info("checkout: stage=%s user_id=%s", stage, user_id)
        return stage

    def _ensure_profile(self, *, user_id: str, email: str | None) -> Profile:
        profile = self._profile_store.get_by_id(user_id=user_id)
        if profile is not None:
            return profile
        try:
            return self._profile_store.create(
                user_id=user_id,
                email=email or placeholder_email(user_id),
                plan="free",
                now=utcnow(),
            )
        except ProfileStoreError as exc:
            logger.error("checkout: create_profile_failed user_id=%s error=%s", user_id, exc)
            raise ProfileCreationError("Failed to create user record") from exc

    def _ensure_customer(self, profile: Profile) -> str:
        if profile.stripe_customer_id:
            return profile.stripe_customer_id

        customer_id = self._stripe_port.create_customer(
            user_id=profile.id,
            email=profile.email,
            name=profile.name,
        )
        try:
            applied = self._profile_store.set_stripe_customer_id_if_missing(
                user_id=profile.id,
                stripe_customer_id=customer_id,
                now=utcnow(),
            )
        except ProfileStoreError as exc:
            # Best-effort: the checkout proceeds with the new customer.
            logger.error(
                "checkout: persist_customer_failed user_id=%s customer_id=%s error=%s",
                profile.id,
                customer_id,
                exc,
            )
            return customer_id
        if not applied:
            logger.warning(
                "checkout: stripe_customer_id_not_persisted user_id=%s customer_id=%s",
                profile.id,
                customer_id,
            )
        return customer_id
