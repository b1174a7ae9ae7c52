from __future__ import annotations

import logging

from app.application.dto.billing import StripeWebhookInput, StripeWebhookOutput
from app.application.ports.profile_store_port import ProfileStorePort
from app.application.ports.stripe_port import StripePort
from app.domain.entities.plan import PlanCatalog
from app.domain.exceptions import BillingError

from .auth_common import utcnow


logger = logging.getLogger(__name__)


class ProcessStripeWebhookUseCase:
    def __init__(
        self,
        *,
        profile_store: ProfileStorePort,
        stripe_port: StripePort,
        plan_catalog: PlanCatalog,
    ):
        self._profile_store = profile_store
        self._stripe_port = stripe_port
        self._plan_catalog = plan_catalog

    def execute(self, command: StripeWebhookInput) -> StripeWebhookOutput:
        event = self._stripe_port.verify_webhook(signature=command.signature, payload=command.payload)

        if event.event_type == "checkout.session.completed" and event.checkout_completed is not None:
            completed = event.checkout_completed
            if not completed.user_id:
                raise BillingError("Checkout session is missing user_id metadata.")
            if not completed.plan or self._plan_catalog.get(completed.plan) is None:
                raise BillingError("Checkout session has an unknown plan.")

            now = utcnow()
            values = {"plan": completed.plan, "subscription_status": "active"}
            if completed.subscription_id:
                values["subscription_id"] = completed.subscription_id
            updated = self._profile_store.update_by_id(user_id=completed.user_id, values=values, now=now)
            if not updated:
                raise BillingError("No profile found for checkout session user_id.")
            if completed.customer_id:
                self._profile_store.set_stripe_customer_id_if_missing(
                    user_id=completed.user_id,
                    stripe_customer_id=completed.customer_id,
                    now=now,
                )
            logger.info(
                "stripe_webhook: checkout_completed user_id=%s plan=%s",
                completed.user_id,
                completed.plan,
            )
            return StripeWebhookOutput(event_type=event.event_type, handled=True)

        if event.event_type in {"customer.subscription.updated", "customer.subscription.deleted"}:
            subscription = event.subscription
            if subscription is None:
                raise BillingError("Stripe subscription event missing payload.")
            if not subscription.customer_id:
                raise BillingError("Stripe subscription event missing customer id.")

            profile = self._profile_store.get_by_stripe_customer_id(
                stripe_customer_id=subscription.customer_id
            )
            if profile is None:
                raise BillingError("No profile linked to Stripe customer id.")

            values = {
                "subscription_id": subscription.subscription_id,
                "subscription_status": subscription.status,
            }
            if event.event_type == "customer.subscription.deleted":
                values["plan"] = "free"
            updated = self._profile_store.update_by_id(user_id=profile.id, values=values, now=utcnow())
            if not updated:
                logger.warning("stripe_webhook: profile_not_updated user_id=%s event=%s", profile.id, event.event_type)
            logger.info(
                "stripe_webhook: subscription_changed user_id=%s status=%s event=%s",
                profile.id,
                subscription.status,
                event.event_type,
            )
            return StripeWebhookOutput(event_type=event.event_type, handled=True)

        return StripeWebhookOutput(event_type=event.event_type, handled=False)
