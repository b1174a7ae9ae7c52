from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from app.application.dto.billing import CreateCheckoutSessionInput, StripeCheckoutSessionResult
from app.application.use_cases.create_checkout_session import CreateCheckoutSessionUseCase
from app.domain.entities.plan import build_plan_catalog
from app.domain.entities.profile import NotificationPreferences, Profile
from app.domain.exceptions import (
    BillingError,
    CheckoutError,
    CheckoutValidationError,
    PaymentProviderNotConfiguredError,
    ProfileCreationError,
    ProfileStoreError,
)


def _profile(user_id: str, *, email: str = "alice@example.com", stripe_customer_id: str | None = None) -> Profile:
    now = datetime.now(timezone.utc)
    return Profile(
        id=user_id,
        name="Alice",
        email=email,
        plan="free",
        status="active",
        stripe_customer_id=stripe_customer_id,
        subscription_id=None,
        subscription_status=None,
        notification_preferences=NotificationPreferences(),
        created_at=now,
        updated_at=now,
    )


class FakeProfileStore:
    def __init__(self, profiles: list[Profile] | None = None, *, fail_create: bool = False):
        self.profiles = {p.id: p for p in profiles or []}
        self.fail_create = fail_create
        self.calls: list[str] = []

    def get_by_id(self, *, user_id: str):
        self.calls.append("get_by_id")
        return self.profiles.get(user_id)

    def create(self, *, user_id: str, email: str, plan: str, now: datetime):
        self.calls.append("create")
        if self.fail_create:
            raise ProfileStoreError("insert failed")
        profile = replace(_profile(user_id, email=email), name=None, plan=plan)
        self.profiles[user_id] = profile
        return profile

    def set_stripe_customer_id_if_missing(self, *, user_id: str, stripe_customer_id: str, now: datetime) -> bool:
        self.calls.append("set_stripe_customer_id_if_missing")
        profile = self.profiles[user_id]
        if profile.stripe_customer_id:
            return False
        self.profiles[user_id] = replace(profile, stripe_customer_id=stripe_customer_id)
        return True


class FakeStripePort:
    def __init__(self, *, fail_session: bool = False):
        self.fail_session = fail_session
        self.customers: list[dict] = []
        self.sessions: list[dict] = []
        self.calls: list[str] = []

    def create_customer(self, *, user_id: str, email: str, name: str | None) -> str:
        self.calls.append("create_customer")
        self.customers.append({"user_id": user_id, "email": email, "name": name})
        return f"cus_{len(self.customers)}"

    def create_checkout_session(self, **kwargs) -> StripeCheckoutSessionResult:
        self.calls.append("create_checkout_session")
        if self.fail_session:
            raise BillingError("Failed to create Stripe checkout session.")
        self.sessions.append(kwargs)
        return StripeCheckoutSessionResult(id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1")


def _use_case(profile_store, stripe_port) -> CreateCheckoutSessionUseCase:
    return CreateCheckoutSessionUseCase(
        profile_store=profile_store,
        stripe_port=stripe_port,
        plan_catalog=build_plan_catalog(pro_price_id="price_pro", enterprise_price_id="price_ent"),
        app_url="https://dash.example.com/",
    )


def test_new_user_gets_free_profile_customer_and_session():
    store = FakeProfileStore()
    stripe_port = FakeStripePort()

    output = _use_case(store, stripe_port).execute(
        CreateCheckoutSessionInput(plan="pro", user_id="u1", email="a@b.com")
    )

    created = store.profiles["u1"]
    assert created.email == "a@b.com"
    assert created.plan == "free"
    assert created.stripe_customer_id == "cus_1"
    assert store.calls[:2] == ["get_by_id", "create"]
    assert stripe_port.customers == [{"user_id": "u1", "email": "a@b.com", "name": None}]
    assert stripe_port.sessions[0]["price_id"] == "price_pro"
    assert stripe_port.sessions[0]["customer_id"] == "cus_1"
    assert stripe_port.sessions[0]["metadata"] == {"user_id": "u1", "plan": "pro"}
    assert output.checkout_url == "https://checkout.stripe.com/c/pay/cs_test_1"
    assert output.stage == "done"


def test_redirect_urls_carry_plan_and_markers():
    stripe_port = FakeStripePort()

    _use_case(FakeProfileStore(), stripe_port).execute(
        CreateCheckoutSessionInput(plan="enterprise", user_id="u1", email="a@b.com")
    )

    session = stripe_port.sessions[0]
    success = urlparse(session["success_url"])
    cancel = urlparse(session["cancel_url"])
    assert success.path == "/billing"
    assert parse_qs(success.query) == {"success": ["true"], "plan": ["enterprise"]}
    assert cancel.path == "/billing"
    assert parse_qs(cancel.query) == {"canceled": ["true"]}


def test_missing_email_uses_placeholder():
    store = FakeProfileStore()

    _use_case(store, FakeStripePort()).execute(
        CreateCheckoutSessionInput(plan="pro", user_id="0123456789abcdef", email=None)
    )

    assert store.profiles["0123456789abcdef"].email == "user_01234567@checkout.temp"


def test_existing_customer_is_reused():
    store = FakeProfileStore([_profile("u1", stripe_customer_id="cus_existing")])
    stripe_port = FakeStripePort()

    output = _use_case(store, stripe_port).execute(CreateCheckoutSessionInput(plan="pro", user_id="u1"))

    assert stripe_port.customers == []
    assert "create" not in store.calls
    assert stripe_port.sessions[0]["customer_id"] == "cus_existing"
    assert output.stripe_customer_id == "cus_existing"


def test_existing_profile_without_customer_creates_exactly_one():
    store = FakeProfileStore([_profile("u1")])
    stripe_port = FakeStripePort()

    _use_case(store, stripe_port).execute(CreateCheckoutSessionInput(plan="pro", user_id="u1"))

    assert len(stripe_port.customers) == 1
    assert stripe_port.customers[0]["name"] == "Alice"
    assert store.profiles["u1"].stripe_customer_id == "cus_1"


@pytest.mark.parametrize(
    ("plan", "user_id"),
    [(None, "u1"), ("", "u1"), ("pro", None), ("pro", ""), (None, None)],
)
def test_missing_fields_fail_without_external_calls(plan, user_id):
    store = FakeProfileStore()
    stripe_port = FakeStripePort()

    with pytest.raises(CheckoutValidationError):
        _use_case(store, stripe_port).execute(CreateCheckoutSessionInput(plan=plan, user_id=user_id))

    assert store.calls == []
    assert stripe_port.calls == []


@pytest.mark.parametrize("plan", ["free", "basic", "PRO"])
def test_unknown_plan_is_rejected(plan):
    store = FakeProfileStore()

    with pytest.raises(CheckoutValidationError, match="Invalid plan selected"):
        _use_case(store, FakeStripePort()).execute(CreateCheckoutSessionInput(plan=plan, user_id="u1"))

    assert store.calls == []


@pytest.mark.parametrize(
    ("plan", "user_id", "email", "message"),
    [
        (123, "u1", None, "Invalid plan selected"),
        (["pro"], "u1", None, "Invalid plan selected"),
        ("pro", 42, None, "Invalid userId"),
        ("pro", "u1", {"address": "a@b.com"}, "Invalid email"),
    ],
)
def test_wrongly_typed_fields_are_rejected(plan, user_id, email, message):
    store = FakeProfileStore()
    stripe_port = FakeStripePort()

    with pytest.raises(CheckoutValidationError, match=message):
        _use_case(store, stripe_port).execute(CreateCheckoutSessionInput(plan=plan, user_id=user_id, email=email))

    assert store.calls == []
    assert stripe_port.calls == []


def test_unconfigured_stripe_fails_before_validation():
    store = FakeProfileStore()

    with pytest.raises(PaymentProviderNotConfiguredError):
        _use_case(store, None).execute(CreateCheckoutSessionInput(plan=None, user_id=None))

    assert store.calls == []


def test_profile_creation_failure_is_fatal():
    stripe_port = FakeStripePort()

    with pytest.raises(ProfileCreationError, match="Failed to create user record"):
        _use_case(FakeProfileStore(fail_create=True), stripe_port).execute(
            CreateCheckoutSessionInput(plan="pro", user_id="u1", email="a@b.com")
        )

    assert stripe_port.calls == []


def test_provider_failure_is_mapped_to_generic_error(caplog):
    with pytest.raises(CheckoutError) as exc_info:
        _use_case(FakeProfileStore(), FakeStripePort(fail_session=True)).execute(
            CreateCheckoutSessionInput(plan="pro", user_id="u1", email="a@b.com")
        )

    assert str(exc_info.value) == "Failed to create checkout session"
    assert exc_info.value.stage == "creating_session"
    assert "stage=creating_session" in caplog.text


def test_customer_persist_failure_does_not_block_checkout():
    class FailingPersistStore(FakeProfileStore):
        def set_stripe_customer_id_if_missing(self, **kwargs) -> bool:
            raise ProfileStoreError("update failed")

    stripe_port = FakeStripePort()

    output = _use_case(FailingPersistStore([_profile("u1")]), stripe_port).execute(
        CreateCheckoutSessionInput(plan="pro", user_id="u1")
    )

    assert output.stripe_customer_id == "cus_1"
    assert stripe_port.sessions[0]["customer_id"] == "cus_1"
