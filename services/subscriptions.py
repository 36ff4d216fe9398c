from dataclasses import dataclass
from datetime import datetime

from dateutil.relativedelta import relativedelta
from flask import current_app

from models import db
from models.db import utcnow
from models.enums import MembershipTier, RoleName, TransactionKind
from models.user import User
from services import pending_transactions
from services.checkout import request_payment_link
from services.errors import Forbidden, NotFound, ValidationError

MEMBERSHIP_MONTHS = {
    MembershipTier.ONE_MONTH: 1,
    MembershipTier.SIX_MONTH: 6,
}

PLAN_NAMES = {
    MembershipTier.ONE_MONTH: "1 month",
    MembershipTier.SIX_MONTH: "6 months",
}


@dataclass
class SubscriptionCheckout:
    order_code: int
    amount: int
    checkout_url: str


def parse_tier(value) -> MembershipTier:
    try:
        tier = MembershipTier(value)
    except ValueError:
        tier = None
    if tier not in MEMBERSHIP_MONTHS:
        allowed = ", ".join(t.value for t in MEMBERSHIP_MONTHS)
        raise ValidationError(f"Invalid membership_type. Use one of: {allowed}")
    return tier


def membership_price(tier: MembershipTier) -> int:
    prices = current_app.config.get("MEMBERSHIP_PRICES") or {}
    price = prices.get(tier.value)
    if price is None:
        raise ValidationError("Membership plan is not available")
    return int(price)


def subscription_period(tier: MembershipTier, start: datetime):
    """(start, end) with calendar-month arithmetic; Jan 31 + 1 month is Feb 28/29."""
    return start, start + relativedelta(months=MEMBERSHIP_MONTHS[tier])


def start_subscription_checkout(user: User, membership_type, gateway) -> SubscriptionCheckout:
    if not user.has_role(RoleName.CAMERAMAN):
        raise Forbidden("Only cameramen can buy a membership")

    tier = parse_tier(membership_type)
    amount = membership_price(tier)

    order_code = pending_transactions.generate_order_code()
    pending_transactions.register(
        order_code,
        TransactionKind.MEMBERSHIP_SUBSCRIPTION,
        user.id,
        pending_transactions.MembershipSubscriptionPayload(tier=tier, amount=amount),
    )
    link = request_payment_link(gateway, order_code, amount, "Membership payment")
    return SubscriptionCheckout(order_code=order_code, amount=amount, checkout_url=link.checkout_url)


def activate(user_id: int, tier: MembershipTier, now: datetime = None) -> User:
    """Set the user's tier and period. Does not commit."""
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")

    start, end = subscription_period(tier, now or utcnow())
    user.membership_subscription = tier.value
    user.subscription_start_date = start
    user.subscription_end_date = end
    return user


def activation_message(user: User, tier: MembershipTier) -> str:
    fmt = current_app.config.get("DATE_DISPLAY_FORMAT", "%d/%m/%Y")
    return (
        f"Your {PLAN_NAMES[tier]} membership is active "
        f"from {user.subscription_start_date.strftime(fmt)} "
        f"to {user.subscription_end_date.strftime(fmt)}."
    )
