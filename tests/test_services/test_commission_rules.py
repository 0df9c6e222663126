import datetime as dt
from decimal import Decimal

from src.core.enums import CommissionType
from src.services.commissions import (
    CommissionDecision,
    PaymentEvent,
    PolicyIneligibleOutcome,
    PolicyTerms,
    evaluate_commission,
)


ONBOARDED = dt.date(2025, 1, 1)


def _policy(**overrides) -> PolicyTerms:
    values = dict(
        onboarding_rate=Decimal("20"),
        renewal_rate=Decimal("10"),
        enable_renewal_commission=True,
        min_renewal_days=0,
        commission_duration_days=0,
    )
    values.update(overrides)
    return PolicyTerms(**values)


def _event(**overrides) -> PaymentEvent:
    values = dict(
        business_id=1,
        installer_id=42,
        reference="ref-1",
        amount_paid=Decimal("63300"),
        duration_days=365,
        is_first_payment=True,
        onboarded_on=ONBOARDED,
        paid_on=ONBOARDED,
    )
    values.update(overrides)
    return PaymentEvent(**values)


def test_first_payment_earns_onboarding_commission():
    decision = evaluate_commission(_event(), _policy())

    assert decision == CommissionDecision(CommissionType.ONBOARDING, Decimal("12660.00"))


def test_renewal_earns_renewal_rate():
    decision = evaluate_commission(
        _event(is_first_payment=False, amount_paid=Decimal("5000"), duration_days=30),
        _policy(),
    )

    assert decision == CommissionDecision(CommissionType.RENEWAL, Decimal("500.00"))


def test_short_renewal_is_ineligible():
    outcome = evaluate_commission(
        _event(is_first_payment=False, duration_days=14), _policy(min_renewal_days=30)
    )

    assert isinstance(outcome, PolicyIneligibleOutcome)


def test_renewal_outside_commission_window_is_ineligible():
    event = _event(is_first_payment=False, paid_on=ONBOARDED + dt.timedelta(days=400))

    assert isinstance(
        evaluate_commission(event, _policy(commission_duration_days=365)),
        PolicyIneligibleOutcome,
    )
    assert isinstance(
        evaluate_commission(event, _policy(commission_duration_days=0)), CommissionDecision
    )


def test_disabled_renewals_still_pay_onboarding():
    policy = _policy(enable_renewal_commission=False)

    assert isinstance(
        evaluate_commission(_event(is_first_payment=False), policy), PolicyIneligibleOutcome
    )
    assert isinstance(evaluate_commission(_event(), policy), CommissionDecision)


def test_unattributed_and_free_payments_earn_nothing():
    assert isinstance(
        evaluate_commission(_event(installer_id=None), _policy()), PolicyIneligibleOutcome
    )
    assert isinstance(
        evaluate_commission(_event(amount_paid=Decimal("0")), _policy()),
        PolicyIneligibleOutcome,
    )
    assert isinstance(
        evaluate_commission(_event(), _policy(onboarding_rate=Decimal("0"))),
        PolicyIneligibleOutcome,
    )
