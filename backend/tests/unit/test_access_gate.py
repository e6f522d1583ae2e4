"""
Unit tests for the access gate.

The gate is pure, so these tests need no database or app.
"""

import pytest

from app.domain.access import (
    ACCESS_STAGES,
    AccessContext,
    Allow,
    Deny,
    DenyReason,
    Entitlement,
    EntitlementRequirement,
    Identity,
    authenticate,
    gate,
    run_stages,
)


FREE = EntitlementRequirement.FREE_TIER_LIMITED
PRO = EntitlementRequirement.SUBSCRIPTION_ONLY

ALICE = Identity(user_id="alice", email="alice@example.com")


class TestGateDecisions:
    """Decision table for every (identity, entitlement, requirement) combination."""

    @pytest.mark.parametrize("requirement", [FREE, PRO])
    def test_unauthenticated_is_denied(self, requirement):
        decision = gate(None, requirement, Entitlement.subscriber())
        assert decision == Deny(DenyReason.UNAUTHENTICATED)
        assert decision.allowed is False

    def test_unauthenticated_needs_no_entitlement(self):
        """No entitlement is looked at (or needed) for anonymous callers."""
        assert gate(None, FREE) == Deny(DenyReason.UNAUTHENTICATED)

    def test_subscriber_free_tier_does_not_consume(self):
        decision = gate(ALICE, FREE, Entitlement.subscriber())
        assert isinstance(decision, Allow)
        assert decision.consumes_quota is False

    def test_subscriber_subscription_only(self):
        decision = gate(ALICE, PRO, Entitlement.subscriber())
        assert isinstance(decision, Allow)
        assert decision.consumes_quota is False

    def test_free_user_with_quota_consumes(self):
        decision = gate(ALICE, FREE, Entitlement.free(3))
        assert isinstance(decision, Allow)
        assert decision.consumes_quota is True
        assert decision.identity == ALICE

    def test_free_user_at_limit_is_denied(self):
        assert gate(ALICE, FREE, Entitlement.free(0)) == Deny(DenyReason.LIMIT_EXCEEDED)

    @pytest.mark.parametrize("remaining", [0, 1, 5])
    def test_free_user_subscription_only_is_denied(self, remaining):
        """Subscription-only operations ignore the free allowance."""
        decision = gate(ALICE, PRO, Entitlement.free(remaining))
        assert decision == Deny(DenyReason.SUBSCRIPTION_REQUIRED)


class TestEntitlement:

    def test_free_never_negative(self):
        assert Entitlement.free(-4).remaining_free_uses == 0

    def test_subscriber_is_unbounded(self):
        entitlement = Entitlement.subscriber()
        assert entitlement.has_active_subscription is True
        assert entitlement.remaining_free_uses is None


class TestPipeline:

    def test_stage_order(self):
        assert [name for name, _ in ACCESS_STAGES] == [
            "authenticate",
            "authorize",
            "rate_limit",
        ]

    def test_first_deny_stops_the_pipeline(self):
        calls = []

        def deny_stage(ctx):
            calls.append("deny")
            return Deny(DenyReason.SUBSCRIPTION_REQUIRED)

        def never_called(ctx):
            calls.append("after")
            return ctx

        ctx = AccessContext(identity=ALICE, requirement=FREE)
        result = run_stages(ctx, (("deny", deny_stage), ("after", never_called)))

        assert result == Deny(DenyReason.SUBSCRIPTION_REQUIRED)
        assert calls == ["deny"]

    def test_authenticate_passes_context_through(self):
        ctx = AccessContext(identity=ALICE, requirement=FREE)
        assert authenticate(ctx) is ctx

    def test_authorize_without_entitlement_is_a_bug(self):
        ctx = AccessContext(identity=ALICE, requirement=PRO)
        with pytest.raises(ValueError):
            run_stages(ctx)
