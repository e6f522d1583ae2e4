"""
Integration tests for the PayPal billing routes.

PayPalService is mocked on app.state; persistence is real.
"""

import json
from datetime import datetime, timezone

import pytest

from app.infrastructure.exceptions import BillingProviderError


USER_ID = "user_test_123"


def _webhook(client, event: dict):
    return client.post(
        "/api/paypal/webhook",
        content=json.dumps(event),
        headers={"content-type": "application/json"},
    )


def _paypal_event(event_id: str, event_type: str, resource: dict) -> dict:
    return {"id": event_id, "event_type": event_type, "resource": resource}


class TestCreateOrder:

    def test_create_order(self, client, auth_headers, mock_paypal):
        response = client.post(
            "/api/create-order",
            json={"planType": "Pro", "price": 19.99},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"orderID": "ORDER-123"}
        mock_paypal.create_order.assert_awaited_once_with("Pro", "19.99")

    def test_missing_fields(self, client, auth_headers):
        response = client.post("/api/create-order", json={"planType": "Pro"}, headers=auth_headers)
        assert response.status_code == 400

    def test_requires_auth(self, client):
        response = client.post("/api/create-order", json={"planType": "Pro", "price": "1"})
        assert response.status_code == 401

    def test_provider_error_is_500(self, client, auth_headers, mock_paypal):
        mock_paypal.create_order.side_effect = BillingProviderError("boom", provider="paypal")

        response = client.post(
            "/api/create-order",
            json={"planType": "Pro", "price": "19.99"},
            headers=auth_headers,
        )

        assert response.status_code == 500
        assert response.json() == {"error": "The billing provider request failed."}


class TestSubscriptionLifecycle:

    def test_create_records_pending(self, client, auth_headers, mock_paypal):
        response = client.post(
            "/api/paypal/create-subscription",
            json={"plan": "monthly"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["url"].startswith("https://www.sandbox.paypal.com/")

        body = client.get("/api/subscription", headers=auth_headers).json()
        assert body["isPro"] is False
        assert body["status"] == "PENDING"
        assert body["providerSubscriptionId"] == "I-SUB123"

    def test_create_rejects_unknown_plan(self, client, auth_headers):
        response = client.post(
            "/api/paypal/create-subscription",
            json={"plan": "weekly"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_capture_activates_with_period_end(self, client, auth_headers, mock_paypal):
        mock_paypal.get_subscription.return_value = {
            "id": "I-SUB123",
            "status": "ACTIVE",
            "plan_id": "P-MONTHLY",
            "custom_id": USER_ID,
            "next_billing_time": datetime(2100, 1, 1, tzinfo=timezone.utc),
        }

        response = client.post(
            "/api/paypal/capture-subscription",
            json={"subscriptionId": "I-SUB123"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "ACTIVE"
        assert response.json()["currentPeriodEnd"].startswith("2100-01-01")

    @pytest.mark.parametrize("provider_status", ["APPROVAL_PENDING", "SUSPENDED", "CANCELLED"])
    def test_capture_requires_active_at_provider(self, client, auth_headers, mock_paypal, provider_status):
        mock_paypal.get_subscription.return_value = {
            "id": "I-SUB123",
            "status": provider_status,
            "plan_id": "P-MONTHLY",
            "custom_id": USER_ID,
            "next_billing_time": None,
        }

        response = client.post(
            "/api/paypal/capture-subscription",
            json={"subscriptionId": "I-SUB123"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert client.get("/api/subscription/check", headers=auth_headers).json() == {"isPro": False}

    def test_capture_rejects_someone_elses_subscription(self, client, auth_headers, mock_paypal):
        mock_paypal.get_subscription.return_value = {
            "id": "I-SUB123",
            "status": "ACTIVE",
            "plan_id": "P-MONTHLY",
            "custom_id": "another_user",
            "next_billing_time": None,
        }

        response = client.post(
            "/api/paypal/capture-subscription",
            json={"subscriptionId": "I-SUB123"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("owner", [None, ""])
    def test_capture_rejects_subscription_without_owner(self, client, auth_headers, mock_paypal, owner):
        mock_paypal.get_subscription.return_value = {
            "id": "I-SUB123",
            "status": "ACTIVE",
            "plan_id": "P-MONTHLY",
            "custom_id": owner,
            "next_billing_time": None,
        }

        response = client.post(
            "/api/paypal/capture-subscription",
            json={"subscriptionId": "I-SUB123"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert client.get("/api/subscription", headers=auth_headers).json() is None

    def test_create_rejected_when_already_active(self, client, auth_headers, mock_paypal):
        client.post(
            "/api/paypal/capture-subscription",
            json={"subscriptionId": "I-SUB123"},
            headers=auth_headers,
        )

        response = client.post(
            "/api/paypal/create-subscription",
            json={"plan": "yearly"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        mock_paypal.create_subscription.assert_not_awaited()

    def test_cancel_without_subscription(self, client, auth_headers, mock_paypal):
        response = client.post("/api/paypal/cancel-subscription", headers=auth_headers)

        assert response.status_code == 404
        mock_paypal.cancel_subscription.assert_not_awaited()

    def test_cancel_provider_failure_keeps_status(self, client, auth_headers, mock_paypal):
        client.post(
            "/api/paypal/capture-subscription",
            json={"subscriptionId": "I-SUB123"},
            headers=auth_headers,
        )
        mock_paypal.cancel_subscription.side_effect = BillingProviderError("boom", provider="paypal")

        response = client.post("/api/paypal/cancel-subscription", headers=auth_headers)

        assert response.status_code == 500
        assert client.get("/api/subscription/check", headers=auth_headers).json() == {"isPro": True}


class TestPayPalWebhook:

    @pytest.fixture
    def pending(self, client, auth_headers):
        client.post(
            "/api/paypal/create-subscription",
            json={"plan": "monthly"},
            headers=auth_headers,
        )

    def _status(self, client, auth_headers):
        return client.get("/api/subscription", headers=auth_headers).json()["status"]

    def test_activated(self, client, auth_headers, pending):
        response = _webhook(client, _paypal_event("WH-1", "BILLING.SUBSCRIPTION.ACTIVATED", {
            "id": "I-SUB123",
            "status": "ACTIVE",
            "custom_id": USER_ID,
            "billing_info": {"next_billing_time": "2100-01-01T00:00:00Z"},
        }))

        assert response.status_code == 200
        assert response.json() == {"status": "success"}
        assert self._status(client, auth_headers) == "ACTIVE"

    @pytest.mark.parametrize("event_type, expected", [
        ("BILLING.SUBSCRIPTION.CANCELLED", "CANCELED"),
        ("BILLING.SUBSCRIPTION.EXPIRED", "CANCELED"),
        ("BILLING.SUBSCRIPTION.SUSPENDED", "PAST_DUE"),
        ("BILLING.SUBSCRIPTION.PAYMENT.FAILED", "PAST_DUE"),
        ("BILLING.SUBSCRIPTION.RENEWED", "ACTIVE"),
    ])
    def test_status_mapping(self, client, auth_headers, pending, event_type, expected):
        _webhook(client, _paypal_event("WH-2", event_type, {"id": "I-SUB123"}))
        assert self._status(client, auth_headers) == expected

    def test_idempotent_by_event_id(self, client, auth_headers, pending):
        cancel = _paypal_event("WH-3", "BILLING.SUBSCRIPTION.CANCELLED", {"id": "I-SUB123"})
        activate = _paypal_event("WH-4", "BILLING.SUBSCRIPTION.ACTIVATED", {"id": "I-SUB123"})

        assert _webhook(client, cancel).json() == {"status": "success"}
        _webhook(client, activate)
        assert _webhook(client, cancel).json() == {"status": "already_processed"}
        assert self._status(client, auth_headers) == "ACTIVE"

    def test_invalid_signature(self, client, mock_paypal):
        mock_paypal.verify_webhook_signature.return_value = False

        response = _webhook(client, _paypal_event("WH-5", "BILLING.SUBSCRIPTION.ACTIVATED", {}))
        assert response.status_code == 400

    def test_malformed_payload(self, client):
        response = client.post("/api/paypal/webhook", content=b"not json")
        assert response.status_code == 400

    def test_unknown_subscription_is_ignored(self, client):
        response = _webhook(client, _paypal_event("WH-6", "BILLING.SUBSCRIPTION.ACTIVATED", {
            "id": "I-UNKNOWN",
        }))
        assert response.status_code == 200
        assert response.json() == {"status": "ignored"}

    def test_unrelated_event(self, client):
        response = _webhook(client, _paypal_event("WH-7", "PAYMENT.SALE.COMPLETED", {"id": "SALE-1"}))
        assert response.json() == {"status": "ignored"}
