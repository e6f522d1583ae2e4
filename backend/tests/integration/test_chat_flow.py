"""
Integration tests for the gated chat and tool endpoints.

Full request/response cycle against a SQLite database with the LLM and
PayPal mocked on app.state.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.infrastructure.db.repositories.usage_repository import UsageRepository
from app.infrastructure.exceptions import AIServiceError


def _chat(client: TestClient, headers, message="Write a haiku", conversation_id=None):
    body = {"message": message}
    if conversation_id:
        body["conversationId"] = conversation_id
    return client.post("/api/chat", json=body, headers=headers)


def _remaining(client: TestClient, headers):
    return client.get("/api/api-limit", headers=headers).json()["remainingFreeUses"]


class TestFreeTier:

    def test_exactly_free_limit_successes_then_denied(self, client, auth_headers, mock_llm):
        for expected_remaining in (4, 3, 2, 1, 0):
            response = _chat(client, auth_headers)
            assert response.status_code == 200
            assert response.json()["data"]["response"] == "Hello from the assistant!"
            assert _remaining(client, auth_headers) == expected_remaining

        denied = _chat(client, auth_headers)

        assert denied.status_code == 403
        assert denied.json()["reason"] == "LIMIT_EXCEEDED"
        assert mock_llm.complete.await_count == 5

    def test_limit_is_per_user(self, client, auth_headers, make_token):
        for _ in range(5):
            _chat(client, auth_headers)

        other = {"Authorization": f"Bearer {make_token(user_id='someone_else')}"}
        assert _chat(client, other).status_code == 200

    def test_llm_failure_consumes_no_quota(self, client, auth_headers, mock_llm):
        mock_llm.complete.side_effect = AIServiceError("model overloaded", model="gemini")

        response = _chat(client, auth_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "An error occurred during chat completion."}
        assert _remaining(client, auth_headers) == 5

    def test_llm_failure_stores_no_messages(self, client, auth_headers, mock_llm):
        mock_llm.complete.side_effect = AIServiceError("boom")
        _chat(client, auth_headers)

        assert client.get("/api/conversations", headers=auth_headers).json() == []

    def test_empty_message_is_rejected(self, client, auth_headers, mock_llm):
        response = _chat(client, auth_headers, message="   ")

        assert response.status_code == 400
        mock_llm.complete.assert_not_awaited()
        assert _remaining(client, auth_headers) == 5


class TestSubscriberFlow:

    def _subscribe(self, client, auth_headers):
        response = client.post(
            "/api/paypal/capture-subscription",
            json={"subscriptionId": "I-SUB123"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        return response

    def test_capture_lifts_the_limit(self, client, auth_headers):
        for _ in range(5):
            _chat(client, auth_headers)
        assert _chat(client, auth_headers).status_code == 403

        self._subscribe(client, auth_headers)

        assert _chat(client, auth_headers).status_code == 200
        limit = client.get("/api/api-limit", headers=auth_headers).json()
        assert limit == {"remainingFreeUses": None, "hasActiveSubscription": True, "freeLimit": 5}

    def test_subscriber_never_touches_usage_ledger(self, client, auth_headers):
        self._subscribe(client, auth_headers)

        with patch.object(UsageRepository, "increment", new_callable=AsyncMock) as increment, \
             patch.object(UsageRepository, "get_by_user_id", new_callable=AsyncMock) as get_usage:
            for _ in range(7):
                assert _chat(client, auth_headers).status_code == 200

        increment.assert_not_awaited()
        get_usage.assert_not_awaited()

    def test_cancel_restores_free_tier(self, client, auth_headers, mock_paypal):
        self._subscribe(client, auth_headers)

        response = client.post("/api/paypal/cancel-subscription", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELED"
        mock_paypal.cancel_subscription.assert_awaited_once()
        assert client.get("/api/subscription/check", headers=auth_headers).json() == {"isPro": False}


class TestConversationContinuity:

    def test_follow_up_uses_history(self, client, auth_headers, mock_llm):
        first = _chat(client, auth_headers, message="My name is Ada").json()["data"]
        conversation_id = first["conversationId"]

        second = _chat(client, auth_headers, message="What is my name?", conversation_id=conversation_id)

        assert second.status_code == 200
        assert second.json()["data"]["conversationId"] == conversation_id
        history = mock_llm.complete.await_args.kwargs["history"]
        assert [turn.content for turn in history] == ["My name is Ada", "Hello from the assistant!"]

    def test_unknown_conversation_is_404_and_free(self, client, auth_headers, mock_llm):
        response = _chat(
            client,
            auth_headers,
            conversation_id="00000000-0000-0000-0000-000000000000",
        )

        assert response.status_code == 404
        mock_llm.complete.assert_not_awaited()
        assert _remaining(client, auth_headers) == 5


class TestTools:

    def test_catalogue_is_public(self, client):
        response = client.get("/api/tools")

        assert response.status_code == 200
        kinds = {tool["kind"]: tool["requirement"] for tool in response.json()}
        assert kinds["code"] == "FREE_TIER_LIMITED"
        assert kinds["music"] == "SUBSCRIPTION_ONLY"

    def test_free_tool_consumes_quota(self, client, auth_headers, mock_llm):
        response = client.post("/api/tools/code", json={"prompt": "fizzbuzz"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"response": "Hello from the assistant!", "tool": "code"}
        assert "software engineer" in mock_llm.complete.await_args.kwargs["instruction"]
        assert _remaining(client, auth_headers) == 4

    @pytest.mark.parametrize("tool", ["video", "music", "custom_model"])
    def test_pro_tools_require_subscription(self, client, auth_headers, mock_llm, tool):
        response = client.post(f"/api/tools/{tool}", json={"prompt": "x"}, headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["reason"] == "SUBSCRIPTION_REQUIRED"
        mock_llm.complete.assert_not_awaited()
        assert _remaining(client, auth_headers) == 5

    def test_unknown_tool(self, client, auth_headers):
        response = client.post("/api/tools/spreadsheet", json={"prompt": "x"}, headers=auth_headers)
        assert response.status_code == 400
