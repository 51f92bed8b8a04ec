"""Tests for the backend resource client."""

import httpx
import pytest

from conftest import make_token
from storefront.core.errors import MalformedResponse, RequestFailed


class TestEnvelopes:
    @pytest.mark.parametrize(
        "body",
        [
            [{"id": 1}, {"id": 2}],
            {"success": True, "data": [{"id": 1}, {"id": 2}]},
            {"orders": [{"id": 1}, {"id": 2}], "total": 2},
        ],
    )
    def test_list_shapes(self, client, backend, body):
        backend.on("GET", "orders", (200, body))
        assert client.list("orders") == [{"id": 1}, {"id": 2}]

    def test_list_without_collection_is_malformed(self, client, backend):
        backend.on("GET", "orders", (200, {"success": True, "message": "ok"}))
        with pytest.raises(MalformedResponse):
            client.list("orders")

    def test_object_in_success_envelope(self, client, backend):
        backend.on("GET", "orders/5", (200, {"success": True, "data": {"id": 5}}))
        assert client.get("orders", 5) == {"id": 5}

    def test_object_in_named_envelope(self, client, backend):
        backend.on("GET", "deliveries/3", (200, {"delivery": {"id": 3}, "message": "ok"}))
        assert client.get("deliveries", 3) == {"id": 3}

    def test_bare_object(self, client, backend):
        body = {"id": 5, "order": "not an envelope", "status": "pending"}
        backend.on("GET", "orders/5", (200, body))
        assert client.get("orders", 5) == body

    def test_non_json_success_is_malformed(self, client, backend):
        backend.on("GET", "orders/5", (200, "<html>maintenance</html>"))
        with pytest.raises(MalformedResponse):
            client.get("orders", 5)

    def test_empty_delete_response(self, client, backend):
        backend.on("DELETE", "orders/5", (204, None))
        assert client.delete("orders", 5) is None


class TestErrors:
    def test_json_error_message(self, client, backend):
        backend.on("PUT", "orders/5", (422, {"message": "status is required"}))
        with pytest.raises(RequestFailed) as exc_info:
            client.update("orders", 5, {})
        assert exc_info.value.status == 422
        assert exc_info.value.message == "status is required"

    def test_authorization_errors_are_relabeled_and_not_retried(self, client, backend):
        backend.on("GET", "orders", (403, {"error": "admin only"}))
        with pytest.raises(RequestFailed) as exc_info:
            client.list("orders")

        assert exc_info.value.is_authorization_error
        assert exc_info.value.message == "Access denied by server: admin only"
        assert len(backend.requests) == 1

    def test_success_false_envelope_is_refused(self, client, backend):
        backend.on("POST", "orders", (200, {"success": False, "message": "Out of stock"}))
        with pytest.raises(RequestFailed) as exc_info:
            client.create("orders", {"id": 1})

        assert exc_info.value.status == 422
        assert exc_info.value.message == "Out of stock"

    def test_transport_failure_is_status_zero(self, client, backend):
        backend.on("POST", "orders", httpx.ConnectError("no route to host"))
        with pytest.raises(RequestFailed) as exc_info:
            client.create("orders", {"id": 1})
        assert exc_info.value.status == 0

    def test_timeout_is_status_zero(self, client, backend):
        backend.on("GET", "orders", httpx.ReadTimeout("slow"))
        with pytest.raises(RequestFailed, match="did not respond") as exc_info:
            client.list("orders")
        assert exc_info.value.status == 0


class TestRetries:
    def test_transient_read_failure_is_retried(self, client, backend):
        backend.on("GET", "orders", (503, "busy"), (200, [{"id": 1}]))
        assert client.list("orders") == [{"id": 1}]
        assert len(backend.requests) == 2

    def test_read_retries_are_bounded(self, client, backend):
        backend.on("GET", "orders", (502, "bad gateway"))
        with pytest.raises(RequestFailed):
            client.list("orders")
        assert len(backend.requests) == 3

    def test_client_errors_are_not_retried(self, client, backend):
        backend.on("GET", "orders/77", (404, {"message": "Order not found"}))
        with pytest.raises(RequestFailed, match="Order not found"):
            client.get("orders", 77)
        assert len(backend.requests) == 1

    def test_writes_are_not_retried(self, client, backend):
        backend.on("POST", "orders", (503, "busy"))
        with pytest.raises(RequestFailed):
            client.create("orders", {"id": 1})
        assert len(backend.requests) == 1


class TestAuthorizationHeader:
    def test_guest_sends_no_token(self, client, backend):
        backend.on("GET", "orders", (200, []))
        client.list("orders")
        assert "Authorization" not in backend.requests[0].headers

    def test_signed_in_sends_bearer(self, client, backend, session, customer):
        token = make_token("1")
        session.login(customer, token)
        backend.on("GET", "orders", (200, []))

        client.list("orders")
        assert backend.requests[0].headers["Authorization"] == f"Bearer {token}"

    def test_expired_token_is_not_sent(self, client, backend, session, customer):
        session.login(customer, make_token("1", expires_in=-60))
        backend.on("GET", "orders", (200, []))

        client.list("orders")
        assert "Authorization" not in backend.requests[0].headers

    def test_extra_headers_are_forwarded(self, client, backend):
        backend.on("POST", "orders", (201, {"id": 1}))
        client.create("orders", {"id": 1}, headers={"Idempotency-Key": "abc"})
        assert backend.requests[0].headers["Idempotency-Key"] == "abc"
