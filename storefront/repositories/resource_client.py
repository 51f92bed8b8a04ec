# storefront/repositories/resource_client.py
from __future__ import annotations

import logging
from typing import Any

import httpx

from storefront.core.errors import MalformedResponse, RequestFailed
from storefront.core.session import SessionContext

logger = logging.getLogger("storefront.resource_client")

# Resources exposed by the grocery backend, with their singular envelope key.
RESOURCES: dict[str, str] = {
    "users": "user",
    "products": "product",
    "orders": "order",
    "deliveries": "delivery",
    "payments": "payment",
}
_OBJECT_ENVELOPE_EXTRAS = {"success", "message"}

# Reported for 2xx responses whose envelope says `success: false`.
REFUSED_STATUS = 422


class ResourceClient:
    """
    Generic REST CRUD access to the grocery backend.

    Responsibilities:
      - attach the session's bearer token when there is one
      - unwrap response envelopes (`{success, data}`, `{<resource>: [...]}`)
      - map non-2xx responses to RequestFailed
      - retry transient failures of reads a bounded number of times
        (never authorization errors, never writes)
    """

    def __init__(
        self,
        session: SessionContext,
        base_url: str,
        *,
        timeout: float = 15.0,
        read_retries: int = 2,
        transport: httpx.BaseTransport | None = None,
    ):
        self.session = session
        self.read_retries = read_retries
        self.http = httpx.Client(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def close(self) -> None:
        self.http.close()

    # ---- CRUD ----

    def list(self, resource: str, params: dict[str, Any] | None = None) -> list[dict]:
        return self.list_at(resource, resource, params)

    def list_at(
        self,
        path: str,
        resource: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict]:
        """
        GET a collection from `path`, tolerant of three body shapes:
        a bare array, `{data: [...]}` and `{<resource>: [...]}`.
        """
        body = self.request("GET", path, params=params)
        return self._unwrap_list(resource, body)

    def get(self, resource: str, entity_id: Any) -> dict:
        body = self.request("GET", f"{resource}/{entity_id}")
        return self._unwrap_object(resource, body)

    def create(
        self,
        resource: str,
        payload: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
    ) -> dict:
        body = self.request("POST", resource, json=payload, headers=headers)
        return self._unwrap_object(resource, body)

    def update(self, resource: str, entity_id: Any, payload: dict[str, Any]) -> dict:
        body = self.request("PUT", f"{resource}/{entity_id}", json=payload)
        return self._unwrap_object(resource, body)

    def delete(self, resource: str, entity_id: Any) -> None:
        self.request("DELETE", f"{resource}/{entity_id}")

    def action(
        self,
        resource: str,
        path: str,
        payload: dict[str, Any] | None = None,
        method: str = "PUT",
    ) -> dict:
        """Call an action endpoint (e.g. `deliveries/7/pickup`) returning one entity."""
        body = self.request(method, path, json=payload)
        return self._unwrap_object(resource, body)

    # ---- Transport ----

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Issue one request and return the decoded JSON body (None if empty).

        Raises:
            RequestFailed: non-2xx response, a 2xx `success: false` envelope
                (status 422), or no response at all (status 0).
            MalformedResponse: 2xx response whose body is not JSON.
        """
        attempts = 1 + (self.read_retries if method.upper() == "GET" else 0)

        for attempt in range(1, attempts + 1):
            try:
                return self._send(method, path, json=json, params=params, headers=headers)
            except RequestFailed as e:
                if e.is_authorization_error or not e.is_transient or attempt == attempts:
                    raise
                logger.warning(
                    f"{method} {path} failed ({e.status}); retry {attempt}/{attempts - 1}"
                )

    def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        request_headers = dict(headers or {})
        token = self.session.token
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        try:
            response = self.http.request(
                method,
                path.lstrip("/"),
                json=json,
                params=params,
                headers=request_headers,
            )
        except httpx.TimeoutException:
            raise RequestFailed(0, f"{method} {path}: backend did not respond in time")
        except httpx.TransportError as e:
            raise RequestFailed(0, f"{method} {path}: could not reach backend ({e})")

        if response.is_error:
            raise self._error_from_response(response)

        if not response.content:
            return None
        try:
            body = response.json()
        except ValueError:
            raise MalformedResponse(path, response.text)

        if isinstance(body, dict) and body.get("success") is False:
            message = body.get("message") or body.get("error") or "Request was not successful"
            logger.error(f"{method} {path} -> {response.status_code} with success=false: {message}")
            raise RequestFailed(REFUSED_STATUS, str(message))
        return body

    @staticmethod
    def _error_from_response(response: httpx.Response) -> RequestFailed:
        status = response.status_code
        message = f"Request failed with status {status}: {response.reason_phrase}"

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                data = response.json()
            except ValueError:
                data = None
            if isinstance(data, dict):
                detail = data.get("message") or data.get("error") or data.get("detail")
                if detail:
                    message = str(detail)
        elif response.text:
            message = response.text

        if status in (401, 403):
            message = f"Access denied by server: {message}"

        logger.error(f"{response.request.method} {response.request.url} -> {status}: {message}")
        return RequestFailed(status, message)

    # ---- Envelopes ----

    @staticmethod
    def _unwrap_list(resource: str, body: Any) -> list[dict]:
        if isinstance(body, list):
            return body
        if isinstance(body, dict):
            if isinstance(body.get("data"), list):
                return body["data"]
            if isinstance(body.get(resource), list):
                return body[resource]
        raise MalformedResponse(resource, body)

    @staticmethod
    def _unwrap_object(resource: str, body: Any) -> dict:
        if isinstance(body, dict):
            if "success" in body and isinstance(body.get("data"), dict):
                return body["data"]
            singular = RESOURCES.get(resource)
            if (
                singular
                and isinstance(body.get(singular), dict)
                and set(body) - {singular} <= _OBJECT_ENVELOPE_EXTRAS
            ):
                # {"order": {...}, "message": "..."}
                return body[singular]
            return body
        raise MalformedResponse(resource, body)
