"""
Thin HTTP wrapper over the remote ``/transactions`` collection.
"""

from __future__ import annotations

from typing import Callable, List, Optional

import httpx
from pydantic import ValidationError

from logging_setup import get_logger
from models import Transaction

logger = get_logger("finance_tracker.api_client")

RESOURCE_PATH = "/transactions"


class ApiError(Exception):
    """A transport failure or non-2xx answer from the transactions API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransactionsApi:
    """
    Forwards list/create/update/delete to one resource path.

    ``token_provider`` is asked for a bearer token before every request;
    the Authorization header is only sent when it returns one.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        client: Optional[httpx.Client] = None,
    ):
        self._token_provider = token_provider
        self._client = client or httpx.Client(
            base_url=base_url,
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> dict:
        token = self._token_provider() if self._token_provider else None
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def _request(self, method: str, **kwargs) -> httpx.Response:
        try:
            resp = self._client.request(method, RESOURCE_PATH, headers=self._headers(), **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ApiError(
                f"{method} {RESOURCE_PATH} failed with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {RESOURCE_PATH} failed: {e}") from e
        return resp

    def list(self, email: str) -> List[Transaction]:
        resp = self._request("GET", params={"email": email})
        try:
            rows = resp.json()
        except ValueError as e:
            raise ApiError("Transactions response is not JSON") from e
        if not isinstance(rows, list):
            raise ApiError(f"Expected a list of transactions, got {type(rows).__name__}")
        try:
            txns = [Transaction.model_validate(row) for row in rows]
        except ValidationError as e:
            raise ApiError(f"Malformed transaction in response: {e}") from e
        logger.debug("Fetched %d transactions for %s", len(txns), email)
        return txns

    def create(self, tx: Transaction, email: str) -> Transaction:
        """
        POSTs the record. When the server answers with its own id, the
        returned record carries that id.
        """
        resp = self._request("POST", json=tx.to_payload(email))
        server_id = _id_from_body(resp)
        if server_id is not None and server_id != tx.id:
            return tx.model_copy(update={"id": server_id})
        return tx

    def update(self, tx: Transaction, email: str) -> Transaction:
        self._request("PATCH", json=tx.to_payload(email))
        return tx

    def delete(self, tx_id: str, email: str) -> None:
        self._request("DELETE", json={"id": tx_id, "email": email})


def _id_from_body(resp: httpx.Response) -> Optional[str]:
    if not resp.content:
        return None
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("id") not in (None, ""):
        return str(body["id"])
    return None
