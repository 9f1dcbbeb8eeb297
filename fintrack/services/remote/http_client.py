"""
HTTP Remote Store Implementation

Talks JSON to the finance backend over httpx.

Transport contract:
- Every request carries Content-Type: application/json and, when a token is
  available, Authorization: Bearer <token>
- 401 clears the session through the on_unauthorized callback and raises
  UnauthorizedError
- 404 raises NotFoundError, any other non-2xx raises RemoteResponseError
- 204 and non-JSON bodies read as None; a JSON body that fails to decode
  raises RemoteResponseError

Only GET requests are retried, and only on transport errors. Writes are sent
exactly once; the caller decides what a failed write means.
"""

from typing import Any, Callable, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fintrack.config import get_settings
from fintrack.models.shopping import (
    Account,
    ListStatus,
    ShoppingItem,
    ShoppingList,
    ShoppingListCreate,
    Transaction,
)
from fintrack.services.remote.interface import (
    NotFoundError,
    RemoteConnectionError,
    RemoteResponseError,
    RemoteStoreInterface,
    UnauthorizedError,
)

TokenProvider = Callable[[], Optional[str]]

logger = structlog.get_logger(__name__)


class FinanceApiClient:
    """
    Low-level client for the finance backend.

    Handles authentication headers, status mapping and read retries.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_provider: Optional[TokenProvider] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        read_retry_attempts: Optional[int] = None,
        retry_wait: Any = None,
    ):
        settings = get_settings().api
        self._base_url = (base_url or settings.base_url).rstrip("/")
        self._token_provider = token_provider
        self._on_unauthorized = on_unauthorized
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout_seconds, connect=10.0)
        )
        self._read_attempts = read_retry_attempts or settings.read_retry_attempts
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=8)

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(headers),
            )
        except httpx.HTTPError as e:
            raise RemoteConnectionError(f"{method} {path} failed: {e}") from e

        if response.status_code == 401:
            logger.warning("remote_unauthorized", method=method, path=path)
            if self._on_unauthorized:
                self._on_unauthorized()
            raise UnauthorizedError("Unauthorized", status_code=401)

        if response.status_code == 404:
            raise NotFoundError(f"{method} {path}: not found", status_code=404)

        if not response.is_success:
            raise RemoteResponseError(
                f"API Error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        if response.status_code == 204:
            return None

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError as e:
                raise RemoteResponseError(
                    f"Malformed JSON from {method} {path}",
                    status_code=response.status_code,
                ) from e

        return None

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET with retries on transport errors."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._read_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(RemoteConnectionError),
            reraise=True,
        ):
            with attempt:
                return await self._send("GET", path, params=params)

    async def post(
        self,
        path: str,
        data: Any = None,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        return await self._send("POST", path, params=params, json=data, headers=headers)

    async def put(
        self,
        path: str,
        data: Any,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        return await self._send("PUT", path, params=params, json=data, headers=headers)

    async def delete(self, path: str) -> Any:
        return await self._send("DELETE", path)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()


def _query(**params: Any) -> dict[str, Any]:
    """Drop unset query parameters; render booleans the way the backend parses them."""
    query = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        query[key] = value
    return query


class HttpRemoteStore(RemoteStoreInterface):
    """
    HTTP implementation of the remote store.

    Response bodies are parsed into the pydantic models; a body that doesn't
    match the schema surfaces as RemoteResponseError.
    """

    def __init__(self, client: Optional[FinanceApiClient] = None):
        self._client = client or FinanceApiClient()

    @staticmethod
    def _parse(model: type, payload: Any):
        try:
            return model.model_validate(payload)
        except ValueError as e:
            raise RemoteResponseError(f"Unexpected {model.__name__} payload: {e}") from e

    async def list_shopping_lists(
        self,
        status: Optional[ListStatus] = None,
        month: Optional[str] = None,
    ) -> list[ShoppingList]:
        payload = await self._client.get(
            "/shopping-lists",
            params=_query(status=status.value if status else None, month=month),
        )
        return [self._parse(ShoppingList, entry) for entry in payload or []]

    async def get_shopping_list(self, list_id: int) -> ShoppingList:
        return self._parse(ShoppingList, await self._client.get(f"/shopping-lists/{list_id}"))

    async def create_shopping_list(self, data: ShoppingListCreate) -> ShoppingList:
        payload = await self._client.post("/shopping-lists", data.model_dump(mode="json"))
        return self._parse(ShoppingList, payload)

    async def update_shopping_list(
        self,
        list_id: int,
        data: dict,
        create_transactions: Optional[bool] = None,
        account_id: Optional[int] = None,
        idempotency_key: Optional[str] = None,
    ) -> ShoppingList:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        payload = await self._client.put(
            f"/shopping-lists/{list_id}",
            data,
            params=_query(create_transactions=create_transactions, account_id=account_id),
            headers=headers,
        )
        return self._parse(ShoppingList, payload)

    async def delete_shopping_list(self, list_id: int) -> None:
        await self._client.delete(f"/shopping-lists/{list_id}")

    async def duplicate_shopping_list(
        self,
        list_id: int,
        new_name: str,
        new_month: Optional[str] = None,
    ) -> ShoppingList:
        payload = await self._client.post(
            f"/shopping-lists/{list_id}/duplicate",
            params=_query(new_name=new_name, new_month=new_month),
        )
        return self._parse(ShoppingList, payload)

    async def create_item(self, list_id: int, data: dict) -> ShoppingItem:
        payload = await self._client.post(f"/shopping-lists/{list_id}/items", data)
        return self._parse(ShoppingItem, payload)

    async def update_item(self, list_id: int, item_id: int, data: dict) -> ShoppingItem:
        payload = await self._client.put(f"/shopping-lists/{list_id}/items/{item_id}", data)
        return self._parse(ShoppingItem, payload)

    async def delete_item(self, list_id: int, item_id: int) -> None:
        await self._client.delete(f"/shopping-lists/{list_id}/items/{item_id}")

    async def list_accounts(self) -> list[Account]:
        payload = await self._client.get("/accounts")
        return [self._parse(Account, entry) for entry in payload or []]

    async def create_transaction(
        self,
        data: dict,
        idempotency_key: Optional[str] = None,
    ) -> Transaction:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        payload = await self._client.post("/transactions", data, headers=headers)
        return self._parse(Transaction, payload)

    async def aclose(self) -> None:
        await self._client.aclose()
