"""
Tests for the HTTP remote store, against httpx.MockTransport.
"""

import json
from typing import Callable, Optional

import httpx
import pytest
from tenacity import wait_none

from fintrack.context import Notifier
from fintrack.models.shopping import ListStatus, ShoppingListCreate
from fintrack.orchestrator import ShoppingListFlow
from fintrack.services.remote import (
    FinanceApiClient,
    HttpRemoteStore,
    NotFoundError,
    RemoteConnectionError,
    RemoteResponseError,
    UnauthorizedError,
)
from fintrack.shopping.completion import CompletionDialog, CompletionFailedError, Closed, Failed
from fintrack.shopping.session import ListDetailSession

from conftest import TODAY

BASE_URL = "http://api.test"

LIST_PAYLOAD = {
    "id": 1,
    "name": "Mercado",
    "month": "2025-03",
    "status": "active",
    "total_estimated": 53.0,
    "total_spent": 42.0,
    "items": [
        {
            "id": 1,
            "shopping_list_id": 1,
            "name": "Banana",
            "category": "Frutas",
            "quantity": "1 dz",
            "estimated_price": 10.0,
            "actual_price": None,
            "is_purchased": True,
            "notes": None,
            "order": 0,
        },
    ],
    "completed_at": None,
}


def _make_store(
    handler: Callable[[httpx.Request], httpx.Response],
    token: Optional[str] = "tok-1",
    on_unauthorized: Optional[Callable[[], None]] = None,
    attempts: int = 3,
) -> HttpRemoteStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpRemoteStore(FinanceApiClient(
        base_url=BASE_URL,
        token_provider=lambda: token,
        on_unauthorized=on_unauthorized,
        http_client=client,
        read_retry_attempts=attempts,
        retry_wait=wait_none(),
    ))


class TestRequests:
    """Tests for what goes on the wire."""

    @pytest.mark.asyncio
    async def test_headers_and_list_parsing(self):
        """Test bearer token, content type and response parsing."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[LIST_PAYLOAD])

        store = _make_store(handler)
        lists = await store.list_shopping_lists(status=ListStatus.ACTIVE, month="2025-03")

        assert lists[0].name == "Mercado"
        assert lists[0].items[0].category == "Frutas"
        request = requests[0]
        assert request.headers["Authorization"] == "Bearer tok-1"
        assert request.headers["Content-Type"] == "application/json"
        assert request.url.path == "/shopping-lists"
        assert dict(request.url.params) == {"status": "active", "month": "2025-03"}

    @pytest.mark.asyncio
    async def test_no_token_no_authorization(self):
        """Test anonymous requests carry no Authorization header."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[])

        store = _make_store(handler, token=None)
        await store.list_accounts()

        assert "Authorization" not in requests[0].headers

    @pytest.mark.asyncio
    async def test_complete_with_expenses_query(self):
        """Test completion parameters and the idempotency header."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={**LIST_PAYLOAD, "status": "completed"})

        store = _make_store(handler)
        updated = await store.update_shopping_list(
            1, {"status": "completed"},
            create_transactions=True, account_id=7, idempotency_key="complete-1-abc",
        )

        request = requests[0]
        assert request.method == "PUT"
        assert dict(request.url.params) == {"create_transactions": "true", "account_id": "7"}
        assert request.headers["Idempotency-Key"] == "complete-1-abc"
        assert json.loads(request.content) == {"status": "completed"}
        assert updated.status == ListStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_plain_update_has_no_query(self):
        """Test a plain status change sends no query parameters."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=LIST_PAYLOAD)

        store = _make_store(handler)
        await store.update_shopping_list(1, {"status": "active"})

        assert requests[0].url.query == b""
        assert "Idempotency-Key" not in requests[0].headers

    @pytest.mark.asyncio
    async def test_duplicate_query(self):
        """Test the duplicate endpoint takes its arguments as query parameters."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={**LIST_PAYLOAD, "id": 2, "name": "Mercado (Cópia)", "items": []})

        store = _make_store(handler)
        copy = await store.duplicate_shopping_list(1, "Mercado (Cópia)", "2025-04")

        assert requests[0].url.path == "/shopping-lists/1/duplicate"
        assert dict(requests[0].url.params) == {"new_name": "Mercado (Cópia)", "new_month": "2025-04"}
        assert copy.items == []

    @pytest.mark.asyncio
    async def test_create_list_body(self):
        """Test a new list is posted active with zero totals."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(201, json={**LIST_PAYLOAD, "items": []})

        store = _make_store(handler)
        await store.create_shopping_list(ShoppingListCreate(name="Mercado", month="2025-03"))

        body = json.loads(requests[0].content)
        assert body["status"] == "active"
        assert body["total_estimated"] == 0
        assert body["items"] == []

    @pytest.mark.asyncio
    async def test_create_transaction(self):
        """Test the expense body and idempotency header."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(201, json={"id": 5, **json.loads(request.content)})

        store = _make_store(handler)
        tx = await store.create_transaction(
            {"description": "Mercado - Frutas", "category": "Frutas", "date": "2025-03-15",
             "amount": 30.0, "type": "expense"},
            idempotency_key="complete-1-abc-0",
        )

        assert requests[0].url.path == "/transactions"
        assert requests[0].headers["Idempotency-Key"] == "complete-1-abc-0"
        assert tx.id == 5
        assert tx.account_id is None


class TestResponses:
    """Tests for status code mapping."""

    @pytest.mark.asyncio
    async def test_delete_no_content(self):
        """Test 204 reads as None."""
        store = _make_store(lambda request: httpx.Response(204))
        assert await store.delete_item(1, 2) is None

    @pytest.mark.asyncio
    async def test_unauthorized_clears_session(self):
        """Test 401 calls the callback and raises."""
        calls = []
        store = _make_store(lambda request: httpx.Response(401), on_unauthorized=lambda: calls.append(1))

        with pytest.raises(UnauthorizedError) as exc_info:
            await store.update_item(1, 2, {"is_purchased": True})

        assert exc_info.value.status_code == 401
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_not_found(self):
        """Test 404 maps to NotFoundError."""
        store = _make_store(lambda request: httpx.Response(404))
        with pytest.raises(NotFoundError):
            await store.get_shopping_list(99)

    @pytest.mark.asyncio
    async def test_server_error_keeps_status(self):
        """Test other non-2xx codes keep their status."""
        store = _make_store(lambda request: httpx.Response(500))
        with pytest.raises(RemoteResponseError) as exc_info:
            await store.create_item(1, {"name": "Leite"})
        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "API Error: 500 Internal Server Error"

    @pytest.mark.asyncio
    async def test_malformed_payload(self):
        """Test a body that doesn't match the schema is a response error."""
        store = _make_store(lambda request: httpx.Response(200, json={"unexpected": True}))
        with pytest.raises(RemoteResponseError):
            await store.get_shopping_list(1)


class TestRetries:
    """Tests for read retries."""

    @pytest.mark.asyncio
    async def test_get_retried_on_transport_error(self):
        """Test a GET survives transient connection failures."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=LIST_PAYLOAD)

        store = _make_store(handler, attempts=3)
        lst = await store.get_shopping_list(1)

        assert lst.id == 1
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_get_gives_up(self):
        """Test the last transport error is raised after the final attempt."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        store = _make_store(handler, attempts=2)
        with pytest.raises(RemoteConnectionError):
            await store.list_accounts()
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_get_not_retried_on_http_error(self):
        """Test status errors are not retried."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        store = _make_store(handler)
        with pytest.raises(RemoteResponseError):
            await store.get_shopping_list(1)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_writes_not_retried(self):
        """Test a write is sent exactly once."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        store = _make_store(handler)
        with pytest.raises(RemoteConnectionError):
            await store.update_item(1, 2, {"is_purchased": True})
        assert len(calls) == 1


def _undecodable(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"})


class TestUndecodableBody:
    """Tests for a success status whose JSON body can't be decoded."""

    @pytest.mark.asyncio
    async def test_read_is_response_error(self):
        """Test the decode failure surfaces in the remote error family."""
        store = _make_store(_undecodable)
        with pytest.raises(RemoteResponseError) as exc_info:
            await store.get_shopping_list(1)
        assert exc_info.value.status_code == 200
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_toggle_rolls_back(self, groceries):
        """Test an item toggle is reverted and the user is told."""
        notifier = Notifier()
        session = ListDetailSession(groceries, _make_store(_undecodable), notifier=notifier)

        outcome = await session.toggle_purchased(4)

        assert not outcome.succeeded
        assert isinstance(outcome.error, RemoteResponseError)
        assert 4 not in session.state.purchased_ids
        assert not session.is_pending(4)
        assert notifier.last.message == "Error updating item"

    @pytest.mark.asyncio
    async def test_completion_dialog_can_be_left(self, groceries):
        """Test completion fails cleanly and the dialog leaves Submitting."""
        flow = ShoppingListFlow(_make_store(_undecodable), expense_mode="server", today=TODAY)
        dialog = CompletionDialog()
        dialog.open(groceries)

        with pytest.raises(CompletionFailedError):
            await flow.submit_completion(dialog, groceries)

        assert isinstance(dialog.state, Failed)
        assert isinstance(dialog.cancel(), Closed)
