"""Mini README: FastAPI application exposing the ledger over HTTP.

Structure:
    * create_application - application factory wiring routes, CORS and
      error translation around a ``LedgerService``.

Routes live under ``/api``. Ledger errors are rendered as
``{"error": "<message>"}`` with the status code carried by the error class,
so validation failures answer 400 rather than FastAPI's default 422. Any
other exception is logged and answered with a 500 in the same shape. Store
calls run in the threadpool so database I/O never blocks the event loop.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ..configuration import get_settings
from ..errors import LedgerError, ValidationError
from ..ledger import LedgerService, TransactionFilter
from ..ledger.service import TRANSFER_MESSAGE
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)


async def _read_json(request: Request) -> Any:
    """Decode the request body, reporting malformed JSON as a validation error."""

    body = await request.body()
    if not body:
        raise ValidationError("Request body must be a JSON object.")
    try:
        return json.loads(body)
    except ValueError as error:
        raise ValidationError(f"Request body is not valid JSON: {error}") from error


def _build_default_service() -> LedgerService:
    from ..ledger.sql_store import SqlTransactionStore

    settings = get_settings()
    return LedgerService(SqlTransactionStore(settings.database_url))


def create_application(service: Optional[LedgerService] = None) -> FastAPI:
    """Create the FastAPI application around ``service``.

    Without an explicit service the SQL store configured in the settings is
    opened, and closed again when the application shuts down.
    """

    settings = get_settings()
    owns_store = service is None
    ledger = service or _build_default_service()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        LOGGER.info("Ledger API started with %s store", ledger.store.backend_name)
        yield
        if owns_store:
            ledger.store.close()
            LOGGER.info("Ledger store closed")

    app = FastAPI(title="Money Manager Ledger API", version="1.0.0", lifespan=lifespan)
    app.state.ledger = ledger
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, error: LedgerError) -> JSONResponse:
        LOGGER.debug(
            "%s %s failed with %s: %s",
            request.method,
            request.url.path,
            type(error).__name__,
            error.message,
        )
        return JSONResponse({"error": error.message}, status_code=error.status_code)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, error: Exception) -> JSONResponse:
        LOGGER.error(
            "%s %s raised %s: %s",
            request.method,
            request.url.path,
            type(error).__name__,
            error,
            exc_info=error,
        )
        return JSONResponse({"error": str(error) or "Internal Server Error"}, status_code=500)

    @app.get("/api/health")
    def health() -> JSONResponse:
        """Report that the server is up."""

        return JSONResponse(ledger.health())

    @app.post("/api/transactions")
    async def create_transaction(request: Request) -> JSONResponse:
        """Record a new income or expense."""

        payload = await _read_json(request)
        created = await run_in_threadpool(ledger.create_transaction, payload)
        return JSONResponse(created.as_dict(), status_code=201)

    @app.get("/api/transactions")
    def list_transactions(
        division: Optional[str] = Query(None),
        category: Optional[str] = Query(None),
        transaction_type: Optional[str] = Query(None, alias="type"),
        start_date: Optional[str] = Query(None, alias="startDate"),
        end_date: Optional[str] = Query(None, alias="endDate"),
    ) -> JSONResponse:
        """Return filtered transactions, newest first."""

        criteria = TransactionFilter.from_params(
            division=division,
            category=category,
            transaction_type=transaction_type,
            start_date=start_date,
            end_date=end_date,
        )
        transactions = ledger.list_transactions(criteria)
        return JSONResponse([transaction.as_dict() for transaction in transactions])

    @app.get("/api/stats")
    def stats(
        division: Optional[str] = Query(None),
        category: Optional[str] = Query(None),
        transaction_type: Optional[str] = Query(None, alias="type"),
        start_date: Optional[str] = Query(None, alias="startDate"),
        end_date: Optional[str] = Query(None, alias="endDate"),
    ) -> JSONResponse:
        """Return balance, income and expense totals."""

        criteria = TransactionFilter.from_params(
            division=division,
            category=category,
            transaction_type=transaction_type,
            start_date=start_date,
            end_date=end_date,
        )
        return JSONResponse(ledger.compute_stats(criteria).as_dict())

    @app.post("/api/transactions/transfer")
    async def transfer(request: Request) -> JSONResponse:
        """Move money between divisions as a paired expense and income."""

        payload = await _read_json(request)
        await run_in_threadpool(ledger.transfer, payload)
        return JSONResponse({"message": TRANSFER_MESSAGE}, status_code=201)

    @app.put("/api/transactions/{transaction_id}")
    async def edit_transaction(transaction_id: str, request: Request) -> JSONResponse:
        """Update a transaction that is still inside its edit window."""

        payload = await _read_json(request)
        updated = await run_in_threadpool(ledger.edit_transaction, transaction_id, payload)
        return JSONResponse(updated.as_dict())

    return app
