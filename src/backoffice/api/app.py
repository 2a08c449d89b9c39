"""FastAPI application factory."""

import logging
from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterator, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from backoffice.config import Settings, load_settings
from backoffice.database import Database, create_database_factory
from backoffice.domain.auth import is_authorized
from backoffice.domain.budget import BudgetService
from backoffice.domain.errors import DomainError, NotFoundError, SignatureError, StoreError, ValidationError
from backoffice.domain.reconciliation import ReconciliationService
from backoffice.domain.webhooks import StripeEventProcessor
from backoffice.integrations.stripe_gateway import StripeGateway
from backoffice.utils.money import round2

log = logging.getLogger(__name__)


class BankMatchRequest(BaseModel):
    bank_transaction_id: int
    match_type: str
    target_id: str
    amount: Optional[Decimal] = None
    payment_date: Optional[date] = None


def _http_error(error: DomainError) -> HTTPException:
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, StoreError):
        return HTTPException(status_code=503, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))


def create_app(
    settings: Optional[Settings] = None,
    db_factory: Optional[Callable[[], Database]] = None,
    gateway: Optional[StripeGateway] = None,
) -> FastAPI:
    """Create the web application.

    Args:
        settings: Settings; loaded from the environment when omitted
        db_factory: Callable returning a fresh Database per request
        gateway: Stripe gateway; built from the settings when omitted

    Returns:
        FastAPI application
    """
    settings = settings or load_settings()
    db_factory = db_factory or create_database_factory(settings.database_url)
    gateway = gateway or StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret)

    app = FastAPI(title="backoffice")

    def get_db() -> Iterator[Database]:
        db = db_factory()
        try:
            yield db
        finally:
            db.disconnect()

    def require_admin(x_authenticated_email: Optional[str] = Header(default=None)) -> Optional[str]:
        if not is_authorized(x_authenticated_email, settings.admin_emails):
            log.warning("Rejected admin request from %s", x_authenticated_email or "anonymous")
            raise HTTPException(status_code=403, detail="Not authorized")
        return x_authenticated_email

    def process_event(event: dict[str, Any]) -> dict[str, Any]:
        db = db_factory()
        try:
            return StripeEventProcessor(db, gateway).process(event)
        finally:
            db.disconnect()

    @app.post("/webhooks/stripe")
    async def stripe_webhook(request: Request):
        signature = request.headers.get("stripe-signature")
        if not signature:
            return JSONResponse({"error": "No signature"}, status_code=400)

        payload = await request.body()
        try:
            event = gateway.verify_event(payload, signature)
        except SignatureError as e:
            log.warning("Webhook signature verification failed: %s", e)
            return JSONResponse({"error": "Invalid signature"}, status_code=400)
        except ValidationError as e:
            return JSONResponse({"error": str(e)}, status_code=400)

        try:
            result = await run_in_threadpool(process_event, event)
        except Exception as e:
            # Stripe redelivers on 5xx; the event ID stays unrecorded
            log.exception("Webhook processing error for event %s", event.get("id"))
            return JSONResponse({"error": str(e)}, status_code=500)

        body: dict[str, Any] = {"received": True}
        if result.get("duplicate"):
            body["duplicate"] = True
        return body

    @app.get("/admin/budget/{tax_year}")
    def budget_actuals(tax_year: int, db: Database = Depends(get_db), _: Any = Depends(require_admin)):
        actuals = BudgetService(db, settings.vehicle_rate).actuals(tax_year)
        return {
            "tax_year": tax_year,
            "actuals": {
                category: [{"month": mv.month, "value": round2(mv.value)} for mv in values]
                for category, values in actuals.items()
            },
        }

    @app.get("/admin/bank-transactions/{bank_transaction_id}/suggestions")
    def bank_suggestions(
        bank_transaction_id: int, db: Database = Depends(get_db), _: Any = Depends(require_admin)
    ):
        try:
            candidates = ReconciliationService(db).suggest_for(bank_transaction_id)
        except DomainError as e:
            raise _http_error(e)
        return [asdict(c) for c in candidates]

    @app.post("/admin/bank-matches", status_code=201)
    def create_bank_match(
        body: BankMatchRequest, db: Database = Depends(get_db), _: Any = Depends(require_admin)
    ):
        try:
            match = ReconciliationService(db).create_bank_match(
                bank_transaction_id=body.bank_transaction_id,
                match_type=body.match_type,
                target_id=body.target_id,
                amount=body.amount,
                payment_date=body.payment_date,
            )
        except DomainError as e:
            raise _http_error(e)
        if match is None:
            raise HTTPException(status_code=503, detail="Failed to save bank match")
        return asdict(match)

    @app.delete("/admin/bank-matches/{match_id}")
    def delete_bank_match(
        match_id: int,
        bank_transaction_id: int,
        db: Database = Depends(get_db),
        _: Any = Depends(require_admin),
    ):
        if not ReconciliationService(db).delete_bank_match(match_id, bank_transaction_id):
            raise HTTPException(status_code=404, detail=f"Bank match {match_id} not found")
        return {"deleted": True}

    return app
