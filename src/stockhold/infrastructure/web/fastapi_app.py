from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from stockhold.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    GatewayError,
    GatewayUnavailable,
    HoldAlreadyFinalized,
    InsufficientStock,
    ProductNotFound,
    SignatureVerificationFailed,
    ValidationError,
)
from stockhold.domain.service.hold_manager import LineRequest
from stockhold.infrastructure.bootstrap import Services

logger = structlog.get_logger(__name__)

# ---- HTTP DTOs (adapter layer) ---------------------------------------------


class CartLineIn(BaseModel):
    id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("id", "_id", "productId"),
        examples=["p-1"],
    )
    quantity: int = Field(examples=[2])


class AddressIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    phone_number: str = Field(min_length=1, alias="phoneNumber")
    pincode: str = Field(min_length=1)
    house_number: str = Field(min_length=1, alias="houseNumber")
    street_address: str = Field(min_length=1, alias="streetAddress")
    landmark: str | None = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    products: list[CartLineIn] = Field(min_length=1)
    address: AddressIn
    customer_id: str | None = Field(default=None, alias="customerId")


class VerifyPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    local_order_id: str = Field(min_length=1, alias="localOrderId")
    razorpay_payment_id: str = Field(min_length=1, alias="razorpayPaymentId")
    razorpay_signature: str = Field(min_length=1, alias="razorpaySignature")


class ErrorResponse(BaseModel):
    type: str
    message: str
    details: list[dict[str, Any]] | None = None


# ---- Mapping helpers -------------------------------------------------------


def _address_snapshot(address: AddressIn) -> dict[str, str]:
    return {k: v for k, v in address.model_dump().items() if v is not None}


def _map_error_to_http(err: DomainException) -> tuple[int, ErrorResponse]:
    name = type(err).__name__

    if isinstance(err, InsufficientStock):
        details = [
            {
                "productId": s.product_id,
                "productName": s.product_name,
                "requested": s.requested,
                "available": s.available,
            }
            for s in err.shortages
        ]
        return 400, ErrorResponse(type=name, message=str(err), details=details)

    if isinstance(err, (ValidationError, ProductNotFound, SignatureVerificationFailed)):
        return 400, ErrorResponse(type=name, message=str(err))

    if isinstance(err, EntityNotFoundError):
        return 404, ErrorResponse(type=name, message=str(err))

    if isinstance(err, HoldAlreadyFinalized):
        return 409, ErrorResponse(type=name, message=str(err))

    if isinstance(err, GatewayUnavailable):
        return 503, ErrorResponse(type=name, message=str(err))

    if isinstance(err, GatewayError):
        return 502, ErrorResponse(type=name, message=str(err))

    return 400, ErrorResponse(type=name, message=str(err))


# ---- App factory -----------------------------------------------------------


def create_app(services: Services, start_reaper: bool | None = None) -> FastAPI:
    run_reaper = services.settings.reaper_enabled if start_reaper is None else start_reaper

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if not run_reaper:
            yield
            return
        thread, stop = services.reaper.start()
        try:
            yield
        finally:
            stop.set()
            thread.join(timeout=5)

    app = FastAPI(title="stockhold", lifespan=lifespan)

    # --- exception handlers --------------------------------------------------

    @app.exception_handler(DomainException)
    async def handle_domain_error(_: Request, exc: DomainException) -> JSONResponse:
        status, body = _map_error_to_http(exc)
        return JSONResponse(status_code=status, content=body.model_dump())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        _: Request, exc: RequestValidationError
    ) -> JSONResponse:
        body = ErrorResponse(
            type="RequestValidationError",
            message="invalid request",
            details=[
                {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
                for e in exc.errors()
            ],
        )
        return JSONResponse(status_code=400, content=body.model_dump())

    @app.exception_handler(Exception)
    async def handle_unexpected(_: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", error_type=type(exc).__name__, exc_info=exc)
        body = ErrorResponse(type=type(exc).__name__, message="internal server error")
        return JSONResponse(status_code=500, content=body.model_dump())

    # --- routes --------------------------------------------------------------

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/payments/razorpay-create-order")
    def create_order(req: CreateOrderRequest) -> dict[str, Any]:
        dto = services.create_checkout.handle(
            [LineRequest(product_id=line.id, quantity=line.quantity) for line in req.products],
            _address_snapshot(req.address),
            customer_id=req.customer_id,
        )
        return {
            "orderId": dto.order_id,
            "localOrderId": dto.local_order_id,
            "expiresAt": dto.expires_at,
            "amount": dto.amount,
            "currency": dto.currency,
            "keyId": services.settings.razorpay_key_id,
        }

    @app.get("/api/holds/{local_order_id}")
    def get_hold_status(local_order_id: str) -> dict[str, str]:
        view = services.show_hold.status(local_order_id)
        return {"status": view.status.value, "expiresAt": view.expires_at.isoformat()}

    @app.post("/api/holds/{local_order_id}/cancel")
    def cancel_hold(local_order_id: str) -> dict[str, str]:
        status = services.cancel_hold.handle(local_order_id)
        return {"status": status}

    @app.post("/api/payments/razorpay-verify")
    def verify_payment(req: VerifyPaymentRequest) -> dict[str, str]:
        hold = services.payment_adapter.verify_payment(
            req.local_order_id, req.razorpay_payment_id, req.razorpay_signature
        )
        return {"status": hold.status.value, "localOrderId": hold.local_order_id}

    @app.post("/api/payments/razorpay-webhook")
    async def razorpay_webhook(
        request: Request,
        x_razorpay_signature: str | None = Header(default=None),
    ) -> dict[str, str]:
        raw_body = await request.body()
        try:
            outcome = await run_in_threadpool(
                services.payment_adapter.handle_webhook, raw_body, x_razorpay_signature
            )
        except SignatureVerificationFailed:
            # Already logged by the adapter; a 200 stops the gateway retrying.
            return {"status": "rejected"}
        return {"status": outcome.value}

    return app
