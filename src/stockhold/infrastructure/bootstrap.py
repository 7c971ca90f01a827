"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from stockhold.application.add_product import AddProductHandler
from stockhold.application.cancel_hold import CancelHoldHandler
from stockhold.application.create_checkout import CreateCheckoutHandler
from stockhold.application.expiry_reaper import ExpiryReaper
from stockhold.application.set_stock import SetStockHandler
from stockhold.application.show_hold import ShowHoldHandler
from stockhold.application.show_stock import ShowStockHandler
from stockhold.domain.gateway.payment_gateway import PaymentGateway
from stockhold.domain.model.hold import utc_now
from stockhold.domain.service.hold_manager import HoldManager
from stockhold.domain.service.payment_gateway_adapter import PaymentGatewayAdapter
from stockhold.infrastructure.config import Settings
from stockhold.infrastructure.gateway.local_gateway import LocalPaymentGateway
from stockhold.infrastructure.gateway.razorpay_gateway import RazorpayGateway
from stockhold.infrastructure.persistence.sqlite_database import SqliteDatabase
from stockhold.infrastructure.persistence.sqlite_hold_repository import (
    SqliteHoldRepository,
)
from stockhold.infrastructure.persistence.sqlite_product_catalog import (
    SqliteProductCatalog,
)
from stockhold.infrastructure.persistence.sqlite_stock_ledger import SqliteStockLedger
from stockhold.infrastructure.persistence.sqlite_unit_of_work import SqliteUnitOfWork

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Services:
    settings: Settings
    hold_manager: HoldManager
    payment_adapter: PaymentGatewayAdapter
    reaper: ExpiryReaper
    create_checkout: CreateCheckoutHandler
    cancel_hold: CancelHoldHandler
    show_hold: ShowHoldHandler
    show_stock: ShowStockHandler
    set_stock: SetStockHandler
    add_product: AddProductHandler


def payment_gateway(settings: Settings) -> PaymentGateway:
    if settings.razorpay_configured:
        return RazorpayGateway(
            settings.razorpay_key_id,
            settings.razorpay_key_secret,
            api_url=settings.razorpay_api_url,
        )
    logger.warning("razorpay_not_configured", gateway="local")
    return LocalPaymentGateway()


def build_services(
    settings: Settings | None = None,
    gateway: PaymentGateway | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> Services:
    settings = settings or Settings.from_env()
    database = SqliteDatabase(settings.db_path)
    ledger = SqliteStockLedger(database)
    holds = SqliteHoldRepository(database)
    catalog = SqliteProductCatalog(database)

    hold_manager = HoldManager(
        ledger,
        holds,
        catalog,
        SqliteUnitOfWork(database),
        clock=clock,
        ttl=timedelta(seconds=settings.hold_ttl_seconds),
    )
    payment_adapter = PaymentGatewayAdapter(
        gateway or payment_gateway(settings),
        hold_manager,
        key_secret=settings.razorpay_key_secret,
        webhook_secret=settings.razorpay_webhook_secret,
        max_attempts=settings.gateway_max_attempts,
        base_delay=settings.gateway_backoff_seconds,
    )
    reaper = ExpiryReaper(
        hold_manager,
        holds,
        clock=clock,
        interval=settings.reaper_interval_seconds,
        batch_size=settings.reaper_batch_size,
    )

    return Services(
        settings=settings,
        hold_manager=hold_manager,
        payment_adapter=payment_adapter,
        reaper=reaper,
        create_checkout=CreateCheckoutHandler(hold_manager, payment_adapter),
        cancel_hold=CancelHoldHandler(hold_manager),
        show_hold=ShowHoldHandler(hold_manager),
        show_stock=ShowStockHandler(ledger),
        set_stock=SetStockHandler(ledger, catalog),
        add_product=AddProductHandler(catalog, ledger, currency=settings.currency),
    )
