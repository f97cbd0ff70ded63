import os
import sys
from decimal import Decimal
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure project root is on path for `streala` imports
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("AUTH_TOKEN", "cron-token")

from streala.config import Settings  # noqa: E402
from streala.models import (  # noqa: E402
    Alert,
    Base,
    MediaType,
    Streamer,
    StreamerPaymentConfig,
    StreamerSettings,
    Transaction,
    TransactionStatus,
)
from streala.services.realtime_service import RealtimeService  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    return Settings(
        REDIS_ENABLED=False,
        PROVIDER_FEE_RATE=0.0399,
        TEST_ALERT_RATE_LIMIT=10,
        TEST_ALERT_WINDOW_MINUTES=60,
        PUBLIC_BASE_URL="https://api.streala.test",
    )


@pytest.fixture
def realtime_service():
    realtime = Mock(spec=RealtimeService)
    realtime.publish_insert = AsyncMock(return_value=True)
    realtime.subscribe = AsyncMock(return_value=None)
    realtime.unsubscribe = AsyncMock()
    return realtime


def make_streamer(db, handle: str = "demo", public_key: Optional[str] = None) -> Streamer:
    streamer = Streamer(
        auth_user_id=f"auth-{handle}",
        handle=handle,
        display_name=handle.title(),
        email=f"{handle}@streala.test",
    )
    if public_key:
        streamer.public_key = public_key
    db.add(streamer)
    db.commit()
    return streamer


def make_alert(
    db,
    streamer: Streamer,
    title: str = "Buzina",
    price_cents: int = 2500,
    media_type: MediaType = MediaType.AUDIO,
    duration_seconds: Optional[int] = 3,
) -> Alert:
    alert = Alert(
        streamer_id=streamer.id,
        title=title,
        media_type=media_type.value,
        media_path=f"alerts/{streamer.handle}/{title.lower()}",
        price_cents=price_cents,
        duration_seconds=duration_seconds,
    )
    db.add(alert)
    db.commit()
    return alert


def make_transaction(
    db,
    alert: Alert,
    transaction_id: str = "tx-1",
    status: TransactionStatus = TransactionStatus.PENDING,
    buyer_note: Optional[str] = "Salve!",
) -> Transaction:
    transaction = Transaction(
        id=transaction_id,
        streamer_id=alert.streamer_id,
        alert_id=alert.id,
        amount_cents=alert.price_cents,
        currency="BRL",
        status=status,
        buyer_note=buyer_note,
    )
    db.add(transaction)
    db.commit()
    return transaction


def make_settings(db, streamer: Streamer, **values) -> StreamerSettings:
    row = StreamerSettings(streamer_id=streamer.id, **values)
    db.add(row)
    db.commit()
    return row


def make_payment_config(
    db, streamer: Streamer, commission_rate: Optional[str] = "0.10"
) -> StreamerPaymentConfig:
    row = StreamerPaymentConfig(
        streamer_id=streamer.id,
        mp_access_token="APP_USR-streamer-token",
        mp_user_id="123456",
        commission_rate=Decimal(commission_rate) if commission_rate else None,
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def mp_gateway():
    from streala.providers.mercadopago import MercadoPagoGateway

    gateway = Mock(spec=MercadoPagoGateway)
    gateway.get_payment = AsyncMock()
    gateway.create_pix_payment = AsyncMock()
    return gateway


@pytest.fixture
def client(db_session, mp_gateway, realtime_service):
    """테스트 클라이언트 픽스처 (sqlite 세션 + 게이트웨이/실시간 대체)"""
    from dependency_injector import providers
    from fastapi.testclient import TestClient

    from streala.database.session import get_db
    from streala.main import app

    realtime_service.ping = AsyncMock(return_value=False)
    app.dependency_overrides[get_db] = lambda: db_session
    app.container.gateways.mercadopago_gateway.override(providers.Object(mp_gateway))
    app.container.gateways.realtime_service.override(providers.Object(realtime_service))
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.container.gateways.mercadopago_gateway.reset_override()
        app.container.gateways.realtime_service.reset_override()
