"""Per-request dependencies: settings, store session, dispatcher and services."""

from __future__ import annotations

from collections.abc import Iterator

from fastapi import Depends, Request
from sqlmodel import Session

from signaldesk.config import Settings
from signaldesk.lifecycle.annotations import AnnotationService
from signaldesk.lifecycle.capture import CaptureService
from signaldesk.lifecycle.insights import InsightService
from signaldesk.lifecycle.reconciler import InboundReconciler, PlaceholderPolicy
from signaldesk.lifecycle.signals import SignalService
from signaldesk.storage.database import get_session
from signaldesk.webhooks.dispatcher import WebhookDispatcher
from signaldesk.webhooks.registry import WebhookRegistry


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(settings: Settings = Depends(get_app_settings)) -> Iterator[Session]:
    session = get_session(settings.db_path)
    try:
        yield session
    finally:
        session.close()


def get_registry(session: Session = Depends(get_db)) -> WebhookRegistry:
    return WebhookRegistry(session)


def get_dispatcher(
    request: Request,
    registry: WebhookRegistry = Depends(get_registry),
    settings: Settings = Depends(get_app_settings),
) -> Iterator[WebhookDispatcher]:
    dispatcher = WebhookDispatcher.from_settings(
        registry, settings, client=getattr(request.app.state, "http_client", None)
    )
    try:
        yield dispatcher
    finally:
        dispatcher.close()


def get_signal_service(
    session: Session = Depends(get_db),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> SignalService:
    return SignalService(session, dispatcher)


def get_insight_service(
    session: Session = Depends(get_db),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_app_settings),
) -> InsightService:
    return InsightService(session, dispatcher, default_platform=settings.default_platform)


def get_capture_service(
    session: Session = Depends(get_db),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_app_settings),
) -> CaptureService:
    return CaptureService(session, dispatcher, placeholders=settings.ingest_placeholders)


def get_reconciler(
    session: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> InboundReconciler:
    return InboundReconciler(
        session,
        PlaceholderPolicy.from_settings(settings),
        default_source=settings.callback_source,
    )


def get_annotations(session: Session = Depends(get_db)) -> AnnotationService:
    return AnnotationService(session)
