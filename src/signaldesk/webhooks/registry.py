"""Persistent mapping from job name to webhook URL."""

from __future__ import annotations

from datetime import datetime

from loguru import logger
from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session, select

from signaldesk.errors import NotFoundError, ValidationError
from signaldesk.lifecycle.states import WebhookJob
from signaldesk.storage.models import WebhookConfig

_url_adapter = TypeAdapter(HttpUrl)


def validate_webhook_url(url: str) -> str:
    """Return ``url`` unchanged if it is a well-formed absolute http(s) URL."""
    try:
        _url_adapter.validate_python(url)
    except PydanticValidationError:
        raise ValidationError("Invalid URL format", field="url") from None
    return url


class WebhookRegistry:
    """Look up and maintain ``WebhookConfig`` rows."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def resolve(self, name: WebhookJob | str) -> str | None:
        config = self._get(_job_name(name))
        return config.url if config else None

    def upsert(self, name: str | None, url: str | None) -> WebhookConfig:
        if not name or not url:
            raise ValidationError("name and url are required")
        job = _parse_job(name)
        url = validate_webhook_url(url.strip())

        config = self._get(job.value)
        if config:
            config.url = url
            config.updated_at = datetime.now()
        else:
            config = WebhookConfig(name=job.value, url=url)
        self._session.add(config)
        self._session.commit()
        self._session.refresh(config)
        logger.info(f"Webhook '{job.value}' -> {url}")
        return config

    def remove(self, name: str) -> None:
        config = self._get(name)
        if not config:
            raise NotFoundError("Webhook", name)
        self._session.delete(config)
        self._session.commit()
        logger.info(f"Webhook '{name}' removed")

    def list(self) -> list[WebhookConfig]:
        return list(self._session.exec(select(WebhookConfig).order_by(WebhookConfig.name)).all())

    def _get(self, name: str) -> WebhookConfig | None:
        return self._session.exec(select(WebhookConfig).where(WebhookConfig.name == name)).first()


def _job_name(name: WebhookJob | str) -> str:
    return name.value if isinstance(name, WebhookJob) else name


def _parse_job(name: str) -> WebhookJob:
    try:
        return WebhookJob(name.strip().lower())
    except ValueError:
        allowed = ", ".join(j.value for j in WebhookJob)
        raise ValidationError(f"must be one of: {allowed}", field="name") from None
