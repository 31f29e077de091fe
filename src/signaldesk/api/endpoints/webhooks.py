"""
Webhook settings endpoints.
"""

from fastapi import APIRouter, Depends

from signaldesk.api.deps import get_registry
from signaldesk.api.schemas import (
    SuccessResponse,
    WebhookConfigIn,
    WebhookConfigListResponse,
    WebhookConfigOut,
    WebhookConfigResponse,
)
from signaldesk.webhooks.registry import WebhookRegistry

router = APIRouter()


@router.get("", response_model=WebhookConfigListResponse)
def list_webhooks(registry: WebhookRegistry = Depends(get_registry)):
    return WebhookConfigListResponse(
        configs=[WebhookConfigOut.model_validate(c) for c in registry.list()]
    )


@router.post("", response_model=WebhookConfigResponse)
def save_webhook(payload: WebhookConfigIn, registry: WebhookRegistry = Depends(get_registry)):
    config = registry.upsert(payload.name, payload.url)
    return WebhookConfigResponse(config=WebhookConfigOut.model_validate(config))


@router.delete("/{name}", response_model=SuccessResponse)
def delete_webhook(name: str, registry: WebhookRegistry = Depends(get_registry)):
    registry.remove(name)
    return SuccessResponse()
