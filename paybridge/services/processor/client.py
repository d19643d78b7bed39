"""Outbound client for the card processor's payment intent API.

Transport failures and non-2xx answers are translated to `ProcessorError`
here so raw httpx exceptions never reach callers. Intent creation is never
retried automatically; a retry would mint a second intent.
"""

from time import perf_counter
from typing import Protocol

import httpx

from paybridge.common.config import Settings
from paybridge.common.errors import ProcessorError
from paybridge.common.logging import logger
from paybridge.common.metrics import processor_errors_total, processor_request_seconds
from paybridge.services.processor.models import ProcessorIntent


class PaymentProcessor(Protocol):
    """Processor operations the orchestrator depends on."""

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        description: str,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> ProcessorIntent: ...

    async def retrieve_payment_intent(self, intent_id: str) -> ProcessorIntent: ...

    async def cancel_payment_intent(self, intent_id: str) -> ProcessorIntent: ...


def _form_fields(
    amount: int, currency: str, description: str, metadata: dict[str, str]
) -> dict[str, str]:
    """Flatten create parameters into the processor's bracketed form encoding."""

    fields = {
        "amount": str(amount),
        "currency": currency,
        "description": description,
        "automatic_payment_methods[enabled]": "true",
    }
    for key, value in metadata.items():
        fields[f"metadata[{key}]"] = value
    return fields


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"Payment processor returned HTTP {resp.status_code}"


class StripeProcessorClient:
    """Async client for the `/v1/payment_intents` endpoints."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self.service_name = settings.service_name
        self._transport = transport

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        data: dict[str, str] | None = None,
        idempotency_key: str | None = None,
    ) -> ProcessorIntent:
        headers = {"Authorization": f"Bearer {self.settings.stripe_secret_key.get_secret_value()}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        start = perf_counter()
        try:
            async with httpx.AsyncClient(
                base_url=self.settings.stripe_api_base,
                timeout=self.settings.processor_timeout_seconds,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, path, data=data, headers=headers)
        except httpx.HTTPError as exc:
            processor_errors_total.labels(service=self.service_name, operation=operation).inc()
            logger.error("processor_unreachable operation=%s error=%s", operation, type(exc).__name__)
            raise ProcessorError("Failed to reach payment processor") from exc
        finally:
            processor_request_seconds.labels(service=self.service_name, operation=operation).observe(
                max(0.0, perf_counter() - start)
            )

        if resp.status_code >= 400:
            processor_errors_total.labels(service=self.service_name, operation=operation).inc()
            message = _error_message(resp)
            logger.warning(
                "processor_rejected operation=%s status_code=%s message=%s",
                operation,
                resp.status_code,
                message,
            )
            raise ProcessorError(message, status_code=resp.status_code)
        try:
            return ProcessorIntent.model_validate(resp.json())
        except ValueError as exc:
            processor_errors_total.labels(service=self.service_name, operation=operation).inc()
            raise ProcessorError("Unexpected response from payment processor") from exc

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        description: str,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> ProcessorIntent:
        return await self._request(
            "create",
            "POST",
            "/v1/payment_intents",
            data=_form_fields(amount, currency, description, metadata),
            idempotency_key=idempotency_key,
        )

    async def retrieve_payment_intent(self, intent_id: str) -> ProcessorIntent:
        return await self._request("retrieve", "GET", f"/v1/payment_intents/{intent_id}")

    async def cancel_payment_intent(self, intent_id: str) -> ProcessorIntent:
        return await self._request("cancel", "POST", f"/v1/payment_intents/{intent_id}/cancel")
