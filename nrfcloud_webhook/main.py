import hashlib
import hmac
import logging
from typing import Any, List

from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from nrfcloud_webhook.config import Settings, get_settings
from nrfcloud_webhook.models import (
    Message,
    StoredRecord,
    StoreOutcome,
    TelemetryPayload,
    VerificationPayload,
    classify_payload,
)
from nrfcloud_webhook.storage import DocumentStore, StoreFactory, get_store_factory
from nrfcloud_webhook.utils import client_ip, parse_json

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("nrfcloud-webhook")

app = FastAPI(title="nRF Cloud Webhook Receiver")

SIGNATURE_HEADER = "x-nrfcloud-signature"

# Every method is routed to the handler so it can answer 405 itself.
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "TRACE", "CONNECT"]


def compute_signature(body: bytes, secret: str) -> str:
    """Hex-encoded HMAC-SHA256 of the raw request body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_nrfcloud_signature(body: bytes, signature: str, secret: str) -> bool:
    # Starlette decodes header values as latin-1.
    expected = compute_signature(body, secret).encode("latin-1")
    return hmac.compare_digest(expected, signature.encode("latin-1"))


def _device_label(raw: Any) -> str:
    device_id = raw.get("device_id") if isinstance(raw, dict) else None
    return str(device_id) if device_id else "unknown"


async def store_messages(store: DocumentStore, messages: List[Any]) -> List[StoreOutcome]:
    """Persist each message in order, one write at a time.

    A failed write is logged and recorded; the remaining messages are still
    attempted.
    """
    outcomes = []
    for raw in messages:
        try:
            message = Message.model_validate(raw)
            record = StoredRecord.from_message(message)
            document_id = await run_in_threadpool(store.create_document, record.to_document())
        except Exception as e:
            logger.error("Database error for message from %s: %s", _device_label(raw), e)
            outcomes.append(StoreOutcome(device_id=_device_label(raw), ok=False, error=str(e)))
            continue
        logger.info("Successfully stored message from device: %s", _device_label(raw))
        outcomes.append(StoreOutcome(device_id=message.device_id, ok=True, document_id=document_id))
    return outcomes


@app.api_route("/webhook", methods=ALL_METHODS)
async def receive_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    store_factory: StoreFactory = Depends(get_store_factory),
):
    """Receive an nRF Cloud webhook and store its device messages."""
    missing = settings.missing_required()
    if missing:
        logger.error("Missing required environment variables: %s", ", ".join(missing))
        return PlainTextResponse("Internal Server Error", status_code=500)

    if request.method != "POST":
        return PlainTextResponse("Method Not Allowed", status_code=405)

    logger.info("Received webhook from %s", client_ip(request))

    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature:
        logger.error("Missing X-NRFCLOUD-SIGNATURE header. Rejecting request.")
        return PlainTextResponse("Unauthorized: Missing signature", status_code=401)

    # The signature covers the body exactly as received; parse only afterwards.
    raw = await request.body()
    if not verify_nrfcloud_signature(raw, signature, settings.nrfcloud_webhook_secret):
        logger.error(
            "Signature mismatch. Calculated: %s, Received: %s",
            compute_signature(raw, settings.nrfcloud_webhook_secret),
            signature,
        )
        return PlainTextResponse("Unauthorized: Invalid signature", status_code=401)
    logger.info("Signature verified successfully.")

    try:
        body = parse_json(raw)
    except ValueError as e:
        logger.error("Invalid JSON payload: %s", e)
        return PlainTextResponse("Invalid JSON", status_code=400)

    payload = classify_payload(body)
    if isinstance(payload, VerificationPayload):
        logger.info(
            "Received verification request with token: %s. Please confirm in nRF Cloud portal.",
            payload.token,
        )
        return PlainTextResponse("Verification request acknowledged", status_code=200)

    if isinstance(payload, TelemetryPayload):
        total = len(payload.messages)
        logger.info("Processing %d messages.", total)
        outcomes = await store_messages(store_factory(settings), payload.messages)
        stored = sum(1 for o in outcomes if o.ok)
        if stored < total:
            logger.warning("Stored %d of %d messages", stored, total)
        else:
            logger.info("Stored %d of %d messages", stored, total)
    else:
        logger.info("Payload contains no messages or is of an unexpected format.")

    return PlainTextResponse("Webhook processing complete", status_code=200)


@app.get("/health")
async def health():
    return {"status": "ok"}
