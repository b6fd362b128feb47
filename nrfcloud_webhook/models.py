from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from nrfcloud_webhook.utils import compact_json

VERIFICATION_EVENT = "verification"


class VerificationPayload(BaseModel):
    event: str
    token: Any = None

    model_config = ConfigDict(extra="ignore")


class TelemetryPayload(BaseModel):
    # Items stay raw so one malformed message cannot reject the whole batch.
    messages: List[Any]

    model_config = ConfigDict(extra="ignore")


class Message(BaseModel):
    device_id: Any = None
    appId: Any = None
    ts: Any = None
    payload: Any = None

    model_config = ConfigDict(extra="ignore")


class StoredRecord(BaseModel):
    deviceId: Any = None
    appId: Any = None
    timestamp: Any = None
    payload: Optional[str] = None

    @classmethod
    def from_message(cls, message: Message) -> "StoredRecord":
        """Map an nRF Cloud message onto the document layout of the collection.

        The payload is stored as its JSON text. A payload key that is absent
        from the message leaves the attribute out instead of storing "null".
        """
        payload = None
        if "payload" in message.model_fields_set:
            payload = compact_json(message.payload)
        return cls(
            deviceId=message.device_id,
            appId=message.appId,
            timestamp=message.ts,
            payload=payload,
        )

    def to_document(self) -> dict:
        return self.model_dump(exclude_none=True)


class StoreOutcome(BaseModel):
    device_id: Any
    ok: bool
    document_id: Optional[str] = None
    error: Optional[str] = None


def classify_payload(
    value: Any,
) -> Union[VerificationPayload, TelemetryPayload, None]:
    """Tell a verification handshake from a telemetry batch.

    Returns None for anything else, including non-object JSON and objects
    whose `messages` is missing, empty or not a list.
    """
    if not isinstance(value, dict):
        return None
    if value.get("event") == VERIFICATION_EVENT:
        return VerificationPayload.model_validate(value)
    messages = value.get("messages")
    if isinstance(messages, list) and messages:
        return TelemetryPayload(messages=messages)
    return None
