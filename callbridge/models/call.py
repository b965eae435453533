"""Transient call-routing models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

CLIENT_PREFIX = "client:"
SIP_PREFIX = "sip:"
ANONYMOUS_CALLER = "client:anonymous"

STATUS_CALLBACK_EVENTS = ("initiated", "ringing", "answered", "completed")


class TargetKind(str, Enum):
    """How a destination is dialed."""

    CLIENT = "client"
    SIP = "sip"
    PHONE = "phone"
    UNSPECIFIED = "unspecified"


class CallEvent(BaseModel):
    """Voice webhook parameters sent by Twilio."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    to: str | None = Field(None, alias="To", description="Requested destination")
    from_: str | None = Field(None, alias="From", description="Caller identity")
    call_sid: str | None = Field(
        None, alias="CallSid", description="Provider call SID (inbound calls)"
    )


class CallStatusEvent(BaseModel):
    """Status callback parameters sent by Twilio."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    call_sid: str | None = Field(None, alias="CallSid")
    call_status: str | None = Field(None, alias="CallStatus")
    error_code: str | None = Field(None, alias="ErrorCode")
    error_message: str | None = Field(None, alias="ErrorMessage")


class Destination(BaseModel):
    """Classified destination of a call."""

    model_config = ConfigDict(frozen=True)

    target_kind: TargetKind
    target_address: str | None = None


class CallerIdResolution(BaseModel):
    """Caller ID chosen for a call, with an optional warning."""

    model_config = ConfigDict(frozen=True)

    caller_id: str
    warning: str | None = None


class RoutingDecision(BaseModel):
    """Per-call decision: what to dial and which identity to present."""

    model_config = ConfigDict(frozen=True)

    target_kind: TargetKind
    target_address: str | None = None
    caller_id: str | None = None


class ConnectionInstruction(BaseModel):
    """Declarative instruction to connect the call to a target."""

    model_config = ConfigDict(frozen=True)

    target_kind: TargetKind
    target_address: str
    caller_id: str
    timeout_seconds: int = 20
    answer_on_bridge: bool = True
    status_callback_url: str | None = None
    status_callback_events: tuple[str, ...] | None = None
    status_callback_method: str = "POST"


class SpokenMessage(BaseModel):
    """Message read to the caller instead of connecting the call."""

    model_config = ConfigDict(frozen=True)

    text: str
    voice: str = "alice"
    language: str = "en-US"


CallResult = ConnectionInstruction | SpokenMessage
