"""Turn voice webhook events into TwiML call-control documents."""

import logging

from twilio.twiml.voice_response import VoiceResponse

from callbridge.config import Config, get_config
from callbridge.models.call import (
    ANONYMOUS_CALLER,
    CLIENT_PREFIX,
    STATUS_CALLBACK_EVENTS,
    CallEvent,
    CallResult,
    ConnectionInstruction,
    RoutingDecision,
    SpokenMessage,
    TargetKind,
)
from callbridge.routing.caller_id import CallerIdResolver
from callbridge.routing.destination import classify_destination

logger = logging.getLogger(__name__)

NO_DESTINATION_MESSAGE = "No destination specified. Please provide a valid destination."
NO_ONE_AVAILABLE_MESSAGE = (
    "Thank you for calling. No one is available right now. Please try again later."
)
ERROR_MESSAGE = (
    "We encountered an error processing your call. Please try again later."
)

STATUS_CALLBACK_PATH = "/api/twilio/status"


class CallRouter:
    """Route calls to clients, SIP endpoints or phone numbers.

    The router is stateless: every call event produces a fresh decision and
    nothing is shared between calls. ``handle_*`` methods never raise; any
    failure degrades to a spoken apology so the caller always hears something.
    """

    def __init__(
        self,
        config: Config | None = None,
        caller_id_resolver: CallerIdResolver | None = None,
    ) -> None:
        """Initialize the router.

        Args:
            config: Application configuration (defaults to the global config)
            caller_id_resolver: Resolver override, mainly for tests
        """
        self.config = config or get_config()
        self.caller_id_resolver = caller_id_resolver or CallerIdResolver(
            self.config.twilio_caller_id
        )

    @property
    def status_callback_url(self) -> str:
        return f"{self.config.server_url.rstrip('/')}{STATUS_CALLBACK_PATH}"

    def fallback(self, text: str) -> SpokenMessage:
        return SpokenMessage(
            text=text,
            voice=self.config.fallback_voice,
            language=self.config.fallback_language,
        )

    def decide(self, event: CallEvent) -> RoutingDecision:
        """Classify the destination and resolve the caller ID for an event."""
        destination = classify_destination(event.to)
        if destination.target_kind == TargetKind.UNSPECIFIED or not destination.target_address:
            return RoutingDecision(target_kind=TargetKind.UNSPECIFIED)

        resolution = self.caller_id_resolver.resolve(
            event.from_, destination.target_kind
        )
        return RoutingDecision(
            target_kind=destination.target_kind,
            target_address=destination.target_address,
            caller_id=resolution.caller_id,
        )

    def _connect(self, decision: RoutingDecision) -> ConnectionInstruction:
        is_phone = decision.target_kind == TargetKind.PHONE
        return ConnectionInstruction(
            target_kind=decision.target_kind,
            target_address=decision.target_address,
            caller_id=decision.caller_id,
            timeout_seconds=self.config.dial_timeout_seconds,
            answer_on_bridge=True,
            status_callback_url=self.status_callback_url if is_phone else None,
            status_callback_events=STATUS_CALLBACK_EVENTS if is_phone else None,
        )

    def route_outbound(self, event: CallEvent) -> CallResult:
        """Relay mode: dial whatever ``To`` names.

        Args:
            event: Voice webhook parameters

        Returns:
            ConnectionInstruction, or a SpokenMessage when ``To`` is missing
        """
        logger.info(f"Voice request: To={event.to}, From={event.from_}")

        decision = self.decide(event)
        if decision.target_kind == TargetKind.UNSPECIFIED:
            logger.warning("No 'To' parameter provided in voice request")
            return self.fallback(NO_DESTINATION_MESSAGE)

        logger.info(
            f"Dialing {decision.target_kind.value} {decision.target_address} "
            f"with caller ID {decision.caller_id}"
        )
        return self._connect(decision)

    def route_inbound(self, event: CallEvent) -> CallResult:
        """Inbound mode: only explicit ``client:`` destinations are connected.

        The caller's ``From`` is presented to the client unchanged.

        Args:
            event: Voice webhook parameters from the provider

        Returns:
            ConnectionInstruction to the client, or a "no one available" message
        """
        logger.info(
            f"Incoming call from {event.from_ or 'unknown'} to {event.to}, "
            f"CallSid: {event.call_sid or 'unknown'}"
        )

        if event.to and event.to.startswith(CLIENT_PREFIX):
            destination = classify_destination(event.to)
            if destination.target_address:
                # The client sees the real caller, not the verified number
                decision = RoutingDecision(
                    target_kind=TargetKind.CLIENT,
                    target_address=destination.target_address,
                    caller_id=event.from_ or ANONYMOUS_CALLER,
                )
                logger.info(f"Routing incoming call to client: {decision.target_address}")
                return self._connect(decision)

        logger.info("No specific client to route to, playing message")
        return self.fallback(NO_ONE_AVAILABLE_MESSAGE)

    def route(self, event: CallEvent) -> CallResult:
        """Route an event; provider-originated calls carry a CallSid."""
        if event.call_sid:
            return self.route_inbound(event)
        return self.route_outbound(event)

    def render(self, result: CallResult) -> str:
        """Render a routing result as TwiML."""
        response = VoiceResponse()

        if isinstance(result, SpokenMessage):
            response.say(result.text, voice=result.voice, language=result.language)
            return str(response)

        dial = response.dial(
            caller_id=result.caller_id,
            answer_on_bridge=result.answer_on_bridge,
            timeout=result.timeout_seconds,
        )
        if result.target_kind == TargetKind.CLIENT:
            dial.client(result.target_address)
        elif result.target_kind == TargetKind.SIP:
            dial.sip(result.target_address)
        elif result.target_kind == TargetKind.PHONE:
            dial.number(
                result.target_address,
                status_callback=result.status_callback_url,
                status_callback_event=" ".join(result.status_callback_events or ()),
                status_callback_method=result.status_callback_method,
            )
        else:
            raise ValueError(f"Cannot dial target kind {result.target_kind.value}")

        return str(response)

    def apology(self) -> str:
        """TwiML played when a call cannot be routed because of an error."""
        return self.render(self.fallback(ERROR_MESSAGE))

    def _handle(self, route, event: CallEvent) -> str:
        try:
            twiml = self.render(route(event))
        except Exception:
            logger.exception("Error generating voice response")
            return self.apology()
        logger.debug("Generated TwiML response for voice call")
        return twiml

    def handle_outbound(self, event: CallEvent) -> str:
        """Route and render a relay call; never raises."""
        return self._handle(self.route_outbound, event)

    def handle_inbound(self, event: CallEvent) -> str:
        """Route and render an inbound call; never raises."""
        return self._handle(self.route_inbound, event)

    def handle(self, event: CallEvent) -> str:
        """Route and render any call event; never raises."""
        return self._handle(self.route, event)
