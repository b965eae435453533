"""Call routing: destination classification, caller ID and TwiML."""

from callbridge.routing.call_router import CallRouter
from callbridge.routing.caller_id import CallerIdResolver
from callbridge.routing.destination import classify_destination, is_phone_number

__all__ = ["CallRouter", "CallerIdResolver", "classify_destination", "is_phone_number"]
