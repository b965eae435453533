"""Classify a raw dial string into a routing target."""

import logging
import re

from callbridge.models.call import CLIENT_PREFIX, SIP_PREFIX, Destination, TargetKind

logger = logging.getLogger(__name__)

# E.164-like: optional "+", leading digit 1-9, 2 to 15 digits in total
PHONE_NUMBER_PATTERN = re.compile(r"\+?[1-9]\d{1,14}")


def is_phone_number(value: str) -> bool:
    """Return True if ``value`` looks like an international phone number."""
    return bool(PHONE_NUMBER_PATTERN.fullmatch(value))


def classify_destination(to: str | None) -> Destination:
    """Decide how a destination should be dialed.

    Strings that are neither prefixed nor a phone number are treated as bare
    client identities, so malformed input is never rejected here.

    Args:
        to: The raw ``To`` value from the voice webhook

    Returns:
        Destination with the target kind and the address to dial
    """
    if not to:
        return Destination(target_kind=TargetKind.UNSPECIFIED)

    if to.startswith(CLIENT_PREFIX):
        return Destination(
            target_kind=TargetKind.CLIENT, target_address=to[len(CLIENT_PREFIX) :]
        )

    if to.startswith(SIP_PREFIX):
        return Destination(target_kind=TargetKind.SIP, target_address=to)

    if is_phone_number(to):
        return Destination(target_kind=TargetKind.PHONE, target_address=to)

    logger.debug(f"Treating unprefixed destination {to!r} as a client identity")
    return Destination(target_kind=TargetKind.CLIENT, target_address=to)
