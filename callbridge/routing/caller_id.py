"""Caller ID selection for outgoing legs."""

import logging

from callbridge.models.call import (
    ANONYMOUS_CALLER,
    CLIENT_PREFIX,
    CallerIdResolution,
    TargetKind,
)

logger = logging.getLogger(__name__)

MISSING_VERIFIED_CALLER_ID = (
    "Attempting to call a phone number without a valid callerId configured"
)


class CallerIdResolver:
    """Choose the identity presented to the called party.

    Client identities are not phone numbers, so they are replaced by the
    verified number when one is configured. Calls to the phone network always
    present the verified number because Twilio rejects unverified caller IDs.
    """

    def __init__(self, verified_caller_id: str | None = None) -> None:
        """Initialize the resolver.

        Args:
            verified_caller_id: Number verified with the provider, if any
        """
        self.verified_caller_id = verified_caller_id or None

    def resolve(self, from_: str | None, target_kind: TargetKind) -> CallerIdResolution:
        """Resolve the caller ID for a call.

        Args:
            from_: Raw ``From`` value; defaults to the anonymous client
            target_kind: Classified kind of the destination

        Returns:
            CallerIdResolution with the caller ID and a warning, if any
        """
        from_ = from_ or ANONYMOUS_CALLER

        if from_.startswith(CLIENT_PREFIX):
            caller_id = self.verified_caller_id or from_
        else:
            caller_id = from_

        if target_kind != TargetKind.PHONE:
            return CallerIdResolution(caller_id=caller_id)

        if self.verified_caller_id:
            return CallerIdResolution(caller_id=self.verified_caller_id)

        logger.warning(MISSING_VERIFIED_CALLER_ID)
        return CallerIdResolution(caller_id=caller_id, warning=MISSING_VERIFIED_CALLER_ID)
