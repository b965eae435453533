"""Tests for destination classification and caller ID resolution."""

import logging

import pytest

from callbridge.models.call import TargetKind
from callbridge.routing import CallerIdResolver, classify_destination, is_phone_number


class TestClassifyDestination:
    """Tests for classify_destination."""

    @pytest.mark.parametrize("to", [None, ""])
    def test_missing_destination_is_unspecified(self, to):
        """Test that an absent or empty To has no target."""
        destination = classify_destination(to)

        assert destination.target_kind == TargetKind.UNSPECIFIED
        assert destination.target_address is None

    @pytest.mark.parametrize("identity", ["alice", "support-desk", "+14155551234"])
    def test_client_prefix_is_stripped(self, identity):
        """Test that client: destinations route to the bare identity."""
        destination = classify_destination(f"client:{identity}")

        assert destination.target_kind == TargetKind.CLIENT
        assert destination.target_address == identity

    def test_sip_uri_is_kept_whole(self):
        """Test that SIP URIs keep their scheme."""
        destination = classify_destination("sip:bob@pbx.example.com")

        assert destination.target_kind == TargetKind.SIP
        assert destination.target_address == "sip:bob@pbx.example.com"

    @pytest.mark.parametrize("number", ["+14155551234", "14155551234", "+44", "442071838750"])
    def test_phone_numbers(self, number):
        """Test that E.164-like numbers are dialed as phone numbers."""
        destination = classify_destination(number)

        assert destination.target_kind == TargetKind.PHONE
        assert destination.target_address == number

    @pytest.mark.parametrize(
        "value",
        [
            "abc",
            "+0123456",  # leading zero
            "1",  # too short
            "+1234567890123456",  # 16 digits
            "415-555-1234",
            "+14155551234\n",  # trailing newline
        ],
    )
    def test_unrecognized_strings_fall_back_to_client(self, value):
        """Test the permissive fallback: anything else is a client identity."""
        destination = classify_destination(value)

        assert destination.target_kind == TargetKind.CLIENT
        assert destination.target_address == value

    def test_is_phone_number_bounds(self):
        """Test the digit-count bounds of the phone pattern."""
        assert is_phone_number("12")
        assert is_phone_number("+" + "9" * 15)
        assert not is_phone_number("9" * 16)
        assert not is_phone_number("+14155551234\n")


class TestCallerIdResolver:
    """Tests for CallerIdResolver."""

    def test_client_caller_uses_verified_number(self):
        """Test that client identities are replaced by the verified number."""
        resolver = CallerIdResolver("+15005550006")

        result = resolver.resolve("client:alice", TargetKind.CLIENT)

        assert result.caller_id == "+15005550006"
        assert result.warning is None

    def test_client_caller_without_verified_number(self):
        """Test that client identities pass through when nothing is verified."""
        resolver = CallerIdResolver(None)

        result = resolver.resolve("client:alice", TargetKind.SIP)

        assert result.caller_id == "client:alice"
        assert result.warning is None

    def test_phone_caller_passes_through_to_clients(self):
        """Test that a real number is presented as-is to client targets."""
        resolver = CallerIdResolver("+15005550006")

        result = resolver.resolve("+14155550000", TargetKind.CLIENT)

        assert result.caller_id == "+14155550000"

    def test_phone_target_always_uses_verified_number(self):
        """Test that PSTN calls present the verified number."""
        resolver = CallerIdResolver("+15005550006")

        result = resolver.resolve("+14155550000", TargetKind.PHONE)

        assert result.caller_id == "+15005550006"
        assert result.warning is None

    def test_phone_target_without_verified_number_warns(self, caplog):
        """Test that a missing verified number warns but still resolves."""
        resolver = CallerIdResolver(None)

        with caplog.at_level(logging.WARNING, logger="callbridge.routing.caller_id"):
            result = resolver.resolve("client:alice", TargetKind.PHONE)

        assert result.caller_id == "client:alice"
        assert result.warning is not None
        assert "callerId" in caplog.text

    def test_missing_from_defaults_to_anonymous(self):
        """Test the anonymous default when From is absent."""
        resolver = CallerIdResolver("")

        result = resolver.resolve(None, TargetKind.CLIENT)

        assert result.caller_id == "client:anonymous"
