"""Callbridge: Twilio call routing and scheduled call reservations."""

__version__ = "0.1.0"
