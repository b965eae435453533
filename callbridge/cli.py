"""Command-line interface for Callbridge - HTTP client for the reservation API."""

import argparse
import logging
import sys
import time

import httpx

from callbridge.config import Config, get_config, setup_logging

logger = logging.getLogger(__name__)


class ReservationCLI:
    """Command-line client for the reservation endpoints."""

    def __init__(self, config: Config | None = None, client: httpx.Client | None = None):
        """Initialize the CLI.

        Args:
            config: Application configuration (defaults to the global config)
            client: HTTP client override, mainly for tests
        """
        self.config = config or get_config()
        self.client = client or httpx.Client(
            base_url=self.config.server_url, timeout=30.0
        )

    def _request(self, method: str, path: str) -> dict:
        response = self.client.request(method, path)
        try:
            payload = response.json()
        except ValueError:
            raise RuntimeError(
                f"Server error (status {response.status_code}): {response.text[:200]}"
            ) from None
        if not isinstance(payload, dict):
            payload = {}
        if not payload.get("success"):
            message = payload.get("message") or response.text
            raise RuntimeError(f"Server error (status {response.status_code}): {message}")
        return payload

    def sweep(self) -> int:
        """Run one expiry sweep and print the result.

        Returns:
            Number of reservations completed by the sweep
        """
        payload = self._request("POST", "/api/reservations/update-expired")
        data = payload.get("data") or {}
        count = data.get("count", 0)
        print(payload.get("message", f"Updated {count} expired reservations"))
        for record in data.get("records", []):
            print(f"  #{record['id']} {record['username']} {record['reservationDate']}")
        return count

    def watch(self, interval: float) -> None:
        """Run the sweep every ``interval`` seconds until interrupted."""
        print(f"Sweeping expired reservations every {interval:g}s (Ctrl-C to stop)")
        while True:
            try:
                self.sweep()
            except (httpx.HTTPError, RuntimeError) as e:
                logger.error(f"Sweep failed: {e}")
            time.sleep(interval)

    def list_reservations(self, username: str) -> list[dict]:
        """Print all reservations of a user."""
        records = self._request("GET", f"/api/reservations/user/{username}")["data"]
        if not records:
            print(f"No reservations for {username}")
        for record in records:
            print(self.format_record(record))
        return records

    def show(self, reservation_id: str) -> dict:
        """Print one reservation."""
        record = self._request("GET", f"/api/reservations/{reservation_id}")["data"]
        print(self.format_record(record))
        return record

    @staticmethod
    def format_record(record: dict) -> str:
        line = (
            f"#{record['id']} {record['reservationDate']} "
            f"{record['startTime']}-{record['endTime']} [{record['status']}]"
        )
        if record.get("callDuration") is not None:
            line += f" {record['callDuration']}s"
        return line


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="callbridge-cli", description="Callbridge reservation client"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sweep = subparsers.add_parser("sweep", help="Complete expired ongoing reservations")
    sweep.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Repeat every N seconds instead of running once",
    )

    list_cmd = subparsers.add_parser("list", help="List reservations of a user")
    list_cmd.add_argument("username")

    show = subparsers.add_parser("show", help="Show a reservation")
    show.add_argument("id")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)

    config = get_config()
    setup_logging(config)
    cli = ReservationCLI(config)

    try:
        if args.command == "sweep" and args.interval:
            cli.watch(args.interval)
        elif args.command == "sweep":
            cli.sweep()
        elif args.command == "list":
            cli.list_reservations(args.username)
        elif args.command == "show":
            cli.show(args.id)
    except KeyboardInterrupt:
        print("\nStopped.")
    except httpx.TimeoutException:
        logger.exception("Request timed out")
        print("\n⚠ Request timed out.")
        return 1
    except httpx.ConnectError:
        logger.exception("Cannot connect to server")
        print(f"\n⚠ Cannot connect to server at {config.server_url}")
        print("Make sure the server is running:")
        print("  python -m callbridge.server")
        return 1
    except RuntimeError as e:
        print(f"\n⚠ {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
