"""Command-line console for the travel booking lifecycle."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

import httpx
from pydantic import ValidationError

from .auth import CredentialProvider, RefreshTokenCredentials, StaticCredentials
from .client import BookingApiClient
from .config import ClientSettings
from .documents import TicketDocument
from .errors import BookingError
from .lifecycle import phase_for_status
from .logging_config import configure_logging
from .models import TravelRequest
from .options import Leg
from .review import ManagerDecision
from .selection import SelectionPolicy
from .tickets import TicketDesk, compute_ticket_amounts, planned_invoices
from .workflow import DEFAULT_DEACTIVATION_REASON, BookingController


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="booking-console",
        description="Move travel requests through selection, review and ticketing.",
    )
    parser.add_argument("--config", type=Path, help="Path to a client YAML config.")
    parser.add_argument("--api-url", help="Backend base URL (overrides config).")
    parser.add_argument(
        "--token",
        default=os.getenv("TRAVEL_BOOKING_TOKEN"),
        help="Bearer access token (default: $TRAVEL_BOOKING_TOKEN).",
    )
    parser.add_argument(
        "--refresh-token",
        default=os.getenv("TRAVEL_BOOKING_REFRESH_TOKEN"),
        help="Refresh token used once when the access token expires.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    show = commands.add_parser("show", help="Show a booking and its current phase.")
    show.add_argument("booking_id")

    select = commands.add_parser("select", help="Select options and submit for review.")
    select.add_argument("booking_id")
    select.add_argument("--onward", type=int, dest="onward_index")
    select.add_argument("--return", type=int, dest="return_index")
    select.add_argument("--hotel", type=int, dest="hotel_index")
    select.add_argument(
        "--policy",
        choices=[policy.value for policy in SelectionPolicy],
        help="Which legs require a selection (default from config).",
    )

    review = commands.add_parser("review", help="Approve or reject a booking.")
    review.add_argument("booking_id")
    review.add_argument("decision", choices=[decision.value for decision in ManagerDecision])
    review.add_argument("--feedback", help="Reason recorded with the decision.")

    deactivate = commands.add_parser("deactivate", help="Cancel a booking for good.")
    deactivate.add_argument("booking_id")
    deactivate.add_argument("--reason", default=DEFAULT_DEACTIVATION_REASON)
    deactivate.add_argument(
        "--admin",
        action="store_true",
        help="Administrative cancellation from any unfinished stage.",
    )

    approved = commands.add_parser("approved", help="List bookings awaiting tickets.")
    approved.add_argument("--user-id")
    approved.add_argument("--page", type=int, default=1)
    approved.add_argument("--size", type=int, default=10)

    submit = commands.add_parser("submit-tickets", help="Upload ticket documents.")
    submit.add_argument("booking_id")
    submit.add_argument("--onward", type=Path, required=True, dest="onward_file")
    submit.add_argument("--return", type=Path, required=True, dest="return_file")
    submit.add_argument("--hotel", type=Path, required=True, dest="hotel_file")

    commands.add_parser("kpis", help="Show travel request counters.")
    return parser


def _booking_summary(booking: TravelRequest) -> dict[str, Any]:
    selections = {}
    for leg in Leg:
        option = booking.selected_option(leg)
        selections[leg.key] = {
            "index": booking.selected_index(leg),
            "option": option.summary() if option is not None else None,
            "choices": len(booking.catalog(leg)),
        }
    status = booking.session_status
    return {
        "id": booking.id,
        "destination": booking.destination,
        "status": booking.status.value,
        "session_status": status.value if status is not None else None,
        "phase": phase_for_status(status).title,
        "manager_feedback": booking.manager_feedback,
        "inactive_reason": booking.inactive_reason,
        "selections": selections,
        "amounts": compute_ticket_amounts(booking).model_dump(mode="json", by_alias=True),
        "planned_invoices": [
            {"leg": line.leg.key, "category": line.category.value, "amount": str(line.amount)}
            for line in planned_invoices(booking)
        ],
    }


def _credentials(
    args: argparse.Namespace,
    settings: ClientSettings,
    transport: httpx.BaseTransport | None = None,
) -> CredentialProvider:
    if args.refresh_token:
        return RefreshTokenCredentials(
            settings.api_base_url,
            args.token,
            args.refresh_token,
            timeout=settings.timeout_seconds,
            transport=transport,
        )
    return StaticCredentials(args.token)


def _run(args: argparse.Namespace, client: BookingApiClient, settings: ClientSettings) -> Any:
    if args.command == "show":
        return _booking_summary(client.fetch_booking(args.booking_id))

    if args.command == "select":
        policy = SelectionPolicy(args.policy or settings.selection_policy)
        controller = BookingController(client, args.booking_id, policy=policy)
        controller.load()
        if controller.is_rejected:
            controller.revise()
        for leg, index in (
            (Leg.ONWARD, args.onward_index),
            (Leg.RETURN, args.return_index),
            (Leg.HOTEL, args.hotel_index),
        ):
            if index is not None:
                controller.select_index(leg, index)
        return _booking_summary(controller.submit_selections())

    if args.command == "review":
        controller = BookingController(client, args.booking_id)
        controller.load()
        return _booking_summary(controller.review(ManagerDecision(args.decision), args.feedback))

    if args.command == "deactivate":
        controller = BookingController(client, args.booking_id)
        controller.load()
        return _booking_summary(controller.deactivate(args.reason, administrative=args.admin))

    if args.command == "approved":
        page = TicketDesk(client).list_approved(
            user_id=args.user_id, page=args.page, size=args.size
        )
        return {
            "total": page.total,
            "travel_requests": [_booking_summary(booking) for booking in page.travel_requests],
        }

    if args.command == "submit-tickets":
        booking = client.fetch_booking(args.booking_id)
        desk = TicketDesk(client)
        for leg, path in (
            (Leg.ONWARD, args.onward_file),
            (Leg.RETURN, args.return_file),
            (Leg.HOTEL, args.hotel_file),
        ):
            desk.stage(booking.id, leg, TicketDocument.from_path(path))
        result = desk.submit(booking)
        return result.model_dump(mode="json")

    if args.command == "kpis":
        return client.fetch_kpis().model_dump(mode="json")

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None, *, transport: httpx.BaseTransport | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ClientSettings.from_environment(args.config)
    except (ValidationError, ValueError, FileNotFoundError) as exc:
        print(f"Error: invalid configuration: {exc}", file=sys.stderr)
        return 1
    if args.api_url:
        settings = settings.model_copy(update={"api_base_url": args.api_url})
    configure_logging(settings.log_level, settings.log_format)

    credentials = _credentials(args, settings, transport)
    try:
        with BookingApiClient.from_settings(settings, credentials, transport=transport) as client:
            output = _run(args, client, settings)
    except ValidationError as exc:
        print("Error: response or input validation failed.", file=sys.stderr)
        print(str(exc), file=sys.stderr)
        return 1
    except BookingError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except httpx.HTTPError as exc:
        print(f"Error: backend unreachable: {exc}", file=sys.stderr)
        return 1
    finally:
        if isinstance(credentials, RefreshTokenCredentials):
            credentials.close()

    print(json.dumps(output, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
