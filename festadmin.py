"""Operator CLI for fest registrations and UTR verification."""

import argparse
import dataclasses
import getpass
import logging
import sys
from pathlib import Path

from festreg import CATEGORIES, PAYMENT_STATUSES, Member, RecordRef
from festreg.auth import AuthorizationError, unlock
from festreg.catalog import event_ids, events_by_category, find_event
from festreg.commit import apply_result, verify_payments
from festreg.config import Settings
from festreg.extraction import ExtractionError, read_statement, validate_statement
from festreg.matching import match_utrs
from festreg.reader import read_events, read_review
from festreg.registration import RegistrationForm, payment_links, submit_registration
from festreg.reporter import (
    ExportFields,
    print_commit_summary,
    print_counts,
    print_registrations,
    print_scan_summary,
    write_export_csv,
    write_review_csv,
    write_review_html,
)
from festreg.store import StoreError, connect

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_FAILED = 2

EXPORT_OPTIONAL = ('fee', 'utr', 'status', 'date')


def _member(value: str) -> Member:
    name, sep, phone = value.rpartition(':')
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected NAME:PHONE, got {value!r}")
    return Member(name=name.strip(), phone=phone.strip())


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description='Manage fest registrations and verify UPI payments against bank statements.',
        prog='festadmin.py',
    )
    parser.add_argument(
        '--events', type=Path,
        help='Path to the event catalog CSV (default: $FESTREG_EVENTS_CSV or data/events.csv)',
    )
    parser.add_argument(
        '--verbose', action='store_true',
        help='Enable debug logging',
    )
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('list', help='List registrations with payment counts')
    p.add_argument('--event', help='Event id or title')
    p.add_argument('--category', choices=CATEGORIES)
    p.add_argument('--status', choices=PAYMENT_STATUSES)

    p = sub.add_parser('scan', help='Match pending UTRs against a bank statement PDF')
    p.add_argument('--statement', required=True, type=Path, help='Bank statement (searchable PDF)')
    p.add_argument('--event', help='Only scan one event')
    p.add_argument('--review', type=Path, default=Path('review.csv'),
                   help='Review file to write (default: review.csv)')
    p.add_argument('--html', type=Path, help='Additionally write an HTML review page')

    p = sub.add_parser('approve', help='Mark the registrations in a review file as verified')
    p.add_argument('--review', required=True, type=Path)
    p.add_argument('--pin', help='Edit PIN (prompted when omitted)')

    p = sub.add_parser('set-status', help='Change the payment status of one registration')
    p.add_argument('--event', required=True)
    p.add_argument('--id', required=True)
    p.add_argument('--status', required=True, choices=PAYMENT_STATUSES)
    p.add_argument('--pin')

    p = sub.add_parser('edit', help='Edit one registration')
    p.add_argument('--event', required=True)
    p.add_argument('--id', required=True)
    p.add_argument('--college')
    p.add_argument('--utr')
    p.add_argument('--fee')
    p.add_argument('--status', choices=PAYMENT_STATUSES)
    p.add_argument('--member', action='append', type=_member,
                   help='NAME:PHONE, repeat for each member (replaces all members)')
    p.add_argument('--move-to', help='Move the registration to another event')
    p.add_argument('--pin')

    p = sub.add_parser('delete', help='Delete one registration')
    p.add_argument('--event', required=True)
    p.add_argument('--id', required=True)
    p.add_argument('--pin')

    p = sub.add_parser('export', help='Export registrations as CSV')
    p.add_argument('--output', required=True, type=Path)
    p.add_argument('--event')
    p.add_argument('--without', default='',
                   help=f"Comma-separated optional columns to leave out ({','.join(EXPORT_OPTIONAL)})")

    p = sub.add_parser('register', help='Register a team')
    p.add_argument('--event', required=True)
    p.add_argument('--college', required=True)
    p.add_argument('--email', required=True)
    p.add_argument('--member', action='append', type=_member, required=True,
                   help='NAME:PHONE, repeat for each member')
    p.add_argument('--utr', required=True)
    p.add_argument('--screenshot', required=True, type=Path)

    p = sub.add_parser('links', help='Show UPI payment links for an event')
    p.add_argument('--event', required=True)

    return parser


def _unlock(args: argparse.Namespace, settings: Settings):
    pin = args.pin if args.pin is not None else getpass.getpass('Edit PIN: ')
    return unlock(pin, settings.edit_pin)


def cmd_list(args, settings, events, store) -> int:
    event_id = find_event(events, args.event).id if args.event else None
    registrations = store.load_registrations(event_id)
    if args.category:
        in_category = set(event_ids(events_by_category(events, args.category)))
        registrations = [r for r in registrations if r.event_id in in_category]
    if args.status:
        registrations = [r for r in registrations if r.payment_status == args.status]
    print_registrations(registrations)
    if store.quarantined:
        print(f"{len(store.quarantined)} malformed record(s) skipped; see log for details.")
    return EXIT_OK


def cmd_scan(args, settings, events, store) -> int:
    event_id = find_event(events, args.event).id if args.event else None
    try:
        validate_statement(args.statement.name)
        pending = store.load_pending(event_id)
        text = read_statement(args.statement)
    except ExtractionError as exc:
        print(f"Could not process file: {exc}", file=sys.stderr)
        return EXIT_FAILED

    matches = match_utrs(pending, text)
    print_scan_summary(pending, matches, args.statement.name)

    # Always rewritten so a stale review from an earlier scan cannot be approved
    write_review_csv(matches, args.review)
    if matches:
        print(f"Review {args.review}, delete rows you reject, then run: "
              f"festadmin.py approve --review {args.review}")
    if args.html:
        write_review_html(matches, pending, args.html, args.statement.name)
    return EXIT_OK


def cmd_approve(args, settings, events, store) -> int:
    refs = read_review(args.review)
    if not refs:
        print("Nothing to approve.", file=sys.stderr)
        return EXIT_FAILED
    context = _unlock(args, settings)
    registrations = store.load_registrations()
    result = verify_payments(store, refs, context)
    print_commit_summary(result)
    print_counts(apply_result(registrations, result))
    return EXIT_OK if result.ok else EXIT_PARTIAL


def cmd_set_status(args, settings, events, store) -> int:
    event = find_event(events, args.event)
    context = _unlock(args, settings)
    store.update_status(context, RecordRef(id=args.id, event_id=event.id), args.status)
    print(f"{event.title} {args.id}: {args.status}")
    return EXIT_OK


def cmd_edit(args, settings, events, store) -> int:
    event = find_event(events, args.event)
    original = store.get_registration(RecordRef(id=args.id, event_id=event.id))
    edited = dataclasses.replace(original)

    if args.college is not None:
        edited.college_name = args.college
    if args.utr is not None:
        edited.utr_number = args.utr
    if args.fee is not None:
        edited.registration_fee = args.fee
    if args.status is not None:
        edited.payment_status = args.status
    if args.member:
        edited.members = args.member
    if args.move_to:
        target = find_event(events, args.move_to)
        edited.event_id = target.id
        edited.event_name = target.title
        edited.registration_fee = target.registration_fee
        edited.category = target.category

    context = _unlock(args, settings)
    saved = store.save_edits(context, original, edited)
    print(f"Saved {saved.event_name} team #{saved.team_number} [{saved.event_id}/{saved.id}]")
    return EXIT_OK


def cmd_delete(args, settings, events, store) -> int:
    event = find_event(events, args.event)
    context = _unlock(args, settings)
    store.delete_registration(context, RecordRef(id=args.id, event_id=event.id))
    print(f"Deleted {event.title} {args.id}")
    return EXIT_OK


def cmd_export(args, settings, events, store) -> int:
    without = {f.strip().lower() for f in args.without.split(',') if f.strip()}
    unknown = without - set(EXPORT_OPTIONAL)
    if unknown:
        raise ValueError(f"Unknown export column(s): {', '.join(sorted(unknown))}")
    fields = ExportFields(**{name: name not in without for name in EXPORT_OPTIONAL})

    event_id = find_event(events, args.event).id if args.event else None
    write_export_csv(store.load_registrations(event_id), args.output, fields)
    return EXIT_OK


def cmd_register(args, settings, events, store) -> int:
    event = find_event(events, args.event)
    form = RegistrationForm(
        college_name=args.college,
        email=args.email,
        members=args.member,
        utr_number=args.utr,
    )
    screenshot = args.screenshot.read_bytes()
    content_type = 'image/png' if args.screenshot.suffix.lower() == '.png' else 'image/jpeg'
    registration = submit_registration(store, event, form, screenshot, settings, content_type)
    print(f"Registered for {event.title} as Team #{registration.team_number}")
    return EXIT_OK


def cmd_links(args, settings, events, store) -> int:
    event = find_event(events, args.event)
    if not settings.upi_id:
        raise ValueError("UPI_ID is not configured")
    for app, link in payment_links(event, settings.upi_id, settings.upi_name).items():
        print(f"{app:<8} {link}")
    return EXIT_OK


COMMANDS = {
    'list': cmd_list,
    'scan': cmd_scan,
    'approve': cmd_approve,
    'set-status': cmd_set_status,
    'edit': cmd_edit,
    'delete': cmd_delete,
    'export': cmd_export,
    'register': cmd_register,
    'links': cmd_links,
}

# Commands that never touch the store
OFFLINE_COMMANDS = {'links'}


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s: %(message)s',
    )

    settings = Settings.from_env()
    events_path = args.events or settings.events_csv

    try:
        events = read_events(events_path)
        store = None if args.command in OFFLINE_COMMANDS else connect(settings, events)
        return COMMANDS[args.command](args, settings, events, store)
    except AuthorizationError as exc:
        print(f"Not authorized: {exc}", file=sys.stderr)
        return EXIT_FAILED
    except StoreError as exc:
        print(f"Store error: {exc}", file=sys.stderr)
        return EXIT_FAILED
    except (ValueError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == '__main__':
    sys.exit(main())
