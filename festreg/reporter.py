"""Report generation for scans, verification batches and exports."""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from festreg import STATUS_COMPLETED, Registration, UtrMatch
from festreg.commit import CommitResult

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'

REVIEW_COLUMNS = [
    'Registration_ID',
    'Event_ID',
    'Event_Name',
    'Team_Number',
    'UTR',
]

MAX_EXPORT_MEMBERS = 5

REVIEW_WARNING = (
    "Matches are candidates only: a UTR can match inside a longer number "
    "and one statement line can match several registrations. "
    "Review before approving."
)


@dataclass
class ExportFields:
    """Optional columns of the registrations export."""

    fee: bool = True
    utr: bool = True
    status: bool = True
    date: bool = True


def compute_stats(registrations: list[Registration]) -> dict:
    """Compute dashboard counts for a list of registrations."""
    verified = sum(1 for r in registrations if r.payment_status == STATUS_COMPLETED)
    return {
        'total': len(registrations),
        'pending': len(registrations) - verified,
        'verified': verified,
    }


def compute_scan_stats(pending: list[Registration], matches: list[UtrMatch]) -> dict:
    return {
        'total_pending': len(pending),
        'matched': len(matches),
        'still_pending': len(pending) - len(matches),
    }


def _match_to_row(match: UtrMatch) -> dict:
    return {
        'Registration_ID': match.id,
        'Event_ID': match.event_id,
        'Event_Name': match.event_name,
        'Team_Number': str(match.team_number),
        'UTR': match.utr_number,
    }


def write_review_csv(matches: list[UtrMatch], output_path: Path) -> None:
    """Write the scan's match list as an editable review file.

    Uses UTF-8 with BOM and semicolon delimiter so the file opens
    cleanly in Excel. The approve command reads it back; deleting a row
    rejects that candidate.

    Args:
        matches: Match list of a scan.
        output_path: Path for the review CSV.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(f, fieldnames=REVIEW_COLUMNS, delimiter=';')
        writer.writeheader()
        for match in matches:
            writer.writerow(_match_to_row(match))

    log.info("Review file written: %s (%d rows)", output_path, len(matches))


def write_review_html(
    matches: list[UtrMatch],
    pending: list[Registration],
    output_path: Path,
    statement_name: str = '',
) -> None:
    """Write the scan's match list as an HTML review page using Jinja2.

    Args:
        matches: Match list of a scan.
        pending: Pending registrations that were scanned.
        output_path: Path for the output HTML file.
        statement_name: Name of the statement file (for the page title).
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
    )
    template = env.get_template('review.html')

    html = template.render(
        statement_name=statement_name,
        matches=matches,
        stats=compute_scan_stats(pending, matches),
        warning=REVIEW_WARNING,
    )

    output_path.write_text(html, encoding='utf-8')
    log.info("HTML review written: %s", output_path)


def print_scan_summary(
    pending: list[Registration],
    matches: list[UtrMatch],
    statement_name: str = '',
) -> None:
    """Print the result of a scan to stdout.

    Args:
        pending: Pending registrations that were scanned.
        matches: Resulting match list.
        statement_name: Name of the statement file.
    """
    stats = compute_scan_stats(pending, matches)

    print(f"\n=== UTR scan: {statement_name} ===")
    print(f"Pending registrations:     {stats['total_pending']:>5}")
    print(f"Matches found:             {stats['matched']:>5}")
    print(f"Still pending:             {stats['still_pending']:>5}")
    print("---")
    if not matches:
        print("0 matches found. Nothing to approve.")
    for m in matches:
        print(f"{m.event_name} - Team #{m.team_number}   UTR: {m.utr_number}   MATCHED")
    if matches:
        print(f"\n{REVIEW_WARNING}")
    print()


def print_commit_summary(result: CommitResult) -> None:
    print(f"\nVerified:                  {len(result.succeeded):>5}")
    print(f"Failed:                    {len(result.failed):>5}")
    if result.failed:
        print("Failed to update some registrations; handle these manually:")
        for failure in result.failed:
            print(f"  - {failure.ref.event_id}/{failure.ref.id}: {failure.error}")
    print()


def format_date(registration: Registration) -> str:
    if registration.registered_at is None:
        return 'N/A'
    return registration.registered_at.strftime('%d %b %Y')


def export_row(registration: Registration, fields: ExportFields) -> dict:
    """Flatten a registration into export columns."""
    row = {
        'ID': registration.team_number,
        'Event': registration.event_name,
        'College': registration.college_name,
        'Email': registration.email,
    }
    for i in range(MAX_EXPORT_MEMBERS):
        member = registration.members[i] if i < len(registration.members) else None
        row[f'M{i + 1} Name'] = member.name if member else ''
        row[f'M{i + 1} #'] = member.phone if member else ''

    if fields.fee:
        row['Fee'] = registration.registration_fee
    if fields.utr:
        row['UTR'] = registration.utr_number
    if fields.status:
        row['Status'] = registration.payment_status
    if fields.date:
        row['Date'] = format_date(registration)
    return row


def export_columns(fields: ExportFields) -> list[str]:
    columns = ['ID', 'Event', 'College', 'Email']
    for i in range(MAX_EXPORT_MEMBERS):
        columns += [f'M{i + 1} Name', f'M{i + 1} #']
    for name, enabled in (('Fee', fields.fee), ('UTR', fields.utr),
                          ('Status', fields.status), ('Date', fields.date)):
        if enabled:
            columns.append(name)
    return columns


def write_export_csv(
    registrations: list[Registration],
    output_path: Path,
    fields: ExportFields | None = None,
) -> None:
    """Write registrations as a CSV export, grouped by event name."""
    fields = fields or ExportFields()
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    ordered = sorted(registrations, key=lambda r: (r.event_name or 'Unknown', r.team_number))
    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(f, fieldnames=export_columns(fields))
        writer.writeheader()
        for reg in ordered:
            writer.writerow(export_row(reg, fields))

    log.info("Export written: %s (%d registrations)", output_path, len(registrations))


def print_registrations(registrations: list[Registration]) -> None:
    """Print one line per team followed by the dashboard counts."""
    for r in registrations:
        print(
            f"{r.event_name:<20} #{r.team_number:<4} {r.payment_status:<10} "
            f"UTR {r.utr_number or '-':<14} {r.college_name}  [{r.event_id}/{r.id}]"
        )
    print_counts(registrations)


def print_counts(registrations: list[Registration]) -> None:
    stats = compute_stats(registrations)
    print(f"\nTotal: {stats['total']}   Pending: {stats['pending']}   Verified: {stats['verified']}")
