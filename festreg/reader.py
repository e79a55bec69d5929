"""CSV readers for the event catalog and operator review files."""

import csv
import io
import logging
import re
from pathlib import Path

from festreg import CATEGORIES, Event, RecordRef

log = logging.getLogger(__name__)

# Matches any sequence of whitespace (including Unicode whitespace like U+2006)
_WHITESPACE_RE = re.compile(r'\s+')

EVENT_COLUMNS = {'id', 'title', 'category', 'team_size', 'registration_fee'}
REVIEW_COLUMNS = {'Registration_ID', 'Event_ID'}


def detect_encoding(path: Path) -> str:
    """Detect file encoding by checking for BOM bytes.

    Spreadsheet exports on Windows are often UTF-16LE with a BOM, so
    review files edited in Excel can come back that way.

    Args:
        path: Path to the CSV file.

    Returns:
        Encoding string suitable for open().
    """
    with open(path, 'rb') as f:
        bom = f.read(2)
    if bom == b'\xff\xfe':
        return 'utf-16-le'
    return 'utf-8-sig'


def normalize_whitespace(value: str) -> str:
    """Collapse whitespace runs into single spaces and strip the ends."""
    return _WHITESPACE_RE.sub(' ', value).strip()


def _read_rows(path: Path, delimiter: str, required: set[str]) -> list[dict[str, str]]:
    encoding = detect_encoding(path)
    with open(path, 'r', encoding=encoding) as f:
        content = f.read()

    content = content.lstrip('\ufeff')
    reader = csv.DictReader(io.StringIO(content), delimiter=delimiter)

    if reader.fieldnames is None:
        raise ValueError(f"File {path} is empty or has no header row.")
    actual_cols = {normalize_whitespace(c) for c in reader.fieldnames}
    missing = required - actual_cols
    if missing:
        raise ValueError(
            f"Missing columns in {path}: {', '.join(sorted(missing))}"
        )

    return [
        {normalize_whitespace(k): normalize_whitespace(v or '')
         for k, v in row.items() if k is not None}
        for row in reader
    ]


def read_events(path: str | Path) -> list[Event]:
    """Read the event catalog from a comma-separated CSV file.

    Args:
        path: Path to the catalog CSV.

    Returns:
        Events in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required columns are missing or an id repeats.
    """
    path = Path(path)
    rows = _read_rows(path, ',', EVENT_COLUMNS)

    events: list[Event] = []
    seen: set[str] = set()
    for row_num, row in enumerate(rows, start=2):
        event_id = row.get('id', '')
        title = row.get('title', '')
        category = row.get('category', '').lower()
        if not event_id or not title:
            log.warning("Row %d in %s skipped: id and title are required", row_num, path)
            continue
        if category not in CATEGORIES:
            log.warning("Row %d in %s skipped: unknown category %r", row_num, path, category)
            continue
        if event_id in seen:
            raise ValueError(f"Duplicate event id {event_id!r} in {path} (row {row_num})")
        seen.add(event_id)
        events.append(Event(
            id=event_id,
            title=title,
            category=category,
            team_size=row.get('team_size', ''),
            registration_fee=row.get('registration_fee', ''),
            coordinator=row.get('coordinator', ''),
            coordinator_phone=row.get('coordinator_phone', ''),
        ))

    log.info("%d events read from %s", len(events), path)
    return events


def read_review(path: str | Path) -> list[RecordRef]:
    """Read the approved registrations from a review file.

    The review file is the one written by ``write_review_csv``. Every
    row still present is an approval; operators reject a candidate by
    deleting its row.

    Args:
        path: Path to the review CSV (semicolon-delimited).

    Returns:
        Unique record references in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the id columns are missing.
    """
    path = Path(path)
    rows = _read_rows(path, ';', REVIEW_COLUMNS)

    refs: list[RecordRef] = []
    seen: set[RecordRef] = set()
    for row_num, row in enumerate(rows, start=2):
        doc_id = row.get('Registration_ID', '')
        event_id = row.get('Event_ID', '')
        if not doc_id or not event_id:
            log.warning("Row %d in %s skipped: missing registration or event id", row_num, path)
            continue
        ref = RecordRef(id=doc_id, event_id=event_id)
        if ref in seen:
            continue
        seen.add(ref)
        refs.append(ref)

    log.info("%d approved registrations read from %s", len(refs), path)
    return refs
