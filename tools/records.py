"""
Medication Records
Plain value types the calculators work on, decoupled from the ORM
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple
from dataclasses import dataclass, field
from datetime import datetime, date

from exceptions import DataFormatError
from tools.calendar_dates import DateLike, parse_calendar_date


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogRecord:
    """A single "taken" event for a medication"""
    id: str
    medication_id: str
    date_taken: DateLike
    created_at: datetime
    image_url: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class MedicationRecord:
    """A medication together with its logs"""
    id: str
    name: str
    frequency: str
    created_on: DateLike
    dosage: str = ""
    logs: Tuple[LogRecord, ...] = field(default_factory=tuple)


@dataclass
class ParsedMedication:
    """A medication whose dates have been validated and indexed by day"""
    record: MedicationRecord
    created_on: date
    logs_by_date: Dict[date, List[LogRecord]] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def taken_dates(self) -> Set[date]:
        return set(self.logs_by_date)

    def is_active_on(self, day: date) -> bool:
        return self.created_on <= day


def parse_medications(
    medications: Sequence[MedicationRecord]
) -> Tuple[List[ParsedMedication], int]:
    """
    Validate dates and index logs by calendar day.

    Records with unparseable dates are logged and left out; a medication with a
    bad creation date is dropped together with its logs.

    Returns:
        (parsed medications in input order, number of records skipped)
    """
    parsed: List[ParsedMedication] = []
    skipped = 0

    for med in medications:
        try:
            created_on = parse_calendar_date(med.created_on)
        except DataFormatError as e:
            logger.warning(f"Excluding medication {med.id}: {e}")
            skipped += 1
            continue

        entry = ParsedMedication(record=med, created_on=created_on)
        for log in med.logs:
            try:
                day = parse_calendar_date(log.date_taken)
            except DataFormatError as e:
                logger.warning(f"Excluding log {log.id} of medication {med.id}: {e}")
                skipped += 1
                continue
            entry.logs_by_date.setdefault(day, []).append(log)

        parsed.append(entry)

    return parsed, skipped
