"""
Participant Service - Participant lists uploaded as CSV files

Expected format is ``Name,Email`` per line with an optional header row.
"""
import csv
import logging
from dataclasses import dataclass, field
from typing import List

from eventeye.errors import ValidationError
from eventeye.schemas.schemas import Participant

logger = logging.getLogger(__name__)

SAMPLE_CSV = (
    "Name,Email\n"
    "John Doe,john@example.com\n"
    "Jane Smith,jane@example.com\n"
    "Mike Johnson,mike@example.com\n"
)


@dataclass
class ParsedParticipants:
    participants: List[Participant] = field(default_factory=list)
    skipped: int = 0  # lines without both a name and an email


def parse_participants_csv(content: str) -> ParsedParticipants:
    """
    Parse a participant CSV.

    Blank lines are ignored, the first line is treated as a header when it
    mentions "name", and only the first two cells of each row are read.
    Raises ValidationError when no participant could be read.
    """
    lines = [line for line in content.splitlines() if line.strip()]
    if lines and "name" in lines[0].lower():
        lines = lines[1:]

    parsed = ParsedParticipants()
    for row in csv.reader(lines, skipinitialspace=True):
        name = row[0].strip() if len(row) > 0 else ""
        email = row[1].strip() if len(row) > 1 else ""
        if name and email:
            parsed.participants.append(Participant(name=name, email=email))
        else:
            parsed.skipped += 1

    if not parsed.participants:
        raise ValidationError("No valid participants found in CSV")

    logger.info(f"Parsed {len(parsed.participants)} participants from CSV ({parsed.skipped} skipped)")
    return parsed


def decode_upload(data: bytes) -> str:
    """Decode an uploaded file, tolerating a UTF-8 byte order mark"""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("Failed to parse CSV file. Please ensure format is: Name, Email")


def sample_csv() -> str:
    return SAMPLE_CSV
