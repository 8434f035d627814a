"""
Backup store.
Naming convention, enumeration and display formatting for the backup directory.

Filenames:
    current: <prefix>_<epochMillis>_<2023-12-25T10-30-00-000Z>.db
    legacy:  <prefix>_<2023-12-25T10-30-00-000Z>.db  (read-only, never produced)
"""
import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

from crm_store import config
from crm_store.exceptions import StorageIOException
from crm_store.models import BackupRecord

logger = logging.getLogger("crm_store.backup")

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]
# Filename stamps later than now + this are treated as unparseable
FUTURE_SLACK_MILLIS = 24 * 60 * 60 * 1000

# 2023-12-25T10-30-00-000Z (colons and the fraction dot replaced by dashes)
DASHED_ISO = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2})-(\d{2})-(\d{2})(?:-(\d{1,3}))?Z$"
)


def now_millis() -> int:
    return int(time.time() * 1000)


def iso_with_dashes(millis: int) -> str:
    """2023-12-25T10:30:00.000Z with ':' and '.' replaced by '-'"""
    moment = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{millis % 1000:03d}Z"


def parse_dashed_iso(value: str) -> Optional[int]:
    """Recover epoch millis from a dashed ISO instant. None if it does not parse."""
    match = DASHED_ISO.match(value)
    if not match:
        return None
    year, month, day, hour, minute, second, fraction = match.groups()
    try:
        moment = datetime(int(year), int(month), int(day),
                          int(hour), int(minute), int(second), tzinfo=timezone.utc)
    except ValueError:
        return None
    millis = int(fraction.ljust(3, "0")) if fraction else 0
    return int(moment.timestamp()) * 1000 + millis


def format_size(size_bytes: int) -> str:
    """Base-1024 human readable size: '0 Bytes', '512 Bytes', '12.34 KB'"""
    if size_bytes <= 0:
        return "0 Bytes"
    i = 0
    while i < len(SIZE_UNITS) - 1 and size_bytes >= 1024 ** (i + 1):
        i += 1
    value = round(size_bytes / 1024 ** i, 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[i]}"


def format_timestamp(millis: int, tz=None) -> str:
    """
    Fixed-field display string, e.g. 'Dec 25, 2023, 10:30:00 AM'.
    Uses local time unless tz is given. Display only, never parsed back.
    """
    moment = datetime.fromtimestamp(millis / 1000, tz=tz)
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return (
        f"{MONTHS[moment.month - 1]} {moment.day}, {moment.year}, "
        f"{hour:02d}:{moment.minute:02d}:{moment.second:02d} {suffix}"
    )


class BackupStore:
    """Naming and enumeration over a backup directory"""

    def __init__(self, backup_dir, prefix: str = config.BACKUP_PREFIX,
                 extension: str = config.BACKUP_EXTENSION,
                 clock: Optional[Callable[[], int]] = None):
        self.backup_dir = Path(backup_dir)
        self.prefix = prefix
        self.extension = extension
        self.clock = clock or now_millis
        self._current = re.compile(
            rf"^{re.escape(prefix)}_(\d+)_(.+){re.escape(extension)}$"
        )
        self._legacy = re.compile(
            rf"^{re.escape(prefix)}_(.+){re.escape(extension)}$"
        )

    def ensure_directory(self) -> Path:
        """Create the backup directory if needed"""
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"✗ Could not create backup directory {self.backup_dir}: {e}")
            raise StorageIOException("mkdir", str(e)) from e
        return self.backup_dir

    def name_for(self, millis: int) -> str:
        return f"{self.prefix}_{millis}_{iso_with_dashes(millis)}{self.extension}"

    def unique_name_for(self, millis: int) -> Tuple[str, int]:
        """
        Name for a new backup that does not collide with an existing file.
        Bumps the millisecond stamp forward on collision.
        """
        while (self.backup_dir / self.name_for(millis)).exists():
            millis += 1
        return self.name_for(millis), millis

    def path_for(self, filename: str) -> Path:
        """Resolve a bare filename inside the backup directory"""
        if not filename or Path(filename).name != filename or filename in (".", ".."):
            raise ValueError(f"Invalid backup filename: {filename!r}")
        return self.backup_dir / filename

    def parse_created_at(self, filename: str) -> Optional[int]:
        """
        Epoch millis encoded in a filename, current or legacy format.
        None if the name does not parse or the stamp is not a plausible creation time.
        """
        match = self._current.match(filename)
        if match:
            millis = int(match.group(1))
        else:
            match = self._legacy.match(filename)
            millis = parse_dashed_iso(match.group(1)) if match else None

        if millis is None or millis > self.clock() + FUTURE_SLACK_MILLIS:
            return None
        return millis

    def _record_for(self, path: Path) -> Optional[BackupRecord]:
        try:
            stat = path.stat()
        except FileNotFoundError:
            # Removed between listing and stat
            return None
        created_at = self.parse_created_at(path.name)
        if created_at is None:
            created_at = int(stat.st_mtime * 1000)
            logger.warning(
                f"Could not parse timestamp from '{path.name}', using modification time {created_at}"
            )
        return BackupRecord(
            filename=path.name,
            path=path,
            created_at_millis=created_at,
            size_bytes=stat.st_size,
        )

    def iter_records(self) -> Iterator[BackupRecord]:
        """Scan the directory once, yielding backups in directory order"""
        if not self.backup_dir.is_dir():
            return
        for path in self.backup_dir.iterdir():
            if not path.is_file() or not path.name.endswith(self.extension):
                continue
            record = self._record_for(path)
            if record is not None:
                yield record

    def list(self) -> List[BackupRecord]:
        """All backups, newest first"""
        return sorted(self.iter_records(), key=lambda r: r.created_at_millis, reverse=True)
