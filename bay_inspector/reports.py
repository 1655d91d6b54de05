"""Per-serial report files and health summary extraction"""

import hashlib
import logging
import os
import re
from typing import Dict, List, Optional

from .models import HealthSummary


ATTRIBUTE_FIELDS = {
    "Reallocated_Sector_Ct": "reallocated_sectors",
    "Current_Pending_Sector": "pending_sectors",
    "Offline_Uncorrectable": "offline_uncorrectable",
}

OVERALL_HEALTH_RE = re.compile(r"^\s*SMART (?:overall-health self-assessment test result|Health Status):\s*(.+?)\s*$")
SUMMARY_LINE_RE = re.compile(r"SMART overall|SMART Health Status|" + "|".join(ATTRIBUTE_FIELDS))

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]")


def safe_serial(serial: str) -> str:
    """Make a serial number usable as a file name component

    A serial that had to be altered gets a short hash of the raw value
    appended, so two serials never share a file name.
    """
    if not serial:
        return "unknown"

    safe = _UNSAFE_CHARS_RE.sub("_", serial)
    if safe != serial:
        digest = hashlib.sha1(serial.encode("utf-8", "surrogateescape")).hexdigest()[:8]
        safe = f"{safe}-{digest}"
    return safe


def extract_health_summary(report: str) -> HealthSummary:
    """Pull overall health and key sector counters from a smartctl -a report

    Missing fields stay None.
    """
    summary = HealthSummary()

    for line in report.splitlines():
        if not SUMMARY_LINE_RE.search(line):
            continue
        summary.lines.append(line.rstrip())

        health = OVERALL_HEALTH_RE.match(line)
        if health:
            summary.overall_health = health.group(1)
            continue

        # ID# ATTRIBUTE_NAME FLAG VALUE WORST THRESH TYPE UPDATED WHEN_FAILED RAW_VALUE
        parts = line.split(None, 9)
        if len(parts) == 10 and parts[1] in ATTRIBUTE_FIELDS:
            setattr(summary, ATTRIBUTE_FIELDS[parts[1]], parts[9].strip())

    return summary


class ReportStore:
    """Lays out report files for each serial in one log directory

    Files are not rotated; a rerun overwrites the previous reports.
    """

    def __init__(self, log_dir: str, logger: Optional[logging.Logger] = None):
        self.log_dir = os.path.expanduser(log_dir)
        self.logger = logger or logging.getLogger(__name__)
        self.written: Dict[str, List[str]] = {}

    def ensure_dir(self) -> None:
        os.makedirs(self.log_dir, exist_ok=True)

    def before_path(self, serial: str) -> str:
        return os.path.join(self.log_dir, f"{safe_serial(serial)}_smart_before.txt")

    def after_path(self, serial: str) -> str:
        return os.path.join(self.log_dir, f"{safe_serial(serial)}_smart_after.txt")

    def badblocks_path(self, serial: str) -> str:
        return os.path.join(self.log_dir, f"{safe_serial(serial)}_badblocks.log")

    def write_before(self, serial: str, text: str) -> str:
        """Write the baseline report, replacing any earlier one"""
        return self._write(serial, self.before_path(serial), text, "w")

    def append_before(self, serial: str, text: str) -> str:
        """Append to the baseline report (self-test start output)"""
        return self._write(serial, self.before_path(serial), text, "a")

    def write_after(self, serial: str, text: str) -> str:
        """Write the final report"""
        return self._write(serial, self.after_path(serial), text, "w")

    def record(self, serial: str, path: str) -> None:
        """Remember a file written on behalf of serial"""
        paths = self.written.setdefault(serial, [])
        if path not in paths:
            paths.append(path)

    def _write(self, serial: str, path: str, text: str, mode: str) -> str:
        self.ensure_dir()
        with open(path, mode) as f:
            f.write(text)
            if text and not text.endswith("\n"):
                f.write("\n")
        self.logger.debug(f"Wrote {path}")
        self.record(serial, path)
        return path
