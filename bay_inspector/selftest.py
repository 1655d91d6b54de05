"""Extended SMART self-test start and progress polling"""

import logging
import re
import time
from typing import Any, Callable, Iterator, Optional, Sequence

from .models import DriveRecord, PollResult, PollState, SelfTestPhase, SelfTestSession
from .reports import ReportStore, extract_health_summary


PERCENT_KEYS = ("percent_remaining", "remaining_percent")
IN_PROGRESS_RE = re.compile(r"Self-test routine in progress", re.IGNORECASE)


def iter_key_values(document: Any, keys: Sequence[str]) -> Iterator[Any]:
    """Depth-first search for keys anywhere in a JSON document, in document order

    Self-test log tables are skipped: their entries describe earlier runs and
    can carry a remaining percentage of an interrupted test.
    """
    if isinstance(document, dict):
        for key in keys:
            value = document.get(key)
            if value is not None and value is not False:
                yield value
        for key, value in document.items():
            if key.endswith("_self_test_log"):
                continue
            yield from iter_key_values(value, keys)
    elif isinstance(document, list):
        for item in document:
            yield from iter_key_values(item, keys)


def find_percent_remaining(document: Any) -> Optional[int]:
    """First remaining-percentage value in document, None if there is none"""
    for value in iter_key_values(document, PERCENT_KEYS):
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
    return None


class SelfTestPoller:
    """Drives one extended self-test per drive from start to final report"""

    def __init__(self, smartctl, reports: ReportStore, poll_interval: int = 60,
                 max_poll_failures: int = 0, sleep: Callable[[float], None] = time.sleep,
                 logger: Optional[logging.Logger] = None):
        """Initialize the poller

        Args:
            smartctl: SmartctlTool (or compatible) used for all queries
            reports: Report store for before/after files
            poll_interval: Seconds to block between polls
            max_poll_failures: Consecutive unreachable polls tolerated, 0 for no limit
            sleep: Blocking wait function
            logger: Logger instance
        """
        self.smartctl = smartctl
        self.reports = reports
        self.poll_interval = poll_interval
        self.max_poll_failures = max_poll_failures
        self.sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    def capture_baseline(self, session: SelfTestSession) -> str:
        """Write the initial SMART report for the drive"""
        drive = session.drive
        self.logger.info(f"==> SMART summary (before): {drive.serial} [{drive.address}]")
        report = self.smartctl.status_text(drive.address)
        if not report:
            self.logger.warning(f"{drive.serial}: no SMART report returned")
        return self.reports.write_before(drive.serial, report)

    def start(self, session: SelfTestSession) -> bool:
        """Issue the long self-test command once

        A failure is not fatal: the test may already be running from an
        earlier invocation, and polling will tell.
        """
        drive = session.drive
        self.logger.info(f"==> Starting extended SMART self-test: {drive.serial} [{drive.address}]")

        started, output = self.smartctl.start_long_test(drive.address)
        if output:
            self.reports.append_before(drive.serial, output)
        if not started:
            self.logger.warning(f"{drive.serial}: self-test start command failed; continuing")

        session.phase = SelfTestPhase.RUNNING
        return started

    def poll_once(self, drive: DriveRecord) -> PollResult:
        """Query status once

        Prefers a remaining percentage from the JSON status, then falls back
        to the in-progress phrase of the text report.
        """
        status = self.smartctl.status_json(drive.address)
        percent = find_percent_remaining(status)
        if percent is not None:
            return PollResult.in_progress(percent)

        report = self.smartctl.status_text(drive.address)
        if IN_PROGRESS_RE.search(report or ""):
            return PollResult.in_progress(None)

        if not status and not report:
            return PollResult.unreachable()

        return PollResult.done()

    def wait_until_done(self, session: SelfTestSession) -> None:
        """Poll until no in-progress signal remains

        Blocks poll_interval seconds between polls. There is no timeout;
        only max_poll_failures ends the loop early when status queries keep
        failing.
        """
        serial = session.serial
        self.logger.info(f"==> Polling SMART test progress for {serial} ...")

        if session.phase is SelfTestPhase.NOT_STARTED:
            session.phase = SelfTestPhase.RUNNING

        while True:
            result = self.poll_once(session.drive)
            session.polls += 1

            if result.state is PollState.DONE:
                self.logger.info(f"    {serial}: test appears complete. Writing final SMART report.")
                return

            if result.state is PollState.UNREACHABLE:
                session.consecutive_failures += 1
                if self.max_poll_failures and session.consecutive_failures >= self.max_poll_failures:
                    self.logger.error(
                        f"    {serial}: status unavailable for {session.consecutive_failures} "
                        f"consecutive polls; giving up on progress tracking"
                    )
                    return
                self.logger.warning(
                    f"    {serial}: status query failed, assuming still running. "
                    f"Next check in {self.poll_interval}s"
                )
            else:
                session.consecutive_failures = 0
                session.last_percent_remaining = result.percent_remaining
                if result.percent_remaining is None:
                    progress = "progress unknown"
                else:
                    progress = f"{result.percent_remaining}% remaining"
                self.logger.info(f"    {serial}: still running ({progress}). Next check in {self.poll_interval}s")

            self.sleep(self.poll_interval)
            session.waits += 1

    def finalize(self, session: SelfTestSession) -> Optional[str]:
        """Capture the final report once and log the key health fields"""
        if session.final_report_captured:
            return None

        drive = session.drive
        report = self.smartctl.status_text(drive.address)
        if not report:
            self.logger.warning(f"{drive.serial}: final SMART report is empty")

        path = self.reports.write_after(drive.serial, report)
        session.final_report_captured = True
        session.phase = SelfTestPhase.COMPLETED

        session.summary = extract_health_summary(report)
        if session.summary.lines:
            for line in session.summary.lines:
                self.logger.info(f"    {line.strip()}")
        else:
            self.logger.info(f"    {drive.serial}: no key health fields found in report")

        return path

    def run(self, session: SelfTestSession) -> SelfTestSession:
        """Poll a started session to completion and capture its final report"""
        self.wait_until_done(session)
        self.finalize(session)
        return session
