"""Main DriveInspector class"""

import argparse
import json
import logging
import os
import re
import sys
import time
from typing import Callable, Dict, List, Mapping, Optional

from .tools import BaseTool, SmartctlTool, LsblkTool, BadblocksTool
from .models import DriveRecord, InspectionResult, SelfTestSession
from .config import ConfigManager, DEFAULT_CONFIG_FILE
from .inventory import InventoryReader, deduplicate
from .block_devices import BlockDeviceIndex, CapacityMatcher
from .selftest import SelfTestPoller
from .reports import ReportStore


class DriveInspector:
    """Main class for the bay inspection tool

    Runs every stage strictly in sequence:
    - bridge scan and per-bay inventory
    - baseline SMART reports and extended self-test start
    - progress polling and final reports
    - capacity based block device mapping
    - optional read-only surface scan
    """

    def __init__(self, smartctl: Optional[SmartctlTool] = None, lsblk: Optional[LsblkTool] = None,
                 badblocks: Optional[BadblocksTool] = None, sleep: Callable[[float], None] = time.sleep,
                 environ: Optional[Mapping[str, str]] = None, logger: Optional[logging.Logger] = None):
        """Initialize the DriveInspector instance

        Tool instances and sleep can be supplied to run against fakes.
        """
        # Options
        self.config_file = DEFAULT_CONFIG_FILE
        self.json_output = False
        self.verbose = False
        self.quiet = False

        # Components (initialized later)
        self.logger = logger or self._setup_logger()
        self.config_manager: Optional[ConfigManager] = None
        self.smartctl = smartctl
        self.lsblk = lsblk
        self.badblocks = badblocks
        self.sleep = sleep
        self.environ = environ
        self.reports: Optional[ReportStore] = None

        # Data
        self.drives: Dict[str, DriveRecord] = {}
        self.results: List[InspectionResult] = []

    def _setup_logger(self) -> logging.Logger:
        """Set up the logger for the application"""
        logger = logging.getLogger("bay-inspector")
        logger.setLevel(logging.INFO)

        for handler in list(logger.handlers):
            logger.removeHandler(handler)

        ch = logging.StreamHandler()
        ch.setLevel(logging.INFO)

        formatter = logging.Formatter('[%(levelname)s] %(message)s')
        ch.setFormatter(formatter)

        logger.addHandler(ch)

        return logger

    def parse_arguments(self, argv: Optional[List[str]] = None) -> None:
        """Parse command line arguments and load configuration"""
        parser = argparse.ArgumentParser(
            description="Runs SMART extended self-tests and optional read-only surface scans "
                        "on disks in dual-bay USB enclosures."
        )

        parser.add_argument("-c", "--config", default=DEFAULT_CONFIG_FILE, metavar="FILE",
                          help="YAML configuration file")
        parser.add_argument("--badblocks", dest="run_badblocks", action="store_const", const=True,
                          help="Run a read-only badblocks scan on every mapped disk")
        parser.add_argument("--no-badblocks", dest="run_badblocks", action="store_const", const=False,
                          help="Skip the badblocks scan")
        parser.add_argument("--poll-interval", type=int, metavar="SECONDS",
                          help="Seconds between self-test progress checks (default 60)")
        parser.add_argument("--tolerance", type=int, dest="tolerance_bytes", metavar="BYTES",
                          help="Capacity matching tolerance in bytes (default 52428800)")
        parser.add_argument("--max-poll-failures", type=int, metavar="COUNT",
                          help="Stop tracking a test after COUNT failed status queries in a row (0 = never)")
        parser.add_argument("--log-dir", metavar="DIR", help="Directory for report files")
        parser.add_argument("--bridge-type", metavar="TYPE",
                          help="smartctl device type of the USB bridge (default usbjmicron)")
        parser.add_argument("--no-sudo", action="store_true", help="Do not prefix commands with sudo")
        parser.add_argument("-j", "--json", action="store_true", help="Print the final summary as JSON")
        parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
        parser.add_argument("-q", "--quiet", action="store_true", help="Suppress INFO messages")

        args = parser.parse_args(argv)

        # Set instance variables
        self.config_file = args.config
        self.json_output = args.json
        self.verbose = args.verbose
        self.quiet = args.quiet

        # Configure logger
        if self.verbose:
            self._set_log_level(logging.DEBUG)
        elif self.quiet:
            self._set_log_level(logging.WARNING)

        # Load configuration: file, then environment, then command line
        self.config_manager = ConfigManager(self.config_file, logger=self.logger)
        self.config_manager.apply_environment(self.environ)
        self.config_manager.override(
            run_badblocks=args.run_badblocks,
            poll_interval=args.poll_interval,
            tolerance_bytes=args.tolerance_bytes,
            max_poll_failures=args.max_poll_failures,
            log_dir=args.log_dir,
            bridge_type=args.bridge_type,
            use_sudo=False if args.no_sudo else None,
        )

        self._validate_config()

    def _set_log_level(self, level: int) -> None:
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    def _validate_config(self) -> None:
        """Reject settings the run cannot work with"""
        config = self.config_manager.config

        if config.poll_interval < 1:
            self.logger.error("Poll interval must be at least 1 second")
            sys.exit(1)
        if config.tolerance_bytes < 0:
            self.logger.error("Capacity tolerance must not be negative")
            sys.exit(1)
        if config.max_poll_failures < 0:
            self.logger.error("Maximum poll failures must not be negative")
            sys.exit(1)
        if not config.bays:
            self.logger.error("At least one bay index must be configured")
            sys.exit(1)
        try:
            re.compile(config.device_pattern)
        except re.error as e:
            self.logger.error(f"Invalid device pattern {config.device_pattern!r}: {e}")
            sys.exit(1)

    def _init_components(self) -> None:
        """Create tool wrappers not supplied by the caller"""
        config = self.config_manager.config

        if self.smartctl is None:
            self.smartctl = SmartctlTool(logger=self.logger, use_sudo=config.use_sudo)
        if self.lsblk is None:
            self.lsblk = LsblkTool(logger=self.logger)
        if self.badblocks is None:
            self.badblocks = BadblocksTool(logger=self.logger, use_sudo=config.use_sudo)

        self.reports = ReportStore(self.config_manager.log_dir, logger=self.logger)

    def check_dependencies(self) -> None:
        """Exit if a required external command is missing"""
        required: List[BaseTool] = [self.smartctl, self.lsblk]
        if self.config_manager.config.run_badblocks:
            required.append(self.badblocks)

        for tool in required:
            if tool.is_available():
                continue
            self.logger.error(f"'{tool.command}' is required but not installed.")
            if tool.install_hint:
                self.logger.error(f"       Install with: {tool.install_hint}")
            sys.exit(1)

    def detect_bridges(self) -> List[str]:
        """Find bridge devices

        Raises:
            SystemExit: If no bridge is found
        """
        bridge_type = self.config_manager.config.bridge_type
        self.logger.info(f"==> Scan for {bridge_type} USB bridges...")

        bridges = self.smartctl.scan_bridges(bridge_type)
        if not bridges:
            self.logger.error(
                f"No {bridge_type} devices found via 'smartctl --scan'. "
                "Is the enclosure connected and powered?"
            )
            sys.exit(1)

        self.logger.debug(f"Found bridges: {bridges}")
        return bridges

    def discover_drives(self, bridges: List[str]) -> Dict[str, DriveRecord]:
        """Inventory every bay and deduplicate by serial

        Raises:
            SystemExit: If no valid drive is found
        """
        config = self.config_manager.config
        reader = InventoryReader(self.smartctl, bridge_type=config.bridge_type,
                                 bays=config.bays, logger=self.logger)

        drives = deduplicate(reader.read(bridges), logger=self.logger)
        if not drives:
            bays = "/".join(str(b) for b in config.bays)
            self.logger.error(f"No addressable disks behind {config.bridge_type} ports ({bays}).")
            sys.exit(1)

        return drives

    def run(self, argv: Optional[List[str]] = None) -> List[InspectionResult]:
        """Main entry point for the application"""
        # Parse arguments
        self.parse_arguments(argv)
        self._init_components()
        config = self.config_manager.config

        self.check_dependencies()
        self.reports.ensure_dir()

        # Inventory
        bridges = self.detect_bridges()
        self.drives = self.discover_drives(bridges)
        self.results = [InspectionResult(drive=drive) for drive in self.drives.values()]
        self._display_drives()

        # Self-tests: start all, then poll each to completion
        poller = SelfTestPoller(self.smartctl, self.reports, poll_interval=config.poll_interval,
                                max_poll_failures=config.max_poll_failures,
                                sleep=self.sleep, logger=self.logger)

        self.logger.info("==> SMART: initial summaries and start long tests")
        for result in self.results:
            result.session = SelfTestSession(drive=result.drive)
            poller.capture_baseline(result.session)
            poller.start(result.session)

        self.logger.info("==> SMART: polling until all long tests finish")
        for result in self.results:
            poller.run(result.session)

        # Capacity mapping
        self.logger.info("==> Mapping each disk to a block device for optional surface scan")
        index = BlockDeviceIndex.snapshot(self.lsblk, config.device_pattern)
        matcher = CapacityMatcher(config.tolerance_bytes, logger=self.logger)
        mappings = matcher.map_drives(self.drives.values(), index)

        for result in self.results:
            result.mapping = mappings[result.serial]
            if result.mapping.matched:
                self.logger.info(f" -> {result.serial} mapped to {result.mapping.device_path}")
            else:
                self.logger.info(
                    f" -> {result.serial}: could not confidently map to a block device "
                    f"({result.mapping.explanation})."
                )

        # Surface scan
        if config.run_badblocks:
            self.logger.info("==> Running non-destructive badblocks read scan")
            for result in self.results:
                if result.mapping.matched:
                    self._run_surface_scan(result)
        else:
            self.logger.info("==> Skipping badblocks (use --badblocks or RUN_BADBLOCKS=1 to enable)")

        self._display_summary()
        return self.results

    def _run_surface_scan(self, result: InspectionResult) -> None:
        """Run badblocks for one mapped drive"""
        block_device = result.mapping.device_path
        log_path = self.reports.badblocks_path(result.serial)

        self.logger.info(
            f"==> badblocks (read-only) on {result.serial} at {block_device} "
            "(this may take MANY hours over USB 2.0)"
        )
        self.logger.info(f"    Logging to: {log_path}")

        self.reports.ensure_dir()
        # Keep stdout for the JSON summary
        echo = sys.stderr if self.json_output else None
        result.scan_exit_code = self.badblocks.scan(block_device, log_path, echo=echo)
        result.scan_log = log_path
        self.reports.record(result.serial, log_path)

        if result.scan_exit_code != 0:
            self.logger.error(f"    badblocks exited with status {result.scan_exit_code} for {result.serial}")
        else:
            self.logger.info(f"    badblocks finished for {result.serial}")

    def _display_drives(self) -> None:
        """Display the disks about to be processed"""
        if self.json_output:
            return

        print("\n==> Disks to process:")
        headers = ["#", "Serial", "Model", "Path", "Bay", "Capacity"]

        table_data = []
        for i, drive in enumerate(self.drives.values(), 1):
            table_data.append([
                str(i),
                drive.serial,
                drive.model,
                drive.address.device,
                str(drive.address.bay),
                f"{drive.capacity_bytes} bytes",
            ])

        self._print_table(headers, table_data)
        print()

    def _display_summary(self) -> None:
        """Display produced report files"""
        if self.json_output:
            output = []
            for result in self.results:
                entry = result.drive.to_dict()
                entry["health"] = result.session.summary.to_dict() if result.session and result.session.summary else None
                entry["block_device"] = result.mapping.device_path if result.mapping else None
                entry["reports"] = self.reports.written.get(result.serial, [])
                entry["badblocks_exit_code"] = result.scan_exit_code
                output.append(entry)
            print(json.dumps(output, indent=2))
            return

        print(f"\nDone. Reports are in: {self.reports.log_dir}")
        print("   - *_smart_before.txt  (baseline + test kickoff)")
        print("   - *_smart_after.txt   (final results)")
        print("   - *_badblocks.log     (if enabled)")
        print()

        headers = ["Serial", "Health", "Block Device", "Reports"]
        table_data = []
        for result in self.results:
            summary = result.session.summary if result.session else None
            health = summary.overall_health if summary and summary.overall_health else "-"
            block_device = result.mapping.device_path if result.mapping and result.mapping.matched else "-"
            files = [os.path.basename(f) for f in self.reports.written.get(result.serial, [])]
            table_data.append([result.serial, health, block_device, ", ".join(files)])

        self._print_table(headers, table_data)

    def _print_table(self, headers: List[str], data: List[List[str]]) -> None:
        """Print a formatted table"""
        # Calculate column widths
        widths = [len(h) for h in headers]
        for row in data:
            for i, val in enumerate(row):
                if i < len(widths):
                    widths[i] = max(widths[i], len(str(val)))

        # Print header
        header_parts = [h.ljust(widths[i]) for i, h in enumerate(headers)]
        header_line = "  ".join(header_parts)
        print("-" * len(header_line))
        print(header_line)
        print("-" * len(header_line))

        # Print data
        for row in data:
            row_parts = [str(val).ljust(widths[i]) for i, val in enumerate(row)]
            print("  ".join(row_parts))

        print("-" * len(header_line))


def main(argv: Optional[List[str]] = None) -> int:
    """Console entry point"""
    try:
        DriveInspector().run(argv)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except Exception as e:
        print(f"Error: {e}")
        import traceback
        traceback.print_exc()
        return 1
    return 0
