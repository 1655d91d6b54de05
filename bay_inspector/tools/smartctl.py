"""smartctl wrapper for USB bridge attached disks"""

import subprocess
from typing import List, Dict, Any, Tuple

from .base import BaseTool
from ..models import BayAddress


# smartctl exit status bits 0 and 1: command line did not parse, device open failed.
# Higher bits describe the disk (failing attributes, error log entries) and the
# output is still valid.
SMARTCTL_FAILURE_MASK = 0b11


class SmartctlTool(BaseTool):
    """Issues smartmontools commands routed through a bridge/bay address"""

    @property
    def command(self) -> str:
        return "smartctl"

    def _is_failure(self, returncode: int) -> bool:
        return bool(returncode & SMARTCTL_FAILURE_MASK)

    def scan_bridges(self, bridge_type: str) -> List[str]:
        """List bridge device paths reported by smartctl --scan

        Args:
            bridge_type: Substring identifying the bridge (e.g., 'usbjmicron')

        Returns:
            List[str]: Sorted unique device paths
        """
        self.logger.info(f"Scanning for {bridge_type} USB bridges")
        output = self._execute_command(["--scan"], merge_stderr=False)
        return self.parse_scan_output(output, bridge_type)

    @staticmethod
    def parse_scan_output(output: str, bridge_type: str) -> List[str]:
        """Extract device paths from lines mentioning bridge_type

        Scan lines look like: ``/dev/sdb -d usbjmicron # /dev/sdb [USB JMicron], ATA device``
        """
        devices = set()
        for line in output.splitlines():
            if bridge_type not in line:
                continue
            parts = line.split()
            if parts:
                devices.add(parts[0])
        return sorted(devices)

    def identify(self, address: BayAddress) -> Dict[str, Any]:
        """Query identity information as JSON (smartctl -i --json)

        Returns:
            Dict[str, Any]: Parsed document, empty when the bay is absent
        """
        output = self._execute_command(
            ["-i", "-d", address.device_type, "--json", address.device],
            merge_stderr=False,
        )
        return self._parse_json_output(output, f"Unparseable identity output for {address}")

    def status_json(self, address: BayAddress) -> Dict[str, Any]:
        """Query full status as JSON (smartctl -a --json)"""
        output = self._execute_command(
            ["-a", "-d", address.device_type, "--json", address.device],
            merge_stderr=False,
        )
        return self._parse_json_output(output, f"Unparseable status output for {address}")

    def status_text(self, address: BayAddress) -> str:
        """Query the human-readable report (smartctl -a)"""
        return self._execute_command(["-a", "-d", address.device_type, address.device])

    def start_long_test(self, address: BayAddress) -> Tuple[bool, str]:
        """Start an extended self-test (smartctl -t long)

        Returns:
            Tuple[bool, str]: Whether smartctl accepted the command, and its output
        """
        cmd = ["-t", "long", "-d", address.device_type, address.device]
        try:
            return True, self._execute_command(cmd, handle_errors=False)
        except subprocess.CalledProcessError as e:
            self.logger.debug(f"Start command failed for {address}: exit status {e.returncode}")
            return False, e.output or ""
        except OSError as e:
            self.logger.debug(f"Start command failed for {address}: {e}")
            return False, ""
