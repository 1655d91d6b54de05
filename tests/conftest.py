"""Shared test fixtures."""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Add project root to path for package imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from bay_inspector.models import BayAddress  # noqa: E402


SMART_REPORT_PASSED = """\
smartctl 7.3 2022-02-28 r5338 [x86_64-linux-6.1.0] (local build)
=== START OF READ SMART DATA SECTION ===
SMART overall-health self-assessment test result: PASSED

ID# ATTRIBUTE_NAME          FLAG     VALUE WORST THRESH TYPE      UPDATED  WHEN_FAILED RAW_VALUE
  1 Raw_Read_Error_Rate     0x002f   200   200   051    Pre-fail  Always       -       0
  5 Reallocated_Sector_Ct   0x0033   200   200   140    Pre-fail  Always       -       0
197 Current_Pending_Sector  0x0032   200   200   000    Old_age   Always       -       2
198 Offline_Uncorrectable   0x0030   100   253   000    Old_age   Offline      -       0

SMART Self-test log structure revision number 1
Num  Test_Description    Status                  Remaining  LifeTime(hours)  LBA_of_first_error
# 1  Extended offline    Completed without error       00%     40123         -
"""

SMART_REPORT_RUNNING = """\
SMART overall-health self-assessment test result: PASSED
Self-test execution status:      ( 249) Self-test routine in progress...
                                        90% of test remaining.
"""


def identity_doc(serial: str, capacity: int, model: str = "WDC WD10EZEX-00BN5A0") -> Dict[str, Any]:
    """smartctl -i --json document with fields at the top level"""
    return {
        "json_format_version": [1, 0],
        "device": {"name": "/dev/sdb", "type": "usbjmicron,0", "protocol": "ATA"},
        "model_name": model,
        "serial_number": serial,
        "user_capacity": {"blocks": capacity // 512, "bytes": capacity},
    }


def running_doc(percent: int) -> Dict[str, Any]:
    """smartctl -a --json document for a self-test in progress"""
    return {
        "ata_smart_data": {
            "self_test": {
                "status": {"value": 240 + percent // 10, "string": f"in progress, {percent}% remaining",
                           "percent_remaining": percent},
            },
        },
    }


class FakeTool:
    """Common behavior of the fake external tools"""

    command = "fake"
    install_hint = ""

    def __init__(self, available: bool = True):
        self.available = available

    def is_available(self) -> bool:
        return self.available


class FakeSmartctl(FakeTool):
    """Answers smartctl queries from canned data keyed by (device, bay)

    status_json values are lists consumed one per call; the last entry
    repeats once the list is exhausted.
    """

    command = "smartctl"
    install_hint = "sudo apt install smartmontools"

    def __init__(self, bridges: Optional[List[str]] = None,
                 identities: Optional[Dict[Tuple[str, int], Dict[str, Any]]] = None,
                 status_json: Optional[Dict[Tuple[str, int], List[Dict[str, Any]]]] = None,
                 status_text: Optional[Dict[Tuple[str, int], str]] = None,
                 start_ok: bool = True, available: bool = True):
        super().__init__(available)
        self.bridges = bridges or []
        self.identities = identities or {}
        self.status_json_seq = {k: list(v) for k, v in (status_json or {}).items()}
        self.status_text_map = status_text or {}
        self.start_ok = start_ok
        self.calls: List[Tuple[str, Tuple[str, int]]] = []

    @staticmethod
    def _key(address: BayAddress) -> Tuple[str, int]:
        return (address.device, address.bay)

    def scan_bridges(self, bridge_type: str) -> List[str]:
        self.calls.append(("scan", (bridge_type, -1)))
        return list(self.bridges)

    def identify(self, address: BayAddress) -> Dict[str, Any]:
        self.calls.append(("identify", self._key(address)))
        return self.identities.get(self._key(address), {})

    def status_json(self, address: BayAddress) -> Dict[str, Any]:
        self.calls.append(("status_json", self._key(address)))
        seq = self.status_json_seq.get(self._key(address))
        if not seq:
            return {}
        return seq.pop(0) if len(seq) > 1 else seq[0]

    def status_text(self, address: BayAddress) -> str:
        self.calls.append(("status_text", self._key(address)))
        return self.status_text_map.get(self._key(address), "")

    def start_long_test(self, address: BayAddress) -> Tuple[bool, str]:
        self.calls.append(("start", self._key(address)))
        if self.start_ok:
            return True, "Testing has begun.\nPlease wait 120 minutes for test to complete.\n"
        return False, "Smartctl open device: /dev/sdb [USB JMicron] failed: No such device\n"

    def count(self, name: str, key: Optional[Tuple[str, int]] = None) -> int:
        return sum(1 for call, k in self.calls if call == name and (key is None or k == key))


class FakeLsblk(FakeTool):
    command = "lsblk"
    install_hint = "sudo apt install util-linux"

    def __init__(self, devices: Optional[List[Dict[str, Any]]] = None, available: bool = True):
        super().__init__(available)
        self.devices = devices or []
        self.calls = 0

    def list_devices(self) -> List[Dict[str, Any]]:
        self.calls += 1
        return list(self.devices)


class FakeBadblocks(FakeTool):
    command = "badblocks"
    install_hint = "sudo apt install e2fsprogs"

    def __init__(self, exit_code: int = 0, available: bool = True):
        super().__init__(available)
        self.exit_code = exit_code
        self.scanned: List[Tuple[str, str]] = []
        self.echoes: List[Any] = []

    def scan(self, block_device: str, log_path: str, echo=None) -> int:
        self.scanned.append((block_device, log_path))
        self.echoes.append(echo)
        with open(log_path, "w") as f:
            f.write(f"Checking blocks 0 to 976762583 on {block_device}\n")
            f.write("Pass completed, 0 bad blocks found. (0/0/0 errors)\n")
        return self.exit_code


class RecordingSleep:
    """Stands in for time.sleep and records requested intervals"""

    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def test_logger():
    logger = logging.getLogger("bay-inspector-test")
    logger.setLevel(logging.DEBUG)
    return logger
