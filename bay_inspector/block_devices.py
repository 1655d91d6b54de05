"""Block device capacity index and capacity matching"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from .models import BlockDevice, DriveRecord, MappingResult


DEFAULT_TOLERANCE_BYTES = 50 * 1024 * 1024


class BlockDeviceIndex:
    """Snapshot of whole-disk block devices and their sizes

    Entries are kept sorted by device path; the snapshot is never refreshed.
    """

    def __init__(self, devices: Iterable[BlockDevice] = ()):
        self.devices: List[BlockDevice] = sorted(devices, key=lambda d: d.name)

    @classmethod
    def from_lsblk(cls, entries: Iterable[Dict[str, Any]], pattern: str = r"^sd[a-z]+$") -> "BlockDeviceIndex":
        """Build an index from lsblk JSON entries

        Args:
            entries: Items of the lsblk ``blockdevices`` list
            pattern: Regular expression a kernel name must fully match

        Returns:
            BlockDeviceIndex with disks matching pattern only
        """
        name_re = re.compile(pattern)
        devices = []

        for entry in entries:
            name = str(entry.get("name") or "")
            if entry.get("type") != "disk":
                continue

            short = name.replace("/dev/", "")
            if not name_re.fullmatch(short):
                continue

            size = _as_size(entry.get("size"))
            if size is None:
                continue

            devices.append(BlockDevice(name=f"/dev/{short}", size_bytes=size))

        return cls(devices)

    @classmethod
    def snapshot(cls, lsblk, pattern: str = r"^sd[a-z]+$") -> "BlockDeviceIndex":
        """Query lsblk once and build the index"""
        return cls.from_lsblk(lsblk.list_devices(), pattern)

    def to_dict(self) -> Dict[str, int]:
        return {d.name: d.size_bytes for d in self.devices}

    def __iter__(self):
        return iter(self.devices)

    def __len__(self) -> int:
        return len(self.devices)


def _as_size(value: Any) -> Optional[int]:
    # lsblk -b -J emits numbers on recent util-linux, strings on older releases
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class CapacityMatcher:
    """Matches a reported drive capacity to the closest block device

    A match is accepted only within tolerance_bytes, so an unrelated disk
    (such as the boot disk) is never chosen by a capacity coincidence.
    """

    def __init__(self, tolerance_bytes: int = DEFAULT_TOLERANCE_BYTES, logger: Optional[logging.Logger] = None):
        self.tolerance_bytes = tolerance_bytes
        self.logger = logger or logging.getLogger(__name__)

    def match(self, target_bytes: int, index: Iterable[BlockDevice]) -> MappingResult:
        """Find the closest block device for target_bytes

        Ties go to the device path that sorts first.
        """
        best: Optional[BlockDevice] = None
        best_diff: Optional[int] = None

        for device in sorted(index, key=lambda d: d.name):
            diff = abs(target_bytes - device.size_bytes)
            if best_diff is None or diff < best_diff:
                best, best_diff = device, diff

        result = MappingResult(
            target_bytes=target_bytes,
            tolerance_bytes=self.tolerance_bytes,
            device=best,
            difference=best_diff,
        )

        if best is None:
            result.explanation = "no candidate block devices"
        elif not result.matched:
            result.explanation = (
                f"closest device {best.name} differs by {best_diff} bytes "
                f"(capacity mismatch > {self.tolerance_bytes}B)"
            )

        return result

    def map_drives(self, drives: Iterable[DriveRecord], index: Iterable[BlockDevice]) -> Dict[str, MappingResult]:
        """Map every drive, never assigning one block device to two serials

        A drive whose closest device is already claimed falls back to the
        closest unclaimed device within tolerance. Disks of equal capacity
        cannot be told apart, so they are paired by device order.

        Args:
            drives: Drives in processing order
            index: Candidate block devices

        Returns:
            Dict[str, MappingResult]: Result per serial
        """
        candidates = list(index)
        claimed: Dict[str, str] = {}
        results: Dict[str, MappingResult] = {}

        for drive in drives:
            available = [d for d in candidates if d.name not in claimed]
            result = self.match(drive.capacity_bytes, available)

            if result.matched:
                claimed[result.device.name] = drive.serial
                within = [d.name for d in candidates
                          if abs(drive.capacity_bytes - d.size_bytes) <= self.tolerance_bytes]
                if len(within) > 1:
                    self.logger.warning(
                        f"{drive.serial}: several devices within tolerance ({', '.join(within)}); "
                        f"assigned {result.device.name} by device order"
                    )
            else:
                closest = self.match(drive.capacity_bytes, candidates)
                if closest.matched:
                    owner = claimed[closest.device.name]
                    result.explanation = f"{closest.device.name} is already mapped to {owner}"
                    self.logger.warning(
                        f"{drive.serial}: closest device {closest.device.name} already mapped to {owner}"
                    )

            results[drive.serial] = result

        return results
