"""Data models for bay inspection"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class BayAddress:
    """Routes smartctl commands to one disk behind a multi-bay USB bridge"""

    device: str                      # Bridge device path (e.g., /dev/sdb)
    bay: int                         # Bay index behind the bridge
    bridge_type: str = "usbjmicron"  # smartctl device type

    @property
    def device_type(self) -> str:
        """Argument for smartctl -d (e.g., usbjmicron,1)"""
        return f"{self.bridge_type},{self.bay}"

    def __str__(self) -> str:
        return f"{self.device} bay {self.bay}"


@dataclass(frozen=True)
class DriveRecord:
    """Identity snapshot of one physical disk behind one bridge address"""

    serial: str                      # Serial number (natural key)
    address: BayAddress              # Where subsequent commands are routed
    model: str = "Unknown"           # Model name, display only
    capacity_bytes: int = 0          # User capacity in bytes

    @property
    def is_valid(self) -> bool:
        return bool(self.serial) and self.capacity_bytes > 0

    def to_dict(self) -> dict:
        """Convert drive to dictionary representation"""
        return {
            "serial": self.serial,
            "model": self.model,
            "capacity_bytes": self.capacity_bytes,
            "device": self.address.device,
            "bay": self.address.bay,
            "device_type": self.address.device_type,
        }


@dataclass(frozen=True)
class BlockDevice:
    """Whole-disk block device visible to the system"""

    name: str                        # Device path (e.g., /dev/sdc)
    size_bytes: int                  # Size in bytes

    @property
    def short_name(self) -> str:
        """Get short device name without /dev/ prefix"""
        return self.name.replace("/dev/", "")


@dataclass
class MappingResult:
    """Relation from a drive capacity to zero or one block device"""

    target_bytes: int
    tolerance_bytes: int
    device: Optional[BlockDevice] = None     # Closest candidate, if any
    difference: Optional[int] = None         # |target - candidate size|
    explanation: str = ""

    @property
    def matched(self) -> bool:
        return (self.device is not None and self.difference is not None
                and self.difference <= self.tolerance_bytes)

    @property
    def device_path(self) -> Optional[str]:
        return self.device.name if self.matched else None


class SelfTestPhase(Enum):
    """Lifecycle of an extended self-test as seen from this tool"""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"


class PollState(Enum):
    """Outcome of a single status query"""

    IN_PROGRESS = "in_progress"
    DONE = "done"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class PollResult:
    state: PollState
    percent_remaining: Optional[int] = None

    @classmethod
    def in_progress(cls, percent_remaining: Optional[int] = None) -> "PollResult":
        return cls(PollState.IN_PROGRESS, percent_remaining)

    @classmethod
    def done(cls) -> "PollResult":
        return cls(PollState.DONE)

    @classmethod
    def unreachable(cls) -> "PollResult":
        return cls(PollState.UNREACHABLE)


@dataclass
class HealthSummary:
    """Key health fields pulled from a final SMART report"""

    overall_health: Optional[str] = None
    reallocated_sectors: Optional[str] = None
    pending_sectors: Optional[str] = None
    offline_uncorrectable: Optional[str] = None
    lines: List[str] = field(default_factory=list)  # Raw matched report lines

    def to_dict(self) -> dict:
        """Convert summary to dictionary representation"""
        return {
            "overall_health": self.overall_health,
            "reallocated_sectors": self.reallocated_sectors,
            "pending_sectors": self.pending_sectors,
            "offline_uncorrectable": self.offline_uncorrectable,
        }


@dataclass
class SelfTestSession:
    """Per-drive self-test polling state"""

    drive: DriveRecord
    phase: SelfTestPhase = SelfTestPhase.NOT_STARTED
    last_percent_remaining: Optional[int] = None
    final_report_captured: bool = False
    polls: int = 0
    waits: int = 0
    consecutive_failures: int = 0
    summary: Optional[HealthSummary] = None

    @property
    def serial(self) -> str:
        return self.drive.serial


@dataclass
class InspectionResult:
    """Everything produced for one drive during a run"""

    drive: DriveRecord
    session: Optional[SelfTestSession] = None
    mapping: Optional[MappingResult] = None
    scan_log: Optional[str] = None
    scan_exit_code: Optional[int] = None

    @property
    def serial(self) -> str:
        return self.drive.serial


@dataclass
class InspectorConfig:
    """Represents user configuration for an inspection run"""

    log_dir: str = "~/logs/rosewill_drives"  # Where per-serial reports are written
    run_badblocks: bool = False              # Run the read-only surface scan
    poll_interval: int = 60                  # Seconds between self-test status polls
    tolerance_bytes: int = 50 * 1024 * 1024  # Capacity matching tolerance
    max_poll_failures: int = 0               # Consecutive failed polls allowed, 0 = unbounded
    bridge_type: str = "usbjmicron"          # smartctl bridge device type
    bays: Tuple[int, ...] = (0, 1)           # Bay indices behind each bridge
    device_pattern: str = r"^sd[a-z]+$"      # Whole-disk kernel name pattern
    use_sudo: bool = True                    # Prefix privileged commands with sudo

    def to_dict(self) -> dict:
        """Convert config to dictionary representation"""
        return {
            "log_dir": self.log_dir,
            "run_badblocks": self.run_badblocks,
            "poll_interval": self.poll_interval,
            "tolerance_bytes": self.tolerance_bytes,
            "max_poll_failures": self.max_poll_failures,
            "bridge_type": self.bridge_type,
            "bays": list(self.bays),
            "device_pattern": self.device_pattern,
            "use_sudo": self.use_sudo,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InspectorConfig":
        """Create InspectorConfig from dictionary, keeping defaults for absent keys"""
        defaults = cls()
        return cls(
            log_dir=str(data.get("log_dir", defaults.log_dir)),
            run_badblocks=_as_bool(data.get("run_badblocks", defaults.run_badblocks)),
            poll_interval=int(data.get("poll_interval", defaults.poll_interval)),
            tolerance_bytes=int(data.get("tolerance_bytes", defaults.tolerance_bytes)),
            max_poll_failures=int(data.get("max_poll_failures", defaults.max_poll_failures)),
            bridge_type=str(data.get("bridge_type", defaults.bridge_type)),
            bays=tuple(int(b) for b in data.get("bays", defaults.bays)),
            device_pattern=str(data.get("device_pattern", defaults.device_pattern)),
            use_sudo=_as_bool(data.get("use_sudo", defaults.use_sudo)),
        )


def _as_bool(value) -> bool:
    """Interpret YAML booleans and environment-style strings ("1", "yes", ...)"""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)
