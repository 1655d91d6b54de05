"""Drive discovery behind USB bridge bays"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .models import BayAddress, DriveRecord


FieldPath = Tuple[str, ...]

# Key locations vary with the transport behind the bridge; tried in order
SERIAL_PATHS: List[FieldPath] = [
    ("serial_number",),
    ("device", "serial_number"),
    ("ata_device", "serial_number"),
]

MODEL_PATHS: List[FieldPath] = [
    ("model_name",),
    ("device", "model_name"),
    ("ata_device", "model_name"),
    ("scsi_model_name",),
]

CAPACITY_PATHS: List[FieldPath] = [
    ("user_capacity", "bytes"),
    ("device", "user_capacity", "bytes"),
    ("ata_device", "user_capacity", "bytes"),
]


def get_path(document: Any, path: FieldPath) -> Any:
    """Follow path through nested dictionaries, None if any step is missing"""
    value = document
    for key in path:
        if not isinstance(value, dict) or key not in value:
            return None
        value = value[key]
    return value


def first_present(document: Dict[str, Any], paths: Sequence[FieldPath]) -> Any:
    """Return the value at the first path holding something other than null or ''"""
    for path in paths:
        value = get_path(document, path)
        if value is None or value is False:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        return value
    return None


def as_capacity(value: Any) -> int:
    """Coerce a capacity value to a non-negative int, 0 when unusable"""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        return int(value) if value.is_integer() and value > 0 else 0
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return 0


def parse_drive_record(document: Dict[str, Any], address: BayAddress) -> Optional[DriveRecord]:
    """Build a DriveRecord from smartctl identity JSON

    Args:
        document: Parsed ``smartctl -i --json`` output
        address: Bridge/bay the document was read from

    Returns:
        DriveRecord if the document has a serial and a positive capacity, None otherwise
    """
    serial = first_present(document, SERIAL_PATHS)
    model = first_present(document, MODEL_PATHS)
    capacity = as_capacity(first_present(document, CAPACITY_PATHS))

    if not serial or capacity <= 0:
        return None

    return DriveRecord(
        serial=str(serial),
        address=address,
        model=str(model) if model else "Unknown",
        capacity_bytes=capacity,
    )


class InventoryReader:
    """Reads drive identities from every bay of every bridge"""

    def __init__(self, smartctl, bridge_type: str = "usbjmicron", bays: Sequence[int] = (0, 1),
                 logger: Optional[logging.Logger] = None):
        """Initialize inventory reader

        Args:
            smartctl: SmartctlTool (or compatible) used for identity queries
            bridge_type: smartctl device type of the bridge
            bays: Bay indices to probe behind each bridge
            logger: Logger instance
        """
        self.smartctl = smartctl
        self.bridge_type = bridge_type
        self.bays = tuple(bays)
        self.logger = logger or logging.getLogger(__name__)

    def read(self, bridges: Iterable[str]) -> Iterator[DriveRecord]:
        """Yield valid drive records in discovery order"""
        for device in bridges:
            for bay in self.bays:
                address = BayAddress(device=device, bay=bay, bridge_type=self.bridge_type)
                record = self.read_bay(address)
                if record is None:
                    continue

                self.logger.info(
                    f" -> Found: Serial={record.serial}  Model={record.model}  "
                    f"Capacity={record.capacity_bytes} bytes via {device} (bay {bay})"
                )
                yield record

    def read_bay(self, address: BayAddress) -> Optional[DriveRecord]:
        """Read one bay; absent, failing or unparseable bays give None"""
        document = self.smartctl.identify(address)
        if not document:
            self.logger.debug(f"No usable identity data for {address}")
            return None

        record = parse_drive_record(document, address)
        if record is None:
            self.logger.debug(f"Skipping {address}: missing serial or capacity")
        return record


def deduplicate(records: Iterable[DriveRecord], logger: Optional[logging.Logger] = None) -> Dict[str, DriveRecord]:
    """Key records by serial, keeping the first address seen for each

    Args:
        records: Drive records in discovery order
        logger: Logger instance

    Returns:
        Dict[str, DriveRecord]: Unique serials in discovery order
    """
    logger = logger or logging.getLogger(__name__)
    drives: Dict[str, DriveRecord] = {}

    for record in records:
        if record.serial in drives:
            logger.info(f" -> Duplicate path for Serial={record.serial} detected; keeping first occurrence.")
            continue
        drives[record.serial] = record

    return drives
