"""
Bay Inspector

This module runs SMART extended self-tests and optional read-only surface
scans on disks behind dual-bay USB enclosure bridges, writing one set of
report files per disk serial.
"""

from .models import BayAddress, DriveRecord, BlockDevice, MappingResult, SelfTestSession, InspectorConfig
from .inspector import DriveInspector

__version__ = "1.0.0"
__all__ = [
    "BayAddress",
    "DriveRecord",
    "BlockDevice",
    "MappingResult",
    "SelfTestSession",
    "InspectorConfig",
    "DriveInspector",
]
