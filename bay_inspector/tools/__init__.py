"""External command wrappers"""

from .base import BaseTool
from .smartctl import SmartctlTool
from .lsblk import LsblkTool
from .badblocks import BadblocksTool

__all__ = ["BaseTool", "SmartctlTool", "LsblkTool", "BadblocksTool"]
