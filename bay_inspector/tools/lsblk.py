"""lsblk wrapper"""

from typing import List, Dict, Any

from .base import BaseTool


class LsblkTool(BaseTool):
    """Lists system block devices with their byte sizes"""

    @property
    def command(self) -> str:
        return "lsblk"

    def list_devices(self) -> List[Dict[str, Any]]:
        """Get block device information from lsblk

        Returns:
            List of dictionaries with name, size and type keys
        """
        self.logger.info("Getting system block device information")

        output = self._execute_command(["-b", "-d", "-J", "-o", "NAME,SIZE,TYPE"], merge_stderr=False)
        data = self._parse_json_output(output, "Failed to parse lsblk JSON output")

        devices = data.get("blockdevices", [])
        if not isinstance(devices, list):
            return []

        self.logger.debug(f"Found {len(devices)} block devices")
        return devices
