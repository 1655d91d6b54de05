"""Base wrapper for external command-line tools"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
import logging
import os
import shutil
import subprocess
import json


class BaseTool(ABC):
    """Abstract base class for the external utilities this tool drives"""

    # Install hints shown when a required command is missing
    INSTALL_HINTS = {
        "smartctl": "sudo apt install smartmontools",
        "lsblk": "sudo apt install util-linux",
        "badblocks": "sudo apt install e2fsprogs",
    }

    def __init__(self, logger: Optional[logging.Logger] = None, use_sudo: bool = False):
        """Initialize the tool

        Args:
            logger: Logger instance for output
            use_sudo: Prefix commands with sudo when not running as root
        """
        self.logger = logger or logging.getLogger(__name__)
        self.use_sudo = use_sudo

    @property
    @abstractmethod
    def command(self) -> str:
        """Get the executable name

        Returns:
            str: Command name (e.g., 'smartctl', 'lsblk')
        """
        pass

    def is_available(self) -> bool:
        """Check if this tool is installed on the system

        Returns:
            bool: True if the executable is on PATH
        """
        return self._check_command_exists(self.command)

    @property
    def install_hint(self) -> str:
        return self.INSTALL_HINTS.get(self.command, "")

    # Helper methods that can be used by all tools

    def _build_command(self, args: List[str]) -> List[str]:
        """Prepend the executable and, if needed, sudo"""
        cmd = [self.command] + list(args)
        if self.use_sudo and hasattr(os, "geteuid") and os.geteuid() != 0:
            cmd = ["sudo"] + cmd
        return cmd

    def _is_failure(self, returncode: int) -> bool:
        """Decide whether an exit status means the call failed"""
        return returncode != 0

    def _execute_command(self, args: List[str], handle_errors: bool = True,
                        merge_stderr: bool = True, decode_method: str = 'utf-8') -> str:
        """Execute a command and return its output

        Args:
            args: Arguments passed to the tool executable
            handle_errors: Whether to handle errors or let them propagate
            merge_stderr: Whether stderr is captured together with stdout
            decode_method: Method to decode command output

        Returns:
            str: Command output as string, empty if the command failed and
                handle_errors is True

        Raises:
            subprocess.CalledProcessError: If command fails and handle_errors is False
        """
        cmd = self._build_command(args)
        self.logger.debug(f"Executing command: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            )
        except OSError as e:
            if handle_errors:
                self.logger.error(f"Error executing command {' '.join(cmd)}: {e}")
                return ""
            raise

        output = self._decode(result.stdout, decode_method)

        if self._is_failure(result.returncode):
            if handle_errors:
                self.logger.debug(f"Command {' '.join(cmd)} failed with exit status {result.returncode}")
                return ""
            raise subprocess.CalledProcessError(result.returncode, cmd, output=output)

        return output

    def _decode(self, output_bytes: bytes, decode_method: str = 'utf-8') -> str:
        if not output_bytes:
            return ""
        try:
            return output_bytes.decode(decode_method)
        except UnicodeDecodeError:
            self.logger.debug(f"{decode_method} decoding failed, falling back to latin-1")
            return output_bytes.decode('latin-1')

    def _parse_json_output(self, output: str, error_msg: str = "") -> Dict[str, Any]:
        """Parse JSON output with error handling

        Args:
            output: String output to parse as JSON
            error_msg: Error message to log if parsing fails

        Returns:
            Dict[str, Any]: Parsed JSON data or empty dict on failure
        """
        if not output or not output.strip():
            return {}
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            if error_msg:
                self.logger.debug(f"{error_msg}: {e}")
            self.logger.debug(f"Raw output: {output[:200]}...")
            return {}
        return data if isinstance(data, dict) else {}

    def _check_command_exists(self, cmd: str) -> bool:
        """Check if a command exists in the system PATH

        Args:
            cmd: Command to check

        Returns:
            bool: True if command exists, False otherwise
        """
        return shutil.which(cmd) is not None
