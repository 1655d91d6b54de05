"""Read-only badblocks surface scan"""

import subprocess
import sys
from typing import Optional, TextIO

from .base import BaseTool


class BadblocksTool(BaseTool):
    """Runs badblocks in its default read-only mode

    Only ``-s`` (show progress) and ``-v`` (verbose) are ever passed; the
    write modes (``-w``, ``-n``) are never used.
    """

    @property
    def command(self) -> str:
        return "badblocks"

    def scan(self, block_device: str, log_path: str, echo: Optional[TextIO] = None) -> int:
        """Scan block_device, streaming output to log_path and echo

        Only stdout (the bad block list and summary) is copied. The progress
        display on stderr redraws itself with backspaces, so it goes straight
        to the terminal instead of the log.

        Args:
            block_device: Device path (e.g., /dev/sdc)
            log_path: File receiving the scan stdout (overwritten)
            echo: Stream receiving a copy of stdout, defaults to sys.stdout

        Returns:
            int: badblocks exit status, -1 if it could not be started
        """
        echo = echo or sys.stdout
        cmd = self._build_command(["-sv", block_device])
        self.logger.debug(f"Executing command: {' '.join(cmd)}")

        with open(log_path, "w") as log:
            try:
                proc = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    universal_newlines=True,
                    errors="replace",
                )
            except OSError as e:
                self.logger.error(f"Error executing command {' '.join(cmd)}: {e}")
                log.write(f"{e}\n")
                return -1

            with proc.stdout:
                for line in proc.stdout:
                    log.write(line)
                    log.flush()
                    echo.write(line)
                    echo.flush()

            return proc.wait()
