#!/usr/bin/env python3
"""
Bay Inspector

Runs extended SMART self-tests on every disk behind a dual-bay JMicron USB
enclosure, logs SMART reports before and after, and optionally runs a
read-only badblocks scan on each disk it can map to a block device.
"""

import sys

from bay_inspector.inspector import main


if __name__ == "__main__":
    sys.exit(main())
