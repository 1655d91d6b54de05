"""Configuration management for bay inspection"""

import os
import logging
from typing import Dict, Mapping, Optional
import yaml

from .models import InspectorConfig


DEFAULT_CONFIG_FILE = "~/.config/bay_inspector.conf"


class ConfigManager:
    """Manages loading and accessing configuration from YAML file"""

    def __init__(self, config_file: str = DEFAULT_CONFIG_FILE, logger: Optional[logging.Logger] = None):
        """Initialize configuration manager

        Args:
            config_file: Path to configuration file
            logger: Logger instance
        """
        self.config_file = os.path.expanduser(config_file)
        self.logger = logger or logging.getLogger(__name__)

        self.config = InspectorConfig()

        self.load()

    def load(self) -> None:
        """Load configuration from YAML file

        Configuration file structure:
        ```yaml
        log_dir: ~/logs/rosewill_drives   # Report directory
        run_badblocks: false              # Read-only surface scan after SMART
        poll_interval: 60                 # Seconds between progress polls
        tolerance_bytes: 52428800         # Capacity matching tolerance (50 MiB)
        max_poll_failures: 0              # Failed polls before giving up, 0 = never
        bridge_type: usbjmicron           # smartctl -d type of the USB bridge
        bays: [0, 1]                      # Bay indices behind each bridge
        device_pattern: "^sd[a-z]+$"      # Whole-disk names eligible for mapping
        use_sudo: true                    # Run privileged commands through sudo
        ```
        """
        if not os.path.exists(self.config_file):
            self.logger.warning(f"Configuration file {self.config_file} not found. Using default settings.")
            return

        try:
            self.logger.info(f"Loading user configuration from {self.config_file}")

            with open(self.config_file, 'r') as f:
                config = yaml.safe_load(f)

            if not config:
                self.logger.warning(f"Configuration file {self.config_file} is empty or invalid")
                return

            if not isinstance(config, dict):
                self.logger.warning(f"Configuration file {self.config_file} must contain a mapping")
                return

            self._load_settings(config)

        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing YAML in configuration file: {e}")
        except IOError as e:
            self.logger.error(f"Error reading configuration file: {e}")

    def _load_settings(self, data: Dict) -> None:
        """Merge settings from data over the current configuration

        Args:
            data: Dictionary of configuration values
        """
        unknown = set(data) - set(self.config.to_dict())
        for key in sorted(unknown):
            self.logger.warning(f"Ignoring unknown configuration key: {key}")

        merged = self.config.to_dict()
        merged.update({k: v for k, v in data.items() if k not in unknown})

        try:
            self.config = InspectorConfig.from_dict(merged)
            self.logger.debug(f"Loaded configuration: {self.config}")
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Invalid value in configuration file, keeping defaults: {e}")

    def apply_environment(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Apply RUN_BADBLOCKS and POLL_SECS environment overrides

        Args:
            environ: Environment mapping, defaults to os.environ
        """
        environ = os.environ if environ is None else environ
        overrides = {}

        if "RUN_BADBLOCKS" in environ:
            overrides["run_badblocks"] = environ["RUN_BADBLOCKS"]
        if "POLL_SECS" in environ:
            overrides["poll_interval"] = environ["POLL_SECS"]

        if overrides:
            self.logger.debug(f"Applying environment overrides: {overrides}")
            self._load_settings(overrides)

    def override(self, **values) -> None:
        """Apply explicit overrides (command line), ignoring unset values"""
        values = {k: v for k, v in values.items() if v is not None}
        if values:
            self._load_settings(values)

    @property
    def log_dir(self) -> str:
        """Expanded log directory path"""
        return os.path.expanduser(self.config.log_dir)
