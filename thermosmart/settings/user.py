"""
User configuration for thermosmart.

Reads default thermochemistry settings from the user configuration
directory:

    ~/.thermosmart/
    └── thermosettings.yaml

Values found there sit beneath command-line options.
"""

import logging
import os

from thermosmart.io.yaml import YAMLFile

logger = logging.getLogger(__name__)


class ThermosmartUserSettings:
    """
    User configuration settings manager for thermosmart.

    Attributes:
        USER_YAML_FILE (str): Name of the user settings YAML file.
        USER_CONFIG_DIR (str): Path to the user configuration directory.
        yaml (str): Full path to the user settings YAML file.
        data (dict): Loaded settings, empty when the file is absent.
    """

    USER_YAML_FILE = "thermosettings.yaml"
    USER_CONFIG_DIR = os.path.expanduser("~/.thermosmart")

    def __init__(self, config_dir=None):
        self.config_dir = config_dir or self.USER_CONFIG_DIR
        self.yaml = os.path.join(self.config_dir, self.USER_YAML_FILE)
        try:
            self.data = YAMLFile(filename=self.yaml).yaml_contents_dict
        except FileNotFoundError:
            self.data = {}
        if self.data:
            logger.debug(f"Loaded user settings from {self.yaml}")

    @property
    def thermo_settings(self):
        """Settings mapping under the `thermochemistry` key, or the whole
        file when it has no such key."""
        return dict(self.data.get("thermochemistry", self.data))

    def settings(self, settings_class):
        """Build `settings_class` from the user defaults."""
        return settings_class.from_dict(self.thermo_settings)
