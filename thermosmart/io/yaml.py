import logging

import yaml

from thermosmart.utils.mixins import YAMLFileMixin

logger = logging.getLogger(__name__)


class YAMLFile(YAMLFileMixin):
    """
    Read and write YAML documents.

    Reading goes through YAMLFileMixin; `write` dumps a mapping with
    insertion order preserved.
    """

    def __init__(self, filename):
        self.filename = filename

    def write(self, data, mode="w"):
        logger.debug(f"Writing YAML file: {self.filename}")
        with open(self.filepath, mode) as f:
            yaml.safe_dump(data, f, sort_keys=False, default_flow_style=None)
        self.__dict__.pop("yaml_contents_dict", None)
        self.__dict__.pop("content_lines_string", None)
