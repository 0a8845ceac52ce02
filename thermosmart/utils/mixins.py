"""
Mixin classes for file-backed objects.

- FileMixin: path handling and cached reading
- YAMLFileMixin: YAML parsing on top of FileMixin
"""

import os
from functools import cached_property


class FileMixin:
    """Mixin class for files that can be opened and read."""

    @property
    def filepath(self):
        return os.path.abspath(self.filename)

    @property
    def base_filename_with_extension(self):
        return os.path.split(self.filepath)[1]

    @property
    def basename(self):
        """
        Get the filename without extension.

        Returns:
            str: Base filename without its last extension.
        """
        return os.path.splitext(self.base_filename_with_extension)[0]

    @cached_property
    def content_lines_string(self):
        with open(self.filepath, "r") as f:
            return f.read()


class YAMLFileMixin(FileMixin):
    """
    Mixin class for YAML file handling and parsing.

    Extends FileMixin with `yaml.safe_load` parsing of the whole file.
    """

    @cached_property
    def yaml_contents_dict(self):
        """
        Parse YAML file contents.

        Empty files parse to an empty dict rather than None so callers can
        always treat the result as a mapping.

        Returns:
            dict: Parsed YAML root object.
        """
        import yaml

        contents = yaml.safe_load(self.content_lines_string)
        if contents is None:
            return {}
        if not isinstance(contents, dict):
            raise ValueError(
                f"YAML file {self.filename} must contain a mapping at its "
                f"root, got {type(contents).__name__}."
            )
        return contents
