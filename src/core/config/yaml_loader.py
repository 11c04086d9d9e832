# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""YAML file loader utilities.

Course definitions can be shipped as YAML documents, one objective per
file. This module reads and checks those files; interpreting their content
is left to the course catalog.

Example:
    >>> from pathlib import Path
    >>> from src.core.config.yaml_loader import load_yaml, load_yaml_directory
    >>> objective = load_yaml(Path("courses/algebra-1.yaml"))
    >>> all_objectives = load_yaml_directory(Path("courses"))
"""

from pathlib import Path
from typing import Any

import yaml


class YAMLLoadError(Exception):
    """Raised when YAML file cannot be loaded or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize YAMLLoadError.

        Args:
            path: Path to the YAML file that failed to load.
            reason: Description of why the file failed to load.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load YAML file '{path}': {reason}")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a single YAML mapping.

    Args:
        path: Path to the YAML file to load.

    Returns:
        Parsed mapping, or an empty dict for an empty file.

    Raises:
        YAMLLoadError: If the file is missing, unreadable, invalid YAML,
            or its root is not a mapping.
    """
    if not path.is_file():
        raise YAMLLoadError(path, "File does not exist")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise YAMLLoadError(path, f"Cannot read file: {e}") from e

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise YAMLLoadError(path, f"Invalid YAML syntax: {e}") from e

    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise YAMLLoadError(
            path, f"YAML root must be a mapping, got {type(parsed).__name__}"
        )

    return parsed


def load_yaml_directory(path: Path) -> dict[str, dict[str, Any]]:
    """Load every .yaml/.yml file of a directory keyed by file stem.

    Args:
        path: Directory to scan (non-recursive).

    Returns:
        Mapping of file stem to parsed content, in sorted file order.

    Raises:
        YAMLLoadError: If the path is not a directory or any file fails.
    """
    if not path.is_dir():
        raise YAMLLoadError(path, "Path is not a directory")

    yaml_files = sorted([*path.glob("*.yaml"), *path.glob("*.yml")])
    return {
        yaml_file.stem: load_yaml(yaml_file)
        for yaml_file in yaml_files
        if yaml_file.is_file()
    }
