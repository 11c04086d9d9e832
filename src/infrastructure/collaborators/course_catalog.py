# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course definition collaborators.

- InMemoryCourseCatalog: definitions registered in code
- YamlCourseCatalog: one YAML document per objective

YAML format (file ``algebra-1.yaml``; the objective id defaults to the
file stem)::

    objective_id: algebra-1
    difficulty: beginner
    all_sections: [intro, linear-equations, review]
    difficulty_levels: [beginner, intermediate, advanced]
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from src.core.config.yaml_loader import YAMLLoadError, load_yaml, load_yaml_directory
from src.models.course import ObjectiveDefinition

logger = logging.getLogger(__name__)


class InMemoryCourseCatalog:
    """Course definitions held in a dictionary."""

    def __init__(self, definitions: Iterable[ObjectiveDefinition] = ()) -> None:
        self._definitions: dict[str, ObjectiveDefinition] = {
            definition.objective_id: definition for definition in definitions
        }

    def add(self, definition: ObjectiveDefinition) -> None:
        """Register or replace an objective definition."""
        self._definitions[definition.objective_id] = definition

    async def get_objective_definition(self, objective_id: str) -> ObjectiveDefinition | None:
        """Definition of an objective, or None when unknown."""
        return self._definitions.get(objective_id)

    def __len__(self) -> int:
        return len(self._definitions)


class YamlCourseCatalog(InMemoryCourseCatalog):
    """Course definitions loaded from YAML files.

    Example:
        >>> catalog = YamlCourseCatalog.from_directory(Path("courses"))
        >>> definition = await catalog.get_objective_definition("algebra-1")
    """

    @classmethod
    def from_file(cls, path: Path) -> "YamlCourseCatalog":
        """Load a catalog holding a single objective file."""
        return cls([_parse_definition(path, path.stem, load_yaml(path))])

    @classmethod
    def from_directory(cls, path: Path) -> "YamlCourseCatalog":
        """Load every objective file of a directory.

        Raises:
            YAMLLoadError: If a file cannot be read or is not a valid definition.
        """
        documents = load_yaml_directory(path)
        definitions = [
            _parse_definition(path / stem, stem, document)
            for stem, document in documents.items()
        ]
        logger.info("Loaded %d objective definitions from %s", len(definitions), path)
        return cls(definitions)


def _parse_definition(path: Path, stem: str, document: dict[str, Any]) -> ObjectiveDefinition:
    data = {"objective_id": stem, **document}
    try:
        return ObjectiveDefinition.model_validate(data)
    except PydanticValidationError as e:
        raise YAMLLoadError(path, f"Invalid objective definition: {e}") from e
