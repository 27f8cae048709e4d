"""
Projects and their persistence.

A project file is a json document {name, map_entity, save_state}. Cell maps
are keyed by "x;y" strings. Sprite bindings and cached identifiers are
derived state and never written.
"""

import logging
import random
from pathlib import Path
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from .errors import (
    DirectoryNotFoundError,
    InvalidPathError,
    NoAutoSaveError,
    ParseError,
    SaveDirectoryNotFoundError,
)
from .mapgen import MapEntity, SingleMap
from .palettes import Palette, PaletteId
from .region_settings import RegionSettings
from .resolver import CharacterResolver

logger = logging.getLogger(__name__)

AUTO_SAVE_PATTERN = "auto_save_{}.map"


class Saved(BaseModel):
    """The project was saved to a user chosen path."""

    kind: Literal["Saved"] = "Saved"
    path: str


class AutoSaved(BaseModel):
    """The project only exists as an auto save."""

    kind: Literal["AutoSaved"] = "AutoSaved"
    path: str


class NotSaved(BaseModel):
    kind: Literal["NotSaved"] = "NotSaved"


ProjectSaveState = Annotated[Union[Saved, AutoSaved, NotSaved], Field(discriminator="kind")]


class ProjectDocument(BaseModel):
    name: str
    map_entity: Dict[str, Any]
    save_state: ProjectSaveState = Field(default_factory=NotSaved)


class Project:
    def __init__(self, name: str, map_entity: Optional[MapEntity] = None, save_state=None):
        self.name = name
        self.map_entity = map_entity if map_entity is not None else SingleMap(name)
        self.save_state = save_state if save_state is not None else NotSaved()
        self.resolver: Optional[CharacterResolver] = None

    def bind(
        self,
        palettes: Dict[PaletteId, Palette],
        rng: random.Random,
        region_settings: Optional[RegionSettings] = None,
    ) -> CharacterResolver:
        """Build the character resolver against the shared palette map."""
        self.resolver = CharacterResolver(self.map_entity, palettes, rng, region_settings)
        return self.resolver

    def to_document(self) -> ProjectDocument:
        return ProjectDocument(
            name=self.name, map_entity=self.map_entity.to_json(), save_state=self.save_state
        )

    def to_json(self) -> str:
        return self.to_document().model_dump_json(indent=2)

    @classmethod
    def from_json(cls, text: Union[str, bytes], source: str = "<project>") -> "Project":
        try:
            document = ProjectDocument.model_validate_json(text)
            map_entity = MapEntity.from_json(document.map_entity)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            raise ParseError(source, str(e)) from e
        return cls(document.name, map_entity, document.save_state)

    def __repr__(self) -> str:
        return f"Project({self.name!r}, {self.map_entity!r}, {self.save_state!r})"


def auto_save_file_name(project: Project) -> str:
    return AUTO_SAVE_PATTERN.format(project.map_entity.name)


class ProjectSaver:
    def __init__(self, directory: Union[str, Path]):
        directory = Path(directory)
        if not directory.is_dir():
            raise SaveDirectoryNotFoundError(str(directory))
        self.directory = directory

    def save(self, project: Project) -> Path:
        """Write an auto save into the directory. Returns its path."""
        path = self.directory / auto_save_file_name(project)
        write_project(project, path)
        logger.info("Auto saved %s to %s", project.name, path)
        return path

    @staticmethod
    def save_to(project: Project, path: Union[str, Path]) -> Path:
        """Save to an explicit path and mark the project as saved there."""
        path = Path(path)
        if not path.parent.is_dir():
            raise SaveDirectoryNotFoundError(str(path.parent))
        previous = project.save_state
        project.save_state = Saved(path=str(path))
        try:
            write_project(project, path)
        except InvalidPathError:
            project.save_state = previous
            raise
        logger.info("Saved %s to %s", project.name, path)
        return path


def write_project(project: Project, path: Path):
    try:
        path.write_text(project.to_json(), encoding="utf-8")
    except OSError as e:
        raise InvalidPathError(str(path), str(e)) from e


class ProjectLoader:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Project:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise ParseError(str(self.path), str(e)) from e
        project = Project.from_json(text, str(self.path))
        logger.info("Loaded project %s from %s", project.name, self.path)
        return project


class ProjectAutoSaveLoader:
    def __init__(self, map_name: str, directory: Union[str, Path]):
        self.map_name = map_name
        self.directory = Path(directory)

    def load(self) -> Project:
        if not self.directory.is_dir():
            raise DirectoryNotFoundError(str(self.directory))

        path = self.directory / AUTO_SAVE_PATTERN.format(self.map_name)
        if not path.is_file():
            raise NoAutoSaveError(self.map_name)
        return ProjectLoader(path).load()
