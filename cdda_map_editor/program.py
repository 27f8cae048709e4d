"""
Program level state: open projects, save history and the shared game data.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from .errors import DirectoryNotFoundError, LoadError, ParseError
from .palettes import Palette, PaletteId
from .project import AutoSaved, NotSaved, Project, ProjectLoader, ProjectSaveState, ProjectSaver, Saved
from .region_settings import RegionSettings

logger = logging.getLogger(__name__)

PROGRAM_DATA_NAME = "data.json"
MAX_HISTORY = 10


@dataclass
class CDDAData:
    """Game data loaded once and shared by every open project."""

    palettes: Dict[PaletteId, Palette] = field(default_factory=dict)
    region_settings: Optional[RegionSettings] = None


@dataclass
class Program:
    projects: List[Project] = field(default_factory=list)
    history: List[ProjectSaveState] = field(default_factory=list)
    cdda_data: CDDAData = field(default_factory=CDDAData)

    def remember(self, save_state: ProjectSaveState):
        """Push a saved path to the front of the history."""
        if isinstance(save_state, NotSaved):
            return
        self.history = [h for h in self.history if h != save_state]
        self.history.insert(0, save_state)
        del self.history[MAX_HISTORY:]


class ProgramData(BaseModel):
    open_projects: List[ProjectSaveState] = Field(default_factory=list)
    history: List[ProjectSaveState] = Field(default_factory=list)


class ProgramDataSaver:
    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def save(self, program: Program) -> Path:
        """
        Write data.json. Projects without an explicit save location are auto
        saved first so the file only ever points at readable projects.
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        saver = ProjectSaver(self.directory)
        open_projects: List[ProjectSaveState] = []
        for project in program.projects:
            if isinstance(project.save_state, Saved):
                open_projects.append(project.save_state)
                continue
            path = saver.save(project)
            project.save_state = AutoSaved(path=str(path))
            open_projects.append(project.save_state)

        data = ProgramData(open_projects=open_projects, history=program.history)
        path = self.directory / PROGRAM_DATA_NAME
        path.write_text(data.model_dump_json(indent=2), encoding="utf-8")
        logger.info("Saved program data with %d open projects", len(open_projects))
        return path


class ProgramDataLoader:
    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def load(self) -> Program:
        if not self.directory.is_dir():
            raise DirectoryNotFoundError(str(self.directory))

        path = self.directory / PROGRAM_DATA_NAME
        if not path.is_file():
            logger.debug("No program data at %s", path)
            return Program()

        try:
            data = ProgramData.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as e:
            raise ParseError(str(path), str(e)) from e

        program = Program(history=list(data.history))
        for save_state in data.open_projects:
            if isinstance(save_state, NotSaved):
                continue
            try:
                project = ProjectLoader(save_state.path).load()
            except LoadError as e:
                logger.warning("Skipping project at %s: %s", save_state.path, e)
                continue
            project.save_state = save_state
            program.projects.append(project)

        logger.info("Restored %d open projects", len(program.projects))
        return program
