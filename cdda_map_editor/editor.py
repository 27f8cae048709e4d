"""
CDDA Map Editor - editor state container.

Owns the open projects, the shared game data and tileset, the seeded rng and
the event bus. Mutations happen immediately on the active map and are
announced as events; tick() then runs the ordered stages that turn those
events into sprite bindings.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .auto_tiler import FALLBACK
from .common import OMT_SIZE, Coordinates, make_rng
from .config import EditorConfig
from .errors import NoTilesetError
from .events import (
    ClearTiles,
    EventBus,
    SpawnMapEntity,
    SpawnSprite,
    TileDeleted,
    TilePlaced,
    UpdateSprite,
)
from .mapgen import MapEntityLoader, SingleMap
from .models import LAYER_Z, Cell, Layer, Role, SpriteBinding
from .logging_config import setup_logging
from .palettes import PalettesLoader
from .program import CDDAData, Program, ProgramDataLoader, ProgramDataSaver
from .project import AutoSaved, Project, ProjectSaver, Saved
from .region_settings import load_region_settings
from .sprites import Empty, Exists, Fallback, SpriteChoice, SpriteSelector
from .tileset import Tileset

logger = logging.getLogger(__name__)


class MapEditor:
    def __init__(
        self,
        config: Optional[EditorConfig] = None,
        tileset: Optional[Tileset] = None,
        program: Optional[Program] = None,
    ):
        self.config = config or EditorConfig()
        self.rng = make_rng(self.config.seed)
        self.bus = EventBus()
        self.program = program or Program()
        self.tileset = tileset or Tileset.empty()
        self.selector = SpriteSelector(self.tileset)
        self.active: Optional[int] = None

    @classmethod
    def from_config(cls, path: Union[str, Path] = "editor.toml") -> "MapEditor":
        """
        Startup entry point: read the config file, set up logging and load
        whatever game data and tileset the config points at.
        """
        config = EditorConfig.load_from_toml(str(path))
        log_file = setup_logging(config.log_directory(), config.log_level, config.console_log_level)
        logger.info("Editor starting, config %s, log file %s", path, log_file)

        editor = cls(config)
        if config.cdda_dir:
            editor.load_game_data()
        if config.tileset_dir() is not None:
            editor.load_tileset()
        return editor

    # Game data

    @property
    def cdda_data(self) -> CDDAData:
        return self.program.cdda_data

    def load_game_data(
        self,
        palettes_dir: Union[str, Path, None] = None,
        region_settings_path: Union[str, Path, None] = None,
    ) -> CDDAData:
        """Load palettes and region settings. Paths default to the configured game directory."""
        palettes_dir = palettes_dir or self.config.palettes_dir()
        region_settings_path = region_settings_path or self.config.region_settings_path()

        palettes = PalettesLoader(palettes_dir).load() if palettes_dir else {}
        region_settings = None
        if region_settings_path and Path(region_settings_path).is_file():
            region_settings = load_region_settings(region_settings_path)

        self.program.cdda_data = CDDAData(palettes, region_settings)
        for project in self.program.projects:
            self._bind(project)
        logger.info("Loaded %d palettes", len(palettes))
        return self.program.cdda_data

    def load_tileset(self, path: Union[str, Path, None] = None) -> Tileset:
        path = path or self.config.tileset_dir()
        if path is None:
            raise NoTilesetError()

        self.tileset = Tileset.load(path)
        self.selector = SpriteSelector(self.tileset)
        self._respawn()
        return self.tileset

    # Projects

    @property
    def projects(self) -> List[Project]:
        return self.program.projects

    @property
    def active_project(self) -> Optional[Project]:
        if self.active is None:
            return None
        return self.program.projects[self.active]

    def _bind(self, project: Project):
        project.bind(self.cdda_data.palettes, self.rng, self.cdda_data.region_settings)

    def add_project(self, project: Project) -> Project:
        self._bind(project)
        self.program.projects.append(project)
        self.switch_project(len(self.program.projects) - 1)
        return project

    def open_project(self, mapgen_path: Union[str, Path], om_terrain: str) -> Project:
        """
        Load the mapgen object for om_terrain and make it the active project.

        Load errors propagate and leave the editor unchanged.
        """
        map_entity = MapEntityLoader(mapgen_path, om_terrain, self.cdda_data.palettes, self.rng).load()
        project = Project(map_entity.name, map_entity)
        logger.info("Opened project %s from %s", project.name, mapgen_path)
        return self.add_project(project)

    def create_project(self, name: str, size: Tuple[int, int] = (OMT_SIZE, OMT_SIZE)) -> Project:
        project = Project(name, SingleMap(name, size))
        project.map_entity.tile_selection.compute_parameters(self.cdda_data.palettes, self.rng)
        logger.info("Created project %s", name)
        return self.add_project(project)

    def close_project(self, index: Optional[int] = None):
        index = self.active if index is None else index
        if index is None:
            return

        project = self.program.projects[index]
        if self.config.autosave and not isinstance(project.save_state, Saved):
            self.auto_save(project)
        del self.program.projects[index]
        logger.info("Closed project %s", project.name)

        if not self.program.projects:
            self.active = None
            self.bus.send(ClearTiles())
        elif self.active is not None and self.active > index:
            self.active -= 1
        elif self.active == index:
            self.active = None
            self.switch_project(min(index, len(self.program.projects) - 1))

    def switch_project(self, index: int):
        if not 0 <= index < len(self.program.projects):
            raise IndexError(f"no project at index {index}")

        previous = self.active_project
        if previous is not None:
            for cell in previous.map_entity.cells.values():
                cell.invalidate_sprites()

        self.active = index
        project = self.program.projects[index]
        self.bus.send(ClearTiles())
        self.bus.send(SpawnMapEntity(project.map_entity))
        logger.debug("Switched to project %s", project.name)

    def reseed(self, seed: int):
        """Recompute parameters of every project with a fresh rng stream."""
        self.rng.seed(seed)
        for project in self.program.projects:
            project.map_entity.tile_selection.compute_parameters(self.cdda_data.palettes, self.rng)
            project.map_entity.invalidate()
            self._bind(project)
        self._respawn()

    def _respawn(self):
        project = self.active_project
        if project is None:
            return
        project.map_entity.invalidate()
        self.bus.send(ClearTiles())
        self.bus.send(SpawnMapEntity(project.map_entity))

    # Persistence

    def auto_save(self, project: Optional[Project] = None):
        project = project or self.active_project
        if project is None:
            return None
        directory = self.config.data_directory()
        directory.mkdir(parents=True, exist_ok=True)
        path = ProjectSaver(directory).save(project)
        if not isinstance(project.save_state, Saved):
            project.save_state = AutoSaved(path=str(path))
        return path

    def save_project(self, path: Union[str, Path], project: Optional[Project] = None) -> Path:
        project = project or self.active_project
        if project is None:
            raise ValueError("no project to save")
        saved = ProjectSaver.save_to(project, path)
        self.program.remember(project.save_state)
        return saved

    def save_program(self) -> Path:
        return ProgramDataSaver(self.config.data_directory()).save(self.program)

    def restore_program(self) -> Program:
        """Reopen the projects that were open when the program data was saved."""
        program = ProgramDataLoader(self.config.data_directory()).load()
        program.cdda_data = self.cdda_data
        self.program = program
        for project in program.projects:
            self._bind(project)
        self.active = None
        if program.projects:
            self.switch_project(0)
        return program

    # Map mutation

    def place(self, coordinates: Coordinates, character: str) -> bool:
        """Place a cell. Occupied or out of bounds coordinates are left alone."""
        project = self.active_project
        if project is None:
            return False
        cell = project.map_entity.place(coordinates, character)
        if cell is None:
            return False
        self.bus.send(TilePlaced(coordinates, cell, should_update_sprites=True))
        return True

    def delete(self, coordinates: Coordinates) -> bool:
        project = self.active_project
        if project is None:
            return False
        cell = project.map_entity.delete(coordinates)
        if cell is None:
            return False
        self.bus.send(TileDeleted(coordinates, cell))
        return True

    def clear(self):
        project = self.active_project
        if project is None:
            return
        project.map_entity.clear()
        self.bus.send(ClearTiles())

    # Rendering

    def get_sprite(self, role: Optional[Role], character: str, coordinates: Coordinates) -> SpriteChoice:
        project = self.active_project
        if project is None:
            return Empty()
        return self.selector.get_sprite(project, role, character, coordinates)

    def animated_cells(self) -> List[Coordinates]:
        project = self.active_project
        if project is None:
            return []
        return [
            coordinates
            for coordinates, cell in sorted(project.map_entity.cells.items())
            if any(binding.sprite.is_animated for binding in cell.sprites.values())
        ]

    def refresh_animated(self):
        project = self.active_project
        for coordinates in self.animated_cells():
            self.bus.send(UpdateSprite(coordinates, project.map_entity.cells[coordinates]))

    def sprite_events(self, project: Project, coordinates: Coordinates, cell: Cell) -> List[SpawnSprite]:
        """One SpawnSprite per layer the cell shows."""
        choice = self.selector.get_sprite(project, None, cell.character, coordinates)
        if isinstance(choice, Fallback):
            return [
                SpawnSprite(coordinates, cell, Layer.FALLBACK, FALLBACK, choice.sprite, LAYER_Z[Layer.FALLBACK])
            ]
        if isinstance(choice, Exists):
            events = []
            for role, layer_sprite in choice.layers().items():
                layer = Layer.for_role(role)
                sprite = layer_sprite.sprite
                events.append(
                    SpawnSprite(
                        coordinates,
                        cell,
                        layer,
                        layer_sprite.variant,
                        sprite,
                        z=LAYER_Z[layer],
                        offset_x=sprite.offset_x,
                        offset_y=sprite.offset_y,
                    )
                )
            return events
        return []

    def _is_live(self, project: Project, coordinates: Coordinates, cell: Cell) -> bool:
        return project.map_entity.get_cell(coordinates) is cell

    def _update_neighbors(self, project: Project, coordinates: Coordinates):
        for neighbor, neighbor_coordinates in project.map_entity.get_cells_around(coordinates):
            if neighbor is not None:
                self.bus.send(UpdateSprite(neighbor_coordinates, neighbor))

    # Update loop

    def tick(self):
        """Run one update: delete, set, place and sprite stages, flushing between them."""
        self.bus.flush()
        self._delete_stage()
        self.bus.flush()
        self._set_stage()
        self.bus.flush()
        self._place_stage()
        self.bus.flush()
        self._sprite_stage()

    def _delete_stage(self):
        project = self.active_project

        for _ in self.bus.read(ClearTiles):
            if project is not None:
                for cell in project.map_entity.cells.values():
                    cell.invalidate_sprites()

        for event in self.bus.read(TileDeleted):
            event.cell.invalidate_sprites()
            if project is not None:
                self._update_neighbors(project, event.coordinates)

    def _set_stage(self):
        for event in self.bus.read(SpawnMapEntity):
            for coordinates, cell in sorted(event.map_entity.cells.items()):
                self.bus.send(TilePlaced(coordinates, cell, should_update_sprites=False))

    def _place_stage(self):
        project = self.active_project
        for event in self.bus.read(TilePlaced):
            if project is None or not self._is_live(project, event.coordinates, event.cell):
                continue
            for spawn in self.sprite_events(project, event.coordinates, event.cell):
                self.bus.send(spawn)
            if event.should_update_sprites:
                self._update_neighbors(project, event.coordinates)

    def _sprite_stage(self):
        project = self.active_project

        for event in self.bus.read(SpawnSprite):
            if project is None or not self._is_live(project, event.coordinates, event.cell):
                continue
            event.cell.sprites[event.layer] = SpriteBinding(event.variant, event.sprite)

        for event in self.bus.read(UpdateSprite):
            if project is None or not self._is_live(project, event.coordinates, event.cell):
                continue
            event.cell.invalidate_sprites()
            for spawn in self.sprite_events(project, event.coordinates, event.cell):
                event.cell.sprites[spawn.layer] = SpriteBinding(spawn.variant, spawn.sprite)
