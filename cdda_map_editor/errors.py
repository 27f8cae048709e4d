"""
Error taxonomy for the mapgen editor.

Load and save errors abort the current operation. Resolve errors split into
fatal ones (unresolved parameters and palettes) and ones the sprite layer
downgrades to a fallback sprite (unmapped characters, unknown identifiers).
"""


class MapEditorError(Exception):
    """Base class carrying a human readable message."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


# Load errors


class LoadError(MapEditorError):
    pass


class NoAutoSaveError(LoadError):
    def __init__(self, map_name: str):
        super().__init__(f"No auto save exists for map {map_name!r}")
        self.map_name = map_name


class DirectoryNotFoundError(LoadError):
    def __init__(self, path: str = ""):
        super().__init__(f"Directory not found: {path}")
        self.path = path


class ParseError(LoadError):
    def __init__(self, path: str, reason: str = ""):
        super().__init__(f"Could not parse {path}: {reason}" if reason else f"Could not parse {path}")
        self.path = path
        self.reason = reason


class NoTilesetError(LoadError):
    def __init__(self):
        super().__init__("No tileset path given and none configured")


class MapgenNotFoundError(LoadError):
    def __init__(self, om_terrain: str, path: str = ""):
        super().__init__(f"No mapgen object with om_terrain {om_terrain!r} in {path}")
        self.om_terrain = om_terrain
        self.path = path


# Save errors


class SaveError(MapEditorError):
    pass


class SaveDirectoryNotFoundError(SaveError):
    def __init__(self, path: str):
        super().__init__(f"Save directory does not exist: {path}")
        self.path = path


class InvalidPathError(SaveError):
    def __init__(self, path: str, reason: str = ""):
        super().__init__(f"Cannot write to {path}: {reason}")
        self.path = path


# Resolve errors


class ResolveError(MapEditorError):
    pass


class UnresolvedParameterError(ResolveError):
    def __init__(self, name: str):
        super().__init__(f"Parameter {name!r} has no computed value and no fallback")
        self.name = name


class UnresolvedPaletteError(ResolveError, LoadError):
    """Raised while loading too, so it is also a LoadError."""

    def __init__(self, palette_id: str):
        super().__init__(f"Palette {palette_id!r} does not exist")
        self.palette_id = palette_id


class UnmappedCharacterError(ResolveError):
    def __init__(self, character: str, role: str):
        super().__init__(f"Character {character!r} is not mapped for {role}")
        self.character = character
        self.role = role


class UnknownIdentifierError(ResolveError):
    def __init__(self, tile_id: str):
        super().__init__(f"No sprite exists for {tile_id!r}")
        self.tile_id = tile_id


class UnsupportedMapObjectError(ResolveError):
    def __init__(self, kind: str, where: str):
        super().__init__(f"{kind} map objects cannot be used for {where}")
        self.kind = kind
        self.where = where
