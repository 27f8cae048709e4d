"""
Data loading for the CDDA json corpus.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from ..errors import DirectoryNotFoundError, ParseError

logger = logging.getLogger(__name__)


def recurse_files(directory: Union[str, Path], suffix: str = ".json") -> List[Path]:
    """All files below directory with the given suffix, in a stable order."""
    directory = Path(directory).resolve()
    if not directory.is_dir():
        raise DirectoryNotFoundError(str(directory))
    return sorted(p for p in directory.rglob(f"*{suffix}") if p.is_file())


class DataLoader:
    """Reads json documents from the game's data root, caching by path."""

    def __init__(self, data_dir: Union[str, Path] = "."):
        self.data_dir = Path(data_dir)
        self._cache: Dict[Path, Any] = {}

    def resolve(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.data_dir / path

    def load_json(self, path: Union[str, Path]) -> Any:
        """Load a json document. Raises ParseError for missing or broken files."""
        filepath = self.resolve(path)
        if filepath in self._cache:
            return self._cache[filepath]

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ParseError(str(filepath), "file not found") from e
        except json.JSONDecodeError as e:
            raise ParseError(str(filepath), str(e)) from e

        self._cache[filepath] = data
        return data

    def load_json_list(self, path: Union[str, Path]) -> List[Any]:
        """Load a document that must be a list of objects."""
        data = self.load_json(path)
        if not isinstance(data, list):
            raise ParseError(str(self.resolve(path)), "expected a list of objects")
        return data

    def clear_cache(self):
        """Clear the data cache."""
        self._cache.clear()
