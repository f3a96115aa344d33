from pathlib import Path
from typing import Iterable, List, Optional


class FileResolver:
    """Resolves ``import name`` to the text of ``<name>.prg`` in a list of directories."""

    def __init__(self, search_paths: Iterable[Path], extension: str = '.prg'):
        self.search_paths: List[Path] = [Path(p) for p in search_paths]
        self.extension = extension

    def find(self, name: str) -> Optional[Path]:
        for directory in self.search_paths:
            for candidate in (name, name.lower()):
                path = directory / f"{candidate}{self.extension}"
                if path.is_file():
                    return path
        return None

    def __call__(self, name: str) -> Optional[str]:
        path = self.find(name)
        if path is None:
            return None
        return path.read_text(encoding='utf-8')
