from abc import ABC, abstractmethod
from pathlib import Path

from bibfetch.models import SearchResult


class Exporter(ABC):
    """Base class for search result exporters."""

    @abstractmethod
    def to_string(self, result: SearchResult) -> str: ...

    def export(self, result: SearchResult, path: Path) -> None:
        path.write_text(self.to_string(result), encoding="utf-8")
