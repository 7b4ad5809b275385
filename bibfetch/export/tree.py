from bibfetch.models import Entry, SearchResult

from .base import Exporter

MAX_AUTHORS = 3


class TreeExporter(Exporter):
    """Human-readable listing, one indented block per entry."""

    def format_entry(self, entry: Entry) -> str:
        lines = [entry.title]

        if entry.authors:
            names = [a.name for a in entry.authors[:MAX_AUTHORS]]
            if len(entry.authors) > MAX_AUTHORS:
                names.append("et al.")
            lines.append(f"├─ authors: {', '.join(names)}")

        details = [
            ("year", entry.year),
            ("venue", entry.venue),
            ("doi", entry.doi),
            ("url", entry.url),
        ]
        details = [(label, value) for label, value in details if value]
        details.append(("source", entry.source))
        for i, (label, value) in enumerate(details):
            branch = "└─" if i == len(details) - 1 else "├─"
            lines.append(f"{branch} {label}: {value}")

        return "\n".join(lines)

    def to_string(self, result: SearchResult) -> str:
        return "\n\n".join(self.format_entry(e) for e in result.entries)
