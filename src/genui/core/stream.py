"""Stream statistics."""

from dataclasses import dataclass


@dataclass
class StreamCounter:
    """Track chunk and record statistics for one generation."""

    chunks: int = 0
    chars: int = 0
    records: int = 0

    def track(self, chunk: str, records: int = 0) -> None:
        """Record a chunk and the number of records it completed."""
        self.chunks += 1
        self.chars += len(chunk)
        self.records += records

    def reset(self) -> tuple[int, int, int]:
        """Reset and return counts."""
        result = (self.chunks, self.chars, self.records)
        self.chunks = 0
        self.chars = 0
        self.records = 0
        return result
