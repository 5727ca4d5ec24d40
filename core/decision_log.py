"""Append-only audit trail of pipeline stage outcomes."""

from datetime import datetime, timezone

from models import DecisionLogEntry


class DecisionLog:
    """
    Ordered, timestamped record of what each pipeline stage did.

    Purely observational: nothing in the pipeline branches on its contents.
    """

    def __init__(self):
        self._entries: list[DecisionLogEntry] = []

    def record(self, step: str, description: str) -> DecisionLogEntry:
        entry = DecisionLogEntry(
            step=step,
            description=description,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        self._entries.append(entry)
        return entry

    @property
    def entries(self) -> list[DecisionLogEntry]:
        """A copy of the entries recorded so far."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
