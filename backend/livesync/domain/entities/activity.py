"""Domain entity for dashboard recent-activity entries."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ActivityEntry:
    """One line of a dashboard's recent-activity list."""

    id: str
    message: str
    type: str = "system"    # "report" | "story" | "comment" | "support" | "resource" | "system"
    status: str = "info"
    time: str = ""
