"""Extension list snapshot stored in the sync repository."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..errors import SnapshotParseError


@dataclass
class ExtensionInfo:
    """One installed extension."""

    id: str
    name: str
    version: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, omitting an absent description."""
        data: dict[str, Any] = {"id": self.id, "name": self.name, "version": self.version}
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtensionInfo":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            version=data.get("version", ""),
            description=data.get("description"),
        )


@dataclass
class ExtensionSnapshot:
    """Point-in-time list of extensions, ready for upload."""

    extensions: list[ExtensionInfo] = field(default_factory=list)
    last_updated: str = ""
    host_version: str = ""

    @classmethod
    def capture(cls, extensions: list[ExtensionInfo], host_version: str) -> "ExtensionSnapshot":
        """Build a snapshot stamped with the current UTC time."""
        return cls(
            extensions=list(extensions),
            last_updated=datetime.now(timezone.utc).isoformat(),
            host_version=host_version,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "extensions": [ext.to_dict() for ext in self.extensions],
            "lastUpdated": self.last_updated,
            "hostVersion": self.host_version,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, content: str) -> "ExtensionSnapshot":
        """Parse a snapshot.

        Snapshots written by older releases carry ``vscodeVersion`` instead
        of ``hostVersion``; both are accepted.

        Raises:
            SnapshotParseError: On malformed JSON or a missing extension list
        """
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise SnapshotParseError(f"Extension list is not valid JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("extensions"), list):
            raise SnapshotParseError("Extension list has no 'extensions' array")

        try:
            extensions = [ExtensionInfo.from_dict(item) for item in data["extensions"]]
        except (KeyError, TypeError, AttributeError) as e:
            raise SnapshotParseError(f"Malformed extension entry: {e}") from e

        return cls(
            extensions=extensions,
            last_updated=data.get("lastUpdated", ""),
            host_version=data.get("hostVersion") or data.get("vscodeVersion", ""),
        )
