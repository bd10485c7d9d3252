"""GitHub identity and stored credential."""

from dataclasses import dataclass
from typing import Any


@dataclass
class GitHubUser:
    """Authenticated GitHub user as returned by ``GET /user``."""

    login: str
    id: int
    avatar_url: str = ""
    name: str | None = None
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "login": self.login,
            "id": self.id,
            "avatar_url": self.avatar_url,
            "name": self.name,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GitHubUser":
        """Create from dictionary."""
        return cls(
            login=data["login"],
            id=int(data["id"]),
            avatar_url=data.get("avatar_url") or "",
            name=data.get("name"),
            email=data.get("email"),
        )


@dataclass
class Credential:
    """Access token plus the identity it belongs to."""

    access_token: str
    owner_login: str
    owner_id: int
