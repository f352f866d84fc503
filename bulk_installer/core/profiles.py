"""Profile Manager - Named plugin lists that can be installed in one go.

A profile is a saved list of plugins (slug, name, version) under a
human-readable name. Profiles can be exported as JSON and imported on
another machine, and ``bulkpi install --profile NAME`` turns one into a
batch.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from bulk_installer.core.config import Config, get_default_config
from bulk_installer.core.errors import InvalidProfileJson, ProfileError, ProfileNotFound
from bulk_installer.core.store import ExpiringStore

logger = logging.getLogger("bulk_installer.core.profiles")

PROFILES_KEY = "bpi_profiles"
PROFILES_STORE_FILE = "profiles.json"


@dataclass
class Profile:
    """A saved plugin list.

    Attributes:
        id: Auto-incremented profile id
        name: Profile name, used by ``install --profile``
        created_at: ISO-8601 UTC creation time
        plugins: Plugin entries with at least a "slug" key
    """

    id: int
    name: str
    created_at: str = ""
    plugins: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at,
            "plugins": [dict(p) for p in self.plugins],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        return cls(
            id=int(data.get("id", 0)),
            name=str(data.get("name", "")),
            created_at=data.get("created_at", ""),
            plugins=[p for p in data.get("plugins", []) if isinstance(p, dict)],
        )


class ProfileManager:
    """Create, list, delete, export and import plugin profiles.

    Example:
        profiles = ProfileManager(config)
        profile_id = profiles.save_profile("blog", [{"slug": "akismet"}])
        print(profiles.export_profile(profile_id))
    """

    def __init__(self, config: Optional[Config] = None, store: Optional[ExpiringStore] = None) -> None:
        """Initialize the profile manager.

        Args:
            config: Configuration object
            store: Store holding the profile list
        """
        self.config = config or get_default_config()
        self.store = store or ExpiringStore(self.config.state_dir / PROFILES_STORE_FILE)

    def save_profile(self, name: str, plugins: list[dict[str, Any]]) -> int:
        """Save a new profile.

        Args:
            name: Profile name
            plugins: Plugin entries (slug, name, version)

        Returns:
            The new profile's id

        Raises:
            ProfileError: name is empty or plugins is not a list of objects
        """
        name = name.strip()
        if not name:
            raise ProfileError("Profile name is required.")
        if not isinstance(plugins, list) or not all(isinstance(p, dict) for p in plugins):
            raise ProfileError("Plugins must be a list of objects.")

        created: dict[str, Any] = {}

        def append(profiles: list[dict[str, Any]]) -> list[dict[str, Any]]:
            next_id = max((int(p.get("id", 0)) for p in profiles), default=0) + 1
            created.update(
                Profile(
                    id=next_id,
                    name=name,
                    created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                    plugins=plugins,
                ).to_dict()
            )
            return [*profiles, created]

        self.store.update(PROFILES_KEY, lambda profiles: append(profiles or []), default=[])
        logger.info(f"Saved profile '{name}' ({len(plugins)} plugins) as #{created['id']}")
        return created["id"]

    def get_all_profiles(self) -> list[Profile]:
        data = self.store.get(PROFILES_KEY, [])
        if not isinstance(data, list):
            return []
        return [Profile.from_dict(p) for p in data if isinstance(p, dict)]

    def get_profile(self, profile_id: int) -> Profile | None:
        for profile in self.get_all_profiles():
            if profile.id == profile_id:
                return profile
        return None

    def find_by_name(self, name: str) -> Profile | None:
        """First profile with exactly this name, or None."""
        for profile in self.get_all_profiles():
            if profile.name == name:
                return profile
        return None

    def delete_profile(self, profile_id: int) -> bool:
        """Delete a profile. Returns False if no profile has that id."""
        if self.get_profile(profile_id) is None:
            return False

        self.store.update(
            PROFILES_KEY,
            lambda profiles: [p for p in profiles or [] if int(p.get("id", 0)) != profile_id],
            default=[],
        )
        logger.info(f"Deleted profile #{profile_id}")
        return True

    def export_profile(self, profile_id: int) -> str:
        """Serialize a profile as pretty-printed JSON.

        Raises:
            ProfileNotFound: no profile has that id
        """
        profile = self.get_profile(profile_id)
        if profile is None:
            raise ProfileNotFound(f"Profile #{profile_id} not found.")
        return json.dumps(profile.to_dict(), indent=4)

    def import_profile(self, text: str) -> int:
        """Create a new profile from exported JSON.

        The imported profile always gets a fresh id and creation time.

        Returns:
            The new profile's id

        Raises:
            InvalidProfileJson: text is not a JSON object
            ProfileError: the object has no "name" string or "plugins" list
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidProfileJson("The provided string is not valid JSON.") from e
        if not isinstance(data, dict):
            raise InvalidProfileJson("The provided string is not valid JSON.")

        name = data.get("name")
        plugins = data.get("plugins")
        if not isinstance(name, str) or not name.strip() or not isinstance(plugins, list):
            raise ProfileError('The profile JSON must contain a "name" string and a "plugins" array.')

        return self.save_profile(name, plugins)
