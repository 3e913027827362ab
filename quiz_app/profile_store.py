"""
Local key-value storage for the player profile.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from .models import DEFAULT_AVATAR, UserProfile

AVATARS = ['👤', '👨‍💻', '👩‍💻', '🧑‍🔬', '👨‍🎓', '👩‍🎓', '🤖', '👾']

PROFILE_KEY = "userProfile"


class ProfileStore:
    """
    Stores a single profile record in a flat JSON file.

    The file is a key-value map so other small preferences can live beside
    the profile; only ``key`` is read or written here.
    """

    def __init__(self, path: str = "./data/profile.json", key: str = PROFILE_KEY):
        self.path = Path(path)
        self.key = key
        self.logger = logging.getLogger(__name__)

    def _read_all(self) -> Dict[str, Any]:
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("Profile store must contain a JSON object")
        return data

    def load(self) -> UserProfile:
        """
        Read the stored profile.

        A missing, unreadable or corrupt record yields a default profile; the
        problem is logged and never raised.
        """
        if not self.path.exists():
            self.logger.info(f"No profile store at {self.path}, using defaults")
            return UserProfile()

        try:
            record = self._read_all().get(self.key)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Could not read profile store {self.path}: {e}")
            return UserProfile()

        if record is None:
            return UserProfile()

        # Older records were stored as an encoded JSON string
        if isinstance(record, str):
            try:
                record = json.loads(record)
            except json.JSONDecodeError as e:
                self.logger.warning(f"Corrupt profile record in {self.path}: {e}")
                return UserProfile()

        try:
            return UserProfile.from_dict(record)
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Invalid profile record in {self.path}, using defaults: {e}")
            return UserProfile()

    def save(self, profile: UserProfile) -> None:
        """
        Write the profile, replacing the previous record atomically.

        Raises:
            OSError: If the file cannot be written
        """
        data: Dict[str, Any] = {}
        if self.path.exists():
            try:
                data = self._read_all()
            except (OSError, ValueError) as e:
                self.logger.warning(f"Discarding unreadable profile store {self.path}: {e}")
                data = {}

        data[self.key] = profile.to_dict()
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".profile-", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        self.logger.debug(f"Saved profile '{profile.username}' to {self.path}")


def is_known_avatar(avatar: str) -> bool:
    return avatar in AVATARS


