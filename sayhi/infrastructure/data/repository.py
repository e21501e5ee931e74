import json
import logging
import os
from typing import Optional

from sayhi.infrastructure.data.models import FaceProfile
from sayhi.infrastructure.errors import PersistError


class ProfileRepository:
    """One JSON record per username: <dataset_dir>/<username>.json"""

    SUFFIX = ".json"

    def __init__(self, dataset_dir: str):
        self.dataset_dir = os.path.normpath(dataset_dir)

    def path_for(self, username: str) -> str:
        if not username or os.sep in username or username in (".", ".."):
            raise PersistError(f"Invalid username for profile path: {username!r}")
        return os.path.join(self.dataset_dir, f"{username}{self.SUFFIX}")

    def save(self, profile: FaceProfile) -> str:
        path = self.path_for(profile.username)
        tmp_path = f"{path}.tmp"
        try:
            os.makedirs(self.dataset_dir, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(profile.to_record(), f, indent=2)
            # whole-record replace: re-enrollment never merges
            os.replace(tmp_path, path)
        except OSError as e:
            logging.error(f"Failed to save profile {profile.username}: {e}")
            raise PersistError(f"Error saving profile to {path}: {e}") from e
        logging.info(f"Profile saved: {path} ({len(profile.face_templates)} templates)")
        return path

    def load(self, username: str) -> Optional[FaceProfile]:
        """Missing or corrupt records both mean "not enrolled"."""
        try:
            path = self.path_for(username)
        except PersistError:
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                record = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logging.warning(f"Unreadable profile {path}: {e}")
            return None

        try:
            profile = FaceProfile.from_record(record)
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logging.warning(f"Malformed profile {path}: {e}")
            return None
        logging.debug("Loaded profile %s (%d templates)", profile.username, len(profile.face_templates))
        return profile

    def exists(self, username: str) -> bool:
        try:
            return os.path.isfile(self.path_for(username))
        except PersistError:
            return False
