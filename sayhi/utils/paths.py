from __future__ import annotations

import os
from typing import Mapping, Optional

UNKNOWN_USER = "unknown"
SYSTEM_DATASET_DIR = "/var/lib/sayhilinux"
USER_DATA_SUBDIR = os.path.join(".local", "share", "sayhilinux")


def resolve_username(explicit: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> str:
    """Explicit argument, then the PAM acting user, then $USER, then "unknown"."""
    if explicit:
        return explicit
    env = os.environ if env is None else env
    return env.get("PAM_USER") or env.get("USER") or UNKNOWN_USER


def is_pam(env: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if env is None else env
    return "PAM_USER" in env


def resolve_dataset_dir(
    env: Optional[Mapping[str, str]] = None,
    system_dir: str = SYSTEM_DATASET_DIR,
) -> str:
    """
    Directory holding <username>.json profiles for the acting identity.
    Privileged or unresolved identities share the system directory.
    """
    env = os.environ if env is None else env
    username = env.get("PAM_USER") or env.get("USER") or UNKNOWN_USER

    if username in ("root", UNKNOWN_USER):
        return system_dir

    home = env.get("HOME")
    if home:
        return os.path.join(home, USER_DATA_SUBDIR)

    home_path = os.path.join("/home", username)
    if os.path.exists(home_path):
        return os.path.join(home_path, USER_DATA_SUBDIR)
    return os.path.join(system_dir, username)
