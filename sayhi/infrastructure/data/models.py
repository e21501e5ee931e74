import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np


class FaceProfile:
    """Enrollment record for one user: ordered binarized templates + creation time."""
    __slots__ = ('username', 'face_templates', 'created_at')

    def __init__(
        self,
        username: str,
        face_templates: List[np.ndarray],
        created_at: Optional[int] = None,
    ):
        self.username = username
        self.face_templates = [np.asarray(t, dtype=np.uint8).reshape(-1) for t in face_templates]
        self.created_at = int(time.time()) if created_at is None else int(created_at)

    def to_record(self) -> dict:
        return {
            "username": self.username,
            "face_templates": [t.tolist() for t in self.face_templates],
            "created_at": self.created_at,
        }

    @classmethod
    def from_record(cls, record: dict) -> "FaceProfile":
        templates = record["face_templates"]
        if not isinstance(templates, list):
            raise ValueError("face_templates must be a list")
        return cls(
            username=str(record["username"]),
            face_templates=[np.asarray(t, dtype=np.uint8) for t in templates],
            # older records stored the timestamp as a decimal string
            created_at=int(record["created_at"]),
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, FaceProfile):
            return NotImplemented
        return (
            self.username == other.username
            and self.created_at == other.created_at
            and len(self.face_templates) == len(other.face_templates)
            and all(np.array_equal(a, b) for a, b in zip(self.face_templates, other.face_templates))
        )

    def __repr__(self) -> str:
        return (
            f"FaceProfile(username={self.username!r}, templates={len(self.face_templates)}, "
            f"created_at={self.created_at})"
        )


@dataclass
class ImageQuality:
    brightness: float
    contrast: float


class AuthStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    BLOCKED = "blocked"
    ERROR = "error"


@dataclass
class AuthResult:
    status: AuthStatus
    username: str
    confidence: Optional[float] = None
    error: Optional[Exception] = field(default=None, repr=False)

    @property
    def granted(self) -> bool:
        return self.status is AuthStatus.SUCCESS

    @property
    def exit_code(self) -> int:
        return 0 if self.granted else 1
