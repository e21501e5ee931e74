import logging
import os
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

import numpy as np

from sayhi.core.frame_processing import FrameCollector
from sayhi.infrastructure.data.models import AuthResult, AuthStatus, FaceProfile
from sayhi.infrastructure.data.repository import ProfileRepository
from sayhi.infrastructure.errors import Blocked, CaptureError, InsufficientData, ProfileNotFound
from sayhi.services.attempt_limiter import AttemptLimiter
from sayhi.utils.face.similarity_matcher import SimilarityMatcher
from sayhi.utils.paths import resolve_username

log = logging.getLogger(__name__)

CameraFactory = Callable[[], Any]


class AuthenticationController:
    """
    One authentication attempt:
      lockout check -> load profile -> capture live batch -> batch score -> decide.

    Only a real comparison below the threshold is charged to the limiter; a
    missing profile or an empty capture is reported as an error without
    consuming an attempt. Device errors propagate to the caller.
    """

    def __init__(
        self,
        repository: ProfileRepository,
        limiter: AttemptLimiter,
        matcher: SimilarityMatcher,
        collector: FrameCollector,
        camera_factory: CameraFactory,
        frames_per_capture: int = 15,
        env: Optional[Mapping[str, str]] = None,
        announce: Optional[Callable[[str], None]] = None,
    ):
        self.repository = repository
        self.limiter = limiter
        self.matcher = matcher
        self.collector = collector
        self.camera_factory = camera_factory
        self.frames_per_capture = int(frames_per_capture)
        self.env = os.environ if env is None else env
        self.announce = announce

    def authenticate(self, username: Optional[str] = None) -> AuthResult:
        username = resolve_username(username, self.env)
        log.info(f"Authentication started: {username}")

        if self.limiter.is_blocked(username):
            log.info("Blocked: Maximum attempts reached")
            self.limiter.reset(username)
            return AuthResult(
                AuthStatus.BLOCKED,
                username,
                error=Blocked(f"Maximum attempts ({self.limiter.max_attempts}) reached for {username}"),
            )

        profile = self.repository.load(username)
        if profile is None:
            log.info("Profile not found")
            return AuthResult(
                AuthStatus.ERROR,
                username,
                error=ProfileNotFound(f"No face profile enrolled for {username}"),
            )

        if self.announce is not None:
            self.announce(f"Authenticating {username}...")

        live, stats = self.collector.capture_session(self.camera_factory, self.frames_per_capture)
        if not live:
            log.info(f"Capture error: no processable frames ({stats.requested} requested)")
            return AuthResult(
                AuthStatus.ERROR,
                username,
                error=CaptureError("capture failed: no processable faces captured"),
            )

        matched, similarity = self.matcher.evaluate(live, profile.face_templates)
        if matched:
            self.limiter.record_success(username)
            log.info(f"Success: {similarity * 100:.1f}%")
            return AuthResult(AuthStatus.SUCCESS, username, confidence=similarity)

        attempts = self.limiter.record_failure(username)
        log.info(f"Failed: {similarity * 100:.1f}% (attempt {attempts}/{self.limiter.max_attempts})")
        return AuthResult(AuthStatus.FAILURE, username, confidence=similarity)


class EnrollmentController:
    """
    Records a face profile over several user-acknowledged capture rounds.

    A round that yields nothing is reported and the loop moves on to the next
    prompt; the profile is only written if the rounds together produced
    `min_templates` templates.
    """

    def __init__(
        self,
        repository: ProfileRepository,
        collector: FrameCollector,
        camera_factory: CameraFactory,
        rounds: int = 3,
        frames_per_capture: int = 15,
        min_templates: int = 10,
        round_pause_sec: float = 0.5,
        acknowledge: Optional[Callable[[int, int], None]] = None,
        report: Callable[[str], None] = print,
    ):
        self.repository = repository
        self.collector = collector
        self.camera_factory = camera_factory
        self.rounds = max(1, int(rounds))
        self.frames_per_capture = int(frames_per_capture)
        self.min_templates = int(min_templates)
        self.round_pause_sec = max(0.0, float(round_pause_sec))
        self.report = report
        self.acknowledge = acknowledge or self._wait_for_enter

    def _wait_for_enter(self, round_no: int, total: int) -> None:
        self.report(f"\nCapture {round_no}/{total}")
        self.report("Press Enter to start...")
        input()

    def enroll(self, username: str) -> FaceProfile:
        # refuse names the store cannot hold before the camera is touched
        self.repository.path_for(username)
        log.info(f"Enrollment started: {username}")
        all_templates: List[np.ndarray] = []

        for round_no in range(1, self.rounds + 1):
            self.acknowledge(round_no, self.rounds)
            templates, stats = self.collector.capture_session(self.camera_factory, self.frames_per_capture)

            if not templates:
                self.report("FAILED: no processable faces captured. Please try again.")
                log.info(f"Enrollment round {round_no} empty ({stats.requested} frames requested)")
                continue

            self.report(f"OK ({len(templates)} frames)")
            all_templates.extend(templates)
            time.sleep(self.round_pause_sec)

        if len(all_templates) < self.min_templates:
            log.info(f"Enrollment aborted: {len(all_templates)} templates")
            raise InsufficientData(len(all_templates), self.min_templates)

        profile = FaceProfile(username=username, face_templates=all_templates)
        self.repository.save(profile)
        log.info(f"Enrollment completed: {username} ({len(all_templates)} templates)")
        return profile


def build_controllers(
    config: Dict[str, Any],
    repository: ProfileRepository,
    limiter: AttemptLimiter,
    collector: FrameCollector,
    camera_factory: CameraFactory,
    env: Optional[Mapping[str, str]] = None,
    announce: Optional[Callable[[str], None]] = None,
    **enroll_kwargs,
):
    enrollment = config["enrollment"]
    auth = AuthenticationController(
        repository=repository,
        limiter=limiter,
        matcher=SimilarityMatcher.from_config(config["matching"]),
        collector=collector,
        camera_factory=camera_factory,
        frames_per_capture=config["auth"]["frames_per_capture"],
        env=env,
        announce=announce,
    )
    enroll = EnrollmentController(
        repository=repository,
        collector=collector,
        camera_factory=camera_factory,
        rounds=enrollment["rounds"],
        frames_per_capture=enrollment["frames_per_capture"],
        min_templates=enrollment["min_templates"],
        round_pause_sec=enrollment["round_pause_sec"],
        **enroll_kwargs,
    )
    return auth, enroll
