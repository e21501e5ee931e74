import argparse
import logging
import os
import sys
from typing import Callable, List, Mapping, Optional

from sayhi.core.config import load_sayhi_config
from sayhi.core.frame_processing import FrameCollector
from sayhi.face_recognition.preprocessor import TemplatePreprocessor
from sayhi.infrastructure.data.attempt_store import FileAttemptStore
from sayhi.infrastructure.data.models import AuthStatus
from sayhi.infrastructure.data.repository import ProfileRepository
from sayhi.infrastructure.errors import InsufficientData, SayHiError
from sayhi.infrastructure.hardware.camera import Camera
from sayhi.services.attempt_limiter import AttemptLimiter
from sayhi.services.auth_manager import build_controllers
from sayhi.services.system_logger import configure_diagnostic_log
from sayhi.utils.paths import is_pam, resolve_dataset_dir

log = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.WARNING
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[handler],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sayhi", description="Camera-based face authentication.")
    parser.add_argument("--config", default=None, help="Path to YAML config (default: $SAYHI_CONFIG or config/sayhi.yaml).")
    parser.add_argument("--debug", action="store_true", help="Verbose logging on stderr.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_enroll = sub.add_parser("enroll", help="Enroll user face")
    p_enroll.add_argument("username")

    p_auth = sub.add_parser("auth", help="Authenticate user")
    p_auth.add_argument("username", nargs="?", default=None)

    sub.add_parser("test", help="Test camera")
    return parser


class App:
    """Wires configuration, storage, camera and controllers for one invocation."""

    def __init__(
        self,
        config: dict,
        env: Optional[Mapping[str, str]] = None,
        camera_factory: Optional[Callable[[], Camera]] = None,
        out=None,
        err=None,
    ):
        self.config = config
        self.env = os.environ if env is None else env
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self.quiet = is_pam(self.env)

        storage = config["storage"]
        dataset_dir = storage["dataset_dir"] or resolve_dataset_dir(self.env, storage["system_dir"])

        self.preprocessor = TemplatePreprocessor.from_config(config["template"])
        self.camera_factory = camera_factory or (lambda: Camera.from_config(config["camera"]))
        self.collector = FrameCollector(self.preprocessor, config["camera"]["frame_interval_sec"])
        self.repository = ProfileRepository(dataset_dir)
        self.limiter = AttemptLimiter(
            FileAttemptStore(config["auth"]["attempts_dir"]),
            max_attempts=config["auth"]["max_attempts"],
        )
        self.auth, self.enrollment = build_controllers(
            config,
            self.repository,
            self.limiter,
            self.collector,
            self.camera_factory,
            env=self.env,
            announce=None if self.quiet else self._say,
            report=self._say,
        )

    def _say(self, msg: str) -> None:
        print(msg, file=self.out)

    def _fail(self, msg: str) -> None:
        print(msg, file=self.err)

    def enroll(self, username: str) -> int:
        self._say(f"Face Enrollment for user: {username}")
        self._say("Ensure good lighting and look at the camera.")
        try:
            profile = self.enrollment.enroll(username)
        except InsufficientData as e:
            self._fail(f"Error: {e}.")
            return 1
        except SayHiError as e:
            self._fail(f"Error: {e}")
            return 1
        self._say(f"Enrollment completed. Profile saved to: {self.repository.path_for(profile.username)}")
        return 0

    def authenticate(self, username: Optional[str]) -> int:
        try:
            result = self.auth.authenticate(username)
        except SayHiError as e:
            log.info(f"Capture error: {e}")
            if not self.quiet:
                self._fail(f"Camera error: {e}")
            return 1

        if not self.quiet:
            if result.status is AuthStatus.SUCCESS:
                self._say(f"SUCCESS! Confidence: {result.confidence * 100:.1f}%")
            elif result.status is AuthStatus.FAILURE:
                self._say(f"FAILED. Confidence: {result.confidence * 100:.1f}%")
            else:
                self._fail(f"{result.status.value.upper()}: {result.error}")
        return result.exit_code

    def self_test(self) -> int:
        self._say("Testing camera...")
        path = self.config["logging"]["self_test_image"]
        try:
            with self.camera_factory() as cam:
                raw = cam.capture()
            quality = self.preprocessor.analyze_quality(raw)
            with open(path, "wb") as f:
                f.write(raw)
        except (SayHiError, OSError) as e:
            self._fail(f"Camera error: {e}")
            return 1

        self._say("Camera OK")
        self._say(f"Image saved to: {path}")
        self._say(f"Brightness: {quality.brightness * 100:.1f}%")
        self._say(f"Contrast: {quality.contrast * 100:.1f}%")
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug)

    config = load_sayhi_config(args.config)
    configure_diagnostic_log(config["logging"]["diagnostic_paths"])

    app = App(config)
    if args.command == "enroll":
        return app.enroll(args.username)
    if args.command == "auth":
        return app.authenticate(args.username)
    return app.self_test()
