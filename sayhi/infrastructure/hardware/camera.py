import logging
import os
import time
from typing import Any, Dict, Optional, Sequence, Tuple

import cv2

from sayhi.infrastructure.errors import CaptureError, ConfigurationError, DeviceNotFound

log = logging.getLogger(__name__)

DEVICE_PATHS: Tuple[str, ...] = ("/dev/video0", "/dev/video1")


class Camera:
    """
    V4L2 camera owned for the duration of one capture session.

    Usage:
        with Camera() as cam:
            raw = cam.capture()   # JPEG bytes

    Entering the context opens the first existing device, applies the
    resolution / frame rate / pixel format and discards the warm-up frames.
    The device is released on every exit path.
    """

    def __init__(
        self,
        devices: Sequence[str] = DEVICE_PATHS,
        resolution: Tuple[int, int] = (640, 480),
        fps: int = 30,
        fourcc: str = "MJPG",
        warmup_frames: int = 5,
        warmup_delay_sec: float = 0.05,
        read_timeout_sec: float = 5.0,
        jpeg_quality: int = 95,
    ):
        self.devices = tuple(devices)
        self.resolution = (int(resolution[0]), int(resolution[1]))
        self.fps = int(fps)
        self.fourcc = (fourcc or "MJPG").upper()
        self.warmup_frames = max(0, int(warmup_frames))
        self.warmup_delay_sec = max(0.0, float(warmup_delay_sec))
        self.read_timeout_sec = float(read_timeout_sec)
        self.jpeg_quality = int(jpeg_quality)

        self.device: Optional[str] = None
        self._cap: Optional[Any] = None

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Camera":
        return cls(
            devices=cfg["devices"],
            resolution=cfg["resolution"],
            fps=cfg["fps"],
            fourcc=cfg["fourcc"],
            warmup_frames=cfg["warmup_frames"],
            warmup_delay_sec=cfg["warmup_delay_sec"],
            read_timeout_sec=cfg["read_timeout_sec"],
            jpeg_quality=cfg["jpeg_quality"],
        )

    @property
    def ready(self) -> bool:
        return self._cap is not None

    def _find_device(self) -> str:
        for path in self.devices:
            if os.path.exists(path):
                return path
        raise DeviceNotFound(f"Camera not found ({' or '.join(self.devices)})")

    def open(self) -> None:
        device = self._find_device()
        cap = cv2.VideoCapture(device, cv2.CAP_V4L2)
        if not cap.isOpened():
            cap.release()
            raise DeviceNotFound(f"Camera {device} could not be opened")
        self.device = device
        self._cap = cap
        log.debug("Camera opened: %s", device)

    def configure(self) -> None:
        cap = self._require_open()
        width, height = self.resolution
        code = cv2.VideoWriter_fourcc(*self.fourcc)

        accepted = cap.set(cv2.CAP_PROP_FOURCC, code)
        accepted = cap.set(cv2.CAP_PROP_FRAME_WIDTH, width) and accepted
        accepted = cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height) and accepted
        accepted = cap.set(cv2.CAP_PROP_FPS, self.fps) and accepted

        # 0 means the backend cannot report the active format
        active = int(cap.get(cv2.CAP_PROP_FOURCC) or 0)
        if not accepted or (active and active != code):
            alternate = "YUYV" if self.fourcc != "YUYV" else "MJPG"
            device_error = f"requested {self.fourcc} {width}x{height}@{self.fps}, active fourcc={_fourcc_str(active)}"
            raise ConfigurationError(
                f"Camera configuration error (try changing {self.fourcc} to {alternate}): {device_error}",
                device_error=device_error,
            )

        timeout_prop = getattr(cv2, "CAP_PROP_READ_TIMEOUT_MSEC", None)
        if timeout_prop is not None and self.read_timeout_sec > 0:
            cap.set(timeout_prop, self.read_timeout_sec * 1000.0)

        log.debug("Camera configured: %s %dx%d@%d", self.fourcc, width, height, self.fps)

    def warm_up(self) -> None:
        """Drop the stale / mis-exposed frames a freshly started stream delivers."""
        cap = self._require_open()
        for _ in range(self.warmup_frames):
            cap.read()
            time.sleep(self.warmup_delay_sec)

    def start(self) -> "Camera":
        self.open()
        try:
            self.configure()
            self.warm_up()
        except BaseException:
            self.release()
            raise
        return self

    def capture(self) -> bytes:
        """Block until one frame is available; return it JPEG-compressed."""
        cap = self._require_open()
        ok, frame = cap.read()
        if not ok or frame is None:
            raise CaptureError(f"No frame received from {self.device}")
        ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality])
        if not ok:
            raise CaptureError("Failed to compress captured frame")
        return buf.tobytes()

    def release(self) -> None:
        if self._cap is not None:
            try:
                self._cap.release()
            finally:
                self._cap = None
                log.debug("Camera released: %s", self.device)

    def _require_open(self):
        if self._cap is None:
            raise CaptureError("Camera is not open")
        return self._cap

    def __enter__(self) -> "Camera":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def _fourcc_str(code: int) -> str:
    if not code:
        return "unknown"
    return "".join(chr((code >> (8 * i)) & 0xFF) for i in range(4))
