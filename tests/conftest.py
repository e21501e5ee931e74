import os
import sys

import cv2
import numpy as np
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from sayhi.core.frame_processing import FrameCollector
from sayhi.face_recognition.preprocessor import TemplatePreprocessor
from sayhi.infrastructure.errors import CaptureError


def make_face_image(shift: int = 0, seed: int = 7, size=(480, 640)) -> np.ndarray:
    """Smooth synthetic 'face': low-frequency texture plus head/eyes/mouth shapes."""
    h, w = size
    rng = np.random.default_rng(seed)
    coarse = rng.integers(60, 190, size=(12, 16)).astype(np.float32)
    img = cv2.resize(coarse, (w, h), interpolation=cv2.INTER_CUBIC)
    cv2.ellipse(img, (w // 2, h // 2), (w // 5, h // 3), 0, 0, 360, 170, -1)
    cv2.circle(img, (w // 2 - 50, h // 2 - 40), 18, 60, -1)
    cv2.circle(img, (w // 2 + 50, h // 2 - 40), 18, 60, -1)
    cv2.ellipse(img, (w // 2, h // 2 + 70), (60, 18), 0, 0, 360, 70, -1)
    img = np.clip(img, 40, 210) + shift
    return np.clip(img, 0, 255).astype(np.uint8)


def encode_jpeg(img: np.ndarray, quality: int = 95) -> bytes:
    ok, buf = cv2.imencode(".jpg", img, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    assert ok
    return buf.tobytes()


def make_noise_image(seed: int = 123, size=(480, 640)) -> np.ndarray:
    rng = np.random.default_rng(seed)
    coarse = rng.integers(0, 256, size=(24, 32)).astype(np.uint8)
    return cv2.resize(coarse, (size[1], size[0]), interpolation=cv2.INTER_NEAREST)


class FakeCamera:
    """Context-manager frame source cycling over canned frames; None entries fail to arrive."""

    def __init__(self, frames, fail_on_enter: Exception = None):
        self.frames = list(frames)
        self.fail_on_enter = fail_on_enter
        self.opened = 0
        self.released = 0
        self.captured = 0
        self._i = 0

    def __call__(self):
        return self

    def __enter__(self):
        self.opened += 1
        if self.fail_on_enter is not None:
            raise self.fail_on_enter
        return self

    def __exit__(self, exc_type, exc, tb):
        self.released += 1

    def capture(self) -> bytes:
        frame = self.frames[self._i % len(self.frames)]
        self._i += 1
        self.captured += 1
        if frame is None:
            raise CaptureError("simulated dropped frame")
        return frame


@pytest.fixture
def face_jpeg() -> bytes:
    return encode_jpeg(make_face_image())


@pytest.fixture
def face_frames():
    # 45 frames with small global brightness jitter
    return [encode_jpeg(make_face_image(shift=((i % 5) - 2) * 3)) for i in range(45)]


@pytest.fixture
def noise_frames():
    return [encode_jpeg(make_noise_image(seed=100 + i)) for i in range(15)]


@pytest.fixture
def preprocessor() -> TemplatePreprocessor:
    return TemplatePreprocessor(size=64, threshold_radius=15)


@pytest.fixture
def collector(preprocessor) -> FrameCollector:
    return FrameCollector(preprocessor, frame_interval_sec=0.0)
