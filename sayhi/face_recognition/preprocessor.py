from __future__ import annotations

import logging
from typing import Any, Dict

import cv2
import numpy as np

from sayhi.infrastructure.data.models import ImageQuality
from sayhi.infrastructure.errors import DecodeError

log = logging.getLogger(__name__)


class TemplatePreprocessor:
    """
    Turns a compressed camera frame into a comparable face template:
      - decode to grayscale
      - area-averaging resize to size x size
      - local adaptive threshold (block radius `threshold_radius`)

    The threshold encodes local contrast rather than absolute brightness, which
    keeps templates stable across global lighting changes. The whole frame is
    treated as the face region; there is no detection or alignment step.

    Returns a flat np.uint8 array of size*size values, each 0 or 255.
    """

    def __init__(self, size: int = 64, threshold_radius: int = 15):
        self.size = int(size)
        self.threshold_radius = int(threshold_radius)

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "TemplatePreprocessor":
        return cls(size=cfg["size"], threshold_radius=cfg["threshold_radius"])

    @property
    def template_length(self) -> int:
        return self.size * self.size

    def decode(self, raw: bytes) -> np.ndarray:
        try:
            buf = np.frombuffer(raw, dtype=np.uint8)
            gray = cv2.imdecode(buf, cv2.IMREAD_GRAYSCALE)
        except (TypeError, ValueError, cv2.error) as e:
            raise DecodeError(f"bad_input:{e}") from e
        if gray is None or gray.size == 0:
            raise DecodeError("Frame is not a decodable image")
        return gray

    def to_template(self, raw: bytes) -> np.ndarray:
        gray = self.decode(raw)
        return adaptive_threshold(downscale(gray, self.size), self.threshold_radius).reshape(-1)

    def analyze_quality(self, raw: bytes) -> ImageQuality:
        return analyze_quality(self.decode(raw))


def downscale(gray: np.ndarray, size: int) -> np.ndarray:
    """
    Resize to size x size averaging over each output pixel's whole source
    footprint. Point-sampling filters alias fine sensor noise into the template.
    """
    return cv2.resize(gray, (int(size), int(size)), interpolation=cv2.INTER_AREA)


def adaptive_threshold(gray: np.ndarray, block_radius: int) -> np.ndarray:
    """
    255 where a pixel is at least as bright as the (floored) mean of the
    in-bounds pixels of the (2r+1)^2 block centred on it, 0 elsewhere.
    """
    img = np.asarray(gray, dtype=np.float64)
    k = 2 * int(block_radius) + 1
    sums = cv2.boxFilter(img, -1, (k, k), normalize=False, borderType=cv2.BORDER_CONSTANT)
    counts = cv2.boxFilter(np.ones_like(img), -1, (k, k), normalize=False, borderType=cv2.BORDER_CONSTANT)
    mean = np.floor(sums / counts)
    return np.where(img >= mean, 255, 0).astype(np.uint8)


def analyze_quality(gray: np.ndarray) -> ImageQuality:
    pixels = np.asarray(gray, dtype=np.float64)
    if pixels.size == 0:
        return ImageQuality(brightness=0.0, contrast=0.0)
    mean = float(pixels.mean())
    return ImageQuality(
        brightness=mean / 255.0,
        contrast=float(pixels.std()) / 128.0,
    )
