import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Tuple

import numpy as np

from sayhi.face_recognition.preprocessor import TemplatePreprocessor
from sayhi.infrastructure.errors import CaptureError, DecodeError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureStats:
    requested: int
    collected: int
    capture_failures: int
    decode_failures: int


class FrameCollector:
    """
    Pulls `count` frames from an open frame source and folds them into
    templates. A frame that fails to arrive or to decode is dropped; the batch
    only shrinks. Callers decide what an empty batch means.
    """

    def __init__(self, preprocessor: TemplatePreprocessor, frame_interval_sec: float = 0.033):
        self.preprocessor = preprocessor
        self.frame_interval_sec = max(0.0, float(frame_interval_sec))

    def collect(self, source, count: int) -> Tuple[List[np.ndarray], CaptureStats]:
        templates: List[np.ndarray] = []
        capture_failures = 0
        decode_failures = 0

        for _ in range(max(0, int(count))):
            try:
                raw = source.capture()
                templates.append(self.preprocessor.to_template(raw))
            except CaptureError as e:
                capture_failures += 1
                log.debug("Frame dropped (capture): %s", e)
            except DecodeError as e:
                decode_failures += 1
                log.debug("Frame dropped (decode): %s", e)
            # paces the stream and lets auto-exposure settle
            time.sleep(self.frame_interval_sec)

        stats = CaptureStats(
            requested=int(count),
            collected=len(templates),
            capture_failures=capture_failures,
            decode_failures=decode_failures,
        )
        if capture_failures or decode_failures:
            log.debug("Batch capture: %s", stats)
        return templates, stats

    def capture_session(self, camera_factory: Callable[[], Any], count: int) -> Tuple[List[np.ndarray], CaptureStats]:
        """Open a camera for one batch; device errors propagate, the device is always released."""
        with camera_factory() as source:
            return self.collect(source, count)
