from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from sayhi.utils.config_utils import as_float, as_int, as_size, as_str, as_str_list, get_section

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
    "config",
    "sayhi.yaml",
)


def load_yaml_section(path: str, section: str = "") -> Dict[str, Any]:
    """
    Mapping found at a dotted `section` of the YAML document at `path`
    ("" for the whole document). Unreadable files, malformed YAML and
    non-mapping nodes all give {} so callers fall back to their defaults.
    """
    try:
        with open(path, "r") as f:
            node: Any = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        log.warning(f"Config error for section '{section}' at '{path}': {e}. Using defaults.")
        return {}

    for key in filter(None, section.split(".")):
        node = node.get(key) if isinstance(node, dict) else None
    return node if isinstance(node, dict) else {}


def resolve_config_path(path: Optional[str] = None) -> str:
    return path or os.getenv("SAYHI_CONFIG") or DEFAULT_CONFIG_PATH


def load_sayhi_config(path: Optional[str] = None) -> Dict[str, Any]:
    path = resolve_config_path(path)
    if os.path.isfile(path):
        root = load_yaml_section(path)
    else:
        if path != DEFAULT_CONFIG_PATH:
            log.warning(f"Config file '{path}' not found. Using defaults.")
        root = {}

    camera = get_section(root, "camera")
    template = get_section(root, "template")
    matching = get_section(root, "matching")
    enrollment = get_section(root, "enrollment")
    auth = get_section(root, "auth")
    storage = get_section(root, "storage")
    logging_cfg = get_section(root, "logging")

    return {
        "camera": {
            "devices": as_str_list(camera.get("devices"), ["/dev/video0", "/dev/video1"]),
            "resolution": as_size(camera.get("resolution"), (640, 480)),
            "fps": as_int(camera.get("fps"), 30),
            "fourcc": as_str(camera.get("fourcc"), "MJPG")[:4],
            "warmup_frames": as_int(camera.get("warmup_frames"), 5),
            "warmup_delay_sec": as_float(camera.get("warmup_delay_sec"), 0.05),
            "frame_interval_sec": as_float(camera.get("frame_interval_sec"), 0.033),
            "read_timeout_sec": as_float(camera.get("read_timeout_sec"), 5.0),
            "jpeg_quality": as_int(camera.get("jpeg_quality"), 95),
        },
        "template": {
            "size": as_int(template.get("size"), 64),
            "threshold_radius": as_int(template.get("threshold_radius"), 15),
        },
        "matching": {
            "acceptance_threshold": as_float(matching.get("acceptance_threshold"), 0.65),
            "live_samples": as_int(matching.get("live_samples"), 5),
            "stored_samples": as_int(matching.get("stored_samples"), 10),
        },
        "enrollment": {
            "rounds": as_int(enrollment.get("rounds"), 3),
            "frames_per_capture": as_int(enrollment.get("frames_per_capture"), 15),
            "min_templates": as_int(enrollment.get("min_templates"), 10),
            "round_pause_sec": as_float(enrollment.get("round_pause_sec"), 0.5),
        },
        "auth": {
            "frames_per_capture": as_int(auth.get("frames_per_capture"), 15),
            "max_attempts": as_int(auth.get("max_attempts"), 3),
            "attempts_dir": as_str(auth.get("attempts_dir"), "/tmp"),
        },
        "storage": {
            # env override wins, then the file, then the per-user resolution policy
            "dataset_dir": os.getenv("SAYHI_DATASET_DIR") or storage.get("dataset_dir") or None,
            "system_dir": as_str(storage.get("system_dir"), "/var/lib/sayhilinux"),
        },
        "logging": {
            "diagnostic_paths": as_str_list(
                logging_cfg.get("diagnostic_paths"), ["/var/log/sayhi.log", "/tmp/sayhi.log"]
            ),
            "self_test_image": as_str(logging_cfg.get("self_test_image"), "/tmp/sayhi_test.jpg"),
        },
    }
