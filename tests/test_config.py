import os

import pytest

from sayhi.core.config import DEFAULT_CONFIG_PATH, load_sayhi_config, load_yaml_section
from sayhi.utils.config_utils import as_size, as_str_list
from sayhi.utils.paths import resolve_dataset_dir, resolve_username


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("SAYHI_CONFIG", raising=False)
    monkeypatch.delenv("SAYHI_DATASET_DIR", raising=False)


def test_shipped_config_matches_defaults(tmp_path):
    shipped = load_sayhi_config(DEFAULT_CONFIG_PATH)
    defaults = load_sayhi_config(str(tmp_path / "missing.yaml"))
    assert os.path.isfile(DEFAULT_CONFIG_PATH)
    assert shipped == defaults


def test_defaults():
    cfg = load_sayhi_config("/nonexistent/sayhi.yaml")
    assert cfg["camera"]["devices"] == ["/dev/video0", "/dev/video1"]
    assert cfg["camera"]["resolution"] == (640, 480)
    assert cfg["camera"]["fps"] == 30
    assert cfg["camera"]["fourcc"] == "MJPG"
    assert cfg["camera"]["warmup_frames"] == 5
    assert cfg["template"] == {"size": 64, "threshold_radius": 15}
    assert cfg["matching"]["acceptance_threshold"] == 0.65
    assert cfg["enrollment"]["rounds"] == 3
    assert cfg["enrollment"]["frames_per_capture"] == 15
    assert cfg["enrollment"]["min_templates"] == 10
    assert cfg["auth"]["max_attempts"] == 3
    assert cfg["auth"]["attempts_dir"] == "/tmp"
    assert cfg["storage"]["dataset_dir"] is None
    assert cfg["logging"]["diagnostic_paths"] == ["/var/log/sayhi.log", "/tmp/sayhi.log"]


def test_yaml_overrides_and_bad_values(tmp_path):
    path = tmp_path / "sayhi.yaml"
    path.write_text(
        "camera:\n"
        "  fourcc: YUYV\n"
        "  fps: fast\n"
        "matching:\n"
        "  acceptance_threshold: 0.8\n"
        "storage:\n"
        "  dataset_dir: /srv/faces\n"
    )
    cfg = load_sayhi_config(str(path))
    assert cfg["camera"]["fourcc"] == "YUYV"
    assert cfg["camera"]["fps"] == 30
    assert cfg["matching"]["acceptance_threshold"] == 0.8
    assert cfg["storage"]["dataset_dir"] == "/srv/faces"


def test_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "alt.yaml"
    path.write_text("auth:\n  max_attempts: 5\n")
    monkeypatch.setenv("SAYHI_CONFIG", str(path))
    monkeypatch.setenv("SAYHI_DATASET_DIR", "/data/faces")
    cfg = load_sayhi_config()
    assert cfg["auth"]["max_attempts"] == 5
    assert cfg["storage"]["dataset_dir"] == "/data/faces"


def test_load_yaml_section_dotted_and_broken(tmp_path):
    good = tmp_path / "good.yaml"
    good.write_text("a:\n  b:\n    c: 1\n")
    assert load_yaml_section(str(good), "a.b") == {"c": 1}
    assert load_yaml_section(str(good), "a.x") == {}

    broken = tmp_path / "broken.yaml"
    broken.write_text("a: [unclosed\n")
    assert load_yaml_section(str(broken), "a") == {}


def test_config_value_helpers():
    assert as_size([320, "240"], (640, 480)) == (320, 240)
    assert as_size("640x480", (640, 480)) == (640, 480)
    assert as_str_list([], ["x"]) == ["x"]
    assert as_str_list(("a", 1), ["x"]) == ["a", "1"]


@pytest.mark.parametrize(
    "explicit, env, expected",
    [
        ("carol", {"PAM_USER": "alice"}, "carol"),
        (None, {"PAM_USER": "alice", "USER": "bob"}, "alice"),
        (None, {"USER": "bob"}, "bob"),
        (None, {}, "unknown"),
    ],
)
def test_resolve_username(explicit, env, expected):
    assert resolve_username(explicit, env) == expected


def test_dataset_dir_policy(tmp_path):
    system = str(tmp_path / "system")
    assert resolve_dataset_dir({"USER": "root", "HOME": "/root"}, system) == system
    assert resolve_dataset_dir({}, system) == system
    assert resolve_dataset_dir({"USER": "alice", "HOME": "/home/alice"}, system) == "/home/alice/.local/share/sayhilinux"
    assert resolve_dataset_dir({"PAM_USER": "alice", "USER": "root", "HOME": "/h"}, system) == "/h/.local/share/sayhilinux"
    # no $HOME and no /home/<user>: fall back to a per-user system directory
    assert resolve_dataset_dir({"USER": "nohome-user-xyz"}, system) == os.path.join(system, "nohome-user-xyz")
