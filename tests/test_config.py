import numpy as np
import pytest

from slamkit.config import Config, ConfigError

SETTINGS = """%YAML:1.0
dataset_dir: /data/kitti/00
num_features: 150
num_features_init: 50
camera.fx: 517.3
K: !!opencv-matrix
   rows: 2
   cols: 2
   dt: d
   data: [1., 2., 3., 4.]
"""


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "default.yaml"
    path.write_text(SETTINGS, encoding="utf-8")
    return path


def test_reads_scalar_values(settings_file):
    Config.set_parameter_file(settings_file)
    assert Config.get("dataset_dir") == "/data/kitti/00"
    assert Config.get("num_features") == 150
    assert Config.get("num_features_init") == 50
    assert Config.get("camera.fx") == pytest.approx(517.3)


def test_reads_matrix(settings_file):
    Config.set_parameter_file(settings_file)
    np.testing.assert_array_equal(Config.get("K"), [[1.0, 2.0], [3.0, 4.0]])


def test_missing_key(settings_file):
    Config.set_parameter_file(settings_file)
    with pytest.raises(KeyError):
        Config.get("no_such_key")


def test_missing_file_clears_settings(settings_file, tmp_path):
    Config.set_parameter_file(settings_file)
    with pytest.raises(FileNotFoundError):
        Config.set_parameter_file(tmp_path / "absent.yaml")
    with pytest.raises(RuntimeError):
        Config.get("num_features")


def test_non_mapping_file_is_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        Config.set_parameter_file(path)


def test_reload_replaces_values(settings_file, tmp_path):
    Config.set_parameter_file(settings_file)
    other = tmp_path / "other.yaml"
    other.write_text("num_features: 7\n", encoding="utf-8")
    Config.set_parameter_file(other)
    assert Config.get("num_features") == 7
    with pytest.raises(KeyError):
        Config.get("dataset_dir")