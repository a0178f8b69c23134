import io
import math

import numpy as np
import pytest

from slamkit.lie import SE3, SO3
from slamkit.trajectory import main, parse_trajectory, read_trajectory, rmse

SAMPLE = (
    "1305031102.1758 1.0 2.0 3.0 0 0 0 1\n"
    "\n"
    "# comment\n"
    "1305031102.2758 4.0 5.0 6.0 0 0 0 1\n"
)


def test_parse_trajectory_reads_translations():
    poses = parse_trajectory(io.StringIO(SAMPLE))
    assert len(poses) == 2
    np.testing.assert_allclose(poses[0].translation, [1.0, 2.0, 3.0])
    np.testing.assert_allclose(poses[1].translation, [4.0, 5.0, 6.0])
    np.testing.assert_allclose(poses[0].rotation.matrix, np.eye(3), atol=1e-12)


def test_parse_trajectory_quaternion_order_is_xyzw():
    s = math.sqrt(0.5)
    poses = parse_trajectory(io.StringIO(f"0 0 0 0 0 0 {s} {s}\n"))
    expected = SO3.exp([0.0, 0.0, math.pi / 2]).matrix
    np.testing.assert_allclose(poses[0].rotation.matrix, expected, atol=1e-9)


def test_parse_trajectory_rejects_short_line():
    with pytest.raises(ValueError):
        parse_trajectory(io.StringIO("0 1 2 3\n"))


def test_parse_trajectory_rejects_non_numbers():
    with pytest.raises(ValueError):
        parse_trajectory(io.StringIO("0 a 2 3 0 0 0 1\n"))


def test_rmse_of_identical_trajectories_is_zero():
    poses = [SE3.exp([0.1, 0.2, 0.3, 0.01, 0.02, 0.03]), SE3.exp([1, 0, 0, 0, 0.5, 0])]
    assert rmse(poses, poses) == pytest.approx(0.0, abs=1e-9)


def test_rmse_of_unit_translation_offset():
    gt = [SE3(), SE3(None, [0.0, 1.0, 0.0])]
    est = [SE3(None, [1.0, 0.0, 0.0]), SE3(None, [1.0, 1.0, 0.0])]
    assert rmse(gt, est) == pytest.approx(1.0)


def test_rmse_is_symmetric_for_pure_translations():
    gt = [SE3(None, [0.0, 0.0, 0.0]), SE3(None, [0.3, 0.0, 0.0])]
    est = [SE3(None, [0.0, 0.2, 0.0]), SE3(None, [0.3, 0.0, 0.5])]
    assert rmse(gt, est) == pytest.approx(rmse(est, gt))


def test_rmse_rejects_mismatched_sizes():
    with pytest.raises(ValueError):
        rmse([SE3()], [SE3(), SE3()])


def test_rmse_rejects_empty():
    with pytest.raises(ValueError):
        rmse([], [])


def test_read_trajectory_from_file(tmp_path):
    path = tmp_path / "traj.txt"
    path.write_text(SAMPLE, encoding="utf-8")
    poses = read_trajectory(path)
    assert len(poses) == 2
    np.testing.assert_allclose(poses[1].translation, [4.0, 5.0, 6.0])


def test_read_trajectory_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_trajectory(tmp_path / "missing.txt")


def test_main_prints_rmse(tmp_path, capsys):
    path = tmp_path / "traj.txt"
    path.write_text(SAMPLE, encoding="utf-8")
    assert main([str(path), str(path)]) == 0
    out = capsys.readouterr().out.strip()
    assert out.startswith("RMSE = ")
    assert float(out.split("=")[1]) == pytest.approx(0.0, abs=1e-9)


def test_main_missing_file_fails(tmp_path):
    assert main([str(tmp_path / "a.txt"), str(tmp_path / "b.txt")]) == 1