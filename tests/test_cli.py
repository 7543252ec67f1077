import math

import cv2
import numpy as np
import pytest
import torch

from qlog_normals import cli


def test_parse_args_flags():
    args = cli.parse_args(["in.exr", "out.exr", "-i", "-deriveZ", "-bias", "-0.5", "-threads", "2"])
    assert args.inputfile == "in.exr"
    assert args.outputfile == "out.exr"
    assert args.inverse is True
    assert args.derive_z is True
    assert args.bias == -0.5
    assert args.threads == 2


def test_parse_args_defaults():
    args = cli.parse_args(["in.png", "out.png"])
    assert args.inverse is False
    assert args.derive_z is False
    assert args.bias == 0.0
    assert args.threads == 0


@pytest.mark.parametrize(
    "argv",
    [
        ["only_one.png"],
        ["a.png", "b.png", "c.png"],
        ["a.png", "b.png", "-bias", "nan"],
        ["a.png", "b.png", "-bias", "inf"],
        ["a.png", "b.png", "-threads", "-1"],
        ["a.png", "b.png", "-v", "-q"],
    ],
)
def test_bad_arguments_exit(argv, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    assert excinfo.value.code == 2
    assert "usage:" in capsys.readouterr().err


def _normal_map(make_normal_buffer):
    thetas = torch.linspace(0.05, 1.4, 8, dtype=torch.float64)
    phis = torch.linspace(0.0, 2.0 * math.pi, 10, dtype=torch.float64)[:-1]
    return make_normal_buffer(thetas, phis, dtype=torch.float32).numpy()


def test_round_trip_through_files(tmp_path, make_normal_buffer, restore_threads):
    original = _normal_map(make_normal_buffer)
    source = tmp_path / "basis.npy"
    encoded = tmp_path / "qlog.npy"
    decoded = tmp_path / "decoded.npy"
    np.save(source, original)

    assert cli.main([str(source), str(encoded), "-bias", "1.5", "-threads", "1"]) == 0
    qlog = np.load(encoded)
    np.testing.assert_array_equal(qlog[..., 2], 0.5)

    assert cli.main([str(encoded), str(decoded), "-i", "-bias", "1.5", "-threads", "1"]) == 0
    np.testing.assert_allclose(np.load(decoded), original, atol=1e-5)


def test_flat_png_encodes_to_mid_grey(tmp_path, restore_threads):
    source = tmp_path / "flat.npy"
    target = tmp_path / "flat_qlog.png"
    np.save(source, np.tile(np.array([0.5, 0.5, 1.0], dtype=np.float32), (2, 3, 1)))

    assert cli.main([str(source), str(target), "-deriveZ", "-q"]) == 0

    from qlog_normals.core import read_float_image

    np.testing.assert_allclose(read_float_image(str(target)), 0.5, atol=1.0 / 65535.0)


def test_missing_input_fails(tmp_path, capsys, restore_threads):
    assert cli.main([str(tmp_path / "missing.png"), str(tmp_path / "out.png")]) == 1
    assert "ERROR reading" in capsys.readouterr().err
    assert not (tmp_path / "out.png").exists()


def test_single_channel_input_fails(tmp_path, capsys, restore_threads):
    source = tmp_path / "height.npy"
    np.save(source, np.zeros((4, 4), dtype=np.float32))
    assert cli.main([str(source), str(tmp_path / "out.npy")]) == 1
    assert "at least 3 channels" in capsys.readouterr().err


def test_write_failure_fails(tmp_path, capsys, restore_threads):
    source = tmp_path / "basis.npy"
    np.save(source, np.full((2, 2, 3), 0.5, dtype=np.float32))
    assert cli.main([str(source), str(tmp_path / "no_such_dir" / "out.npy")]) == 1
    assert "ERROR writing" in capsys.readouterr().err


def test_opencv_write_error_fails(tmp_path, capsys, monkeypatch, restore_threads):
    source = tmp_path / "basis.npy"
    np.save(source, np.full((2, 2, 3), 0.5, dtype=np.float32))

    def fail(*args, **kwargs):
        raise cv2.error("could not find a writer for the specified extension")

    monkeypatch.setattr(cv2, "imwrite", fail)
    assert cli.main([str(source), str(tmp_path / "qlog.exr")]) == 1
    assert "ERROR writing" in capsys.readouterr().err


def test_derive_z_with_inverse_warns(tmp_path, capsys, restore_threads):
    source = tmp_path / "qlog.npy"
    np.save(source, np.full((2, 2, 3), 0.5, dtype=np.float32))
    assert cli.main([str(source), str(tmp_path / "basis.npy"), "-i", "-deriveZ"]) == 0
    assert "deriveZ has no effect" in capsys.readouterr().err
