import math

import torch

from qlog_normals.core import FLOAT_EPSILON, derive_z_from_xy, image_to_normal, normal_to_image


def test_image_normal_round_trip():
    image = torch.linspace(0.0, 1.0, 11, dtype=torch.float64)
    assert torch.allclose(normal_to_image(image_to_normal(image)), image)
    assert image_to_normal(torch.tensor(0.5)).item() == 0.0


def test_derive_z_matches_unit_length():
    x = torch.tensor([0.6, 0.0, -0.3, 0.0], dtype=torch.float64)
    y = torch.tensor([0.0, 0.0, 0.4, -0.8], dtype=torch.float64)
    z = derive_z_from_xy(x, y)
    expected = torch.tensor([0.8, 1.0, math.sqrt(0.75), 0.6], dtype=torch.float64)
    assert torch.allclose(z, expected)


def test_derive_z_dense_grid():
    xs = torch.linspace(-0.99, 0.99, 41, dtype=torch.float64)
    x, y = torch.meshgrid(xs, xs, indexing="ij")
    inside = x * x + y * y <= 1.0 - 1e-3
    z = derive_z_from_xy(x, y)
    assert torch.allclose(z[inside], torch.sqrt(1.0 - x[inside] ** 2 - y[inside] ** 2))
    assert torch.all(z[~inside] >= 0.0)


def test_derive_z_is_zero_on_and_outside_the_rim():
    x = torch.tensor([1.0, 0.9, math.sqrt(0.5), 1.0 - FLOAT_EPSILON / 4.0], dtype=torch.float64)
    y = torch.tensor([0.0, 0.9, math.sqrt(0.5), 0.0], dtype=torch.float64)
    z = derive_z_from_xy(x, y)
    assert torch.equal(z, torch.zeros_like(z))
    assert not torch.isnan(z).any()
