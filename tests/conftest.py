import pytest
import torch

from qlog_normals.core import set_log_level


@pytest.fixture(autouse=True)
def _reset_log_level():
    yield
    set_log_level(None)


@pytest.fixture
def restore_threads():
    original = torch.get_num_threads()
    yield
    torch.set_num_threads(original)


def _unit_normals(thetas, phis, dtype):
    theta, phi = torch.meshgrid(
        torch.as_tensor(thetas, dtype=torch.float64),
        torch.as_tensor(phis, dtype=torch.float64),
        indexing="ij",
    )
    normals = torch.stack(
        [torch.sin(theta) * torch.cos(phi), torch.sin(theta) * torch.sin(phi), torch.cos(theta)],
        dim=-1,
    )
    return ((normals + 1.0) * 0.5).to(dtype)


@pytest.fixture
def make_normal_buffer():
    """Factory for (len(thetas), len(phis), 3) buffers of packed unit normals."""

    def _make(thetas, phis, dtype=torch.float64):
        return _unit_normals(thetas, phis, dtype)

    return _make
