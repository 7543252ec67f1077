"""
Quaternion-logarithm normal map encoding.

Converts between basis-vector normal maps (a unit vector per texel, each
component packed from [-1, 1] into [0, 1]) and quaternion-logarithm normal
maps, which store the half-angle-scaled XY projection of the rotation away
from the +Z pole in two channels. A power-law bias curve can move coding
precision towards the pole (positive bias) or away from it (negative bias).

Every pixel is converted independently. Buffers are rewritten in place:
channels 0..2 are replaced and any further channels (alpha) are left alone.
"""

import math
from dataclasses import dataclass

import numpy as np
import torch

from .pbr_utils import FLOAT_EPSILON, derive_z_from_xy, image_to_normal, normal_to_image
from .utils import is_verbose_mode, log_verbose, thread_limit

QUARTER_PI = math.pi / 4.0

# Channel 2 carries no data in a QLog normal map.
QLOG_RESERVED_CHANNEL_VALUE = 0.5

# numpy float dtypes torch.from_numpy can share memory with.
_TORCH_SHARED_DTYPES = (np.float16, np.float32, np.float64)


@dataclass(frozen=True)
class BiasCoefficients:
    """Exponents of the bias curve. apply_bias and remove_bias are reciprocals."""

    bias: float
    apply_bias: float
    remove_bias: float


def compute_bias_coefficients(bias: float = 0.0) -> BiasCoefficients:
    """
    Derives the pack/unpack exponents from a user bias.

    A bias of 0 is linear precision. Positive values concentrate precision near the
    normal's pole, negative values away from it.

    Raises:
        ValueError: If bias is NaN or infinite.
    """
    bias = float(bias)
    if not math.isfinite(bias):
        raise ValueError(f"Bias must be a finite number, got {bias}")

    if bias >= 0.0:
        remove_bias = 1.0 + bias
    else:
        remove_bias = 1.0 / (1.0 - bias)

    return BiasCoefficients(bias=bias, apply_bias=1.0 / remove_bias, remove_bias=remove_bias)


def _signed_power(value: torch.Tensor, exponent: float) -> torch.Tensor:
    return torch.sign(value) * torch.pow(torch.abs(value), exponent)


def apply_bias_then_pack(value, apply_bias: float) -> torch.Tensor:
    """
    Maps a half-angle component in [-pi/4, pi/4] to a [0, 1] texel value.

    The value is normalised by pi/4, bent by the bias curve and packed. Inputs outside
    the nominal range produce results outside [0, 1]; nothing is clamped.
    """
    result = torch.as_tensor(value, dtype=torch.float64) / QUARTER_PI
    result = _signed_power(result, apply_bias)
    return (result + 1.0) * 0.5


def unpack_then_remove_bias(value, remove_bias: float) -> torch.Tensor:
    """Inverse of apply_bias_then_pack: [0, 1] texel value back to a half-angle component."""
    result = torch.as_tensor(value, dtype=torch.float64) * 2.0 - 1.0
    result = _signed_power(result, remove_bias)
    return result * QUARTER_PI


def as_pixel_tensor(buffer) -> torch.Tensor:
    """
    Returns a tensor view of a pixel buffer, sharing memory with it.

    Args:
        buffer: torch.Tensor or numpy.ndarray of floats, shape (..., C) with C >= 3.

    Raises:
        TypeError: For unsupported containers or non-floating dtypes.
        ValueError: For buffers with fewer than 2 dimensions or 3 channels.
    """
    if isinstance(buffer, np.ndarray):
        if not np.issubdtype(buffer.dtype, np.floating):
            raise TypeError(f"Pixel buffer must hold floating point values, got {buffer.dtype}")
        pixels = torch.from_numpy(buffer)
    elif isinstance(buffer, torch.Tensor):
        pixels = buffer
    else:
        raise TypeError(f"Unsupported pixel buffer type: {type(buffer).__name__}")

    if not pixels.is_floating_point():
        raise TypeError(f"Pixel buffer must hold floating point values, got {pixels.dtype}")
    if pixels.ndim < 2:
        raise ValueError(f"Pixel buffer must have shape (..., channels), got {tuple(pixels.shape)}")
    if pixels.shape[-1] < 3:
        raise ValueError(f"Pixel buffer needs at least 3 channels, got {pixels.shape[-1]}")
    return pixels


def _shares_with_torch(array: np.ndarray) -> bool:
    """True if torch.from_numpy can wrap array without copying it."""
    return (
        array.dtype.isnative
        and array.dtype.type in _TORCH_SHARED_DTYPES
        and all(stride >= 0 for stride in array.strides)
    )


def _staging_array(array: np.ndarray) -> np.ndarray:
    """Native-order contiguous copy of a buffer torch cannot view directly."""
    dtype = array.dtype.newbyteorder("=")
    if dtype.type not in _TORCH_SHARED_DTYPES:
        dtype = np.dtype(np.float64)
    return np.ascontiguousarray(array, dtype=dtype)


def _rewrite_in_place(buffer, rewrite) -> None:
    """
    Runs rewrite(pixels) on a tensor view of buffer.

    Numpy buffers torch cannot share memory with (negative strides, byte-swapped or
    extended-precision dtypes) are converted on a staging copy that is written back.
    """
    if isinstance(buffer, np.ndarray) and np.issubdtype(buffer.dtype, np.floating) and not _shares_with_torch(buffer):
        staging = _staging_array(buffer)
        rewrite(as_pixel_tensor(staging))
        np.copyto(buffer, staging, casting="same_kind")
    else:
        rewrite(as_pixel_tensor(buffer))


class NormalEncodingTransform:
    """
    Base class for the per-pixel normal encodings.

    Subclasses implement encode(), which maps the first three channels of every pixel
    (as a float64 tensor of shape (..., 3)) to their new values.
    """

    name = "base"

    def encode(self, pixels: torch.Tensor, coefficients: BiasCoefficients) -> torch.Tensor:
        raise NotImplementedError

    def __call__(self, buffer, coefficients: BiasCoefficients):
        """Rewrites channels 0..2 of buffer in place and returns buffer."""
        _rewrite_in_place(buffer, lambda pixels: self._encode_channels(pixels, coefficients))
        return buffer

    def _encode_channels(self, pixels: torch.Tensor, coefficients: BiasCoefficients) -> None:
        with torch.no_grad():
            result = self.encode(pixels[..., :3].to(torch.float64), coefficients)
            pixels[..., :3] = result.to(pixels.dtype)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class BasisToQLog(NormalEncodingTransform):
    """Basis-vector normal map to quaternion-logarithm normal map."""

    name = "Basis to QLog"

    def __init__(self, derive_z: bool = False):
        self.derive_z = derive_z

    def encode(self, pixels: torch.Tensor, coefficients: BiasCoefficients) -> torch.Tensor:
        x, y, z = image_to_normal(pixels).unbind(-1)

        if self.derive_z:
            z = derive_z_from_xy(x, y)

        length = torch.sqrt(x * x + y * y)
        denominator = torch.where(length < FLOAT_EPSILON, torch.ones_like(length), length)

        # Half the angle to the pole: cos(a/2) = sqrt((1 + cos a) / 2)
        cos_half_angle = torch.sqrt(torch.clamp((1.0 + z) * 0.5, 0.0, 1.0))
        half_angle = torch.acos(cos_half_angle)

        u = x * half_angle / denominator
        v = y * half_angle / denominator

        return torch.stack(
            [
                apply_bias_then_pack(u, coefficients.apply_bias),
                apply_bias_then_pack(v, coefficients.apply_bias),
                torch.full_like(u, QLOG_RESERVED_CHANNEL_VALUE),
            ],
            dim=-1,
        )

    def __repr__(self) -> str:
        return f"BasisToQLog(derive_z={self.derive_z})"


class QLogToBasis(NormalEncodingTransform):
    """Quaternion-logarithm normal map to basis-vector normal map. Input channel 2 is ignored."""

    name = "QLog to Basis"

    def encode(self, pixels: torch.Tensor, coefficients: BiasCoefficients) -> torch.Tensor:
        u = unpack_then_remove_bias(pixels[..., 0], coefficients.remove_bias)
        v = unpack_then_remove_bias(pixels[..., 1], coefficients.remove_bias)

        half_angle_sq = u * u + v * v
        half_angle = torch.sqrt(half_angle_sq)
        denominator = torch.where(half_angle_sq < FLOAT_EPSILON, torch.ones_like(half_angle), half_angle)

        angle = 2.0 * half_angle
        sin_angle = torch.sin(angle)

        normals = torch.stack(
            [u * sin_angle / denominator, v * sin_angle / denominator, torch.cos(angle)],
            dim=-1,
        )
        return normal_to_image(normals)


def get_transform(inverse: bool, derive_z: bool = False) -> NormalEncodingTransform:
    """Selects the transform variant. derive_z only applies to the forward direction."""
    if inverse:
        return QLogToBasis()
    return BasisToQLog(derive_z=derive_z)


@dataclass(frozen=True)
class ConversionConfig:
    """
    Settings for one conversion run.

    Attributes:
        inverse: Convert QLog to basis instead of basis to QLog.
        derive_z: Rebuild Z from X/Y before the forward conversion.
        bias: Precision bias, 0 for linear precision. Must be finite.
        threads: Worker thread count, 0 for all hardware threads. Applied only while
            convert_buffer runs; torch's previous setting is restored afterwards.
    """

    inverse: bool = False
    derive_z: bool = False
    bias: float = 0.0
    threads: int = 0

    def __post_init__(self):
        if not math.isfinite(self.bias):
            raise ValueError(f"Bias must be a finite number, got {self.bias}")
        if self.threads < 0:
            raise ValueError(f"Thread count must be >= 0, got {self.threads}")

    @property
    def coefficients(self) -> BiasCoefficients:
        return compute_bias_coefficients(self.bias)

    @property
    def transform(self) -> NormalEncodingTransform:
        return get_transform(self.inverse, self.derive_z)


def convert_buffer(buffer, config: ConversionConfig | None = None):
    """
    Converts a pixel buffer in place between the basis and QLog encodings.

    Args:
        buffer: torch.Tensor or numpy.ndarray of floats, shape (..., C) with C >= 3,
            values nominally in [0, 1].
        config: Conversion settings. Defaults to a forward conversion with no bias.

    Returns:
        The same buffer object, with channels 0..2 rewritten.
    """
    if config is None:
        config = ConversionConfig()

    coefficients = config.coefficients
    transform = config.transform

    def run(pixels: torch.Tensor) -> None:
        log_verbose(
            "QLog",
            f"{transform.name}: shape={tuple(pixels.shape)}, dtype={pixels.dtype}, "
            f"apply_bias={coefficients.apply_bias:.6g}, remove_bias={coefficients.remove_bias:.6g}",
        )

        with thread_limit(config.threads):
            transform(pixels, coefficients)

        if is_verbose_mode() and pixels.numel():
            rgb = pixels[..., :3]
            log_verbose("QLog", f"Output range: min={rgb.min().item():.4f}, max={rgb.max().item():.4f}")

    _rewrite_in_place(buffer, run)
    return buffer
