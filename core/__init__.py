"""
Core library package for QLog Normals.

This package provides the quaternion-logarithm normal map conversion kernel, float image
I/O, PBR vector helpers and shared logging. The command line tool and the nodes are thin
layers over it.
"""  # noqa: N999

from .image_io import (
    ImageIOError,
    read_float_image,
    write_float_image,
)
from .pbr_utils import (
    FLOAT_EPSILON,
    derive_z_from_xy,
    image_to_normal,
    normal_to_image,
)
from .qlog import (
    QUARTER_PI,
    BasisToQLog,
    BiasCoefficients,
    ConversionConfig,
    NormalEncodingTransform,
    QLogToBasis,
    apply_bias_then_pack,
    as_pixel_tensor,
    compute_bias_coefficients,
    convert_buffer,
    get_transform,
    unpack_then_remove_bias,
)
from .utils import (
    COMFY_LOG_SETTING_ID,
    QLOG_NORMALS_CATEGORY,
    configure_threads,
    is_verbose_mode,
    log_error,
    log_info,
    log_verbose,
    log_warning,
    set_log_level,
    thread_limit,
)

__all__ = [
    # Constants
    "QLOG_NORMALS_CATEGORY",
    "COMFY_LOG_SETTING_ID",
    "FLOAT_EPSILON",
    "QUARTER_PI",
    # Logging
    "log_info",
    "log_warning",
    "log_error",
    "log_verbose",
    "is_verbose_mode",
    "set_log_level",
    # Threading
    "configure_threads",
    "thread_limit",
    # Image I/O
    "ImageIOError",
    "read_float_image",
    "write_float_image",
    # PBR utils
    "image_to_normal",
    "normal_to_image",
    "derive_z_from_xy",
    # QLog conversion
    "BiasCoefficients",
    "compute_bias_coefficients",
    "apply_bias_then_pack",
    "unpack_then_remove_bias",
    "as_pixel_tensor",
    "NormalEncodingTransform",
    "BasisToQLog",
    "QLogToBasis",
    "get_transform",
    "ConversionConfig",
    "convert_buffer",
]
