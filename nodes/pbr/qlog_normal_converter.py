"""
QLog Normal Converter node - converts between basis and quaternion-logarithm normal maps.
"""

import torch

from ...core import QLOG_NORMALS_CATEGORY, ConversionConfig, convert_buffer, log_verbose, log_warning

BASIS_TO_QLOG = "Basis to QLog"
QLOG_TO_BASIS = "QLog to Basis"


class QLogNormalConverter:
    """
    Converts normal maps between the basis-vector encoding and the quaternion-logarithm encoding.

    The QLog encoding stores the half-angle-scaled XY rotation from the pole in Red/Green and
    leaves Blue at 0.5. A bias bends the encoding curve to move precision towards or away from the pole.
    """

    @classmethod
    def INPUT_TYPES(cls):
        return {
            "required": {
                "image": ("IMAGE", {"tooltip": "The normal map to convert."}),
                "direction": (
                    [BASIS_TO_QLOG, QLOG_TO_BASIS],
                    {
                        "default": BASIS_TO_QLOG,
                        "tooltip": "Basis to QLog encodes a standard normal map. QLog to Basis decodes it again.",
                    },
                ),
                "derive_z": (
                    "BOOLEAN",
                    {
                        "default": False,
                        "tooltip": "Rebuild Blue (Z) from Red/Green before encoding. Only applies to Basis to QLog.",
                    },
                ),
                "bias": (
                    "FLOAT",
                    {
                        "default": 0.0,
                        "min": -16.0,
                        "max": 16.0,
                        "step": 0.01,
                        "tooltip": "Precision bias. 0 is linear. Positive values favour angles near the normal, negative values favour steep angles. Use the same value to decode.",
                    },
                ),
            }
        }

    RETURN_TYPES = ("IMAGE",)
    FUNCTION = "convert"
    CATEGORY = f"{QLOG_NORMALS_CATEGORY}/NormalMap"
    DESCRIPTION = """Converts between basis-vector and quaternion-logarithm (QLog) normal maps.

• Basis to QLog: Encodes a standard tangent-space normal map. Blue is set to 0.5.
• QLog to Basis: Decodes a QLog normal map back to a standard one.
• Bias: Must match between encoding and decoding."""

    def convert(self, image: torch.Tensor, direction: str, derive_z: bool, bias: float) -> tuple[torch.Tensor]:
        inverse = direction == QLOG_TO_BASIS
        if inverse and derive_z:
            log_warning("QLogNormalConverter", "derive_z has no effect when decoding QLog normal maps.")

        config = ConversionConfig(inverse=inverse, derive_z=derive_z, bias=bias)
        log_verbose("QLogNormalConverter", f"{direction}: {len(image)} image(s), bias={bias}")

        converted_image = convert_buffer(image.clone(), config)
        return (converted_image,)
