"""
Core PBR utilities for QLog Normals.

Contains helper functions for normal map processing, specifically for
converting between image data (0..1) and vector data (-1..1).
"""

import torch

# Single precision machine epsilon, used as the near-zero threshold for every guard.
FLOAT_EPSILON = float(torch.finfo(torch.float32).eps)


def image_to_normal(image: torch.Tensor) -> torch.Tensor:
    """
    Converts an image tensor with values in [0, 1] to a normal vector tensor with values in [-1, 1].

    Args:
        image: Input image tensor (..., C) range [0, 1]

    Returns:
        Normal tensor (..., C) range [-1, 1]
    """
    return (image * 2.0) - 1.0


def normal_to_image(normal: torch.Tensor) -> torch.Tensor:
    """
    Converts a normal vector tensor with values in [-1, 1] to an image tensor with values in [0, 1].

    Args:
        normal: Input normal tensor (..., C) range [-1, 1]

    Returns:
        Image tensor (..., C) range [0, 1]
    """
    return (normal + 1.0) * 0.5


def derive_z_from_xy(x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
    """
    Reconstructs the Z component of unit normals from their X and Y components.

    Args:
        x: Unpacked X values in [-1, 1]
        y: Unpacked Y values in [-1, 1]

    Returns:
        z = sqrt(1 - x² - y²), or exactly 0 where 1 - x² - y² falls below FLOAT_EPSILON.
    """
    remainder = 1.0 - (x * x + y * y)
    z = torch.sqrt(torch.clamp(remainder, min=0.0))
    return torch.where(remainder < FLOAT_EPSILON, torch.zeros_like(z), z)
