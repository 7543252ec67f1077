"""
Nodes package for QLog Normals.

This package organizes custom nodes into subpackages:
- pbr: Normal map encoding conversion.
"""  # noqa: N999

from .pbr import QLogNormalConverter

# All node classes for export
NODE_CLASSES = [
    QLogNormalConverter,
]

__all__ = [
    "QLogNormalConverter",
    # List
    "NODE_CLASSES",
]
