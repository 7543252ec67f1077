# PBR node subpackage  # noqa: N999

from .qlog_normal_converter import QLogNormalConverter

__all__ = [
    "QLogNormalConverter",
]
