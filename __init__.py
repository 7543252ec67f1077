# QLog Normals - Quaternion-logarithm normal map conversion for game textures  # noqa: N999
# Root package entry point for ComfyUI node discovery

from .nodes import QLogNormalConverter

# --- Node Registration ---

NODE_CLASS_MAPPINGS = {
    "QLogNormalConverter": QLogNormalConverter,
}

NODE_DISPLAY_NAME_MAPPINGS = {
    "QLogNormalConverter": "QLog Normal Map Converter",
}

# Web directory for JavaScript extensions (settings panel)
WEB_DIRECTORY = "./web"

__all__ = ["NODE_CLASS_MAPPINGS", "NODE_DISPLAY_NAME_MAPPINGS", "WEB_DIRECTORY"]
