"""
Float image reading and writing for QLog Normals.

Images are exchanged as (H, W, C) float32 numpy arrays with RGB(A) channel order and
values nominally in [0, 1]. OpenCV handles the high precision formats (EXR, HDR and
16-bit PNG/TIFF), Pillow handles the remaining 8-bit formats.
"""

import os

# Enable OpenCV EXR support BEFORE cv2 is imported anywhere
# Must be set at module load time to take effect
os.environ["OPENCV_IO_ENABLE_OPENEXR"] = "1"

import numpy as np
from PIL import Image

from .utils import log_error, log_verbose

FLOAT_FORMATS = (".exr", ".hdr")
OPENCV_FORMATS = (".png", ".tif", ".tiff")
NUMPY_FORMATS = (".npy",)


class ImageIOError(RuntimeError):
    """Raised when an image cannot be read or written."""


def _extension(file_path: str) -> str:
    return os.path.splitext(file_path)[1].lower()


def _bgr_to_rgb(data: np.ndarray) -> np.ndarray:
    import cv2

    if data.ndim == 3 and data.shape[-1] == 3:
        return cv2.cvtColor(data, cv2.COLOR_BGR2RGB)
    if data.ndim == 3 and data.shape[-1] == 4:
        return cv2.cvtColor(data, cv2.COLOR_BGRA2RGBA)
    return data


def _rgb_to_bgr(data: np.ndarray) -> np.ndarray:
    import cv2

    if data.ndim == 3 and data.shape[-1] == 3:
        return cv2.cvtColor(data, cv2.COLOR_RGB2BGR)
    if data.ndim == 3 and data.shape[-1] == 4:
        return cv2.cvtColor(data, cv2.COLOR_RGBA2BGRA)
    return data


def _to_float(data: np.ndarray) -> np.ndarray:
    """Converts integer image data to float32 in [0, 1]; float data is kept as-is."""
    if np.issubdtype(data.dtype, np.integer):
        return data.astype(np.float32) / float(np.iinfo(data.dtype).max)
    return data.astype(np.float32)


def _read_opencv(file_path: str) -> np.ndarray:
    import cv2

    try:
        data = cv2.imread(file_path, cv2.IMREAD_UNCHANGED)
        if data is None:
            raise ImageIOError(f"OpenCV failed to read image file: {file_path}")
        log_verbose("Image Reader", f"Loaded {file_path}: shape={data.shape}, dtype={data.dtype}")
        return _to_float(_bgr_to_rgb(data))
    except cv2.error as e:
        raise ImageIOError(f"OpenCV failed to read image file {file_path}: {e}") from e


def _read_pillow(file_path: str) -> np.ndarray:
    with Image.open(file_path) as img:
        if img.mode not in ("RGB", "RGBA", "L"):
            img = img.convert("RGBA" if "A" in img.getbands() or "transparency" in img.info else "RGB")
        data = np.array(img)

    log_verbose("Image Reader", f"Loaded {file_path}: shape={data.shape}, dtype={data.dtype}")
    return _to_float(data)


def read_float_image(file_path: str) -> np.ndarray:
    """
    Loads an image as a float32 pixel buffer.

    Args:
        file_path: Path to an EXR, HDR, PNG, TIFF, NPY or any Pillow-readable image.

    Returns:
        numpy array of shape (H, W, C) with float32 dtype, RGB(A) channel order.
        Greyscale images come back with a single channel.

    Raises:
        ImageIOError: If the file is missing or cannot be decoded.
    """
    if not os.path.isfile(file_path):
        log_error("Image Reader", f"File not found: {file_path}")
        raise ImageIOError(f"File not found: {file_path}")

    ext = _extension(file_path)
    try:
        if ext in NUMPY_FORMATS:
            data = np.load(file_path).astype(np.float32)
        elif ext in FLOAT_FORMATS or ext in OPENCV_FORMATS:
            data = _read_opencv(file_path)
        else:
            data = _read_pillow(file_path)
    except ImageIOError as e:
        log_error("Image Reader", str(e))
        raise
    except (OSError, ValueError) as e:
        log_error("Image Reader", f"Could not read image file {file_path}: {e}")
        raise ImageIOError(f"Could not read image file {file_path}: {e}") from e

    if data.ndim == 2:
        data = data[..., np.newaxis]

    log_verbose("Image Reader", f"Value range: min={data.min():.4f}, max={data.max():.4f}")
    return np.ascontiguousarray(data)


def _write_opencv(data: np.ndarray, file_path: str) -> None:
    import cv2

    params = []
    if _extension(file_path) == ".exr":
        # Full float32 channels rather than half
        params = [cv2.IMWRITE_EXR_TYPE, cv2.IMWRITE_EXR_TYPE_FLOAT]

    try:
        written = cv2.imwrite(file_path, _rgb_to_bgr(data), params)
    except cv2.error as e:
        raise ImageIOError(f"OpenCV failed to save image file {file_path}: {e}") from e
    if not written:
        raise ImageIOError(f"OpenCV failed to save image file: {file_path}")


def write_float_image(image: np.ndarray, file_path: str) -> None:
    """
    Saves a float pixel buffer.

    EXR, HDR and NPY keep raw float values. Integer formats are clamped to [0, 1] first:
    PNG and TIFF are written with 16 bits per channel, other formats with 8 bits through
    Pillow. HDR files drop alpha, as do JPEG files.

    Args:
        image: numpy array of shape (H, W, C) or (H, W), RGB(A) channel order.
        file_path: Output path; the extension selects the format.

    Raises:
        ImageIOError: If the file cannot be written.
    """
    ext = _extension(file_path)
    data = np.asarray(image, dtype=np.float32)
    if data.ndim == 3 and data.shape[-1] == 1:
        data = data[..., 0]

    try:
        if ext in NUMPY_FORMATS:
            np.save(file_path, data)
        elif ext == ".exr":
            _write_opencv(data, file_path)
        elif ext == ".hdr":
            if data.ndim == 3 and data.shape[-1] == 4:
                data = data[..., :3]
            _write_opencv(data, file_path)
        elif ext in OPENCV_FORMATS:
            _write_opencv(np.round(np.clip(data, 0.0, 1.0) * 65535.0).astype(np.uint16), file_path)
        else:
            pixels = np.round(np.clip(data, 0.0, 1.0) * 255.0).astype(np.uint8)
            if ext in (".jpg", ".jpeg") and pixels.ndim == 3 and pixels.shape[-1] == 4:
                pixels = pixels[..., :3]
            Image.fromarray(pixels).save(file_path)
    except ImageIOError as e:
        log_error("Image Writer", str(e))
        raise
    except (OSError, ValueError) as e:
        log_error("Image Writer", f"Could not save image file {file_path}: {e}")
        raise ImageIOError(f"Could not save image file {file_path}: {e}") from e

    log_verbose("Image Writer", f"Saved {file_path}")
