import io
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from pathlib import Path
from typing import Optional

import numpy as np
import pydicom
from PIL import Image, UnidentifiedImageError
from pydicom.errors import InvalidDicomError

from medscan.inference.errors import DecodeError
from medscan.inference.types import PixelBuffer

logger = logging.getLogger(__name__)

DICOM_EXTS = {".dcm", ".dicom"}
# Pillow modes holding 16/32-bit integer or float samples
WIDE_MODES = {"I", "F"}


def is_dicom(data: bytes, filename: str = "") -> bool:
    if Path(filename).suffix.lower() in DICOM_EXTS:
        return True
    # Part 10 files carry "DICM" after a 128 byte preamble
    return len(data) >= 132 and data[128:132] == b"DICM"


def _to_uint8(arr: np.ndarray) -> np.ndarray:
    if arr.dtype == np.uint8:
        return arr
    arr = np.nan_to_num(arr.astype("float32"))
    arr = (arr - arr.min()) / (arr.max() - arr.min() + 1e-6)
    return (arr * 255.0).astype("uint8")


def _rgba_from_array(arr: np.ndarray) -> PixelBuffer:
    if arr.ndim == 2:
        h, w = arr.shape
        rgba = np.empty((h, w, 4), dtype=np.uint8)
        rgba[..., :3] = arr[..., None]
        rgba[..., 3] = 255
    elif arr.ndim == 3 and arr.shape[-1] in (3, 4):
        h, w = arr.shape[:2]
        rgba = np.full((h, w, 4), 255, dtype=np.uint8)
        rgba[..., : arr.shape[-1]] = arr
    else:
        raise ValueError(f"unsupported pixel array shape {arr.shape}")
    return PixelBuffer(width=w, height=h, data=rgba)


def _decode_dicom(data: bytes) -> PixelBuffer:
    ds = pydicom.dcmread(io.BytesIO(data))
    arr = ds.pixel_array
    samples = int(getattr(ds, "SamplesPerPixel", 1))
    frames = int(getattr(ds, "NumberOfFrames", 1) or 1)
    if frames > 1:
        arr = arr[0]
    if samples == 1 and arr.ndim == 3:
        # stacked slices without NumberOfFrames: take the first
        arr = arr[0]
    arr = _to_uint8(arr)
    if getattr(ds, "PhotometricInterpretation", "") == "MONOCHROME1":
        arr = 255 - arr
    return _rgba_from_array(arr)


def _decode_raster(data: bytes) -> PixelBuffer:
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        if img.mode in WIDE_MODES or img.mode.startswith("I;16"):
            # convert("RGBA") clips wide samples at 255; rescale them like DICOM
            return _rgba_from_array(_to_uint8(np.asarray(img)))
        rgba = img.convert("RGBA")
        try:
            width, height = rgba.size
            arr = np.asarray(rgba, dtype=np.uint8)
        finally:
            rgba.close()
    return PixelBuffer(width=width, height=height, data=arr)


def decode_image(data: bytes, filename: str = "") -> PixelBuffer:
    """Decode raw upload bytes into an RGBA PixelBuffer.

    DICOM goes through pydicom, everything else through Pillow. Any decoder
    failure is reported as DecodeError.
    """
    if not data:
        raise DecodeError("empty file", filename=filename or None)
    try:
        if is_dicom(data, filename):
            return _decode_dicom(data)
        return _decode_raster(data)
    except DecodeError:
        raise
    except (UnidentifiedImageError, InvalidDicomError, Image.DecompressionBombError) as e:
        raise DecodeError(f"unsupported or corrupt image: {e}", filename=filename or None) from e
    except (OSError, ValueError, AttributeError, KeyError, RuntimeError, TypeError) as e:
        raise DecodeError(f"failed to decode image: {e}", filename=filename or None) from e


def load_pixel_buffer(data: bytes, filename: str = "", timeout_s: Optional[float] = None) -> PixelBuffer:
    """decode_image with an optional deadline.

    The decode runs on a single-use worker thread; past ``timeout_s`` the
    call gives up with DecodeError and leaves the worker to finish on its own.
    """
    if timeout_s is None:
        return decode_image(data, filename)
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="medscan-decode")
    try:
        future = executor.submit(decode_image, data, filename)
        try:
            return future.result(timeout=timeout_s)
        except FutureTimeout as e:
            future.cancel()
            logger.warning("Decoding %s timed out after %.1fs", filename or "<upload>", timeout_s)
            raise DecodeError(f"decode timed out after {timeout_s:.1f}s", filename=filename or None) from e
    finally:
        executor.shutdown(wait=False)
