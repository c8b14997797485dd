import io
from datetime import datetime, timezone

import numpy as np
import pytest
from PIL import Image
from pydicom.dataset import Dataset, FileMetaDataset
from pydicom.uid import ExplicitVRLittleEndian, SecondaryCaptureImageStorage, generate_uid

from medscan.inference.types import ImageCharacteristics, PixelBuffer


FIXED_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class ScriptedRng:
    """Stands in for numpy's Generator with pre-set draws."""

    def __init__(self, randoms=(), integers=()):
        self._randoms = list(randoms)
        self._integers = list(integers)

    def random(self):
        return self._randoms.pop(0)

    def integers(self, high):
        return self._integers.pop(0) % high

    def bytes(self, n):
        return bytes(n)


def image_bytes(arr: np.ndarray, fmt: str = "PNG", **save_kwargs) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


def dicom_bytes(arr: np.ndarray, photometric: str = "MONOCHROME2") -> bytes:
    meta = FileMetaDataset()
    meta.MediaStorageSOPClassUID = SecondaryCaptureImageStorage
    meta.MediaStorageSOPInstanceUID = generate_uid()
    meta.TransferSyntaxUID = ExplicitVRLittleEndian

    ds = Dataset()
    ds.file_meta = meta
    ds.SOPClassUID = SecondaryCaptureImageStorage
    ds.SOPInstanceUID = meta.MediaStorageSOPInstanceUID
    ds.Modality = "OT"
    ds.Rows, ds.Columns = arr.shape
    ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = photometric
    bits = arr.dtype.itemsize * 8
    ds.BitsAllocated = bits
    ds.BitsStored = bits
    ds.HighBit = bits - 1
    ds.PixelRepresentation = 0
    ds.PixelData = arr.tobytes()

    buf = io.BytesIO()
    ds.save_as(buf, enforce_file_format=True)
    return buf.getvalue()


def trimodal_gray(size: int = 512, dark: float = 0.35, bright: float = 0.15, seed: int = 0) -> np.ndarray:
    """Grayscale noise: ``dark`` share at 20, ``bright`` share at 220, the rest at 100."""
    n = size * size
    values = np.full(n, 100, dtype=np.uint8)
    idx = np.random.default_rng(seed).permutation(n)
    n_dark = int(dark * n)
    n_bright = int(bright * n)
    values[idx[:n_dark]] = 20
    values[idx[n_dark:n_dark + n_bright]] = 220
    return values.reshape(size, size)


def buffer_from_rgb(rgb: np.ndarray) -> PixelBuffer:
    h, w = rgb.shape[:2]
    rgba = np.full((h, w, 4), 255, dtype=np.uint8)
    rgba[..., :3] = rgb
    return PixelBuffer(width=w, height=h, data=rgba)


def make_chars(**overrides) -> ImageCharacteristics:
    values = dict(
        brightness=90.0,
        contrast=0.5,
        dark_ratio=0.35,
        bright_ratio=0.15,
        has_grayscale_look=True,
        has_anatomical_structures=True,
        is_dicom_like=True,
    )
    values.update(overrides)
    return ImageCharacteristics(**values)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_TIME
