"""Pixel statistics that decide whether an upload looks like a scan.

``contrast`` here is the share of pixels that are either very dark or very
bright. It is a bimodality proxy rather than a photometric contrast, and the
classifier thresholds are tuned against exactly this definition.
"""
from typing import Optional

import numpy as np

from medscan.config import ExtractorConfig
from medscan.inference.types import ImageCharacteristics, PixelBuffer


def pixel_brightness(buffer: PixelBuffer) -> np.ndarray:
    """Per-pixel mean of R, G and B as float64 (alpha ignored)."""
    rgb = buffer.rgba()[:, :3].astype(np.float64)
    return rgb.mean(axis=1)


def mean_color_variance(buffer: PixelBuffer, sample_size: int = 1000) -> float:
    """Average |R-G| + |G-B| + |R-B| over the first ``sample_size`` pixels."""
    n = min(sample_size, buffer.pixel_count)
    rgb = buffer.rgba()[:n, :3].astype(np.int16)
    r, g, b = rgb[:, 0], rgb[:, 1], rgb[:, 2]
    variance = np.abs(r - g) + np.abs(g - b) + np.abs(r - b)
    return float(variance.mean())


def extract_characteristics(
    buffer: PixelBuffer, config: Optional[ExtractorConfig] = None
) -> ImageCharacteristics:
    config = config or ExtractorConfig()
    brightness = pixel_brightness(buffer)
    count = brightness.size

    avg_brightness = float(brightness.sum() / count)
    dark_ratio = float(np.count_nonzero(brightness < config.dark_threshold) / count)
    bright_ratio = float(np.count_nonzero(brightness > config.bright_threshold) / count)
    contrast = dark_ratio + bright_ratio

    grayscale = mean_color_variance(buffer, config.grayscale_sample_size) < config.grayscale_variance_max
    high_contrast = contrast > config.high_contrast

    return ImageCharacteristics(
        brightness=avg_brightness,
        contrast=contrast,
        dark_ratio=dark_ratio,
        bright_ratio=bright_ratio,
        has_grayscale_look=grayscale,
        has_anatomical_structures=high_contrast and grayscale,
        is_dicom_like=avg_brightness < config.dicom_brightness_max and high_contrast,
    )
