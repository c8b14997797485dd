from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np


class ScanType(str, Enum):
    XRAY = "X-ray"
    MRI = "MRI"
    CT = "CT Scan"
    ULTRASOUND = "Ultrasound"
    GENERIC = "Medical Scan"


class BodyPart(str, Enum):
    CHEST = "Chest"
    BRAIN = "Brain"
    HEART = "Heart"
    ABDOMEN = "Abdomen"
    SPINE = "Spine"
    EXTREMITIES = "Extremities"


class Severity(str, Enum):
    NORMAL = "normal"
    MILD = "mild"
    MODERATE = "moderate"
    ERROR = "error"


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """Decoded image as a flat RGBA byte sequence (row-major, 4 values per pixel)."""

    width: int
    height: int
    data: np.ndarray

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"image dimensions must be positive, got {self.width}x{self.height}")
        flat = np.array(self.data, dtype=np.uint8).reshape(-1)
        if flat.size != self.width * self.height * 4:
            raise ValueError(
                f"expected {self.width * self.height * 4} RGBA values, got {flat.size}"
            )
        flat.flags.writeable = False
        object.__setattr__(self, "data", flat)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def rgba(self) -> np.ndarray:
        """(pixel_count, 4) view of the buffer."""
        return self.data.reshape(-1, 4)


@dataclass(frozen=True)
class ImageCharacteristics:
    brightness: float
    contrast: float
    dark_ratio: float
    bright_ratio: float
    has_grayscale_look: bool
    has_anatomical_structures: bool
    is_dicom_like: bool

    def to_dict(self, full: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "brightness": self.brightness,
            "contrast": self.contrast,
            "hasAnatomicalStructures": self.has_anatomical_structures,
            "isDicomLike": self.is_dicom_like,
        }
        if full:
            out.update(
                {
                    "darkRatio": self.dark_ratio,
                    "brightRatio": self.bright_ratio,
                    "hasGrayscaleLook": self.has_grayscale_look,
                }
            )
        return out


@dataclass(frozen=True)
class ScanClassification:
    is_valid_medical_scan: bool
    scan_type: Optional[ScanType] = None
    body_part: Optional[BodyPart] = None
    failed_checks: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ScanUpload:
    """An uploaded file as the browser hands it over."""

    name: str
    data: bytes
    content_type: str = "application/octet-stream"
    last_modified: int = 0  # epoch milliseconds
    size: Optional[int] = None

    @property
    def byte_size(self) -> int:
        return len(self.data) if self.size is None else self.size


@dataclass(frozen=True)
class FileInfo:
    name: str
    size: int
    type: str
    last_modified: int

    @classmethod
    def from_upload(cls, upload: ScanUpload) -> "FileInfo":
        return cls(
            name=upload.name,
            size=upload.byte_size,
            type=upload.content_type,
            last_modified=upload.last_modified,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "type": self.type,
            "lastModified": self.last_modified,
        }


@dataclass(frozen=True)
class SyntheticReport:
    confidence: int
    findings: Tuple[str, ...]
    severity: Severity
    recommendations: Tuple[str, ...]


@dataclass(frozen=True)
class AnalysisResult:
    classification: ScanClassification
    characteristics: ImageCharacteristics
    confidence: int
    findings: Tuple[str, ...]
    severity: Severity
    recommendations: Tuple[str, ...]
    file: FileInfo
    uploaded_at: datetime
    id: str

    @property
    def is_valid_medical_scan(self) -> bool:
        return self.classification.is_valid_medical_scan

    @property
    def scan_type(self) -> Optional[ScanType]:
        return self.classification.scan_type

    @property
    def body_part(self) -> Optional[BodyPart]:
        return self.classification.body_part

    @property
    def summary(self) -> str:
        if not self.is_valid_medical_scan:
            return "The uploaded file does not appear to be a valid medical scan"
        return (
            f"{self.scan_type.value} of {self.body_part.value} analyzed with "
            f"{self.confidence}% confidence"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "isValidMedicalScan": self.is_valid_medical_scan,
            "scanType": self.scan_type.value if self.scan_type else None,
            "bodyPart": self.body_part.value if self.body_part else None,
            "confidence": self.confidence,
            "findings": list(self.findings),
            "severity": self.severity.value,
            "recommendations": list(self.recommendations),
            "imageCharacteristics": self.characteristics.to_dict(),
            "file": self.file.to_dict(),
            "uploadedAt": self.uploaded_at.isoformat(),
        }
