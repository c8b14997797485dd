from typing import Dict, List, Tuple

from medscan.inference.types import BodyPart, ScanType, Severity


BODY_PART_WEIGHTS: Dict[ScanType, List[Tuple[BodyPart, float]]] = {
    ScanType.XRAY: [
        (BodyPart.CHEST, 0.4),
        (BodyPart.EXTREMITIES, 0.3),
        (BodyPart.SPINE, 0.2),
        (BodyPart.ABDOMEN, 0.1),
    ],
    ScanType.MRI: [
        (BodyPart.BRAIN, 0.4),
        (BodyPart.SPINE, 0.3),
        (BodyPart.HEART, 0.2),
        (BodyPart.ABDOMEN, 0.1),
    ],
    ScanType.CT: [
        (BodyPart.CHEST, 0.3),
        (BodyPart.ABDOMEN, 0.3),
        (BodyPart.BRAIN, 0.2),
        (BodyPart.HEART, 0.2),
    ],
}

ALL_BODY_PARTS: List[BodyPart] = [
    BodyPart.CHEST,
    BodyPart.BRAIN,
    BodyPart.HEART,
    BodyPart.ABDOMEN,
    BodyPart.SPINE,
    BodyPart.EXTREMITIES,
]

NORMAL_FINDINGS: Dict[BodyPart, List[str]] = {
    BodyPart.CHEST: [
        "Clear lung fields bilaterally",
        "Normal cardiac silhouette",
        "No acute cardiopulmonary abnormalities",
        "Normal mediastinal contours",
    ],
    BodyPart.BRAIN: [
        "No acute intracranial abnormalities",
        "Normal brain parenchyma",
        "No midline shift",
        "Ventricular system appears normal",
    ],
    BodyPart.HEART: [
        "Normal cardiac anatomy",
        "No pericardial effusion",
        "Normal chamber sizes",
        "No wall motion abnormalities",
    ],
    BodyPart.ABDOMEN: [
        "Normal abdominal anatomy",
        "No free fluid",
        "Normal organ enhancement",
        "No acute abnormalities",
    ],
    BodyPart.SPINE: [
        "Normal vertebral alignment",
        "No acute fractures",
        "Normal disc spaces",
        "No spinal canal stenosis",
    ],
    BodyPart.EXTREMITIES: [
        "No acute fractures",
        "Normal bone density",
        "No joint effusions",
        "Normal soft tissue",
    ],
}

ABNORMAL_FINDINGS: Dict[BodyPart, List[str]] = {
    BodyPart.CHEST: [
        "Possible consolidation in lower lobe",
        "Mild cardiomegaly",
        "Small pleural effusion",
        "Increased interstitial markings",
    ],
    BodyPart.BRAIN: [
        "Small hypodense lesion",
        "Mild cerebral atrophy",
        "Possible small vessel disease",
        "Subtle mass effect",
    ],
    BodyPart.HEART: [
        "Mild left ventricular enlargement",
        "Possible wall motion abnormality",
        "Mild mitral regurgitation",
        "Coronary calcifications",
    ],
    BodyPart.ABDOMEN: [
        "Mild hepatomegaly",
        "Small amount of free fluid",
        "Possible renal cyst",
        "Bowel wall thickening",
    ],
    BodyPart.SPINE: [
        "Mild degenerative changes",
        "Possible disc herniation",
        "Vertebral compression",
        "Spinal stenosis",
    ],
    BodyPart.EXTREMITIES: [
        "Possible hairline fracture",
        "Joint space narrowing",
        "Soft tissue swelling",
        "Bone density loss",
    ],
}

BASE_RECOMMENDATIONS: Dict[Severity, List[str]] = {
    Severity.NORMAL: [
        "No immediate action required",
        "Routine follow-up as clinically indicated",
    ],
    Severity.MILD: [
        "Clinical correlation recommended",
        "Consider follow-up imaging in 3-6 months",
    ],
    Severity.MODERATE: [
        "Further evaluation recommended",
        "Consider additional imaging studies",
        "Clinical consultation advised",
    ],
}

# (body part, finding substring, extra recommendation)
FOLLOW_UP_RULES: List[Tuple[BodyPart, str, str]] = [
    (BodyPart.CHEST, "consolidation", "Consider chest CT for further evaluation"),
    (BodyPart.BRAIN, "lesion", "MRI with contrast recommended"),
    (BodyPart.HEART, "enlargement", "Echocardiogram recommended"),
]

INVALID_FINDING = "Invalid medical scan detected"
INVALID_RECOMMENDATION = "Please upload a valid medical scan (X-ray, MRI, CT, etc.)"

SCAN_REQUIREMENTS = {
    "extension": "Supported formats are DICOM (.dcm, .dicom), JPG and PNG",
    "grayscale": "Medical scans should be grayscale; colour photographs are rejected",
    "contrast": "The image should show distinct dark and bright regions",
    "brightness": "The image is too bright overall to be a typical scan",
    "file_size": "The file is too small to be a diagnostic-quality scan",
}
