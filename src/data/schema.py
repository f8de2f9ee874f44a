"""
Canonical record schema shared by training and inference.

Column order defines feature-vector position and must never drift between the
synthetic cohort, uploaded files and single-record requests.
"""

from typing import Dict, List, Optional


DEMOGRAPHIC_COLUMNS = [
    "age",
    "gender",
    "residence",
]

OCCUPATION_COLUMNS = [
    "homemaker",
    "student",
    "professional",
    "merchant",
    "agriculture_livestock",
    "various_jobs",
    "unemployed",
]

CLINICAL_COLUMNS = [
    "hospitalization_days",
    "body_temperature",
]

SYMPTOM_COLUMNS = [
    "fever",
    "headache",
    "dizziness",
    "loss_of_appetite",
    "weakness",
    "myalgias",
    "arthralgias",
    "eye_pain",
    "hemorrhages",
    "vomiting",
    "abdominal_pain",
    "chills",
    "hemoptysis",
    "edema",
    "jaundice",
    "bruises",
    "petechiae",
    "rash",
    "diarrhea",
    "respiratory_difficulty",
    "itching",
]

LAB_COLUMNS = [
    "hematocrit",
    "hemoglobin",
    "red_blood_cells",
    "white_blood_cells",
    "neutrophils",
    "eosinophils",
    "basophils",
    "monocytes",
    "lymphocytes",
    "platelets",
    "AST",
    "ALT",
    "ALP",
    "total_bilirubin",
    "direct_bilirubin",
    "indirect_bilirubin",
    "total_proteins",
    "albumin",
    "creatinine",
    "urea",
]

FEATURE_COLUMNS: List[str] = (
    DEMOGRAPHIC_COLUMNS
    + OCCUPATION_COLUMNS
    + CLINICAL_COLUMNS
    + SYMPTOM_COLUMNS
    + LAB_COLUMNS
)
N_FEATURES = len(FEATURE_COLUMNS)

FLAG_COLUMNS = OCCUPATION_COLUMNS + SYMPTOM_COLUMNS
BINARY_COLUMNS = ["gender", "residence"] + FLAG_COLUMNS

LABEL_COLUMN = "diagnosis"

DISEASE_LABELS = ["Dengue", "Malaria", "Leptospirosis"]
N_CLASSES = len(DISEASE_LABELS)

# Lower-case diagnosis text -> label, used when encoding training/eval files.
DISEASE_MAP: Dict[str, int] = {
    name.lower(): idx for idx, name in enumerate(DISEASE_LABELS)
}

# "urbana" is the Spanish form used on hospital admission forms.
URBAN_VALUES = ("urban", "urbana")


def column_index(name: str) -> int:
    return FEATURE_COLUMNS.index(name)


def label_from_diagnosis(text: Optional[str]) -> int:
    """Encoding-side lookup: unrecognised text falls back to label 0."""
    return DISEASE_MAP.get((text or "").strip().lower(), 0)


def resolve_label(text: Optional[str]) -> Optional[int]:
    """
    Evaluation-side lookup. Accepts disease names in any case and the 1-based
    codes "1", "2", "3". Returns None when the label cannot be resolved, so the
    record is left out of the confusion matrix instead of counting as Dengue.
    """
    if text is None:
        return None
    key = str(text).strip().lower()
    if key in DISEASE_MAP:
        return DISEASE_MAP[key]
    if key in ("1", "2", "3"):
        return int(key) - 1
    return None


def validate_schema() -> None:
    if N_FEATURES != 53:
        raise ValueError(f"Feature schema must have 53 columns, got {N_FEATURES}")

    lowered = [c.lower() for c in FEATURE_COLUMNS]
    if len(set(lowered)) != len(lowered):
        raise ValueError("Feature schema has duplicate (case-insensitive) column names")

    if LABEL_COLUMN in lowered:
        raise ValueError("Label column must not be part of the feature schema")


validate_schema()
