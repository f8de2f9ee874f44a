from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


Flag = Optional[int]


class PatientRecord(BaseModel):                 # One patient, 53 schema fields; missing fields encode as 0
    # Demographics
    age: Optional[float] = Field(None, ge=0, le=120)
    gender: Optional[Literal["M", "F", "m", "f"]] = None
    residence: Optional[str] = None             # "urban"/"urbana" -> 1, anything else -> 0

    # Occupation flags
    homemaker: Flag = Field(None, ge=0, le=1)
    student: Flag = Field(None, ge=0, le=1)
    professional: Flag = Field(None, ge=0, le=1)
    merchant: Flag = Field(None, ge=0, le=1)
    agriculture_livestock: Flag = Field(None, ge=0, le=1)
    various_jobs: Flag = Field(None, ge=0, le=1)
    unemployed: Flag = Field(None, ge=0, le=1)

    # Admission
    hospitalization_days: Optional[float] = Field(None, ge=0, le=60)
    body_temperature: Optional[float] = Field(None, ge=30, le=45)

    # Symptom flags
    fever: Flag = Field(None, ge=0, le=1)
    headache: Flag = Field(None, ge=0, le=1)
    dizziness: Flag = Field(None, ge=0, le=1)
    loss_of_appetite: Flag = Field(None, ge=0, le=1)
    weakness: Flag = Field(None, ge=0, le=1)
    myalgias: Flag = Field(None, ge=0, le=1)
    arthralgias: Flag = Field(None, ge=0, le=1)
    eye_pain: Flag = Field(None, ge=0, le=1)
    hemorrhages: Flag = Field(None, ge=0, le=1)
    vomiting: Flag = Field(None, ge=0, le=1)
    abdominal_pain: Flag = Field(None, ge=0, le=1)
    chills: Flag = Field(None, ge=0, le=1)
    hemoptysis: Flag = Field(None, ge=0, le=1)
    edema: Flag = Field(None, ge=0, le=1)
    jaundice: Flag = Field(None, ge=0, le=1)
    bruises: Flag = Field(None, ge=0, le=1)
    petechiae: Flag = Field(None, ge=0, le=1)
    rash: Flag = Field(None, ge=0, le=1)
    diarrhea: Flag = Field(None, ge=0, le=1)
    respiratory_difficulty: Flag = Field(None, ge=0, le=1)
    itching: Flag = Field(None, ge=0, le=1)

    # Laboratory
    hematocrit: Optional[float] = Field(None, ge=0, le=100)
    hemoglobin: Optional[float] = Field(None, ge=0, le=25)
    red_blood_cells: Optional[float] = Field(None, ge=0, le=10)
    white_blood_cells: Optional[float] = Field(None, ge=0, le=100)
    neutrophils: Optional[float] = Field(None, ge=0, le=100)
    eosinophils: Optional[float] = Field(None, ge=0, le=100)
    basophils: Optional[float] = Field(None, ge=0, le=100)
    monocytes: Optional[float] = Field(None, ge=0, le=100)
    lymphocytes: Optional[float] = Field(None, ge=0, le=100)
    platelets: Optional[float] = Field(None, ge=0, le=2000)
    AST: Optional[float] = Field(None, ge=0, le=10000)
    ALT: Optional[float] = Field(None, ge=0, le=10000)
    ALP: Optional[float] = Field(None, ge=0, le=10000)
    total_bilirubin: Optional[float] = Field(None, ge=0, le=50)
    direct_bilirubin: Optional[float] = Field(None, ge=0, le=50)
    indirect_bilirubin: Optional[float] = Field(None, ge=0, le=50)
    total_proteins: Optional[float] = Field(None, ge=0, le=20)
    albumin: Optional[float] = Field(None, ge=0, le=10)
    creatinine: Optional[float] = Field(None, ge=0, le=30)
    urea: Optional[float] = Field(None, ge=0, le=500)


class PredictionResponse(BaseModel):            # Response schema returned after prediction
    prediction: int                             # Predicted class (0 = Dengue, 1 = Malaria, 2 = Leptospirosis)
    disease: str                                # Disease name for the predicted class
    confidence: float                           # Calibrated probability of the predicted class
    probabilities: Dict[str, float]             # Calibrated probability per disease


class TrainRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_type: Literal["logistic", "neural"] = "neural"
    samples: int = Field(500, ge=3, le=20000)
    epochs: Optional[int] = Field(None, ge=1, le=500)
    seed: Optional[int] = None


class TrainResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_type: str
    samples: int
    epochs: int
    accuracy: float
    loss: float
    training_time: float


class TrainingStatus(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    trained: bool
    running: bool
    model_type: Optional[str] = None
    epoch: int = 0
    total_epochs: int = 0
    logs: Dict[str, float] = {}


class BatchPredictionItem(BaseModel):
    id: int
    prediction: int
    disease: str
    confidence: float
    actual: Optional[int] = None


class EvaluationMetricsModel(BaseModel):
    accuracy: float
    precision: float
    recall: float
    f1: float


class BatchResponse(BaseModel):
    total_records: int
    predictions: List[BatchPredictionItem]
    confusion_matrix: Optional[List[List[int]]] = None
    metrics: Optional[EvaluationMetricsModel] = None
