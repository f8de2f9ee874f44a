import os
from pathlib import Path

from dotenv import load_dotenv


# =================================================
# Environment
# =================================================
BASE_DIR = Path(__file__).resolve().parents[1]
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH)

APP_NAME = os.getenv("APP_NAME", "febrile-illness-api")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", 30))
RATE_LIMIT_WINDOW = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", 60))


# =================================================
# Training / inference defaults
# =================================================
DEFAULT_MODEL_TYPE = os.getenv("DEFAULT_MODEL_TYPE", "neural")
SYNTHETIC_SAMPLES = int(os.getenv("SYNTHETIC_SAMPLES", 500))
CALIBRATION_STRATEGY = os.getenv("CALIBRATION_STRATEGY", "honest")
TRAIN_ON_STARTUP = os.getenv("TRAIN_ON_STARTUP", "false").lower() in ("1", "true", "yes")

_seed = os.getenv("RANDOM_SEED")
RANDOM_SEED = int(_seed) if _seed else None

MLFLOW_DIR = Path(os.getenv("MLFLOW_DIR", str(BASE_DIR / "mlruns")))
