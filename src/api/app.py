import asyncio
import json
import time
from collections import defaultdict

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest
from pydantic import ValidationError

from src.api.schemas import (
    BatchPredictionItem,
    BatchResponse,
    EvaluationMetricsModel,
    PatientRecord,
    PredictionResponse,
    TrainingStatus,
    TrainRequest,
    TrainResponse,
)
from src.config import (
    APP_NAME,
    CALIBRATION_STRATEGY,
    DEFAULT_MODEL_TYPE,
    RANDOM_SEED,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
    SYNTHETIC_SAMPLES,
    TRAIN_ON_STARTUP,
)
from src.data.parser import TabularParser, read_first_sheet
from src.errors import EmptyDataset, MalformedInput, ModelUnavailable, TrainingFailure
from src.log import logger
from src.models.calibration import CalibrationStrategy
from src.models.session import BatchResult, ModelSession


# =================================================
# Prometheus metrics
# =================================================
REQUEST_COUNT = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "api_request_latency_seconds",
    "API request latency",
    ["endpoint"],
)

PREDICTIONS_TOTAL = Counter(
    "model_predictions_total",
    "Total number of records predicted",
)

PREDICTION_ERRORS_TOTAL = Counter(
    "model_prediction_errors_total",
    "Total prediction errors",
)

PREDICTION_LATENCY = Histogram(
    "model_prediction_latency_seconds",
    "Prediction latency",
)

TRAINING_RUNS_TOTAL = Counter(
    "model_training_runs_total",
    "Training runs by model type and outcome",
    ["model_type", "status"],
)

TRAINING_DURATION = Histogram(
    "model_training_duration_seconds",
    "Wall-clock training time",
)


# =================================================
# Rate limiting storage
# =================================================
rate_limit_store = defaultdict(list)


# =================================================
# FastAPI app + session
# =================================================
app = FastAPI(title=APP_NAME)


def build_session() -> ModelSession:
    return ModelSession(
        parser=TabularParser(spreadsheet_reader=read_first_sheet),
        strategy=CalibrationStrategy(CALIBRATION_STRATEGY),
    )


app.state.session = build_session()
app.state.train_lock = asyncio.Lock()


# =================================================
# Startup: optional warm model
# =================================================
@app.on_event("startup")
async def warm_model():
    if not TRAIN_ON_STARTUP:
        logger.info("TRAIN_ON_STARTUP disabled, waiting for POST /train")
        return

    async with app.state.train_lock:
        summary = await app.state.session.train_async(
            model_type=DEFAULT_MODEL_TYPE,
            samples=SYNTHETIC_SAMPLES,
            seed=RANDOM_SEED,
        )
    logger.info("Startup model trained (accuracy=%.4f)", summary.accuracy)


# =================================================
# Middleware: logging + metrics
# =================================================
@app.middleware("http")
async def log_and_metrics(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status=str(response.status_code),
    ).inc()

    REQUEST_LATENCY.labels(
        endpoint=request.url.path
    ).observe(duration)

    logger.info(
        "%s %s status=%s latency=%.4fs",
        request.method,
        request.url.path,
        response.status_code,
        duration,
    )

    return response


def enforce_rate_limit(request: Request) -> None:
    client_ip = request.client.host if request.client else "unknown"
    now = time.time()

    rate_limit_store[client_ip] = [
        t for t in rate_limit_store[client_ip]
        if now - t < RATE_LIMIT_WINDOW
    ]

    if len(rate_limit_store[client_ip]) >= RATE_LIMIT_REQUESTS:
        PREDICTION_ERRORS_TOTAL.inc()
        raise HTTPException(
            status_code=429,
            detail="rate_limit_exceeded",
        )

    rate_limit_store[client_ip].append(now)


# =================================================
# Health check
# =================================================
@app.get("/")
def health():
    return {"status": "ok", "model_trained": app.state.session.is_trained}


# =================================================
# Training
# =================================================
@app.post("/train", response_model=TrainResponse)
async def train(body: TrainRequest):
    session: ModelSession = app.state.session

    async with app.state.train_lock:
        try:
            summary = await session.train_async(
                model_type=body.model_type,
                samples=body.samples,
                epochs=body.epochs,
                seed=body.seed if body.seed is not None else RANDOM_SEED,
            )
        except TrainingFailure as exc:
            TRAINING_RUNS_TOTAL.labels(model_type=body.model_type, status="failed").inc()
            raise HTTPException(status_code=500, detail=str(exc))
        except EmptyDataset as exc:
            TRAINING_RUNS_TOTAL.labels(model_type=body.model_type, status="failed").inc()
            raise HTTPException(status_code=400, detail=str(exc))

    TRAINING_RUNS_TOTAL.labels(model_type=body.model_type, status="success").inc()
    TRAINING_DURATION.observe(summary.training_time)

    return TrainResponse(
        model_type=summary.model_type,
        samples=summary.samples,
        epochs=summary.epochs,
        accuracy=round(summary.accuracy, 4),
        loss=round(summary.loss, 4),
        training_time=round(summary.training_time, 4),
    )


@app.get("/train/status", response_model=TrainingStatus)
def train_status():
    session: ModelSession = app.state.session
    progress = session.progress
    return TrainingStatus(
        trained=session.is_trained,
        running=progress.running,
        model_type=progress.model_type,
        epoch=progress.epoch,
        total_epochs=progress.total_epochs,
        logs=progress.logs,
    )


# =================================================
# Prediction endpoint
# =================================================
@app.post("/predict")
async def predict(request: Request):
    start_time = time.time()
    enforce_rate_limit(request)

    try:
        body = await request.json()
        data = PatientRecord(**body)
    except ValidationError as exc:
        PREDICTION_ERRORS_TOTAL.inc()
        return JSONResponse(
            status_code=422,
            content={"details": json.loads(exc.json(include_url=False))},
        )
    except Exception:
        PREDICTION_ERRORS_TOTAL.inc()
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_json"},
        )

    session: ModelSession = app.state.session
    if not session.is_trained:
        PREDICTION_ERRORS_TOTAL.inc()
        raise HTTPException(
            status_code=503,
            detail="model_not_trained",
        )

    try:
        decision = session.predict_record(data.model_dump())
    except Exception:
        PREDICTION_ERRORS_TOTAL.inc()
        logger.exception("Prediction failed")
        raise HTTPException(
            status_code=500,
            detail="prediction_failed",
        )

    PREDICTIONS_TOTAL.inc()
    PREDICTION_LATENCY.observe(time.time() - start_time)

    logger.info(
        json.dumps(
            {
                "event": "prediction",
                "prediction": decision.label,
                "confidence": round(decision.confidence, 4),
            }
        )
    )

    return PredictionResponse(
        prediction=decision.label,
        disease=decision.disease,
        confidence=round(decision.confidence, 4),
        probabilities={k: round(v, 4) for k, v in decision.probabilities.items()},
    )


def _batch_response(result: BatchResult) -> BatchResponse:
    metrics = None
    if result.metrics is not None:
        metrics = EvaluationMetricsModel(**result.metrics.to_dict())

    return BatchResponse(
        total_records=result.total_records,
        predictions=[
            BatchPredictionItem(
                id=p.id,
                prediction=p.predicted_label,
                disease=p.disease,
                confidence=round(p.confidence, 4),
                actual=p.actual_label,
            )
            for p in result.predictions
        ],
        confusion_matrix=(
            result.confusion_matrix.tolist()
            if result.confusion_matrix is not None
            else None
        ),
        metrics=metrics,
    )


@app.post("/predict/batch", response_model=BatchResponse)
async def predict_batch(request: Request, file: UploadFile = File(...)):
    start_time = time.time()
    enforce_rate_limit(request)

    session: ModelSession = app.state.session
    data = await file.read()

    try:
        result = session.predict_file(file.filename or "", data)
    except ModelUnavailable:
        PREDICTION_ERRORS_TOTAL.inc()
        raise HTTPException(status_code=503, detail="model_not_trained")
    except (MalformedInput, EmptyDataset) as exc:
        PREDICTION_ERRORS_TOTAL.inc()
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception:
        PREDICTION_ERRORS_TOTAL.inc()
        logger.exception("Batch prediction failed")
        raise HTTPException(
            status_code=500,
            detail="prediction_failed",
        )

    PREDICTIONS_TOTAL.inc(result.total_records)
    PREDICTION_LATENCY.observe(time.time() - start_time)

    logger.info(
        json.dumps(
            {
                "event": "batch_prediction",
                "records": result.total_records,
                "evaluated": result.metrics is not None,
            }
        )
    )

    return _batch_response(result)


# =================================================
# Metrics endpoint
# =================================================
@app.get("/metrics")
def metrics():
    return Response(
        generate_latest(),
        media_type="text/plain",
    )
