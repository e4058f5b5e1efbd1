"""
services/tracking.py
--------------------
Optional MLflow experiment tracking for responder generations.

Enabled with MLFLOW_ENABLED=true. Each generation is logged as one run in
the "minichat-responder" experiment:
  - params:  engine, mode, tenant_id, environment
  - metrics: latency_ms, prompt_length, reply_length

Tracking never affects the reply: any failure is logged and ignored.

View the MLflow UI:
  mlflow ui --port 5001
"""

from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

EXPERIMENT_NAME = "minichat-responder"


def _get_mlflow():
    """mlflow ships in the optional `tracking` extra; None when it is absent."""
    try:
        import mlflow
    except ImportError:
        logger.warning(
            "MLFLOW_ENABLED is set but mlflow is missing",
            hint="pip install 'minichat-streaming[tracking]'",
        )
        return None
    return mlflow


def setup_tracking() -> bool:
    """Called once at responder startup. Returns whether tracking is active."""
    if not settings.MLFLOW_ENABLED:
        return False

    mlflow = _get_mlflow()
    if mlflow is None:
        return False

    mlflow.set_tracking_uri(settings.MLFLOW_TRACKING_URI)
    if mlflow.get_experiment_by_name(EXPERIMENT_NAME) is None:
        mlflow.create_experiment(EXPERIMENT_NAME)
        logger.info("MLflow experiment created", experiment=EXPERIMENT_NAME)
    mlflow.set_experiment(EXPERIMENT_NAME)
    logger.info("MLflow tracking initialised", uri=settings.MLFLOW_TRACKING_URI)
    return True


def track_generation(
    engine: str,
    mode: str,
    tenant_id: str,
    prompt: str,
    reply: str,
    latency_ms: float,
) -> Optional[str]:
    """Log one generation as an MLflow run. Returns the run id, or None."""
    if not settings.MLFLOW_ENABLED:
        return None

    mlflow = _get_mlflow()
    if mlflow is None:
        return None

    try:
        with mlflow.start_run() as run:
            mlflow.log_params({
                "engine":      engine,
                "mode":        mode,
                "tenant_id":   tenant_id,
                "environment": settings.APP_ENV,
            })
            mlflow.log_metrics({
                "latency_ms":    latency_ms,
                "prompt_length": float(len(prompt)),
                "reply_length":  float(len(reply)),
            })
            mlflow.set_tags({"tenant_id": tenant_id, "source": "responder"})
            return run.info.run_id
    except Exception as exc:
        # Never let tracking failures break the main request
        logger.warning("MLflow tracking failed (non-fatal)", error=str(exc))
        return None
