from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import mlflow
import mlflow.sklearn
import pandas as pd
from sklearn.ensemble import GradientBoostingClassifier
from sklearn.metrics import accuracy_score, f1_score, precision_score, recall_score, roc_auc_score
from sklearn.model_selection import train_test_split
from sklearn.pipeline import Pipeline

from src.config import Settings, configure_logging
from src.data_processing import build_feature_config, build_preprocessor, load_dataset, split_features_target

logger = logging.getLogger(__name__)

DEFAULT_PARAMS: Dict[str, Any] = {
    "n_estimators": 100,
    "learning_rate": 0.1,
    "max_depth": 3,
}

# skops, the mlflow default, rejects tree internals on load
SERIALIZATION_FORMAT = mlflow.sklearn.SERIALIZATION_FORMAT_CLOUDPICKLE


@dataclass
class TrainingResult:
    model: Pipeline
    metrics: Dict[str, float]
    params: Dict[str, Any]
    run_id: Optional[str] = None
    model_uri: Optional[str] = None


def build_model(random_state: int = 42, **params) -> Pipeline:
    """Unfitted preprocess + gradient-boosted trees pipeline."""
    model_params = {**DEFAULT_PARAMS, **params}
    preprocessor = build_preprocessor(build_feature_config())
    return Pipeline(
        [
            ("preprocess", preprocessor),
            ("model", GradientBoostingClassifier(random_state=random_state, **model_params)),
        ]
    )


def evaluate(y_true, y_pred, y_proba) -> dict:
    return {
        "accuracy": accuracy_score(y_true, y_pred),
        "precision": precision_score(y_true, y_pred, zero_division=0),
        "recall": recall_score(y_true, y_pred, zero_division=0),
        "f1": f1_score(y_true, y_pred, zero_division=0),
        "roc_auc": roc_auc_score(y_true, y_proba),
    }


def train_model(
    df: pd.DataFrame,
    random_state: int = 42,
    test_size: float = 0.2,
    **params,
) -> TrainingResult:
    """
    Fit the default classifier on a stratified training split and score it
    on the held-out split.

    The fitted pipeline is the model handle bound into services; it is never
    refitted in place.
    """
    X, y = split_features_target(df)

    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=test_size, stratify=y, random_state=random_state
    )

    model = build_model(random_state=random_state, **params)
    model.fit(X_train, y_train)

    y_pred = model.predict(X_test)
    y_proba = model.predict_proba(X_test)[:, 1]
    metrics = evaluate(y_test, y_pred, y_proba)

    logger.info(
        "Trained on %d rows, evaluated on %d rows | roc_auc=%.4f",
        len(X_train),
        len(X_test),
        metrics["roc_auc"],
    )
    return TrainingResult(model=model, metrics=metrics, params={**DEFAULT_PARAMS, **params})


def save_model_handle(model: Pipeline, path: str) -> str:
    mlflow.sklearn.save_model(model, path, serialization_format=SERIALIZATION_FORMAT)
    logger.info("Model saved to %s", path)
    return path


def load_model_handle(model_uri: str) -> Pipeline:
    """Load a model handle from a local directory or any mlflow model URI."""
    return mlflow.sklearn.load_model(model_uri)


def main(
    data_path: str,
    experiment_name: str,
    random_state: int,
    output_dir: Optional[str] = None,
) -> TrainingResult:
    settings = Settings.from_env()
    mlflow.set_tracking_uri(settings.mlflow_tracking_uri)
    mlflow.set_experiment(experiment_name)

    raw = load_dataset(data_path)

    with mlflow.start_run(run_name="gradient_boosting") as run:
        result = train_model(raw, random_state=random_state)

        mlflow.log_param("model_type", "gradient_boosting")
        mlflow.log_param("random_state", random_state)
        mlflow.log_params(result.params)
        mlflow.log_metrics(result.metrics)
        model_info = mlflow.sklearn.log_model(
            result.model, name="model", serialization_format=SERIALIZATION_FORMAT
        )
        result.run_id = run.info.run_id
        result.model_uri = model_info.model_uri

        logger.info("ROC-AUC: %.4f", result.metrics["roc_auc"])
        logger.info("Run id: %s (model uri %s)", result.run_id, result.model_uri)

    if output_dir:
        save_model_handle(result.model, output_dir)

    return result


if __name__ == "__main__":
    p = argparse.ArgumentParser()
    p.add_argument("--data_path", default="data/raw/credit_default.csv")
    p.add_argument("--experiment_name", default="credit-default")
    p.add_argument("--random_state", type=int, default=42)
    p.add_argument("--output_dir", default=None, help="Also save the model handle to this directory")
    args = p.parse_args()

    configure_logging(Settings.from_env().log_level)
    main(args.data_path, args.experiment_name, args.random_state, args.output_dir)
