from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler

logger = logging.getLogger(__name__)

ID_COLUMN = "account_id"
TARGET_COLUMN = "bad_flag"

NUMERIC_FEATURES = [
    "amount_6",
    "pur_6",
    "avg_pur_amt_6",
    "avg_interval_pur_6",
    "credit_limit",
    "income",
    "age",
]
CATEGORICAL_FEATURES = ["marital_status", "sex", "education"]

# Order the model consumes its inputs in
FEATURE_COLUMNS = [
    "amount_6",
    "pur_6",
    "avg_pur_amt_6",
    "avg_interval_pur_6",
    "credit_limit",
    "marital_status",
    "sex",
    "education",
    "income",
    "age",
]

REQUIRED_COLUMNS = [ID_COLUMN, TARGET_COLUMN] + FEATURE_COLUMNS


def load_dataset(path: str, sep: str = ",") -> pd.DataFrame:
    """
    Read the full credit dataset (header row required) into memory.

    Identifier and categorical columns are kept as strings so the model sees
    the same dtypes at training and scoring time.
    """
    dtypes = {col: str for col in [ID_COLUMN] + CATEGORICAL_FEATURES}
    df = pd.read_csv(path, sep=sep, dtype=dtypes)

    missing_cols = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing_cols:
        raise ValueError(f"Missing required columns: {missing_cols}")

    logger.info("Loaded %d rows from %s", len(df), path)
    return df


def split_features_target(df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
    X = df[FEATURE_COLUMNS].copy()
    y = df[TARGET_COLUMN].astype(int)
    return X, y


@dataclass
class FeatureConfig:
    numeric_features: List[str]
    categorical_features: List[str]


def build_feature_config() -> FeatureConfig:
    return FeatureConfig(
        numeric_features=list(NUMERIC_FEATURES),
        categorical_features=list(CATEGORICAL_FEATURES),
    )


def build_preprocessor(config: FeatureConfig) -> ColumnTransformer:
    numeric_pipe = Pipeline(
        steps=[
            ("imputer", SimpleImputer(strategy="median")),
            ("scaler", StandardScaler()),
        ]
    )

    categorical_pipe = Pipeline(
        steps=[
            ("imputer", SimpleImputer(strategy="most_frequent")),
            ("onehot", OneHotEncoder(handle_unknown="ignore")),
        ]
    )

    preprocessor = ColumnTransformer(
        transformers=[
            ("num", numeric_pipe, config.numeric_features),
            ("cat", categorical_pipe, config.categorical_features),
        ]
    )
    return preprocessor
