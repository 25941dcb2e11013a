from __future__ import annotations

from typing import Any, Iterable, Mapping, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel

from src.data_processing import FEATURE_COLUMNS, ID_COLUMN

OUTPUT_COLUMNS = [ID_COLUMN, "scored_label", "scored_prob"]

RecordLike = Union[BaseModel, Mapping[str, Any]]


def record_to_dict(record: RecordLike) -> dict:
    if isinstance(record, BaseModel):
        return record.model_dump()
    return dict(record)


def score_record(model, record: RecordLike) -> pd.DataFrame:
    """
    Score a single account with a trained model handle.

    Returns exactly one row with columns account_id, scored_label, scored_prob.
    Missing or mistyped fields are not checked here; they fail inside the
    model call.
    """
    values = record_to_dict(record)

    # 1-row frame in the column order the model was trained on
    X = pd.DataFrame([[values[c] for c in FEATURE_COLUMNS]], columns=FEATURE_COLUMNS)

    label = np.asarray(model.predict(X)).reshape(-1)[0]
    proba = np.asarray(model.predict_proba(X))[:, 1][0]

    return pd.DataFrame(
        [[values[ID_COLUMN], int(label), float(proba)]],
        columns=OUTPUT_COLUMNS,
    )


def score_records(model, records: Iterable[RecordLike]) -> pd.DataFrame:
    frames = [score_record(model, r) for r in records]
    if not frames:
        return pd.DataFrame(columns=OUTPUT_COLUMNS)
    return pd.concat(frames, ignore_index=True)
