import numpy as np
import pandas as pd
import pytest
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.config import Settings
from src.registry import InMemoryServiceRegistry

USERNAME = "analyst"
PASSWORD = "s3cret"


class StubModel:
    """Stands in for the trained pipeline: fixed label and positive-class probability."""

    def __init__(self, label: int, prob: float):
        self.label = label
        self.prob = prob
        self.seen = []

    def predict(self, X):
        self.seen.append(X)
        return np.full(len(X), self.label)

    def predict_proba(self, X):
        return np.tile([1.0 - self.prob, self.prob], (len(X), 1))


def example_record() -> dict:
    return {
        "account_id": "a_1",
        "amount_6": 173.22,
        "pur_6": 1,
        "avg_pur_amt_6": 173.22,
        "avg_interval_pur_6": 0,
        "credit_limit": 5.26,
        "marital_status": "married",
        "sex": "male",
        "education": "undergraduate",
        "income": 12.36,
        "age": 38,
    }


def synthetic_credit_frame(n: int = 300, seed: int = 0) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    pur_6 = rng.integers(0, 20, n)
    amount_6 = rng.gamma(2.0, 150.0, n)
    credit_limit = rng.uniform(1, 30, n)
    income = rng.uniform(5, 60, n)
    df = pd.DataFrame(
        {
            "account_id": [f"a_{i}" for i in range(n)],
            "amount_6": amount_6,
            "pur_6": pur_6,
            "avg_pur_amt_6": amount_6 / np.maximum(pur_6, 1),
            "avg_interval_pur_6": rng.uniform(0, 60, n),
            "credit_limit": credit_limit,
            "marital_status": rng.choice(["married", "single", "divorced"], n),
            "sex": rng.choice(["male", "female"], n),
            "education": rng.choice(["undergraduate", "graduate", "high_school"], n),
            "income": income,
            "age": rng.integers(18, 70, n),
        }
    )
    # defaults concentrate on high limit / low income accounts
    risk = credit_limit / income + rng.normal(0, 0.3, n)
    df["bad_flag"] = (risk > np.median(risk)).astype(int)
    return df


@pytest.fixture
def settings():
    return Settings(deploy_username=USERNAME, deploy_password=PASSWORD, token_ttl_seconds=600)


@pytest.fixture
def models():
    return {
        "models/v1": StubModel(label=0, prob=0.12),
        "models/v2": StubModel(label=1, prob=0.87),
    }


@pytest.fixture
def registry():
    return InMemoryServiceRegistry()


@pytest.fixture
def app(registry, models, settings):
    return create_app(registry=registry, model_loader=models.__getitem__, settings=settings)


@pytest.fixture
def http(app):
    return TestClient(app)


@pytest.fixture
def auth_headers(http):
    resp = http.post("/login", json={"username": USERNAME, "password": PASSWORD})
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def record():
    return example_record()


@pytest.fixture
def stub_model():
    return StubModel


@pytest.fixture
def credit_frame():
    return synthetic_credit_frame()
