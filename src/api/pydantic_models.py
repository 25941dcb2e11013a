from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class CreditRecord(BaseModel):
    """One account row, as consumed by the scoring adapter. Every field is required."""

    account_id: str = Field(..., examples=["a_1"])
    amount_6: float = Field(..., description="Transaction amount over the last 6 months")
    pur_6: float = Field(..., description="Number of purchases over the last 6 months")
    avg_pur_amt_6: float = Field(..., description="Average purchase amount over the last 6 months")
    avg_interval_pur_6: float = Field(..., description="Average days between purchases over the last 6 months")
    credit_limit: float
    marital_status: str
    sex: str
    education: str
    income: float
    age: float


class ScoreResponse(BaseModel):
    account_id: str
    scored_label: int
    scored_prob: float


class ConsumeResponse(BaseModel):
    answer: List[ScoreResponse]


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class PublishRequest(BaseModel):
    model_config = {"protected_namespaces": ()}

    name: str = Field(..., pattern=r"^[A-Za-z0-9_-]+$")
    version: str = Field(..., pattern=r"^[A-Za-z0-9._-]+$", examples=["1.0.0"])
    model_uri: str = Field(..., description="Local path or mlflow model URI of the trained model")
    description: str = ""


class UpdateRequest(BaseModel):
    model_config = {"protected_namespaces": ()}

    model_uri: str
    expected_revision: Optional[int] = Field(
        None, description="Reject the update unless the service is still at this revision"
    )
    description: Optional[str] = None


class ServiceInfo(BaseModel):
    model_config = {"protected_namespaces": ()}

    name: str
    version: str
    revision: int
    description: str
    model_uri: Optional[str] = None
    inputs: Dict[str, str]
    outputs: Dict[str, str]
    created_at_utc: datetime
    updated_at_utc: datetime
