import logging
from typing import Any, Callable, Dict, List, Optional

import mlflow
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.api.auth import TokenStore
from src.api.pydantic_models import (
    ConsumeResponse,
    CreditRecord,
    LoginRequest,
    PublishRequest,
    ScoreResponse,
    ServiceInfo,
    TokenResponse,
    UpdateRequest,
)
from src.config import Settings, configure_logging
from src.exceptions import (
    AuthenticationError,
    RevisionConflictError,
    ServiceAlreadyExistsError,
    ServiceNotFoundError,
)
from src.registry import InMemoryServiceRegistry, ServiceEntry, ServiceRegistry
from src.schema import OUTPUT_SCHEMA, build_interface_descriptor, input_type_tags
from src.scoring import score_record
from src.train import load_model_handle

logger = logging.getLogger(__name__)

ModelLoader = Callable[[str], Any]

_bearer = HTTPBearer(auto_error=False)

router = APIRouter(prefix="/services", tags=["services"])


def get_registry(request: Request) -> ServiceRegistry:
    return request.app.state.registry


def require_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        return request.app.state.tokens.authenticate(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))


def _service_info(entry: ServiceEntry) -> ServiceInfo:
    return ServiceInfo(
        name=entry.name,
        version=entry.version,
        revision=entry.revision,
        description=entry.description,
        model_uri=entry.model_uri,
        inputs=entry.inputs,
        outputs=entry.outputs,
        created_at_utc=entry.created_at_utc,
        updated_at_utc=entry.updated_at_utc,
    )


def _load_model(request: Request, model_uri: str) -> Any:
    try:
        return request.app.state.model_loader(model_uri)
    except Exception as e:
        logger.error(f"Could not load model from {model_uri}: {e}")
        raise HTTPException(status_code=400, detail=f"Could not load model: {e}")


def _lookup(registry: ServiceRegistry, name: str, version: str) -> ServiceEntry:
    try:
        return registry.get(name, version)
    except ServiceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=ServiceInfo, status_code=201)
def publish_service(
    req: PublishRequest,
    request: Request,
    registry: ServiceRegistry = Depends(get_registry),
    _user: str = Depends(require_token),
) -> ServiceInfo:
    model = _load_model(request, req.model_uri)
    try:
        entry = registry.publish(
            name=req.name,
            version=req.version,
            adapter=score_record,
            model=model,
            inputs=input_type_tags(CreditRecord),
            outputs=OUTPUT_SCHEMA,
            description=req.description,
            model_uri=req.model_uri,
        )
    except ServiceAlreadyExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _service_info(entry)


@router.get("", response_model=List[ServiceInfo])
def list_services(
    name: Optional[str] = None,
    registry: ServiceRegistry = Depends(get_registry),
    _user: str = Depends(require_token),
) -> List[ServiceInfo]:
    return [_service_info(e) for e in registry.list_services(name)]


@router.get("/{name}/{version}", response_model=ServiceInfo)
def get_service(
    name: str,
    version: str,
    registry: ServiceRegistry = Depends(get_registry),
    _user: str = Depends(require_token),
) -> ServiceInfo:
    return _service_info(_lookup(registry, name, version))


@router.get("/{name}/{version}/swagger.json")
def get_swagger(
    name: str,
    version: str,
    registry: ServiceRegistry = Depends(get_registry),
    _user: str = Depends(require_token),
) -> Dict[str, Any]:
    entry = _lookup(registry, name, version)
    return build_interface_descriptor(
        entry.name, entry.version, entry.inputs, entry.outputs, description=entry.description
    )


@router.post("/{name}/{version}/consume", response_model=ConsumeResponse)
def consume_service(
    name: str,
    version: str,
    record: CreditRecord,
    registry: ServiceRegistry = Depends(get_registry),
    _user: str = Depends(require_token),
) -> ConsumeResponse:
    entry = _lookup(registry, name, version)
    try:
        scored = entry.consume(record)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Inference failed: {e}")

    rows = [
        ScoreResponse(account_id=str(r.account_id), scored_label=int(r.scored_label), scored_prob=float(r.scored_prob))
        for r in scored.itertuples(index=False)
    ]
    return ConsumeResponse(answer=rows)


@router.patch("/{name}/{version}", response_model=ServiceInfo)
def update_service(
    name: str,
    version: str,
    req: UpdateRequest,
    request: Request,
    registry: ServiceRegistry = Depends(get_registry),
    _user: str = Depends(require_token),
) -> ServiceInfo:
    _lookup(registry, name, version)
    model = _load_model(request, req.model_uri)
    try:
        entry = registry.update(
            name,
            version,
            model,
            expected_revision=req.expected_revision,
            model_uri=req.model_uri,
            description=req.description,
        )
    except ServiceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RevisionConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _service_info(entry)


@router.delete("/{name}/{version}", status_code=204)
def delete_service(
    name: str,
    version: str,
    registry: ServiceRegistry = Depends(get_registry),
    _user: str = Depends(require_token),
) -> Response:
    try:
        registry.delete(name, version)
    except ServiceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def create_app(
    registry: Optional[ServiceRegistry] = None,
    model_loader: Optional[ModelLoader] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(title="Credit Default Scoring Service", version="1.0.0")
    app.state.settings = settings
    app.state.registry = registry if registry is not None else InMemoryServiceRegistry()
    app.state.model_loader = model_loader or load_model_handle
    app.state.tokens = TokenStore(
        settings.deploy_username,
        settings.deploy_password,
        ttl_seconds=settings.token_ttl_seconds,
    )

    @app.on_event("startup")
    def startup() -> None:
        configure_logging(settings.log_level)
        mlflow.set_tracking_uri(settings.mlflow_tracking_uri)

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok", "services": len(app.state.registry.list_services())}

    @app.post("/login", response_model=TokenResponse)
    def login(req: LoginRequest) -> TokenResponse:
        tokens: TokenStore = app.state.tokens
        try:
            token = tokens.login(req.username, req.password)
        except AuthenticationError as e:
            raise HTTPException(status_code=401, detail=str(e))
        return TokenResponse(access_token=token, expires_in=tokens.ttl_seconds)

    app.include_router(router)
    return app


app = create_app()
