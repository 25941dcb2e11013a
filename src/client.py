"""
Remote client for the scoring service.

Mirrors the publish / get / consume / update / delete flow of the service
API. Errors come back as the exceptions in src.exceptions; nothing is
retried.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx
import pandas as pd

from src.exceptions import (
    AuthenticationError,
    DeploymentError,
    RevisionConflictError,
    ServiceAlreadyExistsError,
    ServiceNotFoundError,
)
from src.scoring import OUTPUT_COLUMNS, RecordLike, record_to_dict

logger = logging.getLogger(__name__)


class ServiceHandle:
    """A published name+version, callable through the client that fetched it."""

    def __init__(self, client: "DeployClient", info: Dict[str, Any]):
        self._client = client
        self.info = info

    @property
    def name(self) -> str:
        return self.info["name"]

    @property
    def version(self) -> str:
        return self.info["version"]

    @property
    def revision(self) -> int:
        return self.info["revision"]

    def consume(self, record: RecordLike) -> pd.DataFrame:
        body = self._client._request(
            "POST", f"/services/{self.name}/{self.version}/consume",
            self.name, self.version, json=record_to_dict(record),
        ).json()
        return pd.DataFrame(body["answer"], columns=OUTPUT_COLUMNS)

    def swagger(self) -> Dict[str, Any]:
        return self._client._request(
            "GET", f"/services/{self.name}/{self.version}/swagger.json", self.name, self.version
        ).json()

    def __repr__(self) -> str:
        return f"ServiceHandle(name={self.name!r}, version={self.version!r}, revision={self.revision})"


class DeployClient:
    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        http: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        self._owns_http = http is None
        self._http = http if http is not None else httpx.Client(base_url=base_url, timeout=timeout)
        try:
            self._token = self._login(username, password)
        except DeploymentError:
            self.close()
            raise

    def __enter__(self) -> "DeployClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise DeploymentError(f"{method} {path} failed: {e}") from e

    def _login(self, username: str, password: str) -> str:
        resp = self._send("POST", "/login", json={"username": username, "password": password})
        if resp.status_code == 401:
            raise AuthenticationError(_detail(resp))
        if resp.is_error:
            raise DeploymentError(f"Login failed ({resp.status_code}): {_detail(resp)}")
        return resp.json()["access_token"]

    def _request(
        self,
        method: str,
        path: str,
        name: Optional[str] = None,
        version: Optional[str] = None,
        conflict: Optional[Callable[[], DeploymentError]] = None,
        **kwargs,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._token}"}
        resp = self._send(method, path, headers=headers, **kwargs)
        if not resp.is_error:
            return resp

        detail = _detail(resp)
        if resp.status_code == 401:
            raise AuthenticationError(detail)
        if resp.status_code == 404 and name is not None:
            raise ServiceNotFoundError(name, version)
        if resp.status_code == 409 and name is not None:
            if conflict is not None:
                raise conflict()
            raise ServiceAlreadyExistsError(name, version)
        raise DeploymentError(f"{method} {path} failed ({resp.status_code}): {detail}")

    def publish_service(self, name: str, version: str, model_uri: str, description: str = "") -> ServiceHandle:
        resp = self._request(
            "POST", "/services", name, version,
            json={"name": name, "version": version, "model_uri": model_uri, "description": description},
        )
        logger.info("Published %s/%s from %s", name, version, model_uri)
        return ServiceHandle(self, resp.json())

    def get_service(self, name: str, version: str) -> ServiceHandle:
        resp = self._request("GET", f"/services/{name}/{version}", name, version)
        return ServiceHandle(self, resp.json())

    def update_service(
        self,
        name: str,
        version: str,
        model_uri: str,
        expected_revision: Optional[int] = None,
        description: Optional[str] = None,
    ) -> ServiceHandle:
        payload: Dict[str, Any] = {"model_uri": model_uri, "expected_revision": expected_revision}
        if description is not None:
            payload["description"] = description
        resp = self._request(
            "PATCH", f"/services/{name}/{version}", name, version,
            conflict=lambda: RevisionConflictError(name, version, expected_revision),
            json=payload,
        )
        logger.info("Updated %s/%s from %s", name, version, model_uri)
        return ServiceHandle(self, resp.json())

    def delete_service(self, name: str, version: str) -> None:
        self._request("DELETE", f"/services/{name}/{version}", name, version)
        logger.info("Deleted %s/%s", name, version)

    def list_services(self) -> List[ServiceHandle]:
        resp = self._request("GET", "/services")
        return [ServiceHandle(self, info) for info in resp.json()]

    def close(self) -> None:
        if self._owns_http:
            self._http.close()


def _detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return resp.text
