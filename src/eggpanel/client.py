from __future__ import annotations

import json
from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar

import httpx
from pydantic import BaseModel, Field

from .util import ensure_unique

T = TypeVar("T")


class PanelRequestError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None, detail: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class EggVariableResource(BaseModel):
    id: int
    egg_id: int
    name: str
    description: Optional[str] = None
    env_variable: str
    default_value: Optional[str] = None
    user_viewable: bool
    user_editable: bool
    rules: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class EggRelations(BaseModel):
    variables: Optional[list[EggVariableResource]] = None


class EggResource(BaseModel):
    id: int
    uuid: str
    name: str
    nest: int
    author: str
    description: Optional[str] = None
    docker_image: str = ""
    docker_images: list[str] = Field(default_factory=list)
    config: dict[str, Any] = Field(default_factory=dict)
    startup: Optional[str] = None
    script: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    relations: EggRelations = Field(default_factory=EggRelations)


def _variables_from_list(body: Mapping[str, Any]) -> list[EggVariableResource]:
    return [EggVariableResource.model_validate(item["attributes"]) for item in body.get("data", [])]


def egg_from_item(body: Mapping[str, Any]) -> EggResource:
    attributes = dict(body["attributes"])
    relationships = attributes.pop("relationships", {})
    relations = EggRelations()
    variables = relationships.get("variables")
    if variables and variables.get("object") == "list":
        relations.variables = _variables_from_list(variables)
    return EggResource.model_validate({**attributes, "relations": relations})


def _error_detail(response: httpx.Response) -> Any:
    try:
        body = response.json()
    except json.JSONDecodeError:
        return response.text
    if isinstance(body, dict) and "detail" in body:
        return body["detail"]
    return body


def _as_object(body: Any) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise TypeError("expected a JSON object")
    return body


def _include_params(include: Iterable[str]) -> dict[str, str]:
    if isinstance(include, str):
        include = include.split(",")
    names = ensure_unique(name.strip() for name in include if name.strip())
    return {"include": ",".join(names)} if names else {}


class PanelClient:
    """Thin client for the egg endpoints of the application API."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        token: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = 20.0,
    ) -> None:
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.token = token

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "PanelClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self.http.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = _error_detail(exc.response)
            raise PanelRequestError(
                f"{method} {path} failed with {exc.response.status_code}: {detail}",
                status_code=exc.response.status_code,
                detail=detail,
            ) from exc
        except httpx.HTTPError as exc:
            raise PanelRequestError(f"{method} {path} failed: {exc}") from exc
        return response

    def _parse(self, method: str, path: str, parser: Callable[[Any], T], **kwargs: Any) -> T:
        response = self._request(method, path, **kwargs)
        try:
            return parser(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors.
            raise PanelRequestError(
                f"{method} {path} returned an unexpected body: {exc}",
                status_code=response.status_code,
            ) from exc

    def get_egg_raw(self, egg_id: int, include: Iterable[str] = ()) -> dict[str, Any]:
        return self._parse("GET", f"/api/application/eggs/{egg_id}", _as_object, params=_include_params(include))

    def get_egg(self, egg_id: int, include: Iterable[str] = ()) -> EggResource:
        return self._parse("GET", f"/api/application/eggs/{egg_id}", egg_from_item, params=_include_params(include))

    def create_egg_variable(self, egg_id: int, fields: Mapping[str, Any]) -> EggVariableResource:
        return self._parse(
            "POST",
            f"/api/application/eggs/{egg_id}/variables",
            lambda body: EggVariableResource.model_validate(body["attributes"]),
            json=dict(fields),
        )

    def update_egg_variables(self, egg_id: int, variables: Iterable[Mapping[str, Any]]) -> list[EggVariableResource]:
        payload = [dict(item) for item in variables]
        return self._parse("PATCH", f"/api/application/eggs/{egg_id}/variables", _variables_from_list, json=payload)

    def delete_egg_variable(self, egg_id: int, variable_id: int) -> None:
        self._request("DELETE", f"/api/application/eggs/{egg_id}/variables/{variable_id}")
