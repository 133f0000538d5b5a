from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Response

from .acl import WRITE, Capability, KeyAuthorizer
from .config import Settings, load_settings
from .repository import PanelRepository, RecordNotFoundError, load_seed
from .transformers import DanglingReferenceError, EggTransformer, EggVariableTransformer, NestTransformer
from .util import DecodeError
from .variables import VariableFields, VariablePayload, VariableService, VariableValidationError

logger = logging.getLogger(__name__)

app = FastAPI(title="eggpanel")

_repository: Optional[PanelRepository] = None


@lru_cache
def get_settings() -> Settings:
    return load_settings()


def get_repository(settings: Settings = Depends(get_settings)) -> PanelRepository:
    global _repository
    if _repository is None:
        _repository = load_seed(settings.seed_path) if settings.seed_path else PanelRepository()
    return _repository


def get_authorizer(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> KeyAuthorizer:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing API key")
    key = settings.key_for(authorization[7:].strip())
    if key is None:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return KeyAuthorizer(key.permissions)


def require_egg_write(authorizer: KeyAuthorizer = Depends(get_authorizer)) -> KeyAuthorizer:
    if not authorizer.for_action(WRITE).authorize(Capability.EGGS):
        raise HTTPException(status_code=403, detail="This API key may not modify eggs")
    return authorizer


def _render(transformer, model) -> dict[str, Any]:
    try:
        return transformer.serialize(model)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (DecodeError, DanglingReferenceError) as exc:
        logger.error("Failed to transform %s: %s", transformer.resource_name, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.get("/api/application/eggs/{egg_id}")
def get_egg(
    egg_id: int,
    include: Optional[str] = Query(default=None),
    repository: PanelRepository = Depends(get_repository),
    authorizer: KeyAuthorizer = Depends(get_authorizer),
) -> dict[str, Any]:
    try:
        egg = repository.get_egg(egg_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _render(EggTransformer(repository, authorizer, include), egg)


@app.get("/api/application/nests/{nest_id}")
def get_nest(
    nest_id: int,
    include: Optional[str] = Query(default=None),
    repository: PanelRepository = Depends(get_repository),
    authorizer: KeyAuthorizer = Depends(get_authorizer),
) -> dict[str, Any]:
    try:
        nest = repository.get_nest(nest_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _render(NestTransformer(repository, authorizer, include), nest)


@app.post("/api/application/eggs/{egg_id}/variables", status_code=201)
def create_egg_variable(
    egg_id: int,
    fields: VariableFields,
    repository: PanelRepository = Depends(get_repository),
    authorizer: KeyAuthorizer = Depends(require_egg_write),
) -> dict[str, Any]:
    try:
        variable = VariableService(repository).create(egg_id, fields)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except VariableValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return EggVariableTransformer(repository, authorizer).serialize(variable)


@app.patch("/api/application/eggs/{egg_id}/variables")
def update_egg_variables(
    egg_id: int,
    items: list[VariablePayload],
    repository: PanelRepository = Depends(get_repository),
    authorizer: KeyAuthorizer = Depends(require_egg_write),
) -> dict[str, Any]:
    try:
        variables = VariableService(repository).bulk_update(egg_id, items)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except VariableValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return EggVariableTransformer(repository, authorizer).serialize_collection(variables)


@app.delete("/api/application/eggs/{egg_id}/variables/{variable_id}", status_code=204)
def delete_egg_variable(
    egg_id: int,
    variable_id: int,
    repository: PanelRepository = Depends(get_repository),
    authorizer: KeyAuthorizer = Depends(require_egg_write),
) -> Response:
    try:
        VariableService(repository).delete(egg_id, variable_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


def main() -> None:
    import uvicorn

    from .logging_setup import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port)
