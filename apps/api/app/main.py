"""FastAPI application entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

from app.core.background import BackgroundTasks
from app.errors import ApiError
from app.repositories.documents import InMemoryDocumentStore
from app.routes import root_router, users_router


_OPENAPI_RESPONSE_CODES: dict[str, dict[str, set[str]]] = {
    "/users/getList": {"post": {"200", "400", "401", "422"}},
    "/users/getOne/{id}": {"get": {"200", "401", "404"}},
    "/users/getAuthUser": {"get": {"200", "401", "404"}},
    "/users/create": {"post": {"201", "400", "401", "409"}},
    "/users/update/{id}": {"put": {"200", "400", "401", "404"}},
    "/users/delete/{id}": {"delete": {"200", "401", "404"}},
}


def _apply_contract_response_codes(schema: dict) -> None:
    """Limit documented response codes to the ones each route can produce."""
    for path, methods in _OPENAPI_RESPONSE_CODES.items():
        path_item = schema.get("paths", {}).get(path)
        if not path_item:
            continue

        for method, allowed_codes in methods.items():
            operation = path_item.get(method)
            if not operation:
                continue

            responses = operation.setdefault("responses", {})
            for status_code in list(responses.keys()):
                if status_code not in allowed_codes:
                    responses.pop(status_code, None)

            for status_code in sorted(allowed_codes):
                responses.setdefault(status_code, {"description": "See API contract"})


def create_app() -> FastAPI:
    background_tasks = BackgroundTasks()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await background_tasks.drain()

    app = FastAPI(title="Curator API", version="1.0.0", lifespan=lifespan)
    app.state.store = InMemoryDocumentStore()
    app.state.background_tasks = background_tasks

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    app.include_router(root_router)
    app.include_router(users_router)

    def custom_openapi() -> dict:
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )
        _apply_contract_response_codes(schema)
        app.openapi_schema = schema
        return app.openapi_schema

    app.openapi = custom_openapi

    return app


app = create_app()
