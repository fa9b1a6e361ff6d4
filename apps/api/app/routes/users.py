"""User routes. Every route requires an authenticated principal."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Path, status
from pydantic import ValidationError as PydanticValidationError

from app.domain.entities import Entity
from app.domain.field_policy import enforce_required
from app.errors import ValidationError, ValidationErrorKind
from app.repositories.users import UserRepository
from app.routes.dependencies import (
    accepted_user_fields,
    get_authenticated_principal,
    get_request_principal,
    get_user_repository,
)
from app.schemas.auth import AuthPrincipal
from app.schemas.error import ErrorResponse, FieldValidationError, NotFoundErrorResponse
from app.schemas.query import PaginatedResult, QueryDescriptor
from app.schemas.user import ImagePayload, User

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(get_authenticated_principal)],
    responses={401: {"model": ErrorResponse}},
)


def _image_payload(raw: Any) -> ImagePayload | None:
    if raw is None:
        return None
    try:
        return ImagePayload.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(
            ValidationErrorKind.INVALID_VALUE,
            "image",
            "The property image must be an object with a url",
        ) from exc


@router.post(
    "/getList",
    response_model=PaginatedResult,
    responses={400: {"model": FieldValidationError}},
)
async def get_list(
    query: QueryDescriptor,
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> PaginatedResult:
    return await repository.list(query)


@router.get(
    "/getOne/{id}",
    response_model=User,
    response_model_exclude_unset=True,
    responses={404: {"model": NotFoundErrorResponse}},
)
async def get_one(
    user_id: Annotated[str, Path(alias="id")],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> dict[str, Any]:
    return await repository.get_one(user_id)


@router.get(
    "/getAuthUser",
    response_model=User,
    response_model_exclude_unset=True,
    responses={404: {"model": NotFoundErrorResponse}},
)
async def get_auth_user(
    principal: Annotated[AuthPrincipal, Depends(get_request_principal)],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> dict[str, Any]:
    return await repository.get_authenticated(principal)


@router.post(
    "/create",
    response_model=User,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": FieldValidationError}, 409: {"model": ErrorResponse}},
)
async def create_user(
    payload: Annotated[dict[str, Any], Depends(accepted_user_fields)],
    principal: Annotated[AuthPrincipal, Depends(get_request_principal)],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> dict[str, Any]:
    enforce_required(Entity.USERS.value, payload)
    image = _image_payload(payload.pop("image"))
    return await repository.create(principal, payload, image)


@router.put(
    "/update/{id}",
    response_model=bool,
    responses={400: {"model": FieldValidationError}, 404: {"model": NotFoundErrorResponse}},
)
async def update_user(
    user_id: Annotated[str, Path(alias="id")],
    payload: Annotated[dict[str, Any], Depends(accepted_user_fields)],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> bool:
    image = _image_payload(payload.pop("image", None))
    document = await repository.update(user_id, payload, image)
    return bool(document)


@router.delete(
    "/delete/{id}",
    response_model=bool,
    responses={404: {"model": NotFoundErrorResponse}},
)
async def delete_user(
    user_id: Annotated[str, Path(alias="id")],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> bool:
    return await repository.delete(user_id)
