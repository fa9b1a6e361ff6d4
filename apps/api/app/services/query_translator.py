"""Translate a declarative query descriptor into a paginated store fetch."""

from __future__ import annotations

import asyncio
import re
from typing import Any

from app.domain.entities import EntityDescriptor, describe
from app.errors import ValidationError, ValidationErrorKind
from app.repositories.documents import DocumentStore, Population, is_operator_expression
from app.schemas.query import PaginatedResult, PopulationRequest, QueryDescriptor

_LOGICAL_KEYS = ("$and", "$or")


def total_pages(count: int, limit: int) -> int:
    """Page count for ``count`` results at ``limit`` per page.

    Floors on purpose: 25 results at 10 per page report 2 pages. A zero
    limit means one unpaginated page.
    """
    if limit == 0:
        return 1
    return count // limit


class QueryTranslator:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def list(self, entity_name: str, descriptor: QueryDescriptor) -> PaginatedResult:
        entity = describe(entity_name)
        self._check_filter(entity, descriptor.filter)
        self._check_fields(entity, descriptor.sort)
        self._check_fields(entity, descriptor.projection or {})
        population = self._population(entity, descriptor.population)

        count, documents = await asyncio.gather(
            self._store.count(entity.name, descriptor.filter),
            self._store.find(
                entity.name,
                descriptor.filter,
                projection=descriptor.projection,
                sort=descriptor.sort,
                skip=descriptor.skip,
                limit=descriptor.limit,
                population=population,
            ),
        )
        return PaginatedResult(
            count=count,
            page=descriptor.page,
            total_pages=total_pages(count, descriptor.limit),
            data=documents,
        )

    def _check_filter(self, entity: EntityDescriptor, filter: dict[str, Any]) -> None:
        for key, condition in filter.items():
            if key.startswith("$"):
                self._check_operator(key)
                if key not in _LOGICAL_KEYS:
                    raise ValidationError(
                        ValidationErrorKind.UNSUPPORTED_OPERATOR,
                        key,
                        f"Operator {key} is not supported at the top level of a filter",
                    )
                clauses = condition if isinstance(condition, list) else [condition]
                for clause in clauses:
                    if not isinstance(clause, dict) or not isinstance(condition, list):
                        raise ValidationError(
                            ValidationErrorKind.INVALID_VALUE,
                            key,
                            f"{key} expects a list of filter objects",
                        )
                    self._check_filter(entity, clause)
                continue

            self._check_field(entity, key)
            self._check_condition(key, condition)

    def _check_fields(self, entity: EntityDescriptor, fields: dict[str, Any]) -> None:
        for key in fields:
            self._check_field(entity, key)

    @staticmethod
    def _check_field(entity: EntityDescriptor, key: str) -> None:
        if not entity.is_queryable(key.split(".", 1)[0]):
            raise ValidationError(
                ValidationErrorKind.UNKNOWN_FIELD,
                key,
                f"The property {key} cannot be queried",
            )

    def _check_condition(self, key: str, condition: Any) -> None:
        if not is_operator_expression(condition):
            return
        for operator, operand in condition.items():
            self._check_operator(operator)
            if operator in ("$in", "$nin") and not isinstance(operand, list):
                raise ValidationError(
                    ValidationErrorKind.INVALID_VALUE,
                    key,
                    f"{operator} on {key} expects a list",
                )
            if operator == "$options" and not isinstance(operand, str):
                raise ValidationError(
                    ValidationErrorKind.INVALID_VALUE,
                    key,
                    f"$options on {key} must be a string",
                )
            if operator == "$regex":
                try:
                    re.compile(operand)
                except (re.error, TypeError) as exc:
                    raise ValidationError(
                        ValidationErrorKind.INVALID_VALUE,
                        key,
                        f"$regex on {key} is not a valid pattern",
                    ) from exc

    def _check_operator(self, operator: str) -> None:
        if operator not in self._store.supported_operators:
            raise ValidationError(
                ValidationErrorKind.UNSUPPORTED_OPERATOR,
                operator,
                f"Operator {operator} is not supported",
            )

    def _population(
        self,
        entity: EntityDescriptor,
        requested: list[str | PopulationRequest],
    ) -> list[Population]:
        population: list[Population] = []
        for item in requested:
            request = PopulationRequest(path=item) if isinstance(item, str) else item
            collection = entity.references.get(request.path)
            if collection is None:
                raise ValidationError(
                    ValidationErrorKind.UNKNOWN_FIELD,
                    request.path,
                    f"The property {request.path} cannot be populated",
                )
            for key, condition in (request.match or {}).items():
                if key.startswith("$"):
                    self._check_operator(key)
                else:
                    self._check_condition(key, condition)
            population.append(
                Population(
                    path=request.path,
                    collection=collection,
                    match=request.match,
                    select=request.select,
                )
            )
        return population


__all__ = ["QueryTranslator", "total_pages"]
