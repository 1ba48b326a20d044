"""Translate service outcomes into distinguishable HTTP responses."""

from __future__ import annotations

from typing import NoReturn, TypeVar

from fastapi import HTTPException, status

from .services.outcomes import (
    Failure,
    IllegalStateTransition,
    NotFound,
    Outcome,
    OverlapConflict,
    PermissionDenied,
    ValidationFailure,
)

T = TypeVar("T")


def raise_for_failure(failure: Failure) -> NoReturn:
    # OverlapConflict is a ValidationFailure; it must be matched first
    if isinstance(failure, OverlapConflict):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "code": failure.code,
                "field": failure.field,
                "message": failure.message,
                "equipment_id": str(failure.equipment_id),
                "conflicting_reservation_ids": [str(i) for i in failure.conflicting_reservation_ids],
                "requested_start": failure.requested_start.isoformat(),
                "requested_end": failure.requested_end.isoformat(),
                "waitlist_available": True,
            },
        )
    if isinstance(failure, ValidationFailure):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": failure.code, "field": failure.field, "message": failure.message},
        )
    if isinstance(failure, IllegalStateTransition):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "code": "ILLEGAL_STATE_TRANSITION",
                "current_status": failure.current_status,
                "attempted": failure.attempted,
                "message": failure.message,
            },
        )
    if isinstance(failure, PermissionDenied):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "PERMISSION_DENIED",
                "resource": failure.resource,
                "action": failure.action,
                "message": failure.message,
            },
        )
    if isinstance(failure, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=failure.message)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="request rejected")


def unwrap(outcome: Outcome[T]) -> T:
    if outcome.failure is not None:
        raise_for_failure(outcome.failure)
    return outcome.value
