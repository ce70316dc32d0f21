"""
Gateway route management endpoints.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from gateway_admin.api.helpers import sync_after_mutation, to_http_exception
from gateway_admin.core.auth import require_api_key
from gateway_admin.core.database import get_db
from gateway_admin.core.exceptions import GatewayAdminError
from gateway_admin.dependencies import get_sync_scheduler
from gateway_admin.schemas.route import (
    RateLimitRequest,
    RouteCreateRequest,
    RouteListResponse,
    RouteMutationResponse,
    RouteResponse,
    RouteUpdateRequest,
)
from gateway_admin.schemas.sync import DeleteResponse
from gateway_admin.services.route_service import RouteService
from gateway_admin.services.sync_scheduler import SyncScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=RouteListResponse)
def list_routes(db: Session = Depends(get_db)):
    """List all routes with their allowed IPs and rate limit."""
    try:
        routes = RouteService(db).list_routes()
        return RouteListResponse(
            items=[RouteResponse.model_validate(route) for route in routes],
            total=len(routes),
        )
    except Exception as e:
        logger.error(f"Error listing routes: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve routes",
        )


@router.get("/{route_pk}", response_model=RouteResponse)
def get_route(route_pk: int, db: Session = Depends(get_db)):
    """Get one route by id."""
    try:
        return RouteResponse.model_validate(RouteService(db).get_route(route_pk))
    except GatewayAdminError as e:
        raise to_http_exception(e)


@router.post("/", response_model=RouteMutationResponse, status_code=status.HTTP_201_CREATED)
def create_route(
    request: RouteCreateRequest,
    _: str = Depends(require_api_key),
    db: Session = Depends(get_db),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """Create a route, then replicate it to the live store."""
    try:
        route = RouteService(db).create_route(
            route_id=request.route_id,
            uri=request.uri,
            predicates=request.predicates,
            with_token=request.with_token,
            with_rate_limit=request.with_rate_limit,
            max_requests=request.rate_limit.max_requests if request.rate_limit else None,
            time_window_ms=request.rate_limit.time_window_ms if request.rate_limit else None,
            allowed_ips=request.allowed_ips,
        )
        response = RouteResponse.model_validate(route).model_dump()
    except GatewayAdminError as e:
        db.rollback()
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error creating route: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create route",
        )

    return RouteMutationResponse(**response, sync=sync_after_mutation(scheduler))


@router.put("/{route_pk}", response_model=RouteMutationResponse)
def update_route(
    route_pk: int,
    request: RouteUpdateRequest,
    _: str = Depends(require_api_key),
    db: Session = Depends(get_db),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """Update a route, then replicate."""
    try:
        route = RouteService(db).update_route(
            route_pk,
            route_id=request.route_id,
            uri=request.uri,
            predicates=request.predicates,
            with_token=request.with_token,
            with_rate_limit=request.with_rate_limit,
            max_requests=request.rate_limit.max_requests if request.rate_limit else None,
            time_window_ms=request.rate_limit.time_window_ms if request.rate_limit else None,
        )
        response = RouteResponse.model_validate(route).model_dump()
    except GatewayAdminError as e:
        db.rollback()
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating route {route_pk}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update route",
        )

    return RouteMutationResponse(**response, sync=sync_after_mutation(scheduler))


@router.delete("/{route_pk}", response_model=DeleteResponse)
def delete_route(
    route_pk: int,
    _: str = Depends(require_api_key),
    db: Session = Depends(get_db),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """
    Delete a route.

    Its allowed IPs and rate limit are deleted with it.
    """
    try:
        RouteService(db).delete_route(route_pk)
    except GatewayAdminError as e:
        db.rollback()
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error deleting route {route_pk}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete route",
        )

    return DeleteResponse(
        message="Route deleted successfully",
        id=route_pk,
        sync=sync_after_mutation(scheduler),
    )


@router.put("/{route_pk}/rate-limit", response_model=RouteMutationResponse)
def set_rate_limit(
    route_pk: int,
    request: RateLimitRequest,
    _: str = Depends(require_api_key),
    db: Session = Depends(get_db),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """Create or replace a route's rate limit and enable rate limiting."""
    service = RouteService(db)
    try:
        service.set_rate_limit(route_pk, request.max_requests, request.time_window_ms)
        response = RouteResponse.model_validate(service.get_route(route_pk)).model_dump()
    except GatewayAdminError as e:
        db.rollback()
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error setting rate limit for route {route_pk}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to set rate limit",
        )

    return RouteMutationResponse(**response, sync=sync_after_mutation(scheduler))


@router.delete("/{route_pk}/rate-limit", response_model=RouteMutationResponse)
def remove_rate_limit(
    route_pk: int,
    _: str = Depends(require_api_key),
    db: Session = Depends(get_db),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """Remove a route's rate limit and disable rate limiting."""
    try:
        route = RouteService(db).remove_rate_limit(route_pk)
        response = RouteResponse.model_validate(route).model_dump()
    except GatewayAdminError as e:
        db.rollback()
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error removing rate limit for route {route_pk}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to remove rate limit",
        )

    return RouteMutationResponse(**response, sync=sync_after_mutation(scheduler))
