"""
Allowed IP management endpoints.

Adding the first IP to a route turns its IP filter on; removing the last one
turns it off. Every change is replicated before the response is returned.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from gateway_admin.api.helpers import sync_after_mutation, to_http_exception
from gateway_admin.core.auth import require_api_key
from gateway_admin.core.database import get_db
from gateway_admin.core.exceptions import GatewayAdminError
from gateway_admin.dependencies import get_sync_scheduler
from gateway_admin.schemas.allowed_ip import (
    AllowedIpCreateRequest,
    AllowedIpMutationResponse,
    AllowedIpResponse,
    AllowedIpUpdateRequest,
    RouteSelectionItem,
)
from gateway_admin.schemas.sync import DeleteResponse
from gateway_admin.services.route_service import RouteService
from gateway_admin.services.sync_scheduler import SyncScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[AllowedIpResponse])
def list_ip_addresses(db: Session = Depends(get_db)):
    """All allowed IPs with their route details."""
    return [AllowedIpResponse.from_entry(entry) for entry in RouteService(db).list_allowed_ips()]


@router.get("/routes", response_model=List[RouteSelectionItem])
def list_routes_for_selection(db: Session = Depends(get_db)):
    """Routes with their current IP counts, for IP assignment."""
    return [
        RouteSelectionItem(
            id=route.id,
            predicate=route.predicates,
            route_id=route.route_id,
            uri=route.uri,
            with_ip_filter=route.with_ip_filter,
            ip_count=len(route.allowed_ips),
        )
        for route in RouteService(db).list_routes()
    ]


@router.get("/{ip_id}", response_model=AllowedIpResponse)
def get_ip_address(ip_id: int, db: Session = Depends(get_db)):
    try:
        return AllowedIpResponse.from_entry(RouteService(db).get_allowed_ip(ip_id))
    except GatewayAdminError as e:
        raise to_http_exception(e)


@router.post("/", response_model=AllowedIpMutationResponse, status_code=status.HTTP_201_CREATED)
def create_ip_address(
    request: AllowedIpCreateRequest,
    _: str = Depends(require_api_key),
    db: Session = Depends(get_db),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """Allow an IP on a route."""
    try:
        entry = RouteService(db).add_allowed_ip(request.gateway_route_id, request.ip)
        response = AllowedIpResponse.from_entry(entry).model_dump()
    except GatewayAdminError as e:
        db.rollback()
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error adding IP address: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add IP address",
        )

    return AllowedIpMutationResponse(**response, sync=sync_after_mutation(scheduler))


@router.put("/{ip_id}", response_model=AllowedIpMutationResponse)
def update_ip_address(
    ip_id: int,
    request: AllowedIpUpdateRequest,
    _: str = Depends(require_api_key),
    db: Session = Depends(get_db),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """Change an allowed IP, optionally moving it to another route."""
    try:
        entry = RouteService(db).update_allowed_ip(ip_id, request.ip, request.gateway_route_id)
        response = AllowedIpResponse.from_entry(entry).model_dump()
    except GatewayAdminError as e:
        db.rollback()
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating IP address {ip_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update IP address",
        )

    return AllowedIpMutationResponse(**response, sync=sync_after_mutation(scheduler))


@router.delete("/{ip_id}/route/{route_pk}", response_model=DeleteResponse)
def delete_ip_address(
    ip_id: int,
    route_pk: int,
    _: str = Depends(require_api_key),
    db: Session = Depends(get_db),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """Remove one IP from the route it belongs to."""
    try:
        RouteService(db).delete_allowed_ip(ip_id, route_pk)
    except GatewayAdminError as e:
        db.rollback()
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error deleting IP address {ip_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete IP address",
        )

    return DeleteResponse(
        message="IP address deleted successfully",
        id=ip_id,
        sync=sync_after_mutation(scheduler),
    )


@router.delete("/route/{route_pk}", response_model=DeleteResponse)
def delete_all_ip_addresses(
    route_pk: int,
    _: str = Depends(require_api_key),
    db: Session = Depends(get_db),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """Remove every IP from a route, which disables its IP filter."""
    try:
        removed = RouteService(db).delete_all_allowed_ips(route_pk)
    except GatewayAdminError as e:
        db.rollback()
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error deleting IP addresses for route {route_pk}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete IP addresses",
        )

    # Nothing changed, nothing to replicate
    sync = sync_after_mutation(scheduler) if removed else None
    return DeleteResponse(
        message=f"Deleted {removed} IP addresses",
        id=route_pk,
        sync=sync,
    )
