from fastapi import APIRouter, Depends, Path, Query

from ..models.action import ActionItemResponse, ActionStatusUpdate, ActionUpdateRequest
from ..models.meeting import Page
from ..services.action_service import ActionService, get_action_service

router = APIRouter(prefix="/actions", tags=["Actions"])

@router.get("", response_model=Page[ActionItemResponse])
def list_actions(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    service: ActionService = Depends(get_action_service)
):
    """List action items across all meetings, newest first."""
    return service.list_actions(page, size)

@router.get("/{action_id}", response_model=ActionItemResponse)
def get_action(
    action_id: int = Path(..., description="Action item id"),
    service: ActionService = Depends(get_action_service)
):
    return service.get_action(action_id)

@router.put("/{action_id}", response_model=ActionItemResponse)
def update_action(
    action_update: ActionUpdateRequest,
    action_id: int = Path(..., description="Action item id"),
    service: ActionService = Depends(get_action_service)
):
    """
    Update an action item.

    Only fields present in the body are changed. Setting the status to
    COMPLETED records the completion time.
    """
    return service.update_action(action_id, action_update.model_dump(exclude_unset=True))

@router.patch("/{action_id}/status", response_model=ActionItemResponse)
def update_action_status(
    status_update: ActionStatusUpdate,
    action_id: int = Path(..., description="Action item id"),
    service: ActionService = Depends(get_action_service)
):
    return service.update_action(action_id, {"status": status_update.status})
