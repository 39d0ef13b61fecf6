import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict

from ..core.exceptions import ActionItemNotFoundError
from ..db.queries import count_action_items, get_action_item, list_action_items, update_action_item
from .meeting_service import build_page

logger = logging.getLogger("recall-context.actions")

COMPLETED = "COMPLETED"


class ActionService:
    """Read and update action items extracted from meetings."""

    def list_actions(self, page: int = 0, size: int = 20) -> Dict[str, Any]:
        items = list_action_items(limit=size, offset=page * size)
        return build_page(items, page, size, count_action_items())

    def get_action(self, action_id: int) -> Dict[str, Any]:
        action = get_action_item(action_id)
        if action is None:
            raise ActionItemNotFoundError(action_id)
        return action

    def update_action(self, action_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial update to an action item.

        Args:
            action_id: Action item id
            changes: Only the provided fields are written

        Returns:
            dict: The updated action item
        """
        logger.info(f"Updating action {action_id}: {sorted(changes)}")
        current = self.get_action(action_id)

        update_data = {k: v for k, v in changes.items() if v is not None}
        if hasattr(update_data.get("due_date"), "isoformat"):
            update_data["due_date"] = update_data["due_date"].isoformat()
        if update_data.get("status") == COMPLETED and not current.get("completed_at"):
            update_data["completed_at"] = datetime.now().isoformat()

        if update_data:
            update_action_item(action_id, update_data)
        return self.get_action(action_id)


@lru_cache()
def get_action_service() -> ActionService:
    return ActionService()
