"""
Inventory row mapping.

Turns a confirmed CountSession into the row an inventory sheet stores:
the count goes into the quantity field, with links back to the sheet and
the session.
"""

from datetime import datetime, timezone
from typing import Any

from ..models import CountSession


def build_inventory_row(session: CountSession, item_name: str | None = None) -> dict[str, Any]:
    """
    Map a confirmed session to an inventory row.

    Args:
        session: Finalized session (from SessionController.confirm)
        item_name: Item label; defaults to "<template> count"

    Returns:
        Row dictionary

    Raises:
        ValueError: If the session has not been confirmed into a sheet
    """
    if not session.synced_to_sheet or session.sheet_id is None or session.row_id is None:
        raise ValueError(f"Session {session.id} has not been confirmed into a sheet")

    confirmed_at = datetime.fromtimestamp(session.end_time or session.start_time, tz=timezone.utc)
    return {
        "id": session.row_id,
        "sheet_id": session.sheet_id,
        "count_session_id": session.id,
        "created_at": confirmed_at.isoformat(),
        "values": {
            "quantity": session.total_count,
            "item": item_name or f"{session.template.value} count",
            "date": confirmed_at.date().isoformat(),
        },
    }
