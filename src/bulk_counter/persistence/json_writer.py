"""
Session JSON Writer
Appends confirmed sessions to a JSONL file, one inventory row per line.
"""

import json
import logging
import os
import threading
from datetime import datetime

from ..models import CountSession
from .inventory import build_inventory_row

logger = logging.getLogger(__name__)


class SessionJsonWriter:
    """
    Write confirmed sessions to a timestamped JSONL file.

    Each line holds the inventory row and the full session record.
    The file is opened lazily on the first write.
    """

    def __init__(self, json_dir: str = "data", item_name: str | None = None):
        self.json_dir = json_dir
        self.item_name = item_name
        self.filename = _generate_output_filename(json_dir)
        self.sessions_written = 0
        self.items_written = 0
        self._file = None
        self._lock = threading.Lock()

    def write(self, session: CountSession) -> dict:
        """
        Append one confirmed session.

        Returns:
            The inventory row that was written
        """
        row = build_inventory_row(session, self.item_name)
        line = json.dumps({"row": row, "session": session.to_dict()}) + "\n"

        with self._lock:
            if self._file is None:
                os.makedirs(self.json_dir, exist_ok=True)
                self._file = open(self.filename, "a", encoding="utf-8")
                logger.info(f"Session writer started: {self.filename}")

            self._file.write(line)
            self._file.flush()

            self.sessions_written += 1
            self.items_written += session.total_count
            written = self.sessions_written

        logger.info(
            f"#{written:4d} | {session.total_count} item(s) -> "
            f"sheet {session.sheet_id} row {session.row_id}"
        )
        return row

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
        _log_final_summary(self.sessions_written, self.items_written, self.filename)

    def __enter__(self) -> "SessionJsonWriter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def read_sessions(filename: str) -> list[dict]:
    """Read back every line of a sessions JSONL file."""
    with open(filename, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def _log_final_summary(sessions: int, items: int, filename: str) -> None:
    logger.info("Session writer complete")
    logger.info(f"Sessions: {sessions}")
    logger.info(f"Items: {items}")
    if sessions:
        logger.info(f"Output: {filename}")


def _generate_output_filename(json_dir: str) -> str:
    """Generate timestamped output filename."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{json_dir}/sessions_{timestamp}.jsonl"
