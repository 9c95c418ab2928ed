"""
Task Store Service

This module persists task lists in a single JSON file partitioned by tag:

    {
        "master": {
            "tasks": [...],
            "metadata": {"created": "...", "updated": "...", "description": "..."}
        },
        "feature-x": {...}
    }

Every write is a read-modify-write of the whole file that only replaces the
target tag, so tags untouched by the current run are preserved.

Key Functions:
    - TaskStore.read_all: Load every tag
    - TaskStore.get_tasks: Tasks of one tag
    - TaskStore.max_task_id: Highest task id in one tag
    - TaskStore.write_tag: Replace the tasks of one tag
    - TaskStore.upsert_tasks: Replace tasks by id, append new ones
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TaskStore:
    """JSON-file task store keyed by tag."""

    def __init__(self, path: str):
        self.path = path

    def read_all(self) -> Dict[str, Any]:
        """
        Load the whole store.

        Returns:
            Mapping of tag -> {"tasks", "metadata"}. A missing file gives an
            empty mapping; an unreadable or malformed file is logged and also
            treated as empty.
        """
        if not os.path.exists(self.path):
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[Task Store] Could not read {self.path}: {e}. Treating store as empty.")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"[Task Store] Unexpected top-level value in {self.path}, treating store as empty")
            return {}

        return data

    def get_tasks(self, tag: str) -> List[Dict[str, Any]]:
        tag_data = self.read_all().get(tag) or {}
        tasks = tag_data.get("tasks") if isinstance(tag_data, dict) else None
        return tasks if isinstance(tasks, list) else []

    def max_task_id(self, tag: str) -> int:
        """Highest integer id in the tag, 0 when the tag is empty."""
        ids = [task.get("id") for task in self.get_tasks(tag) if isinstance(task.get("id"), int)]
        return max(ids, default=0)

    def write_tag(
        self,
        tag: str,
        tasks: List[Dict[str, Any]],
        description: Optional[str] = None,
    ) -> None:
        """
        Replace the task list of one tag, keeping every other tag intact.

        Args:
            tag: Target tag
            tasks: Complete task list for the tag
            description: Tag description (defaults to "Tasks for {tag} context")
        """
        data = self.read_all()
        previous = data.get(tag) if isinstance(data.get(tag), dict) else {}
        metadata = dict(previous.get("metadata") or {})

        metadata["created"] = metadata.get("created") or _now()
        metadata["updated"] = _now()
        metadata["description"] = description or metadata.get("description") or f"Tasks for {tag} context"

        data[tag] = {"tasks": tasks, "metadata": metadata}
        self._write(data)
        logger.info(f"[Task Store] Wrote {len(tasks)} tasks to tag '{tag}'")

    def upsert_tasks(self, tag: str, tasks: List[Dict[str, Any]]) -> None:
        """
        Replace tasks of a tag by id and append those not present yet.

        Tasks already in the tag that are not part of ``tasks`` are kept in
        their original position.
        """
        incoming = {task["id"]: task for task in tasks}
        existing = self.get_tasks(tag)

        updated = [incoming.pop(task.get("id"), task) for task in existing]
        updated.extend(task for task in tasks if task["id"] in incoming)

        self.write_tag(tag, updated)

    def _write(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
