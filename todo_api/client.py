import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

FILTER_MODES = ("all", "completed", "pending")


class TaskApiClient:
    """Thin wrapper over the HTTP API. Non-2xx responses raise httpx.HTTPStatusError."""

    def __init__(self, base_url: str = "http://localhost:5000", http: Optional[httpx.Client] = None) -> None:
        self.http = http or httpx.Client(base_url=base_url, timeout=10.0)

    def close(self) -> None:
        self.http.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self.http.request(method, path, **kwargs)
        response.raise_for_status()
        return response.json()

    def get_tasks(self, **params: Any) -> List[Dict[str, Any]]:
        params = {key: value for key, value in params.items() if value is not None}
        return self._request("GET", "/tasks", params=params)

    def get_task(self, task_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/tasks/{task_id}")

    def add_task(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/tasks", json=payload)

    def update_task(self, task_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/tasks/{task_id}", json=payload)

    def delete_task(self, task_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/tasks/{task_id}")

    def complete_all(self) -> Dict[str, Any]:
        return self._request("PATCH", "/tasks/complete-all")


def filter_tasks(tasks: List[Dict[str, Any]], mode: str) -> List[Dict[str, Any]]:
    """Local view filter; keeps the original order."""
    if mode == "all":
        return list(tasks)
    if mode == "completed":
        return [task for task in tasks if task["completed"]]
    if mode == "pending":
        return [task for task in tasks if not task["completed"]]
    raise ValueError(f"Unknown filter: {mode!r}")


class TaskBoard:
    """
    Client-side view state of the task list.

    State only changes from server responses. A failed request is logged and
    leaves the board as it was, except that ``load()`` always clears
    ``loading``.
    """

    def __init__(self, api: TaskApiClient) -> None:
        self.api = api
        self.tasks: List[Dict[str, Any]] = []
        self.loading = True
        self.filter = "all"
        self.editing_id: Optional[str] = None
        self.edited_title = ""

    @property
    def visible_tasks(self) -> List[Dict[str, Any]]:
        return filter_tasks(self.tasks, self.filter)

    def set_filter(self, mode: str) -> None:
        if mode not in FILTER_MODES:
            raise ValueError(f"Unknown filter: {mode!r}")
        self.filter = mode

    def load(self) -> None:
        try:
            self.tasks = self.api.get_tasks()
        except httpx.HTTPError:
            logger.exception("Error fetching tasks")
        finally:
            self.loading = False

    def add(self, title: str) -> Optional[Dict[str, Any]]:
        if not title.strip():
            return None
        try:
            task = self.api.add_task({"title": title, "completed": False})
        except httpx.HTTPError:
            logger.exception("Error adding task")
            return None
        self.tasks = [*self.tasks, task]
        return task

    def delete(self, task_id: str) -> None:
        try:
            self.api.delete_task(task_id)
        except httpx.HTTPError:
            logger.exception("Error deleting task id=%s", task_id)
            return
        self.tasks = [task for task in self.tasks if task["id"] != task_id]

    def toggle(self, task: Dict[str, Any]) -> None:
        try:
            updated = self.api.update_task(task["id"], {"completed": not task["completed"]})
        except httpx.HTTPError:
            logger.exception("Error updating task id=%s", task["id"])
            return
        self._replace(updated)

    def start_edit(self, task: Dict[str, Any]) -> None:
        self.editing_id = task["id"]
        self.edited_title = task["title"]

    def save_edit(self) -> None:
        if self.editing_id is None:
            return
        try:
            updated = self.api.update_task(self.editing_id, {"title": self.edited_title})
        except httpx.HTTPError:
            logger.exception("Error updating task id=%s", self.editing_id)
            return
        self._replace(updated)
        self.editing_id = None

    def _replace(self, updated: Dict[str, Any]) -> None:
        self.tasks = [updated if task["id"] == updated["id"] else task for task in self.tasks]
