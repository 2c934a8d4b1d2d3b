from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ..models import Category
from ..schemas.task import MessageResponse, Task as TaskSchema, TaskCreate, TaskUpdate
from ..store import TaskStore

router = APIRouter()

MAX_PAGE = 100_000
MAX_LIMIT = 100


def get_store(request: Request) -> TaskStore:
    """Dependency returning the store handle the app was built with."""
    return request.app.state.store


def _get_update_data(task_update: TaskUpdate) -> dict:
    return task_update.model_dump(exclude_unset=True)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")


@router.get("/tasks", response_model=List[TaskSchema])
def get_tasks(
    completed: Optional[bool] = None,
    category: Optional[Category] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: int = Query(default=10, ge=1, le=MAX_LIMIT),
    store: TaskStore = Depends(get_store),
):
    """List tasks with optional filtering, sorting and pagination.

    ``sortBy=dueDate`` sorts by due date ascending, ``sortBy=createdAt`` by
    creation time descending. Other values leave the store order.
    """
    return store.list_tasks(
        completed=completed,
        category=category,
        search=search,
        sort_by=sort_by,
        page=page,
        limit=limit,
    )


@router.patch("/tasks/complete-all", response_model=MessageResponse)
def complete_all_tasks(store: TaskStore = Depends(get_store)):
    """Mark every task as completed."""
    store.complete_all()
    return {"message": "All tasks marked as completed"}


@router.get("/tasks/{task_id}", response_model=TaskSchema)
def get_task(task_id: str, store: TaskStore = Depends(get_store)):
    """Get a specific task by ID."""
    task = store.get_task(task_id)
    if not task:
        raise _not_found()
    return task


@router.post("/tasks", response_model=TaskSchema, status_code=status.HTTP_201_CREATED)
def create_task(task: TaskCreate, store: TaskStore = Depends(get_store)):
    """Create a new task."""
    return store.create_task(
        title=task.title,
        completed=task.completed,
        due_date=task.due_date,
        category=task.category,
        recurring=task.recurring,
    )


@router.put("/tasks/{task_id}", response_model=TaskSchema)
def update_task(task_id: str, task_update: TaskUpdate, store: TaskStore = Depends(get_store)):
    """Apply the fields present in the body to an existing task."""
    task = store.update_task(task_id, _get_update_data(task_update))
    if not task:
        raise _not_found()
    return task


@router.delete("/tasks/{task_id}", response_model=MessageResponse)
def delete_task(task_id: str, store: TaskStore = Depends(get_store)):
    """Delete a specific task."""
    if not store.delete_task(task_id):
        raise _not_found()
    return {"message": "Task deleted successfully"}
