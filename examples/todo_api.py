"""
=============================================================================
EXAMPLE: TODO API
=============================================================================

An in-memory todo list on top of microapi.

    ┌─────────────────────────────────────────────────────────────────┐
    │  ErrorHandling ──► Logging ──► CORS ──► Router                  │
    │                                                                  │
    │  GET    /todos            list (?done=true|false filters)       │
    │  POST   /todos            {"title": "...", "tags": [...]}       │
    │  PUT    /todos?id=3       {"title"?: "...", "done"?: true}      │
    │  DELETE /todos?id=3                                             │
    │  GET    /stats            counts from the shared TodoStore      │
    └─────────────────────────────────────────────────────────────────┘

Routes match exact paths only, so the todo id travels in the query.

Run it:
    python examples/todo_api.py

    curl -X POST -d '{"title": "Write docs"}' http://localhost:8080/todos
    curl 'http://localhost:8080/todos?done=false'
    curl -X PUT -d '{"done": true}' 'http://localhost:8080/todos?id=1'
"""

import itertools
import sys
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

# =============================================================================
# PATH SETUP
# =============================================================================
# Lets the example run from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from microapi import App, ServerConfig
from microapi.http import BodyTypeMismatch, Request, Response, bad_request, created, no_content, not_found, ok
from microapi.middleware import CORSMiddleware, ErrorHandlingMiddleware, LoggingMiddleware
from microapi.validation import DefaultValidator, Validatable, ValidationError, require_fields


# =============================================================================
# STORAGE
# =============================================================================

class TodoStore:
    """Thread-safe in-memory todo storage."""

    def __init__(self):
        self._todos: Dict[int, Dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, title: str, tags: List[str]) -> Dict[str, Any]:
        with self._lock:
            todo = {"id": next(self._ids), "title": title, "tags": tags, "done": False}
            self._todos[todo["id"]] = todo
            return dict(todo)

    def list(self, done: Optional[bool] = None) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(t) for t in self._todos.values() if done is None or t["done"] == done]

    def update(self, todo_id: int, **changes: Any) -> Optional[Dict[str, Any]]:
        with self._lock:
            todo = self._todos.get(todo_id)
            if todo is None:
                return None
            todo.update(changes)
            return dict(todo)

    def remove(self, todo_id: int) -> bool:
        with self._lock:
            return self._todos.pop(todo_id, None) is not None


class NewTodo(Validatable):
    def __init__(self, title: str, tags: List[Any]):
        self.title = title
        self.tags = tags

    def validate(self) -> None:
        if not self.title.strip():
            raise ValidationError("title must not be blank")
        if len(self.title) > 200:
            raise ValidationError("title must be at most 200 characters")
        if not all(isinstance(tag, str) for tag in self.tags):
            raise ValidationError("tags must be strings")


# =============================================================================
# APPLICATION
# =============================================================================

app = App(ServerConfig(port=8080, log_level="DEBUG"))
app.use(ErrorHandlingMiddleware(expose_message=False))
app.use(LoggingMiddleware(include_request_id=True, skip_paths=["/stats"]))
app.use(CORSMiddleware(handle_preflight=True))

app.container.register_instance(TodoStore, TodoStore())
validator = DefaultValidator()


def store() -> TodoStore:
    return app.container.resolve(TodoStore)


def todo_id(request: Request) -> Optional[int]:
    raw = request.query_param("id")
    if raw is None or not raw.isdigit():
        return None
    return int(raw)


@app.get("/todos")
def list_todos(request: Request) -> Response:
    done = {"true": True, "false": False}.get(request.query_param("done", ""))
    todos = store().list(done)
    return ok({"todos": todos, "count": len(todos)})


@app.post("/todos")
def create_todo(request: Request) -> Response:
    try:
        require_fields(request.body, "title")
        todo = NewTodo(request.get_str("title"), request.get_list("tags", []))
        validator.validate(todo)
    except (ValidationError, BodyTypeMismatch) as e:
        return bad_request(str(e))

    item = store().add(todo.title.strip(), todo.tags)
    return created(item, location=f"/todos?id={item['id']}")


@app.put("/todos")
def update_todo(request: Request) -> Response:
    ident = todo_id(request)
    if ident is None:
        return bad_request("id query parameter is required")

    try:
        changes = {}
        title = request.get_str("title")
        if title is not None:
            changes["title"] = title
        done = request.get_bool("done")
        if done is not None:
            changes["done"] = done
    except BodyTypeMismatch as e:
        return bad_request(str(e))

    item = store().update(ident, **changes)
    if item is None:
        return not_found(f"Todo {ident} not found")
    return ok(item)


@app.delete("/todos")
def delete_todo(request: Request) -> Response:
    ident = todo_id(request)
    if ident is None:
        return bad_request("id query parameter is required")
    if not store().remove(ident):
        return not_found(f"Todo {ident} not found")
    return no_content()


@app.get("/stats")
def stats(request: Request) -> Response:
    todos = store().list()
    done = sum(1 for t in todos if t["done"])
    return ok({"total": len(todos), "done": done, "open": len(todos) - done})


if __name__ == "__main__":
    app.run()
