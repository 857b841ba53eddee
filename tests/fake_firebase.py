"""In-memory stand-in for the slice of ``firebase_admin.db.Reference`` the realtime store uses."""

from __future__ import annotations

import copy
from typing import Any, Callable

from firebase_admin.exceptions import UnavailableError


def _as_returned(value: Any) -> Any:
    # la base devuelve un array cuando las claves son enteros y mas de la mitad
    # de las posiciones estan ocupadas
    if not isinstance(value, dict):
        return value
    value = {key: _as_returned(item) for key, item in value.items()}
    if value and all(str(key).isdigit() for key in value):
        highest = max(int(key) for key in value)
        if highest < 2 * len(value):
            return [value.get(str(index)) for index in range(highest + 1)]
    return value


def _strip_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        cleaned = {key: _strip_nulls(item) for key, item in value.items() if item is not None}
        return cleaned or None
    return value


class FakeTree:
    """Nested dict shared by every reference created from one root."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = data or {}
        self.transactions = 0


class FakeReference:
    def __init__(self, tree: FakeTree | None = None, path: tuple[str, ...] = ()) -> None:
        self._tree = tree or FakeTree()
        self._path = path

    @property
    def tree(self) -> FakeTree:
        return self._tree

    def child(self, path: str) -> "FakeReference":
        return FakeReference(self._tree, self._path + tuple(part for part in path.split("/") if part))

    def _parent_node(self, create: bool) -> dict[str, Any] | None:
        node = self._tree.data
        for part in self._path[:-1]:
            if part not in node:
                if not create:
                    return None
                node[part] = {}
            node = node[part]
        return node

    def get(self) -> Any:
        if not self._path:
            return _as_returned(copy.deepcopy(self._tree.data)) or None
        parent = self._parent_node(create=False)
        if parent is None:
            return None
        return _as_returned(copy.deepcopy(parent.get(self._path[-1])))

    def set(self, value: Any) -> None:
        value = _strip_nulls(copy.deepcopy(value))
        if value is None:
            self.delete()
            return
        self._parent_node(create=True)[self._path[-1]] = value

    def update(self, value: dict[str, Any]) -> None:
        if any(item is None for item in value.values()):
            raise ValueError("Dictionary must not contain None values.")
        current = self.get() or {}
        current.update(value)
        self.set(current)

    def delete(self) -> None:
        parent = self._parent_node(create=False)
        if parent is not None:
            parent.pop(self._path[-1], None)

    def transaction(self, transaction_update: Callable[[Any], Any]) -> Any:
        self._tree.transactions += 1
        new_value = transaction_update(self.get())
        self.set(new_value)
        return self.get()


class UnreachableReference:
    """Every read and write fails the way the SDK does when the host cannot be reached."""

    def child(self, path: str) -> "UnreachableReference":
        return self

    def _fail(self, *args, **kwargs):
        raise UnavailableError("Failed to establish a connection: firebaseio.com unreachable")

    get = set = update = delete = transaction = _fail
