"""
=============================================================================
DEPENDENCY CONTAINER
=============================================================================

A small registry handlers can pull shared services from.

    container = app.container
    container.register(UserStore, lambda: UserStore(path="users.json"))
    container.register_instance("clock", time.time)

    def list_users(request):
        store = app.container.resolve(UserStore)
        ...

Keys are either types or strings. A factory runs on EVERY resolve(); use
register_instance() for a shared object.

=============================================================================
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional, Type, TypeVar, Union, overload


logger = logging.getLogger(__name__)

T = TypeVar("T")

Key = Union[Type[Any], str]


def _key_name(key: Key) -> str:
    return key if isinstance(key, str) else f"{key.__module__}.{key.__qualname__}"


class Container:
    """Maps keys to factories."""

    def __init__(self):
        self._factories: Dict[Key, Callable[[], Any]] = {}
        self._lock = threading.Lock()

    def register(self, key: Key, factory: Callable[[], Any]) -> None:
        """
        Register a factory. Registering a key again replaces its factory.

        Args:
            key: A type or a string name
            factory: Zero-argument callable producing the service
        """
        if not callable(factory):
            raise TypeError(f"Factory for {_key_name(key)} is not callable")
        with self._lock:
            if key in self._factories:
                logger.debug(f"Replacing factory for {_key_name(key)}")
            self._factories[key] = factory

    def register_instance(self, key: Key, instance: Any) -> None:
        """Register an existing object; resolve() returns it every time."""
        self.register(key, lambda: instance)

    @overload
    def resolve(self, key: Type[T]) -> Optional[T]: ...

    @overload
    def resolve(self, key: str) -> Optional[Any]: ...

    def resolve(self, key):
        """
        Build the service registered under ``key``.

        Returns:
            The factory's result, or None if nothing is registered
        """
        with self._lock:
            factory = self._factories.get(key)
        if factory is None:
            return None
        return factory()

    def __contains__(self, key: Key) -> bool:
        return key in self._factories

    def __len__(self) -> int:
        return len(self._factories)
