"""ActorResolver interface supplying the current actor when none is passed."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any


class ActorResolver(ABC):
    """Resolves the actor performing a transition (e.g., the logged-in user)."""

    @abstractmethod
    def resolve(self) -> Any | None:
        """Return the current actor, or None for a system actor."""
        pass


class StaticActorResolver(ActorResolver):
    """Always resolves the same actor."""

    def __init__(self, actor: Any | None = None) -> None:
        self._actor = actor

    def resolve(self) -> Any | None:
        return self._actor

    def set_actor(self, actor: Any | None) -> None:
        """Replace the resolved actor."""
        self._actor = actor


class CallableActorResolver(ActorResolver):
    """Resolves the actor by calling a function (e.g., a request-local lookup)."""

    def __init__(self, func: Callable[[], Any | None]) -> None:
        self._func = func

    def resolve(self) -> Any | None:
        return self._func()
