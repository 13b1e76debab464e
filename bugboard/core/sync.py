"""
Synchronization Controller Base
===============================

Shared machinery for the per-family controllers (issues, users, comments).

Every network operation follows the same shape:

1. Validate synchronously against the Session / EntityStore, raising a
   validation error before any request is made.
2. Run the blocking service call through the ``TaskRunner``.
3. Apply the result on the UI context via the dispatcher, then notify the
   caller's ``on_success``. On failure, skip the mutation entirely and notify
   ``on_failure``.

Refreshes are sequenced with a monotonic generation number: a fetch result is
applied only if no newer fetch of the same key has been applied already, so a
slow stale response can no longer overwrite fresher data.
"""

import logging
from concurrent.futures import Future
from typing import Any, Callable, Dict, Hashable, Optional

from .errors import NotLoggedInError, ValidationError
from .services import Services
from .session import Session
from .store import EntityStore
from ..utils.background_worker import TaskRunner

SuccessCallback = Optional[Callable[[Any], None]]
FailureCallback = Optional[Callable[[BaseException], None]]


class SyncController:
    """
    Base class for controllers that keep part of the EntityStore in sync.

    Attributes:
        session: Authentication state (read on the UI thread only)
        store: The EntityStore mutated by completions
        services: Backend services, called from background tasks only
        runner: TaskRunner bridging background work and the UI context
    """

    family = "entity"

    def __init__(self, session: Session, store: EntityStore, services: Services, runner: TaskRunner):
        self.session = session
        self.store = store
        self.services = services
        self.runner = runner
        self.logger = logging.getLogger(self.__class__.__module__)

        self._dispatched: Dict[Hashable, int] = {}
        self._applied: Dict[Hashable, int] = {}

    # ------------------------------------------------------------------------
    # VALIDATION HELPERS
    # ------------------------------------------------------------------------

    def _require_login(self, action: str) -> None:
        if not self.session.is_logged_in():
            raise NotLoggedInError(f"User must be logged in to {action}")

    @staticmethod
    def _require_text(value: Optional[str], label: str) -> str:
        if value is None or not str(value).strip():
            raise ValidationError(f"{label} cannot be empty")
        return str(value).strip()

    # ------------------------------------------------------------------------
    # TASK PLUMBING
    # ------------------------------------------------------------------------

    def _failure_handler(self, description: str, on_failure: FailureCallback) -> Callable[[BaseException], None]:
        def _handle(error: BaseException) -> None:
            self.logger.warning(f"{description} failed, store left unchanged: {error}")
            if on_failure is not None:
                on_failure(error)
        return _handle

    def _submit(
        self,
        operation: Callable[[], Any],
        apply: Callable[[Any], Any],
        description: str,
        on_success: SuccessCallback = None,
        on_failure: FailureCallback = None
    ) -> Future:
        """
        Run ``operation`` in the background; on the UI context run
        ``apply(result)`` and hand its return value to ``on_success``.
        """
        def _complete(result: Any) -> None:
            applied = apply(result)
            if on_success is not None:
                on_success(applied)

        return self.runner.run(
            operation,
            on_success=_complete,
            on_failure=self._failure_handler(description, on_failure),
            description=description
        )

    def _next_generation(self, key: Hashable) -> int:
        generation = self._dispatched.get(key, 0) + 1
        self._dispatched[key] = generation
        return generation

    def _is_superseded(self, key: Hashable, generation: int) -> bool:
        """True when a newer fetch for ``key`` has already been applied."""
        if generation <= self._applied.get(key, 0):
            self.logger.info(
                f"Dropping stale {self.family} refresh #{generation} "
                f"(#{self._applied[key]} already applied)"
            )
            return True
        self._applied[key] = generation
        return False

    def _not_logged_in(self, action: str, on_failure: FailureCallback) -> None:
        error = NotLoggedInError(f"User must be logged in to {action}")
        self.logger.warning(f"Skipping {self.family} {action}: {error}")
        if on_failure is not None:
            self.runner.dispatcher.post(on_failure, error)
