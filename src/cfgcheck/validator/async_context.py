"""
Deferred execution of remote validators.

The synchronous pass registers one task per remote check; wait() then runs
them all concurrently and collects every failure instead of stopping at
the first one.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from cfgcheck.validator.errors import FieldError, ValidationSkipped, ValidatorFailed
from cfgcheck.validator.registry import ValidatorRegistry
from cfgcheck.validator.types import ValidationTask


DEFAULT_MAX_WORKERS = 8


class AsyncValidationContext:
    """
    Collects remote validation tasks for one validation run.

    add_task() is only called from the single-threaded synchronous walk.
    wait() fans the tasks out over a thread pool and blocks until every
    one has finished; a failing or slow task never cancels the others.
    """

    def __init__(
        self,
        registry: ValidatorRegistry,
        max_workers: int = DEFAULT_MAX_WORKERS,
        logger: logging.Logger | None = None,
    ):
        self.registry = registry
        self.max_workers = max(1, max_workers)
        self.log = logger or logging.getLogger(__name__)
        self.tasks: list[ValidationTask] = []
        self.skipped: list[tuple[str, str]] = []
        self._errors: list[FieldError] = []
        self._result: list[FieldError] | None = None
        self._lock = threading.Lock()

    def add_task(self, path: str, validator: str, value: Any, parent: dict[str, Any]) -> None:
        self.log.debug("Deferring remote validator '%s' for field '%s'", validator, path)
        self.tasks.append(ValidationTask(path=path, validator=validator, value=value, parent=parent))

    def wait(self) -> list[FieldError]:
        """
        Run all registered tasks and return every failure, sorted by field path.

        Skipped tasks (missing local prerequisite) are not errors; they are
        recorded in self.skipped as (path, reason). Tasks run once; later
        calls return the same errors.
        """
        if self._result is not None:
            return list(self._result)
        if not self.tasks:
            self._result = []
            return []

        start = time.monotonic()
        workers = min(self.max_workers, len(self.tasks))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cfgcheck-remote") as pool:
            for task in self.tasks:
                pool.submit(self._run, task)

        self.log.debug("%d remote validation(s) completed in %.2fs", len(self.tasks), time.monotonic() - start)
        with self._lock:
            self._result = sorted(self._errors, key=lambda e: e.path)
            return list(self._result)

    def _run(self, task: ValidationTask) -> None:
        validator = self.registry.remote_validator(task.validator)
        try:
            if validator is None:
                raise ValidatorFailed(f"remote validator '{task.validator}' is not registered")
            validator(task.value, task.parent)
        except ValidationSkipped as e:
            self.log.warning("%s: %s validation skipped: %s", task.path, task.validator, e)
            with self._lock:
                self.skipped.append((task.path, str(e)))
        except ValidatorFailed as e:
            with self._lock:
                self._errors.append(FieldError(task.path, str(e)))
        except Exception as e:
            # Unexpected failures still count against this task only
            self.log.debug("Remote validator '%s' raised", task.validator, exc_info=True)
            with self._lock:
                self._errors.append(FieldError(task.path, f"{task.validator} failed unexpectedly: {e}"))
        else:
            self.log.debug("Remote validator '%s' passed for field '%s'", task.validator, task.path)
