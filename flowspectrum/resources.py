# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Any, Protocol, Self
from contextlib import ExitStack, AbstractContextManager
import scipy.fft

from .utils import check_pos

class Resource(Protocol):
    """Protocol for a process wide resource with a bounded lifetime."""

    def __enter__(self) -> Any: ...

    def __exit__(self, *exc: Any) -> Any: ...

class FFTWorkers:
    """
    Number of worker threads used by scipy.fft while the resource is held. The previous
    setting is restored on release.
    """

    workers: int
    _ctx: AbstractContextManager | None

    def __init__(self, workers: int = 1) -> None:
        check_pos("workers", workers)
        self.workers = workers
        self._ctx = None

    def __enter__(self) -> Self:
        self._ctx = scipy.fft.set_workers(self.workers)
        self._ctx.__enter__()
        return self

    def __exit__(self, *exc: Any) -> None:
        if self._ctx is not None:
            self._ctx.__exit__(*exc)
            self._ctx = None

class ResourceScope:
    """
    Context manager acquiring a set of resources before an eigenvalue computation and
    releasing them in reverse order afterwards. Scopes are not reentrant.
    """

    resources: tuple[Resource, ...]
    _stack: ExitStack | None

    @property
    def active(self) -> bool:
        return self._stack is not None

    def __init__(self, *resources: Resource) -> None:
        self.resources = resources
        self._stack = None

    def __enter__(self) -> Self:
        if self._stack is not None:
            raise RuntimeError("Resource scope is already active")
        with ExitStack() as stack:
            for res in self.resources:
                stack.enter_context(res)
            self._stack = stack.pop_all()
        return self

    def __exit__(self, *exc: Any) -> None:
        stack, self._stack = self._stack, None
        if stack is not None:
            stack.__exit__(*exc)
