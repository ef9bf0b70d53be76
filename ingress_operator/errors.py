"""
Error taxonomy for the reconciliation core.

  NotFoundError            object absent; callers decide whether that is fatal
  AlreadyExistsError       create raced with another writer
  TransientStoreError      network / timeout / server failure, retry via requeue
    ConflictError          optimistic-concurrency failure on update
  ConfigurationIncomplete  a cluster-wide config object could not be read
  PartialEnsureFailure     some dependent sub-steps failed, siblings converged

Step errors are collected, never short-circuited; ``aggregate`` folds the
ordered collection into one value that is ``None`` only when it is empty.
"""
from typing import Iterable, Optional


class ReconcileError(Exception):
    """Base class for everything the core reports."""


class NotFoundError(ReconcileError):
    pass


class AlreadyExistsError(ReconcileError):
    pass


class TransientStoreError(ReconcileError):
    pass


class ConflictError(TransientStoreError):
    pass


class ConfigurationIncomplete(ReconcileError):
    pass


class StepError(ReconcileError):
    """A named step failed; keeps the underlying exception as ``cause``."""

    def __init__(self, step: str, cause: BaseException):
        super().__init__(f"failed to {step}: {cause}")
        self.step = step
        self.cause = cause
        self.__cause__ = cause


class AggregateError(ReconcileError):
    """An ordered, flattened list of errors reported as one."""

    def __init__(self, errors: Iterable[BaseException]):
        self.errors = _flatten(errors)
        super().__init__(self._message())

    def _message(self) -> str:
        if len(self.errors) == 1:
            return str(self.errors[0])
        return "[" + ", ".join(str(e) for e in self.errors) + "]"

    def __iter__(self):
        return iter(self.errors)

    def __len__(self):
        return len(self.errors)


class PartialEnsureFailure(AggregateError):
    pass


def _flatten(errors: Iterable[BaseException]) -> list[BaseException]:
    flat: list[BaseException] = []
    for err in errors:
        if err is None:
            continue
        if isinstance(err, AggregateError):
            flat.extend(err.errors)
        else:
            flat.append(err)
    return flat


def aggregate(errors: Iterable[BaseException], cls=AggregateError) -> Optional[AggregateError]:
    """Combine ``errors``; returns None when there is nothing to report."""
    flat = _flatten(errors)
    if not flat:
        return None
    return cls(flat)


def find(error: Optional[BaseException], kind: type) -> Optional[BaseException]:
    """Return the first error of ``kind`` inside ``error`` (aggregates and step causes included)."""
    if error is None:
        return None
    if isinstance(error, kind):
        return error
    if isinstance(error, AggregateError):
        for err in error.errors:
            found = find(err, kind)
            if found is not None:
                return found
    if isinstance(error, StepError):
        return find(error.cause, kind)
    return None
