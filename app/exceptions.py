"""Error taxonomy for push processing.

``NotFoundError`` subclasses are recoverable lookups misses; callers decide
whether to skip or abort.  Every other failure is wrapped in ``ActionError``
with the name of the operation and the identifiers involved.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager


class PushActivityError(Exception):
    """Base class for all errors raised by this service."""


class NotFoundError(PushActivityError):
    """A referenced user, repository or issue does not exist."""


class UserNotExist(NotFoundError):
    def __init__(self, *, name: str | None = None, email: str | None = None) -> None:
        self.name = name
        self.email = email
        if email is not None:
            super().__init__(f"user does not exist [email: {email}]")
        else:
            super().__init__(f"user does not exist [name: {name}]")


class RepoNotExist(NotFoundError):
    def __init__(self, *, owner_id: int, name: str) -> None:
        self.owner_id = owner_id
        self.name = name
        super().__init__(f"repository does not exist [owner_id: {owner_id}, name: {name}]")


class IssueNotExist(NotFoundError):
    def __init__(self, ref: str) -> None:
        self.ref = ref
        super().__init__(f"issue does not exist [ref: {ref}]")


class GitError(PushActivityError):
    """A git plumbing command failed."""


class ActionError(PushActivityError):
    """A fatal failure while recording activity, wrapped with operation context."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation}: {cause}")


@contextmanager
def wrap_errors(operation: str) -> Iterator[None]:
    """Re-raise any failure except ``NotFoundError`` as ``ActionError(operation)``."""
    try:
        yield
    except NotFoundError:
        raise
    except Exception as err:
        raise ActionError(operation, err) from err
