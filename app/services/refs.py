"""Classification of a ref update into create, delete or push."""

from dataclasses import dataclass
from enum import StrEnum

# Object id git reports for a ref that does not exist on one side of an update.
EMPTY_COMMIT_ID = "0" * 40

_REF_PREFIXES = ("refs/heads/", "refs/tags/", "refs/")


class RefType(StrEnum):
    BRANCH = "branch"
    TAG = "tag"


class RefChangeKind(StrEnum):
    CREATE = "create"
    DELETE = "delete"
    PUSH = "push"


@dataclass(frozen=True, slots=True)
class RefChange:
    kind: RefChangeKind
    ref_type: RefType
    ref_full_name: str
    old_commit_id: str
    new_commit_id: str

    @property
    def ref_name(self) -> str:
        return ref_short_name(self.ref_full_name)

    @property
    def is_new_ref(self) -> bool:
        return self.old_commit_id == EMPTY_COMMIT_ID

    @property
    def is_deleted_ref(self) -> bool:
        return self.new_commit_id == EMPTY_COMMIT_ID


def ref_short_name(ref_full_name: str) -> str:
    """Strip ``refs/heads/``, ``refs/tags/`` or ``refs/`` from a full ref name."""
    for prefix in _REF_PREFIXES:
        if ref_full_name.startswith(prefix):
            return ref_full_name[len(prefix) :]
    return ref_full_name


def classify_ref_change(
    old_commit_id: str,
    new_commit_id: str,
    ref_full_name: str,
    ref_type: RefType = RefType.BRANCH,
) -> RefChange:
    """Decide whether an update creates, deletes or advances a ref.

    Deletion wins over creation. Tags never advance: any tag update that is
    not a deletion is reported as a creation.
    """
    if new_commit_id == EMPTY_COMMIT_ID:
        kind = RefChangeKind.DELETE
    elif old_commit_id == EMPTY_COMMIT_ID or ref_type is RefType.TAG:
        kind = RefChangeKind.CREATE
    else:
        kind = RefChangeKind.PUSH
    return RefChange(
        kind=kind,
        ref_type=ref_type,
        ref_full_name=ref_full_name,
        old_commit_id=old_commit_id,
        new_commit_id=new_commit_id,
    )
