"""Git plumbing used to describe pushed commits.

``GitCLI`` shells out to the ``git`` binary with ``asyncio`` subprocesses so
it never blocks the event loop.  Tests use a double that returns canned
name-status results.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Protocol

from app.exceptions import GitError


@dataclass(frozen=True, slots=True)
class NameStatus:
    """Paths touched by a single commit, grouped by change kind."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)


class GitPlumbing(Protocol):
    async def show_name_status(self, repo_path: str, commit_id: str) -> NameStatus:
        """Return the files added, removed and modified by ``commit_id``."""
        ...


def parse_name_status(output: str) -> NameStatus:
    """Parse ``git show --name-status`` output.

    Entries are tab separated, so paths may contain spaces. Only ``A``,
    ``D`` and ``M`` entries are kept; renames, copies and type changes are
    ignored.
    """
    status = NameStatus()
    for line in output.splitlines():
        fields = line.split("\t")
        if len(fields) < 2 or not fields[0]:
            continue
        match fields[0][0]:
            case "A":
                status.added.append(fields[1])
            case "D":
                status.removed.append(fields[1])
            case "M":
                status.modified.append(fields[1])
    return status


class GitCLI:
    """Runs git commands against bare repositories on local disk."""

    def __init__(self, git_binary: str = "git", timeout: float = 60.0) -> None:
        self._git = git_binary
        self._timeout = timeout

    async def _run(self, repo_path: str, *args: str) -> str:
        proc = await asyncio.create_subprocess_exec(
            self._git,
            *args,
            cwd=repo_path,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            msg = f"git {args[0]} timed out after {self._timeout}s [repo: {repo_path}]"
            raise GitError(msg) from None

        if proc.returncode != 0:
            msg = (
                f"git {args[0]} exited with {proc.returncode} [repo: {repo_path}]: "
                f"{stderr.decode('utf-8', 'replace').strip()}"
            )
            raise GitError(msg)
        return stdout.decode("utf-8", "replace")

    async def show_name_status(self, repo_path: str, commit_id: str) -> NameStatus:
        output = await self._run(
            repo_path, "show", "--name-status", "--pretty=format:", commit_id
        )
        return parse_name_status(output)
