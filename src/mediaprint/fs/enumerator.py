"""Directory enumerators.

The scan orchestrator never touches a filesystem directly; it lists directories
through a DirectoryEnumerator so that local disks and network shares look the
same.
- LocalDirectoryEnumerator lists with os.scandir in a worker thread.
- CommandDirectoryEnumerator runs an external listing tool (for example an SMB
  helper) and parses the JSON array it prints.

Any failure to list a directory is raised as EnumerationError carrying the
offending path; the orchestrator records it and skips that subtree.
"""

import asyncio
import json
import logging
import os
import posixpath
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from mediaprint.errors import EnumerationError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 60.0


class DirectoryEntry(BaseModel):
    """One entry of a directory listing."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    is_directory: bool = Field(default=False, alias="isDirectory")
    size: int = 0
    modified_time: Optional[datetime] = Field(default=None, alias="modifiedTime")


class DirectoryEnumerator(ABC):
    """Abstract base class for directory listing backends."""

    @abstractmethod
    async def list(self, path: str) -> List[DirectoryEntry]:
        """List the entries of one directory.

        Raises:
            EnumerationError: If the directory cannot be listed.
        """
        raise NotImplementedError

    async def ping(self, root: str) -> None:
        """Check that root is reachable; raises EnumerationError if not."""
        await self.list(root)

    def join(self, parent: str, name: str) -> str:
        """Build the path of a child entry."""
        return posixpath.join(parent, name)


class LocalDirectoryEnumerator(DirectoryEnumerator):
    """Lists directories of the local filesystem."""

    async def list(self, path: str) -> List[DirectoryEntry]:
        return await asyncio.to_thread(self._scan, path)

    async def ping(self, root: str) -> None:
        if not await asyncio.to_thread(os.path.isdir, root):
            raise EnumerationError(root, "not a directory or not reachable")

    def join(self, parent: str, name: str) -> str:
        return os.path.join(parent, name)

    def _scan(self, path: str) -> List[DirectoryEntry]:
        entries: List[DirectoryEntry] = []
        try:
            with os.scandir(path) as it:
                for item in it:
                    try:
                        is_dir = item.is_dir()
                        stat = item.stat()
                        size = 0 if is_dir else stat.st_size
                        modified = datetime.fromtimestamp(stat.st_mtime)
                    except OSError as exc:
                        logger.debug("Cannot stat %s: %s", item.path, exc)
                        is_dir, size, modified = False, 0, None
                    entries.append(
                        DirectoryEntry(
                            name=item.name,
                            is_directory=is_dir,
                            size=size,
                            modified_time=modified,
                        )
                    )
        except OSError as exc:
            raise EnumerationError(path, exc.strerror or str(exc)) from exc
        entries.sort(key=lambda entry: entry.name)
        return entries


class CommandDirectoryEnumerator(DirectoryEnumerator):
    """Lists directories by running an external command.

    The command is invoked as ``command + [path]`` and must print a JSON array
    of ``{name, isDirectory, size, modifiedTime}`` objects on stdout.
    """

    def __init__(
        self, command: Sequence[str], timeout: float = DEFAULT_COMMAND_TIMEOUT
    ) -> None:
        if not command:
            raise ValueError("command must not be empty")
        self.command = list(command)
        self.timeout = timeout

    async def list(self, path: str) -> List[DirectoryEntry]:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise EnumerationError(path, f"cannot run {self.command[0]}: {exc}") from exc
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self.timeout)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise EnumerationError(path, f"listing timed out after {self.timeout}s") from exc
        if proc.returncode != 0:
            reason = stderr.decode("utf-8", "replace").strip()
            raise EnumerationError(path, reason or f"exit status {proc.returncode}")
        try:
            data = json.loads(stdout.decode("utf-8"))
        except ValueError as exc:
            raise EnumerationError(path, f"invalid listing output: {exc}") from exc
        if not isinstance(data, list):
            raise EnumerationError(path, "listing output is not a JSON array")
        try:
            return [DirectoryEntry.model_validate(item) for item in data]
        except PydanticValidationError as exc:
            raise EnumerationError(path, f"invalid listing entry: {exc}") from exc
