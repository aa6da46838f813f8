"""Git collaborator: locator detection, tag listing, file reads and archive export.

``GitClient`` is the contract the resolution pipeline depends on.
``GitCommandClient`` implements it with the ``git`` executable, cloning into
temporary directories that are removed once each call completes.
"""
from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import tempfile
from typing import AsyncIterator, Iterable, List, Optional, Protocol

from constants import Constants
from errors import UpstreamUnavailable
from common.archive_stream import ArchiveStream
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from versioning.ordering import sort_versions

from .url_normalize import normalize_locator

logger = logging.getLogger(__name__)

_SCP_LOCATOR = re.compile(r"^[\w.\-]+@[\w.\-]+:")
_OWNER_REPO = re.compile(r"^[\w.\-]+/[\w.\-]+(#.*)?$")
_GIT_SHORTHANDS = ("github:", "gist:", "bitbucket:", "gitlab:")


class GitClient(Protocol):
    """Operations the pipeline needs from a git adapter."""

    def is_git(self, locator: str) -> bool: ...

    async def git_url(self, locator: str) -> str: ...

    async def versions(self, locator: str) -> List[str]: ...

    async def versions_on_branch(self, url: str, branch: str) -> List[str]: ...

    async def file(self, locator: str, version: Optional[str], path: str) -> str: ...

    async def tar(self, locator: str, version: Optional[str], excludes: Iterable[str]) -> ArchiveStream: ...


class GitCommandError(UpstreamUnavailable):
    """A git command exited with a non-zero status."""

    def __init__(self, url: str, args: Iterable[str], returncode: int, stderr: str):
        self.args_list = list(args)
        self.returncode = returncode
        super().__init__(url, 0, stderr.strip() or f"git {' '.join(self.args_list)} exited with {returncode}")


def _strip_fragment(locator: str) -> str:
    return locator.split("#", 1)[0]


def _git_env() -> dict:
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


class GitCommandClient:
    """GitClient backed by the git command line."""

    def __init__(self, git_binary: str = "git", timeout: Optional[int] = None):
        self.git_binary = git_binary
        self.timeout = timeout or Constants.GIT_TIMEOUT

    def is_git(self, locator: str) -> bool:
        """Pattern-match the locator shapes that refer to git repositories."""
        if not locator or locator.startswith("@"):
            return False
        if "://" in locator:
            return True
        if locator.startswith(_GIT_SHORTHANDS):
            return True
        if _SCP_LOCATOR.match(locator):
            return True
        return bool(_OWNER_REPO.match(locator))

    async def git_url(self, locator: str) -> str:
        """Canonical clone URL for a locator, without any ``#ref`` fragment."""
        locator = _strip_fragment(locator)
        if locator.startswith("github:"):
            locator = locator[len("github:"):]
        url = normalize_locator(locator)
        if url.startswith("git+"):
            url = url[len("git+"):]
        return url

    async def _run(self, url: str, *args: str, cwd: Optional[str] = None) -> str:
        """Run git and return stdout.

        Raises:
            GitCommandError: On a non-zero exit status.
            UpstreamUnavailable: When the command times out.
        """
        with Timer() as t:
            proc = await asyncio.create_subprocess_exec(
                self.git_binary,
                *args,
                cwd=cwd,
                env=_git_env(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
            except asyncio.TimeoutError as exc:
                proc.kill()
                await proc.wait()
                raise UpstreamUnavailable(url, 0, f"git {args[0]} timed out after {self.timeout}s") from exc

        if is_debug_enabled(logger):
            logger.debug(
                "git command finished",
                extra=extra_context(
                    event="git_command",
                    component="git",
                    action=args[0],
                    outcome="success" if proc.returncode == 0 else "failure",
                    duration_ms=t.duration_ms(),
                    target=safe_url(url),
                ),
            )
        if proc.returncode != 0:
            raise GitCommandError(url, args, proc.returncode, stderr.decode("utf-8", "replace"))
        return stdout.decode("utf-8", "replace")

    async def _ls_remote_tags(self, url: str) -> List[str]:
        output = await self._run(url, "ls-remote", "--tags", url)
        names = []
        for line in output.splitlines():
            _, _, ref = line.partition("\t")
            if not ref or ref.endswith("^{}"):
                continue
            names.append(ref[len("refs/tags/"):])
        return names

    async def versions(self, locator: str) -> List[str]:
        url = await self.git_url(locator)
        return sort_versions(await self._ls_remote_tags(url))

    async def versions_on_branch(self, url: str, branch: str) -> List[str]:
        """Tags reachable from ``branch``, newest first."""
        workdir = tempfile.mkdtemp(prefix="pkgmeta-git-")
        try:
            await self._run(url, "clone", "--quiet", "--bare", "--filter=blob:none", url, workdir)
            output = await self._run(url, "tag", "--merged", branch, cwd=workdir)
        finally:
            shutil.rmtree(workdir, ignore_errors=True)
        return sort_versions(line.strip() for line in output.splitlines() if line.strip())

    async def _shallow_clone(self, url: str, version: Optional[str], workdir: str) -> None:
        args = ["clone", "--quiet", "--depth", "1"]
        if version:
            args.extend(["--branch", version])
        args.extend([url, workdir])
        await self._run(url, *args)

    async def file(self, locator: str, version: Optional[str], path: str) -> str:
        url = await self.git_url(locator)
        workdir = tempfile.mkdtemp(prefix="pkgmeta-git-")
        try:
            await self._shallow_clone(url, version, workdir)
            return await self._run(url, "show", f"HEAD:{path}", cwd=workdir)
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

    async def tar(self, locator: str, version: Optional[str], excludes: Iterable[str]) -> ArchiveStream:
        """Export the tree at ``version`` as a gzip tarball stream.

        Directories named in ``excludes`` are left out at any depth. The
        temporary clone is removed when the returned stream is closed.
        """
        url = await self.git_url(locator)
        workdir = tempfile.mkdtemp(prefix="pkgmeta-git-")
        try:
            await self._shallow_clone(url, version, workdir)
            pathspecs = ["."]
            for name in sorted(excludes):
                pathspecs.extend([f":(exclude,glob)**/{name}", f":(exclude,glob)**/{name}/**"])
            proc = await asyncio.create_subprocess_exec(
                self.git_binary,
                "archive",
                "--format=tar.gz",
                "HEAD",
                "--",
                *pathspecs,
                cwd=workdir,
                env=_git_env(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except BaseException:
            shutil.rmtree(workdir, ignore_errors=True)
            raise

        async def chunks() -> AsyncIterator[bytes]:
            assert proc.stdout is not None
            while True:
                chunk = await proc.stdout.read(Constants.ARCHIVE_CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
            if await proc.wait() != 0:
                raise OSError(f"git archive exited with {proc.returncode}")

        async def release() -> None:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            shutil.rmtree(workdir, ignore_errors=True)

        return ArchiveStream(chunks(), release, reference=locator, version=version)
