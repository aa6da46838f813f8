"""Tests for argument parsing and the command runner."""

import asyncio
import json

import pytest

import pkgmeta
from args import parse_args
from constants import ExitCodes
from errors import UpstreamUnavailable, VersionNotResolvable
from registry.models import PackageMetadata

from helpers import FakeGit, make_tgz, tar_names


class FakeResolver:
    """Stands in for PackageResolver in command runs."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def versions(self, reference):
        self.calls.append(("versions", reference))
        if self.error:
            raise self.error
        return ["2.0.0", "1.0.0"]

    async def versions_on_branch(self, reference, branch):
        self.calls.append(("versions_on_branch", reference, branch))
        return ["1.0.0"]

    async def info(self, reference, version=None, source_uri=None):
        self.calls.append(("info", reference, version, source_uri))
        if self.error:
            raise self.error
        return PackageMetadata(
            name=reference,
            version=version or "1.0.0",
            homepage_url=None,
            source_connection_uri="https://github.com/a/b.git",
            issues_url=None,
            licenses=("MIT",),
        )

    async def archive(self, reference, version):
        return await FakeGit(tgz=make_tgz({"package/index.js": "x"})).tar(reference, version, ())


@pytest.fixture
def resolver(monkeypatch):
    fake = FakeResolver()
    monkeypatch.setattr(pkgmeta.PackageResolver, "create", classmethod(lambda cls, http: fake))
    return fake


class TestParseArgs:
    """Subcommand parsing."""

    def test_info(self):
        """The info subcommand parses its reference, version and source URI."""
        args = parse_args(["--loglevel", "DEBUG", "info", "lodash", "-v", "4.17.21", "-s", "a/b"])
        assert (args.COMMAND, args.REFERENCE, args.VERSION, args.SOURCE_URI) == ("info", "lodash", "4.17.21", "a/b")
        assert args.LOG_LEVEL == "DEBUG"

    def test_archive_requires_output(self):
        """The archive subcommand requires an output path."""
        with pytest.raises(SystemExit):
            parse_args(["archive", "lodash", "1.0.0"])

    def test_license_inputs_are_exclusive(self):
        """License lookup takes a repository or a file, not both."""
        with pytest.raises(SystemExit):
            parse_args(["license", "-r", "a/b", "-f", "LICENSE"])

    def test_command_required(self):
        """A subcommand must be given."""
        with pytest.raises(SystemExit):
            parse_args([])


class TestRun:
    """Command dispatch and exit codes."""

    def test_versions(self, resolver, capsys):
        """Versions are printed one per line, newest first."""
        code = asyncio.run(pkgmeta.run(parse_args(["versions", "lodash"])))
        assert code == ExitCodes.SUCCESS.value
        assert capsys.readouterr().out.split() == ["2.0.0", "1.0.0"]

    def test_versions_on_branch(self, resolver, capsys):
        """The branch option lists versions reachable on that branch."""
        asyncio.run(pkgmeta.run(parse_args(["versions", "a/b", "-b", "main"])))
        assert resolver.calls == [("versions_on_branch", "a/b", "main")]

    def test_info_prints_json(self, resolver, capsys):
        """Resolved metadata is printed as JSON."""
        code = asyncio.run(pkgmeta.run(parse_args(["info", "lodash", "-v", "1.2.3"])))
        assert code == ExitCodes.SUCCESS.value
        out = json.loads(capsys.readouterr().out)
        assert out["name"] == "lodash"
        assert out["version"] == "1.2.3"
        assert out["licenses"] == ["MIT"]

    def test_archive_writes_tar(self, resolver, tmp_path):
        """The archive subcommand writes the decompressed tar to disk."""
        target = tmp_path / "out.tar"
        code = asyncio.run(pkgmeta.run(parse_args(["archive", "a/b", "1.0.0", "-o", str(target)])))
        assert code == ExitCodes.SUCCESS.value
        assert tar_names(target.read_bytes()) == ["package/index.js"]

    def test_lookup_error(self, resolver):
        """Resolution failures exit with the lookup error code."""
        resolver.error = VersionNotResolvable("lodash")
        code = asyncio.run(pkgmeta.run(parse_args(["info", "lodash"])))
        assert code == ExitCodes.LOOKUP_ERROR.value

    def test_not_found(self, resolver):
        """A not-found upstream reply exits with the lookup error code."""
        resolver.error = UpstreamUnavailable("http://x/lodash", 404, "Not found")
        assert asyncio.run(pkgmeta.run(parse_args(["versions", "lodash"]))) == ExitCodes.LOOKUP_ERROR.value

    def test_connection_error(self, resolver):
        """A request without a response exits with the connection error code."""
        resolver.error = UpstreamUnavailable("http://x/lodash", 0, "connection refused")
        assert asyncio.run(pkgmeta.run(parse_args(["versions", "lodash"]))) == ExitCodes.CONNECTION_ERROR.value

    def test_file_error(self, tmp_path):
        """An unreadable license file exits with the file error code."""
        args = parse_args(["license", "-f", str(tmp_path / "missing")])
        assert asyncio.run(pkgmeta.run(args)) == ExitCodes.FILE_ERROR.value
