"""Binary resolver chain tests."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest import mock

import pytest

from claude_code_bridge.config import Config
from claude_code_bridge.errors import BinaryNotFoundError
from claude_code_bridge.resolvers import (
    BinaryResolver,
    CommonLocationsResolver,
    NpmBinaryResolver,
    PathBinaryResolver,
    ResolverChain,
    default_resolvers,
    resolve_binary,
)
from claude_code_bridge.resolvers import base as resolver_base

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX executable bits")


class StubResolver(BinaryResolver):
    """Resolver with scripted behaviour that records calls."""

    def __init__(self, name, priority, result=None, applicable=True, error=None, calls=None):
        self.name = name
        self.priority = priority
        self.result = Path(result) if result else None
        self.applicable = applicable
        self.error = error
        self.calls = calls if calls is not None else []

    def is_applicable(self) -> bool:
        return self.applicable

    def resolve(self) -> Path | None:
        self.calls.append(self.name)
        if self.error:
            raise self.error
        return self.result


def make_executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n")
    path.chmod(0o755)
    return path


# =============================================================================
# Chain ordering
# =============================================================================


class TestResolverChain:
    """Filter applicable, sort by priority, first hit wins."""

    def test_highest_priority_wins(self):
        calls = []
        chain = ResolverChain([
            StubResolver("low", 10, "/low/claude", calls=calls),
            StubResolver("high", 100, "/high/claude", calls=calls),
        ])
        assert chain.resolve() == Path("/high/claude")
        assert calls == ["high"]

    def test_falls_through_to_next(self):
        calls = []
        chain = ResolverChain([
            StubResolver("first", 100, None, calls=calls),
            StubResolver("second", 50, "/second/claude", calls=calls),
            StubResolver("third", 10, "/third/claude", calls=calls),
        ])
        assert chain.resolve() == Path("/second/claude")
        assert calls == ["first", "second"]

    def test_inapplicable_resolvers_skipped(self):
        calls = []
        chain = ResolverChain([
            StubResolver("npm", 100, "/npm/claude", applicable=False, calls=calls),
            StubResolver("path", 50, "/path/claude", calls=calls),
        ])
        assert chain.resolve() == Path("/path/claude")
        assert calls == ["path"]

    def test_raising_resolver_is_treated_as_miss(self):
        chain = ResolverChain([
            StubResolver("broken", 100, error=OSError("permission denied")),
            StubResolver("ok", 50, "/ok/claude"),
        ])
        assert chain.resolve() == Path("/ok/claude")

    def test_exhausted_chain_lists_tried_names(self):
        chain = ResolverChain([
            StubResolver("b", 50),
            StubResolver("a", 100),
            StubResolver("skipped", 75, applicable=False),
        ])
        with pytest.raises(BinaryNotFoundError) as exc_info:
            chain.resolve()
        assert exc_info.value.searched == ["a", "b"]

    def test_no_applicable_resolver(self):
        chain = ResolverChain([StubResolver("npm", 100, applicable=False)])
        with pytest.raises(BinaryNotFoundError) as exc_info:
            chain.resolve()
        assert exc_info.value.searched == []

    def test_equal_priority_keeps_registration_order(self):
        chain = ResolverChain([StubResolver("x", 5, "/x"), StubResolver("y", 5, "/y")])
        assert [r.name for r in chain.ordered()] == ["x", "y"]

    def test_default_resolvers_priorities(self):
        resolvers = sorted(default_resolvers(), key=lambda r: r.priority, reverse=True)
        assert [r.name for r in resolvers] == ["npm-global", "PATH", "common-locations"]


class TestResolveBinary:
    """Configured override versus the chain."""

    def test_config_override_skips_chain(self):
        chain = ResolverChain([StubResolver("never", 100, error=AssertionError("called"))])
        config = Config(binary_path="/custom/claude")
        assert resolve_binary(config, chain) == Path("/custom/claude")

    def test_chain_used_without_override(self):
        chain = ResolverChain([StubResolver("stub", 1, "/stub/claude")])
        assert resolve_binary(Config(), chain) == Path("/stub/claude")


# =============================================================================
# Built-in resolvers
# =============================================================================


@posix_only
class TestPathBinaryResolver:
    def test_finds_binary_on_path(self, tmp_path: Path):
        binary = make_executable(tmp_path / "bin" / "claude")
        resolver = PathBinaryResolver(search_path=str(tmp_path / "bin"))
        assert resolver.resolve() == binary

    def test_missing_binary(self, tmp_path: Path):
        assert PathBinaryResolver(search_path=str(tmp_path)).resolve() is None

    def test_non_executable_ignored(self, tmp_path: Path):
        plain = tmp_path / "claude"
        plain.write_text("not executable")
        plain.chmod(0o644)
        assert PathBinaryResolver(search_path=str(tmp_path)).resolve() is None


@posix_only
class TestCommonLocationsResolver:
    def test_finds_binary_under_home(self, tmp_path: Path):
        binary = make_executable(tmp_path / ".volta" / "bin" / "claude")
        resolver = CommonLocationsResolver(home=tmp_path)
        with mock.patch("claude_code_bridge.resolvers.path.POSIX_LOCATIONS", ()):
            assert resolver.resolve() == binary

    def test_extra_dirs_searched_first(self, tmp_path: Path):
        extra = make_executable(tmp_path / "extra" / "claude")
        make_executable(tmp_path / ".local" / "bin" / "claude")
        resolver = CommonLocationsResolver(home=tmp_path, extra_dirs=[tmp_path / "extra"])
        assert resolver.resolve() == extra

    def test_directories_include_home_locations(self, tmp_path: Path):
        dirs = CommonLocationsResolver(home=tmp_path).directories()
        assert tmp_path / ".npm-global" / "bin" in dirs
        assert Path("/opt/homebrew/bin") in dirs


@posix_only
class TestNpmBinaryResolver:
    """npm resolver with the helper process mocked out."""

    def _helper(self, root: Path):
        def run(argv, timeout=10.0):
            if argv[1:] == ["--version"]:
                return "10.2.0"
            if argv[1:] == ["root", "-g"]:
                return str(root)
            return None
        return run

    def test_not_applicable_without_npm(self):
        with mock.patch("claude_code_bridge.resolvers.npm.run_helper", return_value=None):
            assert NpmBinaryResolver().is_applicable() is False

    def test_applicable_with_npm(self, tmp_path: Path):
        with mock.patch("claude_code_bridge.resolvers.npm.run_helper", self._helper(tmp_path)):
            assert NpmBinaryResolver().is_applicable() is True

    def test_finds_prefix_bin(self, tmp_path: Path):
        root = tmp_path / "prefix" / "lib" / "node_modules"
        root.mkdir(parents=True)
        binary = make_executable(tmp_path / "prefix" / "bin" / "claude")
        with mock.patch("claude_code_bridge.resolvers.npm.run_helper", self._helper(root)):
            assert NpmBinaryResolver().resolve() == binary

    def test_falls_back_to_package_entrypoint(self, tmp_path: Path):
        root = tmp_path / "node_modules"
        entry = root / "@anthropic-ai" / "claude-code" / "cli.js"
        entry.parent.mkdir(parents=True)
        entry.write_text("// cli")
        with mock.patch("claude_code_bridge.resolvers.npm.run_helper", self._helper(root)):
            assert NpmBinaryResolver().resolve() == entry

    def test_npm_root_failure_returns_none(self):
        with mock.patch("claude_code_bridge.resolvers.npm.run_helper", return_value=None):
            assert NpmBinaryResolver().resolve() is None


class TestRunHelper:
    def test_missing_command_returns_none(self):
        assert resolver_base.run_helper(["definitely-not-a-real-command-xyz"]) is None

    @posix_only
    def test_non_zero_exit_returns_none(self):
        assert resolver_base.run_helper(["sh", "-c", "exit 3"]) is None

    @posix_only
    def test_stdout_stripped(self):
        assert resolver_base.run_helper(["sh", "-c", "echo '  hi  '"]) == "hi"

    @posix_only
    def test_timeout_returns_none(self):
        assert resolver_base.run_helper(["sleep", "5"], timeout=0.2) is None
