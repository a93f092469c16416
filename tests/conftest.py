"""
Shared pytest fixtures for gastown tests.

Provides an isolated HOME, a throwaway town with one rig, and in-memory
fakes for the collaborators the spawn flow talks to (polecat manager,
issue tracker, tmux sessions).
"""

import json
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from click.testing import CliRunner

from gastown import config
from gastown.beads_integration import BeadsIssue, IssueClient, IssueNotFoundError
from gastown.error_logging import reset_default_logger
from gastown.errors import PolecatNotFoundError
from gastown.polecat import POLECATS_DIR, Polecat, PolecatState
from gastown.rig import Rig
from gastown.session import StartOptions


# =============================================================================
# ENVIRONMENT ISOLATION
# =============================================================================

@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point HOME at a temp dir so logs, telemetry and config stay out of ~/.gastown."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("GT_TOWN_ROOT", raising=False)
    monkeypatch.delenv("GT_SPAWN_TIMEOUT", raising=False)
    config._CONFIG_CACHE = None
    reset_default_logger()
    yield home
    config._CONFIG_CACHE = None
    reset_default_logger()


@pytest.fixture
def cli_runner():
    """Provide Click CLI test runner."""
    return CliRunner()


# =============================================================================
# TOWN / RIG FIXTURES
# =============================================================================

@pytest.fixture
def town(tmp_path):
    """A town with a single registered rig 'demo-rig'."""
    root = tmp_path / "town"
    (root / "mayor").mkdir(parents=True)
    (root / "demo-rig").mkdir()
    (root / "mayor" / "rigs.json").write_text(json.dumps({
        "rigs": {
            "demo-rig": {"git_url": "git@example.com:demo/rig.git", "default_branch": "main"},
        }
    }))
    return root


@pytest.fixture
def rig(town):
    return Rig(name="demo-rig", path=town / "demo-rig", default_branch="main")


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, check=True)
    return result.stdout


@pytest.fixture
def git_rig(rig):
    """demo-rig initialized as a git repository with one commit on main."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    _git(rig.path, "init", "-q")
    _git(rig.path, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(rig.path, "config", "user.email", "mayor@example.com")
    _git(rig.path, "config", "user.name", "Mayor")
    _git(rig.path, "config", "commit.gpgsign", "false")
    (rig.path / "README.md").write_text("demo rig\n")
    _git(rig.path, "add", "README.md")
    _git(rig.path, "commit", "-q", "-m", "initial")
    return rig


@pytest.fixture
def git():
    """Run a git command in a directory, returning stdout."""
    return _git


# =============================================================================
# FAKES
# =============================================================================

class FakePolecatManager:
    """In-memory stand-in for PolecatManager."""

    def __init__(self, rig: Rig):
        self.rig = rig
        self.polecats: Dict[str, Polecat] = {}
        self.calls: List[tuple] = []
        self.add_error: Optional[Exception] = None
        self.remove_error: Optional[Exception] = None

    def seed(self, name: str, state: PolecatState = PolecatState.IDLE, issue: Optional[str] = None) -> Polecat:
        polecat = Polecat(
            name=name,
            rig=self.rig.name,
            state=state,
            clone_path=self.rig.path / POLECATS_DIR / name,
            branch=f"polecat/{name}",
            issue=issue,
            created_at="2026-10-01T09:00:00",
        )
        self.polecats[name] = polecat
        return polecat

    def list(self) -> List[Polecat]:
        self.calls.append(("list",))
        return list(self.polecats.values())

    def get(self, name: str) -> Polecat:
        self.calls.append(("get", name))
        if name not in self.polecats:
            raise PolecatNotFoundError(name)
        return self.polecats[name]

    def add(self, name: str) -> Polecat:
        self.calls.append(("add", name))
        if self.add_error:
            raise self.add_error
        polecat = self.seed(name)
        polecat.created_at = datetime.now().isoformat()
        polecat.clone_path.mkdir(parents=True, exist_ok=True)
        return polecat

    def remove(self, name: str, force: bool = False) -> None:
        self.calls.append(("remove", name, force))
        if self.remove_error:
            raise self.remove_error
        if name not in self.polecats:
            raise PolecatNotFoundError(name)
        del self.polecats[name]

    def assign_issue(self, name: str, issue: str) -> Polecat:
        self.calls.append(("assign_issue", name, issue))
        if name not in self.polecats:
            raise PolecatNotFoundError(name)
        polecat = self.polecats[name]
        polecat.issue = issue
        polecat.state = PolecatState.WORKING
        return polecat


class FakeIssueClient(IssueClient):
    """In-memory issue tracker."""

    def __init__(self, issues: Optional[Dict[str, BeadsIssue]] = None):
        self.issues = issues or {}
        self.fetched: List[tuple] = []
        self.initialized: List[Path] = []
        self.init_error: Optional[Exception] = None
        self.fetch_error: Optional[Exception] = None

    def fetch_issue(self, rig_path: Path, issue_id: str) -> BeadsIssue:
        self.fetched.append((rig_path, issue_id))
        if self.fetch_error:
            raise self.fetch_error
        if issue_id not in self.issues:
            raise IssueNotFoundError(issue_id)
        return self.issues[issue_id]

    def init_worktree(self, worktree_path: Path) -> None:
        self.initialized.append(worktree_path)
        if self.init_error:
            raise self.init_error


class FakeSessionManager:
    """In-memory stand-in for SessionManager."""

    def __init__(self, rig: Optional[Rig] = None):
        self.rig = rig
        self.running: set = set()
        self.ready = True
        self.started: List[tuple] = []
        self.injected: List[tuple] = []
        self.start_error: Optional[Exception] = None
        self.inject_error: Optional[Exception] = None

    def session_name(self, polecat: str) -> str:
        return f"gt-demo-rig-{polecat}"

    def is_running(self, polecat: str) -> bool:
        return polecat in self.running

    def start(self, polecat: str, options: StartOptions) -> None:
        self.started.append((polecat, options))
        if self.start_error:
            raise self.start_error
        self.running.add(polecat)

    def is_ready(self, polecat: str) -> bool:
        return self.ready

    def inject(self, polecat: str, message: str) -> None:
        if self.inject_error:
            raise self.inject_error
        self.injected.append((polecat, message))


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_manager(rig):
    return FakePolecatManager(rig)


@pytest.fixture
def fake_issues():
    return FakeIssueClient({
        "gt-1": BeadsIssue(
            id="gt-1",
            title="Fix X",
            description="",
            priority=2,
            issue_type="bug",
            status="open",
        ),
        "gt-2": BeadsIssue(
            id="gt-2",
            title="Add Y",
            description="Y should do Z.",
            priority=1,
            issue_type="feature",
            status="open",
        ),
    })


@pytest.fixture
def fake_sessions(rig):
    return FakeSessionManager(rig)


@pytest.fixture
def fake_clock():
    return FakeClock()

