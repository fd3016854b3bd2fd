"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Any, Callable, Optional, Union

import pytest

from fastdeploy.config.schemas import DeployTarget
from fastdeploy.remote.channel import CommandOutcome

WORKSPACE = "/tmp/tmp.fd1234"

Response = Union[CommandOutcome, list[CommandOutcome]]


class FakeSession:
    """In-memory stand-in for RemoteSession.

    ``responses`` maps a command substring to the outcome (or a list of
    outcomes consumed one per call) for commands containing it. Commands
    that match nothing succeed with empty output, except ``mktemp`` which
    returns WORKSPACE.
    """

    def __init__(
        self,
        target: DeployTarget,
        timeout: float = 30.0,
        responses: Optional[dict[str, Response]] = None,
        connect_error: Optional[Exception] = None,
        put_error: Optional[Exception] = None,
    ) -> None:
        self.target = target
        self.timeout = timeout
        self.responses = dict(responses or {})
        self.connect_error = connect_error
        self.put_error = put_error
        self.calls: list[tuple[Any, ...]] = []
        self.close_count = 0

    def connect(self) -> None:
        self.calls.append(("connect",))
        if self.connect_error:
            raise self.connect_error

    def run(self, command: str, pty: bool = False, password: Optional[str] = None) -> CommandOutcome:
        self.calls.append(("run", command, pty, password))
        for needle, response in self.responses.items():
            if needle in command:
                if isinstance(response, list):
                    return response.pop(0) if len(response) > 1 else response[0]
                return response
        if command.startswith("mktemp"):
            return CommandOutcome(exit_status=0, stdout=f"{WORKSPACE}\n")
        return CommandOutcome(exit_status=0)

    def put_file(self, local_path: Path, remote_path: str) -> None:
        self.calls.append(("put", str(local_path), remote_path))
        if self.put_error:
            raise self.put_error

    def close(self) -> None:
        self.calls.append(("close",))
        self.close_count += 1

    @property
    def commands(self) -> list[str]:
        return [call[1] for call in self.calls if call[0] == "run"]


class FakeArchiver:
    """LocalArchiver stand-in recording create/remove calls."""

    def __init__(self, create_error: Optional[Exception] = None) -> None:
        self.create_error = create_error
        self.created: list[Path] = []
        self.removed: list[Path] = []

    def create(self, directory: Path) -> Path:
        if self.create_error:
            raise self.create_error
        archive = directory.parent / f"{directory.name}.tar.gz"
        self.created.append(archive)
        return archive

    def remove(self, archive: Path) -> None:
        self.removed.append(archive)


@pytest.fixture
def base_config() -> dict[str, Any]:
    """Raw configuration for a host-filesystem deployment of a directory."""
    return {
        "host": "h",
        "port": 22,
        "username": "u",
        "password": "p",
        "dist": "/local/app",
        "remoteStatic": "/srv/static",
    }


@pytest.fixture
def target(base_config: dict[str, Any]) -> DeployTarget:
    return DeployTarget.model_validate(base_config)


@pytest.fixture
def session_factory() -> Callable[..., Any]:
    """Factory building FakeSessions; created sessions are in ``.sessions``.

    Set ``.options`` to pass responses/errors to the next sessions built.
    """

    class Factory:
        def __init__(self) -> None:
            self.sessions: list[FakeSession] = []
            self.options: dict[str, Any] = {}
            self.per_host: dict[str, dict[str, Any]] = {}

        def __call__(self, target: DeployTarget, timeout: float = 30.0) -> FakeSession:
            options = self.per_host.get(target.host, self.options)
            session = FakeSession(target, timeout=timeout, **options)
            self.sessions.append(session)
            return session

        @property
        def last(self) -> FakeSession:
            return self.sessions[-1]

    return Factory()


@pytest.fixture
def archiver() -> FakeArchiver:
    return FakeArchiver()
