"""Consuming a remote command's output stream.

Turns the interleaved stdout/stderr chunks of a running command into a
single ``CommandOutcome``, optionally answering one password prompt (the
``sudo`` case) along the way.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Protocol

from fastdeploy.telemetry.logger import get_logger

logger = get_logger(__name__)

# Trailing characters of a "Password: " style prompt.
PROMPT_SIGNATURE = ": "


class StreamKind(str, Enum):
    """Which output stream a chunk arrived on."""

    STDOUT = "stdout"
    STDERR = "stderr"


class CommandStream(Protocol):
    """A running remote command, as the channel sees it."""

    def chunks(self) -> Iterator[tuple[StreamKind, str]]:
        """Yield output chunks in arrival order until the command ends."""
        ...

    def write(self, data: str) -> None:
        """Write to the command's stdin."""
        ...

    def exit_status(self) -> int:
        """Exit status, available once chunks() is exhausted."""
        ...


@dataclass
class CommandOutcome:
    """Result of consuming one remote command.

    Attributes:
        exit_status: Command exit status
        stdout: Accumulated standard output
        stderr: Accumulated standard error
    """

    exit_status: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.exit_status == 0

    @property
    def error_text(self) -> str:
        """Failure text of the command: its stderr."""
        return self.stderr


class PromptState(str, Enum):
    """States of the password prompt responder."""

    IDLE = "idle"  # no password supplied, never answers
    AWAITING_PROMPT = "awaiting_prompt"
    SENT = "sent"
    DONE = "done"


class PromptResponder:
    """Answers a single password prompt.

    ``AWAITING_PROMPT -> SENT`` once the watched buffer ends with the prompt
    signature, then ``-> DONE`` when the command terminates. Without a
    password the responder stays ``IDLE`` and never answers.
    """

    def __init__(self, password: Optional[str] = None) -> None:
        self._password = password
        self.state = PromptState.AWAITING_PROMPT if password else PromptState.IDLE

    @property
    def watching(self) -> bool:
        return self.state is PromptState.AWAITING_PROMPT

    def feed(self, buffer: str) -> Optional[str]:
        """Inspect the stdout buffer so far.

        Returns:
            The reply to write to stdin, or None
        """
        if not self.watching or not buffer.endswith(PROMPT_SIGNATURE):
            return None
        self.state = PromptState.SENT
        return f"{self._password}\n"

    def finish(self) -> None:
        if self.state is not PromptState.IDLE:
            self.state = PromptState.DONE


def consume(stream: CommandStream, password: Optional[str] = None) -> CommandOutcome:
    """Consume a command stream into a CommandOutcome.

    When a password is given, stdout is only watched for the prompt: it is
    reset once the password is sent and not returned to the caller.

    Args:
        stream: Running command
        password: Password to answer a prompt with

    Returns:
        CommandOutcome; stderr is the failure text on nonzero exit
    """
    responder = PromptResponder(password)
    stdout = ""
    stderr = ""

    for kind, chunk in stream.chunks():
        if kind is StreamKind.STDERR:
            stderr += chunk
            continue

        # once the password is sent, stdout is no longer collected
        if responder.state is PromptState.SENT:
            continue
        stdout += chunk
        if responder.watching:
            reply = responder.feed(stdout)
            if reply is not None:
                stream.write(reply)
                stdout = ""
                logger.debug("Answered password prompt")

    exit_status = stream.exit_status()
    responder.finish()

    if password:
        stdout = ""

    return CommandOutcome(exit_status=exit_status, stdout=stdout, stderr=stderr)
