"""Deployment error taxonomy.

Every remote or local step that can fail maps onto one ``ErrorKind``. A
``DeploymentError`` is raised between the orchestrator's own steps but is
handed to callers as a return value, never propagated out of a deployment.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Kinds of deployment failure."""

    ERR_MK_TMP_DIR = "ERR_MK_TMP_DIR"  # remote workspace could not be created
    ERR_PUT_FILE = "ERR_PUT_FILE"  # local-to-remote transfer failed
    ERR_UNZIP = "ERR_UNZIP"  # remote extraction failed
    ERR_GET_CID = "ERR_GET_CID"  # no matching running container
    ERR_RM_FILE = "ERR_RM_FILE"  # removing a path failed
    ERR_CP_DIR = "ERR_CP_DIR"  # copy into container failed
    ERR_MV_DIR = "ERR_MV_DIR"  # move to static path failed
    ERR_ILLEGAL_ARGUMENT = "ERR_ILLEGAL_ARGUMENT"  # invalid configuration
    ERR_TAR_DIR = "ERR_TAR_DIR"  # local archive creation failed
    ERR_CONNECT = "ERR_CONNECT"  # SSH connection could not be opened

    @property
    def code(self) -> int:
        """Numeric error code."""
        return _CODES[self]


_CODES = {
    ErrorKind.ERR_MK_TMP_DIR: 1001,
    ErrorKind.ERR_PUT_FILE: 1002,
    ErrorKind.ERR_UNZIP: 1003,
    ErrorKind.ERR_GET_CID: 1004,
    ErrorKind.ERR_RM_FILE: 1005,
    ErrorKind.ERR_CP_DIR: 1006,
    ErrorKind.ERR_MV_DIR: 1007,
    ErrorKind.ERR_ILLEGAL_ARGUMENT: 1008,
    ErrorKind.ERR_TAR_DIR: 1009,
    ErrorKind.ERR_CONNECT: 1010,
}


class DeploymentError(Exception):
    """A failed deployment step.

    Attributes:
        kind: Machine-readable failure kind
        reason: Which step failed and on which path
        cause: Underlying failure text (remote stderr, exception message)
        host: Target host, when known
    """

    def __init__(
        self,
        kind: ErrorKind,
        reason: str,
        cause: str = "",
        host: Optional[str] = None,
    ) -> None:
        super().__init__(reason)
        self.kind = kind
        self.reason = reason
        self.cause = cause
        self.host = host

    @property
    def code(self) -> int:
        return self.kind.code

    def __str__(self) -> str:
        text = f"[{self.kind.value}] {self.reason}"
        if self.host:
            text = f"{self.host}: {text}"
        if self.cause:
            text = f"{text}: {self.cause}"
        return text

    def __repr__(self) -> str:
        return f"DeploymentError(kind={self.kind.value!r}, reason={self.reason!r}, host={self.host!r})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "code": self.code,
            "reason": self.reason,
            "cause": self.cause,
            "host": self.host,
        }
