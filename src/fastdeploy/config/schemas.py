"""Deployment target schema and validation using Pydantic."""

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

# Older configuration field names and the current names they fold into.
LEGACY_ALIASES = {
    "zipInnerName": "archiveDirName",
    "staticDir": "remoteStatic",
}

REQUIRED_FIELDS = ("host", "port", "username")

_ROOT_PATH = re.compile(r"^\s*/+\s*$")


class DeployTarget(BaseModel):
    """One remote host plus the parameters for deploying to it.

    External configuration uses the camelCase names (``zipFile``,
    ``remoteStatic`` ...); snake_case names are accepted as well.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        strict=True,
        populate_by_name=True,
    )

    host: str = Field(description="Remote host name or IP")
    port: int = Field(default=22, gt=0, lt=65536, description="SSH port")
    username: str = Field(description="SSH user")
    password: Optional[str] = Field(
        default=None,
        description="SSH password, also answered to sudo prompts",
    )
    private_key: Optional[Union[str, bytes]] = Field(
        default=None,
        alias="privateKey",
        description="Private key material (PEM text) or path to a key file",
    )
    cname: Optional[str] = Field(
        default=None,
        description="Docker container name; selects in-container placement",
    )
    dist: Optional[str] = Field(
        default=None,
        description="Local directory to archive and upload",
    )
    zip_file: Optional[str] = Field(
        default=None,
        alias="zipFile",
        description="Prebuilt zip archive to upload",
    )
    archive_dir_name: Optional[str] = Field(
        default=None,
        alias="archiveDirName",
        description="Directory inside the archive holding the content",
    )
    remote_static: str = Field(
        alias="remoteStatic",
        description="Remote directory the content is placed at",
    )
    debug: bool = Field(default=False, description="Trace every step of this run")

    @model_validator(mode="before")
    @classmethod
    def fold_legacy_fields(cls, data: Any) -> Any:
        """Fold legacy field names into their current counterparts."""
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        for legacy, current in LEGACY_ALIASES.items():
            if legacy not in data:
                continue
            value = data.pop(legacy)
            if not data.get(current):
                data[current] = value
        return data

    @field_validator("remote_static")
    @classmethod
    def validate_remote_static(cls, v: str) -> str:
        """Reject empty, root and wildcard static directories."""
        if not v.strip():
            raise ValueError("must not be empty")
        if "*" in v:
            raise ValueError("must not contain a wildcard")
        if _ROOT_PATH.match(v):
            raise ValueError("must not be the filesystem root")
        return v

    @property
    def label(self) -> str:
        """Human-readable ``user@host:port`` label."""
        return f"{self.username}@{self.host}:{self.port}"

    @property
    def artifact_source(self) -> Optional[str]:
        """Which artifact source is used: ``"zip"``, ``"dist"`` or None."""
        if self.zip_file:
            return "zip"
        if self.dist:
            return "dist"
        return None


@dataclass
class ValidationResult:
    """Result of validating one raw target configuration.

    Attributes:
        valid: Whether validation passed
        target: The validated target when valid
        errors: Human-readable messages when invalid
    """

    valid: bool
    target: Optional[DeployTarget] = None
    errors: list[str] = field(default_factory=list)


def _friendly_error(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    prefix = f"FastDeployConfig.{location}" if location else "FastDeployConfig"
    return f"{prefix} {error.get('msg', 'is invalid')}"


def validate_target(data: Any) -> ValidationResult:
    """Validate a raw target configuration.

    All-or-nothing: either a ``DeployTarget`` comes back or a list of
    every problem found. Nothing is raised.

    Args:
        data: Mapping as read from a configuration file

    Returns:
        ValidationResult
    """
    if isinstance(data, DeployTarget):
        return ValidationResult(valid=True, target=data)
    if not isinstance(data, Mapping):
        return ValidationResult(
            valid=False,
            errors=[f"FastDeployConfig should be a mapping, got {type(data).__name__}"],
        )

    missing = [
        f"FastDeployConfig should have required property '{name}'"
        for name in REQUIRED_FIELDS
        if name not in data
    ]
    if missing:
        return ValidationResult(valid=False, errors=missing)

    try:
        target = DeployTarget.model_validate(data)
    except ValidationError as e:
        return ValidationResult(
            valid=False,
            errors=[_friendly_error(err) for err in e.errors()],
        )
    return ValidationResult(valid=True, target=target)
