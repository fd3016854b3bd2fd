"""Deployment orchestrator for a single target.

Sequence for one run::

    connect -> mktemp -d -> upload + extract artifact -> rm uploaded archive
            -> place content (docker container or host filesystem)
            -> rm -fr workspace (always) -> close session (always)

Each step either succeeds or raises ``DeploymentError`` internally; the
public entry points catch it and hand it back as a value.
"""

import asyncio
import posixpath
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Protocol

import structlog

from fastdeploy.config.schemas import DeployTarget, validate_target
from fastdeploy.deploy.errors import DeploymentError, ErrorKind
from fastdeploy.deploy.local import LocalArchiver, resolve_local_path
from fastdeploy.remote import commands
from fastdeploy.remote.channel import CommandOutcome
from fastdeploy.remote.session import RemoteSession
from fastdeploy.telemetry.logger import run_logger

Logger = structlog.stdlib.BoundLogger


class Session(Protocol):
    """What the orchestrator needs from a remote session."""

    def connect(self) -> None: ...

    def run(
        self, command: str, pty: bool = False, password: Optional[str] = None
    ) -> CommandOutcome: ...

    def put_file(self, local_path: Path, remote_path: str) -> None: ...

    def close(self) -> None: ...


SessionFactory = Callable[..., Session]


class Deployer:
    """Deploys a build artifact to one target at a time.

    Example:
        deployer = Deployer()
        error = deployer.deploy(target)
        if error:
            print(error.kind, error.reason)
    """

    def __init__(
        self,
        session_factory: SessionFactory = RemoteSession,
        archiver: Optional[LocalArchiver] = None,
        timeout: float = 30.0,
        cwd: Optional[Path] = None,
    ) -> None:
        """Initialize deployer.

        Args:
            session_factory: Builds a session for a target
            archiver: Local tar helper for directory deployments
            timeout: SSH connection timeout in seconds
            cwd: Base for relative local paths (defaults to the process cwd)
        """
        self._session_factory = session_factory
        self._archiver = archiver or LocalArchiver()
        self.timeout = timeout
        self._cwd = cwd

    def deploy_config(self, config: Any) -> Optional[DeploymentError]:
        """Validate a raw configuration, then deploy it.

        A configuration that fails validation never reaches the network.
        """
        validation = validate_target(config)
        if not validation.valid:
            host = config.get("host") if isinstance(config, Mapping) else None
            return DeploymentError(
                ErrorKind.ERR_ILLEGAL_ARGUMENT,
                "invalid configuration",
                "; ".join(validation.errors),
                host=host if isinstance(host, str) else None,
            )
        return self.deploy(validation.target)

    async def deploy_async(self, target: DeployTarget) -> Optional[DeploymentError]:
        """Run deploy() in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.deploy, target)

    def deploy(self, target: DeployTarget) -> Optional[DeploymentError]:
        """Deploy to one target.

        Returns:
            None on success, otherwise the first DeploymentError hit
        """
        log = run_logger(target)
        log.info("Deploying", user=target.username, source=target.artifact_source, container=target.cname)

        try:
            session = self._session_factory(target, timeout=self.timeout)
            session.connect()
        except Exception as e:
            log.error("Connection failed", error=str(e))
            return DeploymentError(
                ErrorKind.ERR_CONNECT,
                f"connect to {target.label}",
                str(e),
                host=target.host,
            )

        error: Optional[DeploymentError] = None
        workspace: Optional[str] = None
        step = ErrorKind.ERR_MK_TMP_DIR
        try:
            workspace = self._make_workspace(session, log)
            step = ErrorKind.ERR_PUT_FILE
            content_root = self._acquire_artifact(session, target, workspace, log)
            if target.cname:
                step = ErrorKind.ERR_CP_DIR
                self._place_in_container(session, target, content_root, log)
            else:
                step = ErrorKind.ERR_MV_DIR
                self._place_on_filesystem(session, target, content_root, log)
        except DeploymentError as e:
            error = e
        except Exception as e:
            log.exception("Unexpected failure", step=step.value)
            error = DeploymentError(step, "unexpected failure", f"{type(e).__name__}: {e}")
        finally:
            try:
                if workspace is not None:
                    cleanup_error = self._remove_workspace(session, workspace, log)
                    if error is None:
                        error = cleanup_error
            finally:
                self._close(session, log)

        if error is not None:
            error.host = target.host
            log.error("Deploy failed", kind=error.kind.value, reason=error.reason, cause=error.cause)
        else:
            log.info("Deploy finished", remote_static=target.remote_static)
        return error

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _run(
        self,
        session: Session,
        command: str,
        kind: ErrorKind,
        reason: str,
        log: Logger,
        pty: bool = False,
        password: Optional[str] = None,
    ) -> CommandOutcome:
        """Run a remote command; raise DeploymentError(kind) on failure."""
        log.debug("Remote command", command=command, pty=pty)
        try:
            outcome = session.run(command, pty=pty, password=password)
        except Exception as e:
            raise DeploymentError(kind, reason, str(e)) from e
        if not outcome.success:
            cause = outcome.error_text.strip() or f"exited with status {outcome.exit_status}"
            raise DeploymentError(kind, reason, cause)
        return outcome

    def _run_escalating(
        self,
        session: Session,
        command: str,
        privileged_command: str,
        target: DeployTarget,
        kind: ErrorKind,
        reason: str,
        log: Logger,
    ) -> None:
        """Run a command, retrying once under sudo on permission denied."""
        try:
            self._run(session, command, kind, reason, log)
            return
        except DeploymentError as e:
            if commands.PERMISSION_DENIED not in e.cause:
                raise
            log.info("Permission denied, retrying with sudo", command=command)

        self._run(
            session,
            privileged_command,
            kind,
            reason,
            log,
            pty=bool(target.password),
            password=target.password,
        )

    def _make_workspace(self, session: Session, log: Logger) -> str:
        reason = "create remote temp directory"
        outcome = self._run(session, commands.make_temp_dir(), ErrorKind.ERR_MK_TMP_DIR, reason, log)
        workspace = outcome.stdout.rstrip("\r\n")
        if not workspace:
            raise DeploymentError(ErrorKind.ERR_MK_TMP_DIR, reason, "mktemp returned no path")
        log.debug("Created workspace", workspace=workspace)
        return workspace

    def _upload(self, session: Session, local_path: Path, remote_path: str, log: Logger) -> None:
        try:
            session.put_file(local_path, remote_path)
        except Exception as e:
            raise DeploymentError(
                ErrorKind.ERR_PUT_FILE,
                f"upload {local_path} to {remote_path}",
                str(e),
            ) from e
        log.debug("Uploaded", local=str(local_path), remote=remote_path)

    def _acquire_artifact(
        self,
        session: Session,
        target: DeployTarget,
        workspace: str,
        log: Logger,
    ) -> str:
        """Upload and extract the artifact; return the content root."""
        if target.zip_file:
            return self._acquire_zip(session, target, workspace, log)
        if target.dist:
            return self._acquire_dist(session, target, workspace, log)
        raise DeploymentError(
            ErrorKind.ERR_ILLEGAL_ARGUMENT,
            "invalid zipFile or dist",
            "one of zipFile or dist is required",
        )

    def _acquire_zip(
        self,
        session: Session,
        target: DeployTarget,
        workspace: str,
        log: Logger,
    ) -> str:
        zip_path = resolve_local_path(target.zip_file, self._cwd)
        remote_zip = posixpath.join(workspace, zip_path.name)

        self._upload(session, zip_path, remote_zip, log)
        self._run(
            session,
            commands.unzip(remote_zip, workspace),
            ErrorKind.ERR_UNZIP,
            f"extract {remote_zip} into {workspace}",
            log,
        )
        self._discard_remote_archive(session, remote_zip, log)

        inner = (target.archive_dir_name or "").strip("/")
        content_root = posixpath.join(workspace, inner) if inner else workspace
        log.debug("Extracted archive", archive=remote_zip, content_root=content_root)
        return content_root

    def _acquire_dist(
        self,
        session: Session,
        target: DeployTarget,
        workspace: str,
        log: Logger,
    ) -> str:
        directory = resolve_local_path(target.dist, self._cwd)

        try:
            archive = self._archiver.create(directory)
        except Exception as e:
            raise DeploymentError(ErrorKind.ERR_TAR_DIR, f"archive {directory}", str(e)) from e

        remote_archive = posixpath.join(workspace, archive.name)
        try:
            self._upload(session, archive, remote_archive, log)
        finally:
            try:
                self._archiver.remove(archive)
            except Exception as e:
                log.warning(
                    "Could not remove local archive",
                    kind=ErrorKind.ERR_RM_FILE.value,
                    archive=str(archive),
                    error=str(e),
                )

        self._run(
            session,
            commands.untar(remote_archive, workspace),
            ErrorKind.ERR_UNZIP,
            f"extract {remote_archive} into {workspace}",
            log,
        )
        self._discard_remote_archive(session, remote_archive, log)

        content_root = posixpath.join(workspace, directory.name)
        log.debug("Extracted archive", archive=remote_archive, content_root=content_root)
        return content_root

    def _discard_remote_archive(self, session: Session, remote_archive: str, log: Logger) -> None:
        """Remove the uploaded archive so only extracted content gets placed."""
        self._run(
            session,
            commands.remove_file(remote_archive),
            ErrorKind.ERR_RM_FILE,
            f"remove uploaded archive {remote_archive}",
            log,
        )

    def _place_in_container(
        self,
        session: Session,
        target: DeployTarget,
        content_root: str,
        log: Logger,
    ) -> None:
        cname = target.cname
        static = target.remote_static
        list_cmd = commands.list_containers(cname)

        outcome = self._run(session, list_cmd, ErrorKind.ERR_GET_CID, list_cmd, log)
        cid = commands.parse_container_id(outcome.stdout)
        if not cid:
            raise DeploymentError(
                ErrorKind.ERR_GET_CID,
                list_cmd,
                f"no running container matches name={cname}",
            )
        log.debug("Found container", cname=cname, cid=cid)

        self._run(
            session,
            commands.remove_in_container(cid, static),
            ErrorKind.ERR_RM_FILE,
            f"remove {static} in container {cid}",
            log,
        )
        self._run(
            session,
            commands.copy_into_container(content_root, cid, static),
            ErrorKind.ERR_CP_DIR,
            f"copy {content_root} to {cid}:{static}",
            log,
        )
        log.debug("Copied into container", cid=cid, remote_static=static)

    def _place_on_filesystem(
        self,
        session: Session,
        target: DeployTarget,
        content_root: str,
        log: Logger,
    ) -> None:
        static = target.remote_static

        self._run_escalating(
            session,
            commands.remove_tree(static),
            commands.remove_tree(static, sudo=True, interactive=bool(target.password)),
            target,
            ErrorKind.ERR_RM_FILE,
            f"remove static directory {static}",
            log,
        )
        log.debug("Removed static directory", remote_static=static)

        self._run_escalating(
            session,
            commands.move(content_root, static),
            commands.move(content_root, static, sudo=True, interactive=bool(target.password)),
            target,
            ErrorKind.ERR_MV_DIR,
            f"move {content_root} to {static}",
            log,
        )
        log.debug("Moved content", content_root=content_root, remote_static=static)

    def _close(self, session: Session, log: Logger) -> None:
        try:
            session.close()
        except Exception as e:
            log.warning("Session close failed", error=str(e))

    def _remove_workspace(
        self,
        session: Session,
        workspace: str,
        log: Logger,
    ) -> Optional[DeploymentError]:
        try:
            self._run(
                session,
                commands.remove_tree(workspace),
                ErrorKind.ERR_RM_FILE,
                f"remove workspace {workspace}",
                log,
            )
        except DeploymentError as e:
            log.warning("Workspace cleanup failed", workspace=workspace, error=e.cause)
            return e
        log.debug("Removed workspace", workspace=workspace)
        return None


def deploy(config: Any, deployer: Optional[Deployer] = None) -> Optional[DeploymentError]:
    """Validate and deploy one configuration (mapping or DeployTarget)."""
    return (deployer or Deployer()).deploy_config(config)
