"""SSH session to a single deployment target.

Wraps one paramiko connection: remote command execution (optionally on a
pseudo terminal, needed for sudo prompts) and SFTP file transfer.
"""

import codecs
import io
import threading
import time
from pathlib import Path
from typing import Iterator, Optional, Union

import paramiko

from fastdeploy.config.schemas import DeployTarget
from fastdeploy.remote.channel import CommandOutcome, StreamKind, consume
from fastdeploy.telemetry.logger import get_logger

logger = get_logger(__name__)

_KEY_TYPES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


class TransferError(Exception):
    """Raised when a file transfer to the remote host fails."""


def load_private_key(material: Union[str, bytes], passphrase: Optional[str] = None) -> paramiko.PKey:
    """Parse PEM/OpenSSH private key text into a paramiko key.

    Args:
        material: Key text
        passphrase: Passphrase for encrypted keys

    Returns:
        Parsed key

    Raises:
        paramiko.SSHException: If no supported key type accepts the text
    """
    text = material.decode("utf-8") if isinstance(material, bytes) else material
    last_error: Optional[Exception] = None
    for key_cls in _KEY_TYPES:
        try:
            return key_cls.from_private_key(io.StringIO(text), password=passphrase)
        except paramiko.SSHException as e:
            last_error = e
    raise paramiko.SSHException(f"Unsupported private key: {last_error}")


class ChannelStream:
    """CommandStream over a paramiko channel.

    Chunks are yielded in the order they become readable. Bytes are decoded
    incrementally so multi-byte characters split across reads survive.
    """

    def __init__(self, channel: "paramiko.Channel", poll_interval: float = 0.02) -> None:
        self._channel = channel
        self._poll_interval = poll_interval
        self._stdout = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._stderr = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def chunks(self) -> Iterator[tuple[StreamKind, str]]:
        channel = self._channel
        while True:
            received = False
            if channel.recv_ready():
                data = channel.recv(32768)
                received = True
                text = self._stdout.decode(data)
                if text:
                    yield StreamKind.STDOUT, text
            if channel.recv_stderr_ready():
                data = channel.recv_stderr(32768)
                received = True
                text = self._stderr.decode(data)
                if text:
                    yield StreamKind.STDERR, text
            if received:
                continue
            if channel.exit_status_ready():
                break
            time.sleep(self._poll_interval)

        tail = self._stdout.decode(b"", final=True)
        if tail:
            yield StreamKind.STDOUT, tail
        tail = self._stderr.decode(b"", final=True)
        if tail:
            yield StreamKind.STDERR, tail

    def write(self, data: str) -> None:
        self._channel.sendall(data.encode("utf-8"))

    def exit_status(self) -> int:
        return self._channel.recv_exit_status()

    def close(self) -> None:
        self._channel.close()


class RemoteSession:
    """One authenticated SSH connection to a deployment target.

    Example:
        with RemoteSession(target) as session:
            outcome = session.run("mktemp -d")
            session.put_file(Path("build.zip"), "/tmp/tmp.x/build.zip")
    """

    def __init__(self, target: DeployTarget, timeout: float = 30.0) -> None:
        """Initialize the session (does not connect).

        Args:
            target: Target to connect to
            timeout: Connection timeout in seconds
        """
        self.target = target
        self.timeout = timeout
        self._client: Optional[paramiko.SSHClient] = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        """Check if connection is active."""
        if not self._client:
            return False
        transport = self._client.get_transport()
        return transport is not None and transport.is_active()

    def _auth_kwargs(self) -> dict:
        target = self.target
        kwargs: dict = {"allow_agent": True, "look_for_keys": True}
        if target.private_key:
            key = target.private_key
            key_path = Path(key).expanduser() if isinstance(key, str) and "\n" not in key else None
            if key_path is not None and key_path.exists():
                kwargs["key_filename"] = str(key_path)
            else:
                kwargs["pkey"] = load_private_key(key, passphrase=target.password)
            if target.password:
                kwargs["passphrase"] = target.password
        if target.password:
            kwargs["password"] = target.password
        return kwargs

    def connect(self) -> None:
        """Open the SSH connection.

        Key material is tried first when configured, then the password,
        then agent and default keys.

        Raises:
            ConnectionError: If connection fails
        """
        with self._lock:
            if self.is_connected:
                return

            target = self.target
            client = paramiko.SSHClient()
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
            try:
                client.connect(
                    hostname=target.host,
                    port=target.port,
                    username=target.username,
                    timeout=self.timeout,
                    **self._auth_kwargs(),
                )
            except Exception as e:
                client.close()
                logger.error("SSH connection failed", host=target.host, port=target.port, error=str(e))
                raise ConnectionError(f"Failed to connect to {target.label}: {e}") from e

            self._client = client
            logger.debug("SSH connected", host=target.host, port=target.port)

    def execute(self, command: str, pty: bool = False) -> ChannelStream:
        """Start a remote command.

        Args:
            command: Shell command line
            pty: Request a pseudo terminal (needed for interactive prompts)

        Returns:
            Stream of the running command
        """
        if not self._client:
            raise ConnectionError("Session is not connected")
        transport = self._client.get_transport()
        if transport is None or not transport.is_active():
            raise ConnectionError("Session transport is closed")

        channel = transport.open_session(timeout=self.timeout)
        if pty:
            channel.get_pty()
        channel.exec_command(command)
        return ChannelStream(channel)

    def run(
        self,
        command: str,
        pty: bool = False,
        password: Optional[str] = None,
    ) -> CommandOutcome:
        """Execute a command and consume its output.

        Args:
            command: Shell command line
            pty: Request a pseudo terminal
            password: Answer a password prompt with this

        Returns:
            CommandOutcome
        """
        stream = self.execute(command, pty=pty)
        try:
            outcome = consume(stream, password=password)
        finally:
            stream.close()
        logger.debug("Remote command finished", command=command, exit_status=outcome.exit_status)
        return outcome

    def put_file(self, local_path: Path, remote_path: str) -> None:
        """Upload a local file over SFTP.

        Raises:
            TransferError: If the upload fails
        """
        if not self._client:
            raise TransferError("Session is not connected")
        sftp = None
        try:
            sftp = self._client.open_sftp()
            sftp.put(str(local_path), remote_path)
        except Exception as e:
            raise TransferError(f"Failed to upload {local_path} to {remote_path}: {e}") from e
        finally:
            if sftp is not None:
                sftp.close()

    def close(self) -> None:
        """Close the SSH connection; repeated calls are no-ops."""
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()
            logger.debug("SSH session closed", host=self.target.host)

    def __enter__(self) -> "RemoteSession":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
