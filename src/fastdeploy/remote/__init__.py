"""Remote execution: SSH session, command channel and command builders."""

from fastdeploy.remote.channel import (
    CommandOutcome,
    CommandStream,
    PromptResponder,
    PromptState,
    StreamKind,
    consume,
)
from fastdeploy.remote.session import ChannelStream, RemoteSession, TransferError

__all__ = [
    "CommandOutcome",
    "CommandStream",
    "PromptResponder",
    "PromptState",
    "StreamKind",
    "consume",
    "ChannelStream",
    "RemoteSession",
    "TransferError",
]
