"""Deployment orchestration: single-target deployer and batch dispatcher."""

from fastdeploy.deploy.batch import BatchDispatcher, BatchResult
from fastdeploy.deploy.errors import DeploymentError, ErrorKind
from fastdeploy.deploy.local import ArchiveError, LocalArchiver
from fastdeploy.deploy.orchestrator import Deployer, deploy

__all__ = [
    "ErrorKind",
    "DeploymentError",
    "ArchiveError",
    "LocalArchiver",
    "Deployer",
    "deploy",
    "BatchDispatcher",
    "BatchResult",
]
