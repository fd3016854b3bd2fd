"""
fastdeploy - ship static build artifacts to remote hosts over SSH.

Uploads a build directory or zip archive, extracts it in a temporary remote
workspace and places it either on the host filesystem (retrying under sudo
on permission errors) or inside a running Docker container.
"""

__version__ = "0.1.0"

from fastdeploy.config.schemas import DeployTarget, validate_target
from fastdeploy.deploy import BatchDispatcher, BatchResult, Deployer, DeploymentError, ErrorKind
from fastdeploy.deploy.batch import batch

__all__ = [
    "__version__",
    "DeployTarget",
    "validate_target",
    "Deployer",
    "DeploymentError",
    "ErrorKind",
    "BatchDispatcher",
    "BatchResult",
    "batch",
]
