"""Batch dispatch of deployments across many targets.

Targets run one after another by default. Every target gets its own result
slot, in input order, and a failing target never stops the ones after it.
"""

import asyncio
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence

from fastdeploy.config.schemas import DeployTarget
from fastdeploy.deploy.errors import DeploymentError, ErrorKind
from fastdeploy.deploy.orchestrator import Deployer
from fastdeploy.telemetry.logger import bind_context, get_logger, unbind_context

logger = get_logger(__name__)

ProgressCallback = Callable[[int, Optional[DeploymentError]], None]


@dataclass
class BatchResult:
    """Per-target outcomes of a batch, positionally aligned with the input.

    Attributes:
        errors: Slot i is None if target i succeeded, else its error
        duration_ms: Wall time of the whole batch
    """

    errors: list[Optional[DeploymentError]] = field(default_factory=list)
    duration_ms: float = 0.0

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self) -> Iterator[Optional[DeploymentError]]:
        return iter(self.errors)

    def __getitem__(self, index: int) -> Optional[DeploymentError]:
        return self.errors[index]

    @property
    def succeeded(self) -> int:
        return sum(1 for e in self.errors if e is None)

    @property
    def failed(self) -> int:
        return len(self.errors) - self.succeeded

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "errors": [e.to_dict() if e else None for e in self.errors],
            "succeeded": self.succeeded,
            "failed": self.failed,
            "duration_ms": self.duration_ms,
        }


def normalize_targets(configs: Any) -> list[Any]:
    """Turn one config or a sequence of configs into a list.

    Raises:
        TypeError: If configs is neither
    """
    if isinstance(configs, (Mapping, DeployTarget)):
        return [configs]
    if isinstance(configs, Sequence) and not isinstance(configs, (str, bytes)):
        return list(configs)
    raise TypeError(
        f"configs must be a target mapping or a sequence of them, got {type(configs).__name__}"
    )


class BatchDispatcher:
    """Runs the deployer once per target.

    Example:
        dispatcher = BatchDispatcher()
        result = dispatcher.run_all([config_a, config_b])
        for error in result:
            ...
    """

    def __init__(self, deployer: Optional[Deployer] = None, max_workers: int = 1) -> None:
        """Initialize dispatcher.

        Args:
            deployer: Deployer to use (a default one if not provided)
            max_workers: Targets deployed at once; 1 means strictly sequential
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.deployer = deployer or Deployer()
        self.max_workers = max_workers

    def run_all(
        self,
        configs: Any,
        on_complete: Optional[Callable[[BatchResult], None]] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """Deploy every target and collect the results.

        Args:
            configs: A target (mapping or DeployTarget) or a sequence of them
            on_complete: Called once with the finished BatchResult
            progress_callback: Called with (index, error) after each target

        Returns:
            BatchResult with one slot per target
        """
        targets = normalize_targets(configs)
        start_time = time.perf_counter()
        logger.info("Starting batch", targets=len(targets), max_workers=self.max_workers)

        if self.max_workers == 1 or len(targets) <= 1:
            errors = self._run_sequential(targets, progress_callback)
        else:
            errors = self._run_pooled(targets, progress_callback)

        result = BatchResult(
            errors=errors,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        logger.info(
            "Batch completed",
            succeeded=result.succeeded,
            failed=result.failed,
            duration_ms=result.duration_ms,
        )

        if on_complete:
            on_complete(result)
        return result

    async def run_all_async(
        self,
        configs: Any,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """Run run_all() in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: self.run_all(configs, progress_callback=progress_callback),
        )

    def _deploy_one(self, index: int, config: Any) -> Optional[DeploymentError]:
        bind_context(target_index=index)
        try:
            return self.deployer.deploy_config(config)
        except Exception as e:
            # a raising deployer still only costs this slot
            logger.exception("Deployer raised", target_index=index)
            host = config.get("host") if isinstance(config, Mapping) else getattr(config, "host", None)
            return DeploymentError(
                ErrorKind.ERR_ILLEGAL_ARGUMENT,
                "deployment raised",
                f"{type(e).__name__}: {e}",
                host=host if isinstance(host, str) else None,
            )
        finally:
            unbind_context("target_index")

    def _run_sequential(
        self,
        targets: list[Any],
        progress_callback: Optional[ProgressCallback],
    ) -> list[Optional[DeploymentError]]:
        errors: list[Optional[DeploymentError]] = []
        for index, config in enumerate(targets):
            error = self._deploy_one(index, config)
            errors.append(error)
            if progress_callback:
                progress_callback(index, error)
        return errors

    def _run_pooled(
        self,
        targets: list[Any],
        progress_callback: Optional[ProgressCallback],
    ) -> list[Optional[DeploymentError]]:
        """Deploy with up to max_workers targets in flight.

        Results land in an indexed buffer so slot order never depends on
        completion order.
        """
        errors: list[Optional[DeploymentError]] = [None] * len(targets)
        semaphore = threading.Semaphore(self.max_workers)
        callback_lock = threading.Lock()

        def deploy_slot(index: int, config: Any) -> None:
            with semaphore:
                errors[index] = self._deploy_one(index, config)
            if progress_callback:
                with callback_lock:
                    progress_callback(index, errors[index])

        threads = []
        for index, config in enumerate(targets):
            thread = threading.Thread(target=deploy_slot, args=(index, config))
            thread.start()
            threads.append(thread)

        for thread in threads:
            thread.join()

        return errors


def batch(
    configs: Any,
    on_complete: Optional[Callable[[BatchResult], None]] = None,
    max_workers: int = 1,
) -> BatchResult:
    """Deploy one or many configurations; see BatchDispatcher.run_all."""
    return BatchDispatcher(max_workers=max_workers).run_all(configs, on_complete=on_complete)
