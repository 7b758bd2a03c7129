"""Configuration objects for releasectl."""

from dataclasses import dataclass, field

from .exceptions import InputException


@dataclass
class ReconcilerConfig:
    """Configuration for the Reconciler."""

    max_workers: int = 4
    """Maximum number of resource operations in flight at once."""

    max_attempts: int = 5
    """Attempts per operation before a transient failure is given up on."""

    backoff_initial: float = 0.5
    """Seconds to wait before the first retry, doubled on every retry."""

    backoff_max: float = 10.0
    """Upper bound in seconds for the wait between retries."""

    operation_timeout: float = 60.0
    """Seconds a single attempt may take before it counts as a failure."""

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise InputException(
                f"max_workers must be at least 1, got {self.max_workers}"
            )
        if self.max_attempts < 1:
            raise InputException(
                f"max_attempts must be at least 1, got {self.max_attempts}"
            )
        if self.operation_timeout <= 0:
            raise InputException(
                f"operation_timeout must be positive, got {self.operation_timeout}"
            )
        if self.backoff_initial < 0 or self.backoff_max < self.backoff_initial:
            raise InputException(
                "backoff_initial must not be negative or exceed backoff_max"
            )


@dataclass
class OrchestratorConfig:
    """Configuration for the Orchestrator."""

    reconciler: ReconcilerConfig = field(default_factory=ReconcilerConfig)
