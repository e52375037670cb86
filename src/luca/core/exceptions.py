"""
LUCA Core Exceptions

Defines the exception taxonomy shared by the orchestrator and its collaborators.

Exception Hierarchy:
    LUCAError (base)
    ├── ConfigurationError
    ├── LifecycleError
    │   ├── InvalidTransitionError
    │   │   └── AlreadyInitializedError
    │   ├── InitializationError
    │   ├── NotInitializedError
    │   ├── AlreadyLearningError
    │   └── ShutdownError
    ├── OperationError
    │   ├── ProcessingError
    │   ├── QueryError
    │   ├── SnapshotError
    │   └── RestoreError
    └── CollaboratorError
        ├── StorageError
        ├── LinkError
        ├── SearchError
        ├── EvolutionError
        ├── FitnessUpdateError
        ├── RankingError
        ├── AnalysisError
        └── SerializationError

Operation errors wrap the first failing collaborator call. The original
exception is kept on ``original_error`` and chained as ``__cause__``.
"""

from typing import Any, Dict, List, Optional


class LUCAError(Exception):
    """
    Base exception for all LUCA errors.

    Every LUCA exception inherits from this class, so callers can catch
    the whole family with a single except clause.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ', '.join(f'{k}={v!r}' for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message

    @property
    def is_recoverable(self) -> bool:
        return False


class ConfigurationError(LUCAError):
    """Raised when a configuration value or file is invalid."""

    def __init__(self, message: str = "Invalid configuration", issues: Optional[List[str]] = None,
                 path: Optional[str] = None):
        details: Dict[str, Any] = {}
        if issues:
            details['issues'] = issues
        if path is not None:
            details['path'] = path
        super().__init__(message, details)
        self.issues = issues or []
        self.path = path


# =============================================================================
# LIFECYCLE ERRORS
# =============================================================================

class LifecycleError(LUCAError):
    """Base class for lifecycle state machine violations."""
    pass


class InvalidTransitionError(LifecycleError):
    """
    Raised when a lifecycle transition is not in the allowed-transition table.

    The rejection is deterministic: the current phase is left untouched.
    """

    def __init__(self, current: Any, target: Any, operation: Optional[str] = None):
        details = {
            'current': getattr(current, 'value', current),
            'target': getattr(target, 'value', target),
        }
        if operation:
            details['operation'] = operation
        super().__init__("Invalid lifecycle transition", details)
        self.current = current
        self.target = target
        self.operation = operation


class AlreadyInitializedError(InvalidTransitionError):
    """Raised when initialize() is called on a Core that is already ready."""

    def __init__(self, current: Any, target: Any):
        super().__init__(current, target, operation="initialize")
        self.message = "Core is already initialized"


class InitializationError(LifecycleError):
    """
    Raised when a collaborator fails to initialize.

    The Core stays uninitialized after this error.
    """

    def __init__(self, stage: str, original_error: Optional[Exception] = None):
        details = {'stage': stage}
        if original_error is not None:
            details['original_error'] = str(original_error)
        super().__init__("Failed to initialize LUCA Core", details)
        self.stage = stage
        self.original_error = original_error


class NotInitializedError(LifecycleError):
    """
    Raised when an operation requires an initialized Core.

    This is a RECOVERABLE error: call initialize() and retry.
    """

    def __init__(self, operation: str):
        super().__init__(
            f"LUCA Core must be initialized before {operation}",
            details={'operation': operation},
        )
        self.operation = operation

    @property
    def is_recoverable(self) -> bool:
        return True


class AlreadyLearningError(LifecycleError):
    """Raised when a second learn session is requested while one is active."""

    def __init__(self, operation: str = "learn"):
        super().__init__("Learning cycle already in progress", details={'operation': operation})
        self.operation = operation

    @property
    def is_recoverable(self) -> bool:
        return True


class ShutdownError(LifecycleError):
    """
    Raised when one or more collaborators fail to shut down.

    The Core is uninitialized regardless. ``failures`` lists every stage
    that failed, in shutdown order.
    """

    def __init__(self, failures: List[tuple]):
        stage, error = failures[0]
        super().__init__(
            "Error during LUCA Core shutdown",
            details={
                'stage': stage,
                'original_error': str(error),
                'failed_stages': [s for s, _ in failures],
            },
        )
        self.stage = stage
        self.original_error = error
        self.failures = failures


# =============================================================================
# OPERATION ERRORS
# =============================================================================

class OperationError(LUCAError):
    """
    Base class for errors aborting a single Core operation.

    Attributes:
        stage: Pipeline stage that failed (memory, evolution, interpretation, ...)
        original_error: The collaborator exception that caused the abort
    """

    operation = "operation"

    def __init__(self, stage: str, original_error: Optional[Exception] = None,
                 message: Optional[str] = None):
        details = {'stage': stage}
        if original_error is not None:
            details['original_error'] = f"{type(original_error).__name__}: {original_error}"
        super().__init__(message or f"Error during {self.operation}", details)
        self.stage = stage
        self.original_error = original_error


class ProcessingError(OperationError):
    """Raised when a collaborator call fails inside process()."""
    operation = "processing"


class QueryError(OperationError):
    """Raised when a collaborator call fails inside query()."""
    operation = "query"


class SnapshotError(OperationError):
    """Raised when gathering collaborator state for a snapshot fails."""
    operation = "snapshot"


class RestoreError(OperationError):
    """Raised when a snapshot blob is malformed or a collaborator rejects it."""
    operation = "restore"


# =============================================================================
# COLLABORATOR ERRORS
# =============================================================================

class CollaboratorError(LUCAError):
    """Base class for errors raised by Memory, Evolution and Interpretation."""
    pass


class StorageError(CollaboratorError):
    """Raised when the memory collaborator cannot store a node."""
    pass


class LinkError(CollaboratorError):
    """
    Raised when linking a node to its concepts fails.

    Inside the learn loop this is best-effort: logged, never fatal.
    """

    def __init__(self, message: str = "Failed to link node", node_id: Optional[str] = None):
        details = {'node_id': node_id} if node_id is not None else {}
        super().__init__(message, details)
        self.node_id = node_id

    @property
    def is_recoverable(self) -> bool:
        return True


class SearchError(CollaboratorError):
    """Raised when the memory collaborator cannot answer a search."""
    pass


class EvolutionError(CollaboratorError):
    """Raised when an evolution cycle fails."""
    pass


class FitnessUpdateError(CollaboratorError):
    """
    Raised when fitness feedback cannot be applied.

    Inside the learn loop this is best-effort: logged, never fatal.
    """

    @property
    def is_recoverable(self) -> bool:
        return True


class RankingError(CollaboratorError):
    """Raised when candidate ranking fails."""
    pass


class AnalysisError(CollaboratorError):
    """Raised when the interpreter cannot analyze a subject."""
    pass


class SerializationError(CollaboratorError):
    """Raised when collaborator state cannot be exported or imported."""

    def __init__(self, message: str = "Failed to (de)serialize state",
                 component: Optional[str] = None,
                 original_error: Optional[Exception] = None):
        details: Dict[str, Any] = {}
        if component:
            details['component'] = component
        if original_error:
            details['original_error'] = str(original_error)
        super().__init__(message, details)
        self.component = component
        self.original_error = original_error
