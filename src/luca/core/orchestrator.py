"""
LUCA Core Orchestrator
Coordinates the Memory, Evolution and Interpretation collaborators into one
pipeline: ingest data, evolve a candidate, interpret it, and link successful
interpretations back into memory.

Example:
    core = LUCACore(memory, evolution, interpreter, CoreConfig())
    await core.initialize()

    result = await core.process("solar panels convert light")

    async with core.learn(stream) as session:
        async for result in session:
            ...

    ranking = await core.query("light")
    blob = (await core.snapshot()).to_dict()
    await core.shutdown()
"""

from datetime import datetime
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Union
import asyncio
import logging
import weakref

from pydantic import ValidationError

from luca.core.config import CoreConfig
from luca.core.base import (
    Collaborator,
    EvolutionCollaborator,
    InterpretationCollaborator,
    MemoryCollaborator,
)
from luca.core.exceptions import (
    AlreadyLearningError,
    FitnessUpdateError,
    InitializationError,
    LinkError,
    ProcessingError,
    QueryError,
    RestoreError,
    ShutdownError,
    SnapshotError,
)
from luca.core.lifecycle import CancellationToken, LifecycleMachine, LifecycleState, Phase
from luca.core.schemas import ProcessResult, QueryResult, SnapshotState

DataStream = Union[Iterable[Any], AsyncIterator[Any]]


class LearningStream:
    """
    Pull-based, single-pass sequence of ProcessResults returned by learn().

    Nothing runs until the first pull. The loop never fetches the next stream
    item before the previous result has been consumed. Stop it with cancel(),
    aclose(), the token, or by leaving an ``async with`` block. A stream that
    is dropped mid-iteration (``break`` out of a bare ``async for``) cancels
    its token, which frees the learn slot at once.
    """

    def __init__(self, core: "LUCACore", data_stream: DataStream,
                 token: Optional[CancellationToken] = None):
        self.token = token or CancellationToken()
        self._core = core
        self._generator = core._learning_loop(data_stream, self.token)
        self._finalizer = weakref.finalize(self, self.token.cancel, "stream dropped")

    def __aiter__(self) -> "LearningStream":
        return self

    async def __anext__(self) -> ProcessResult:
        return await self._generator.__anext__()

    def cancel(self, reason: str = "consumer stopped") -> None:
        """Signal cancellation; the learn slot is released immediately."""
        self.token.cancel(reason)

    async def aclose(self) -> None:
        self.cancel()
        await self._generator.aclose()

    async def __aenter__(self) -> "LearningStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class LUCACore:
    """
    Orchestration core for LUCA.

    Owns the configuration and the lifecycle state machine; each collaborator
    owns its own internal state and is reached only through its interface.
    """

    def __init__(
        self,
        memory: MemoryCollaborator,
        evolution: EvolutionCollaborator,
        interpreter: InterpretationCollaborator,
        config: Optional[CoreConfig] = None,
    ):
        self._config = config or CoreConfig()
        self.memory = memory
        self.evolution = evolution
        self.interpreter = interpreter
        self.logger = logging.getLogger("LUCA.Core")
        self._machine = LifecycleMachine()

    @property
    def config(self) -> CoreConfig:
        return self._config

    @property
    def state(self) -> LifecycleState:
        return self._machine.state

    @property
    def is_initialized(self) -> bool:
        return self._machine.state.initialized

    @property
    def is_learning(self) -> bool:
        return self._machine.state.learning

    @property
    def _collaborators(self) -> List[Collaborator]:
        # Order matters: later stages may assume earlier ones are ready
        return [self.memory, self.evolution, self.interpreter]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """
        Initialize Memory, then Evolution, then Interpretation.

        Raises:
            AlreadyInitializedError: If the Core is already ready
            InitializationError: If a collaborator fails; Core stays uninitialized
        """
        async with self._machine.lock:
            self._machine.transition(Phase.INITIALIZING, operation="initialize")
            self.logger.info("Initializing LUCA Core...")
            try:
                await self._initialize_collaborators()
            except InitializationError:
                self._machine.transition(Phase.UNINITIALIZED)
                raise

            self._machine.transition(Phase.READY)
            self.state.touch()

        self.logger.info("LUCA Core ready")
        return True

    async def _initialize_collaborators(self) -> None:
        started: List[Collaborator] = []
        for collaborator in self._collaborators:
            try:
                await collaborator.initialize()
            except Exception as e:
                self.logger.error(f"Failed to initialize {collaborator.name}: {e}")
                await self._rollback(started)
                raise InitializationError(collaborator.name, e) from e
            started.append(collaborator)
            self.logger.info(f"✓ {type(collaborator).__name__} initialized")

    async def _rollback(self, started: List[Collaborator]) -> None:
        """Shut down collaborators started by a failed initialization."""
        for collaborator in reversed(started):
            try:
                await collaborator.shutdown()
            except Exception as e:
                self.logger.warning(f"Rollback of {collaborator.name} failed: {e}")

    async def shutdown(self) -> None:
        """
        Stop any learn session, then shut down Memory, Evolution, Interpretation.

        Every collaborator is attempted. The Core ends uninitialized even when
        a ShutdownError is raised for the first failure.
        """
        failures = []
        async with self._machine.lock:
            self.logger.info("Shutting down LUCA Core...")
            self._machine.cancel_learning("shutdown")
            self._machine.transition(Phase.SHUTTING_DOWN, operation="shutdown")
            try:
                for collaborator in self._collaborators:
                    try:
                        await collaborator.shutdown()
                    except Exception as e:
                        self.logger.error(f"Error shutting down {collaborator.name}: {e}")
                        failures.append((collaborator.name, e))
            finally:
                self._machine.transition(Phase.UNINITIALIZED)
                self.state.touch()

        if failures:
            raise ShutdownError(failures) from failures[0][1]
        self.logger.info("LUCA Core shutdown complete")

    # ------------------------------------------------------------------
    # Process
    # ------------------------------------------------------------------

    async def process(self, data: Any) -> ProcessResult:
        """
        Run a single item through memory, evolution and interpretation.

        Raises:
            NotInitializedError: If the Core is not initialized
            ProcessingError: Wrapping the first failing collaborator call
        """
        self._machine.require_initialized("processing")

        try:
            memory_node = await self.memory.add_node(data)
        except Exception as e:
            raise self._processing_error("memory", e) from e
        self.logger.debug(f"Memory node created: {memory_node.id}")

        try:
            genome_result = await self.evolution.evolve(data)
        except Exception as e:
            raise self._processing_error("evolution", e) from e
        self.logger.debug(f"Genome evolution complete: {genome_result.fitness}")

        try:
            interpretation = await self.interpreter.analyze(genome_result.best_individual)
        except Exception as e:
            raise self._processing_error("interpretation", e) from e
        self.logger.debug(f"Interpretation confidence: {interpretation.confidence}")

        now = datetime.now()
        result = ProcessResult(
            memory_node_id=memory_node.id,
            genome_result=genome_result,
            interpretation=interpretation,
            timestamp=now,
            success=interpretation.confidence >= self._config.interpretation_threshold,
        )

        self.state.total_processed += 1
        self.state.last_update = now
        return result

    def _processing_error(self, stage: str, error: Exception) -> ProcessingError:
        self.logger.error(f"Error processing data at {stage} stage: {error}")
        return ProcessingError(stage, error)

    # ------------------------------------------------------------------
    # Learn
    # ------------------------------------------------------------------

    def learn(self, data_stream: DataStream,
              token: Optional[CancellationToken] = None) -> LearningStream:
        """
        Start a continuous learning cycle over ``data_stream``.

        Preconditions are checked on the first pull:
            NotInitializedError: If the Core is not initialized
            AlreadyLearningError: If another learn session is active
        """
        return LearningStream(self, data_stream, token)

    async def _learning_loop(self, data_stream: DataStream,
                             token: CancellationToken) -> AsyncIterator[ProcessResult]:
        async with self._machine.lock:
            self._machine.acquire_learning(token)

        self.logger.info("Starting learning cycle...")
        yielded = 0
        outcome = "cancelled"
        iterator = None
        try:
            if hasattr(data_stream, "__aiter__"):
                iterator = data_stream.__aiter__()
                is_async = True
            else:
                iterator = iter(data_stream)
                is_async = False

            # Cancellation and shutdown both take the slot away from this token
            while self._machine.owns_learning(token):
                try:
                    data = await iterator.__anext__() if is_async else next(iterator)
                except (StopAsyncIteration, StopIteration):
                    outcome = "completed"
                    break

                result = await self.process(data)

                if result.success:
                    await self._link_result(result)
                await self._feed_back(result)

                yielded += 1
                yield result
        except Exception:
            outcome = "failed"
            raise
        finally:
            self._machine.release_learning(token)
            await self._close_source(iterator)
            if outcome == "completed":
                self.state.touch()
                self.logger.info(f"Learning cycle completed ({yielded} results)")
            elif outcome == "failed":
                self.logger.error(f"Learning cycle aborted after {yielded} results")
            else:
                self.logger.info(
                    f"Learning cycle stopped after {yielded} results "
                    f"({token.reason or 'consumer stopped'})"
                )

    async def _close_source(self, iterator: Any) -> None:
        """Close the caller's stream so its own cleanup runs."""
        try:
            if hasattr(iterator, "aclose"):
                await iterator.aclose()
            elif hasattr(iterator, "close"):
                iterator.close()
        except Exception as e:
            self.logger.warning(f"Error closing data stream: {e}")

    async def _link_result(self, result: ProcessResult) -> None:
        """Best-effort: a failed link is logged and never aborts the loop."""
        try:
            await self.memory.link_nodes(
                result.memory_node_id,
                result.interpretation.related_concepts,
            )
        except Exception as e:
            error = e if isinstance(e, LinkError) else LinkError(str(e), node_id=result.memory_node_id)
            self.logger.warning(f"Non-fatal link failure: {error}")

    async def _feed_back(self, result: ProcessResult) -> None:
        """Best-effort fitness feedback from interpretation confidence."""
        try:
            await self.evolution.update_fitness(result.interpretation.confidence)
        except Exception as e:
            error = e if isinstance(e, FitnessUpdateError) else FitnessUpdateError(str(e))
            self.logger.warning(f"Non-fatal fitness update failure: {error}")

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    async def query(self, query: str) -> QueryResult:
        """
        Search memory and interpret the query concurrently, then rank.

        Raises:
            NotInitializedError: If the Core is not initialized
            QueryError: Wrapping the first failing collaborator call
        """
        self._machine.require_initialized("querying")

        memory_results, query_interpretation = await asyncio.gather(
            self.memory.search(query),
            self.interpreter.analyze(query),
            return_exceptions=True,
        )
        for stage, outcome in (("memory", memory_results), ("interpretation", query_interpretation)):
            if isinstance(outcome, BaseException):
                self.logger.error(f"Error during query at {stage} stage: {outcome}")
                raise QueryError(stage, outcome) from outcome

        try:
            ranked_results = await self.evolution.select_best(memory_results, query_interpretation)
        except Exception as e:
            self.logger.error(f"Error during query at evolution stage: {e}")
            raise QueryError("evolution", e) from e

        now = datetime.now()
        self.state.last_update = now
        return QueryResult(
            query=query,
            results=tuple(ranked_results),
            confidence=query_interpretation.confidence,
            timestamp=now,
        )

    # ------------------------------------------------------------------
    # Stats, snapshot, restore
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        """Get system statistics."""
        stats = self.state.to_dict()
        for collaborator in self._collaborators:
            stats[collaborator.name] = collaborator.get_stats() if self.is_initialized else None
        return stats

    async def snapshot(self) -> SnapshotState:
        """
        Gather config, stats and collaborator sub-states into one record.

        Nothing is written anywhere; persistence is the caller's job.
        """
        self._machine.require_initialized("snapshot")

        exported = {}
        for collaborator in self._collaborators:
            try:
                exported[collaborator.name] = await collaborator.export_state()
            except Exception as e:
                self.logger.error(f"Error exporting {collaborator.name} state: {e}")
                raise SnapshotError(collaborator.name, e) from e

        snapshot = SnapshotState(
            config=self._config.to_dict(),
            stats=self.get_stats(),
            memory_state=exported["memory"],
            evolution_state=exported["evolution"],
            interpretation_state=exported["interpretation"],
            saved_at=datetime.now().isoformat(),
        )
        self.logger.info(f"System state captured at {snapshot.saved_at}")
        return snapshot

    async def restore(self, blob: Union[SnapshotState, Dict[str, Any]]) -> None:
        """
        Validate a snapshot blob and hand each sub-state to its collaborator.

        An uninitialized Core initializes its collaborators first. A ready
        Core keeps its live states and re-imports them if any collaborator
        rejects the snapshot, so no mix of two snapshots survives. On failure
        the previous phase is kept and RestoreError is raised.
        """
        try:
            snapshot = blob if isinstance(blob, SnapshotState) else SnapshotState.model_validate(blob)
        except ValidationError as e:
            raise RestoreError("validation", e, message="Malformed snapshot blob") from e

        if snapshot.config != self._config.to_dict():
            self.logger.warning("Snapshot config differs from live config; keeping live config")

        async with self._machine.lock:
            if self.state.learning:
                raise AlreadyLearningError(operation="restore")

            previous = self._machine.transition(Phase.INITIALIZING, operation="restore")
            live_states: Dict[str, Dict[str, Any]] = {}
            if previous is Phase.UNINITIALIZED:
                try:
                    await self._initialize_collaborators()
                except InitializationError as e:
                    self._machine.transition(Phase.UNINITIALIZED)
                    raise RestoreError(e.stage, e) from e
            else:
                for collaborator in self._collaborators:
                    try:
                        live_states[collaborator.name] = await collaborator.export_state()
                    except Exception as e:
                        self.logger.error(f"Error saving live {collaborator.name} state: {e}")
                        self._machine.transition(Phase.READY)
                        raise RestoreError(collaborator.name, e) from e

            sub_states = {
                "memory": snapshot.memory_state,
                "evolution": snapshot.evolution_state,
                "interpretation": snapshot.interpretation_state,
            }
            imported: List[Collaborator] = []
            for collaborator in self._collaborators:
                try:
                    await collaborator.import_state(sub_states[collaborator.name])
                except Exception as e:
                    self.logger.error(f"Error restoring {collaborator.name} state: {e}")
                    if previous is Phase.UNINITIALIZED:
                        await self._rollback(self._collaborators)
                        self._machine.transition(Phase.UNINITIALIZED)
                    else:
                        await self._reimport(imported, live_states)
                        self._machine.transition(Phase.READY)
                    raise RestoreError(collaborator.name, e) from e
                imported.append(collaborator)

            self._machine.transition(Phase.READY)
            self.state.touch()

        self.logger.info(f"System state restored from snapshot saved at {snapshot.saved_at}")

    async def _reimport(self, imported: List[Collaborator],
                        live_states: Dict[str, Dict[str, Any]]) -> None:
        """Put back the live states of collaborators that already took the snapshot."""
        for collaborator in reversed(imported):
            try:
                await collaborator.import_state(live_states[collaborator.name])
            except Exception as e:
                self.logger.error(f"Could not reinstate live {collaborator.name} state: {e}")
