"""Polling of execution state for monitored subjects."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from cicdlab.pipeline_monitor.client import ExecutionClient
from cicdlab.pipeline_monitor.errors import NotFoundError, PipelineClientError
from cicdlab.pipeline_monitor.models.client_config import PollingConfig
from cicdlab.pipeline_monitor.models.execution import ExecutionId, ExecutionRecord
from cicdlab.pipeline_monitor.models.stage import ExecutionSnapshot

logger = logging.getLogger(__name__)

PollResult = list[ExecutionRecord] | ExecutionSnapshot
UpdateCallback = Callable[["Subject", PollResult], None]
ErrorCallback = Callable[["Subject", Exception], None]


class PollState(str, Enum):
    """Lifecycle of a subject's polling."""

    IDLE = "idle"
    POLLING = "polling"
    STOPPED = "stopped"


class PollEvent(str, Enum):
    """Events that move a subject between poll states."""

    SUBSCRIBE = "subscribe"
    TERMINAL_OBSERVED = "terminal_observed"
    NOT_FOUND = "not_found"
    UNSUBSCRIBE = "unsubscribe"


class InvalidTransitionError(RuntimeError):
    """Event is not valid in the current poll state."""


_TRANSITIONS: dict[tuple[PollState, PollEvent], PollState] = {
    (PollState.IDLE, PollEvent.SUBSCRIBE): PollState.POLLING,
    (PollState.IDLE, PollEvent.UNSUBSCRIBE): PollState.STOPPED,
    (PollState.POLLING, PollEvent.TERMINAL_OBSERVED): PollState.STOPPED,
    (PollState.POLLING, PollEvent.NOT_FOUND): PollState.STOPPED,
    (PollState.POLLING, PollEvent.UNSUBSCRIBE): PollState.STOPPED,
}


def transition(state: PollState, event: PollEvent) -> PollState:
    """Return the poll state reached by applying ``event`` to ``state``.

    STOPPED is final and absorbs every event.

    Raises:
        InvalidTransitionError: If the event is not allowed in ``state``

    """
    if state is PollState.STOPPED:
        return state
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransitionError(
            f"Cannot apply {event.value} while {state.value}"
        ) from None


@dataclass(frozen=True)
class Subject:
    """What a poller tracks: one execution, or all of them.

    Execution IDs are kept as strings so ``1`` and ``"1"`` name the same
    subject.
    """

    execution_id: str | None = None

    def __post_init__(self) -> None:
        """Normalize the execution ID to its string form."""
        if self.execution_id is not None:
            object.__setattr__(self, "execution_id", str(self.execution_id))

    @classmethod
    def all_executions(cls) -> "Subject":
        """Subject for the execution list."""
        return cls()

    @classmethod
    def execution(cls, execution_id: ExecutionId) -> "Subject":
        """Subject for a single execution."""
        return cls(str(execution_id))

    @property
    def is_detail(self) -> bool:
        """Whether the subject is a single execution."""
        return self.execution_id is not None

    def __str__(self) -> str:
        """Describe the subject for log messages."""
        if self.execution_id is None:
            return "all executions"
        return f"execution {self.execution_id}"


class SubjectPoller:
    """Repeating fetch loop for one subject.

    Ticks fire immediately on start and then every ``interval`` seconds.
    At most one fetch is outstanding at a time; a tick that finds one still
    running is skipped. Results that resolve after the poller stopped are
    discarded, and no further request is sent for them.
    """

    def __init__(
        self,
        client: ExecutionClient,
        subject: Subject,
        interval: float,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Initialize an idle poller."""
        self.client = client
        self.subject = subject
        self.interval = interval
        self.state = PollState.IDLE
        self.latest: PollResult | None = None
        self._on_update = on_update
        self._on_error = on_error
        self._ticker: asyncio.Task[None] | None = None
        self._in_flight: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()

    @property
    def active(self) -> bool:
        """Whether the poller is still polling."""
        return self.state is PollState.POLLING

    def start(self) -> None:
        """Begin polling; must be called from a running event loop."""
        self._apply(PollEvent.SUBSCRIBE)
        self._ticker = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """Stop polling. Outstanding fetches finish but are not applied."""
        self._apply(PollEvent.UNSUBSCRIBE)

    async def wait_stopped(self) -> None:
        """Wait until the poller reaches STOPPED."""
        await self._stopped.wait()

    async def drain(self) -> None:
        """Wait for the ticker and any outstanding fetch to finish."""
        tasks = [t for t in (self._ticker, self._in_flight) if t is not None]
        await asyncio.gather(*tasks, return_exceptions=True)

    def tick(self) -> bool:
        """Issue one fetch unless stopped or one is already outstanding.

        Returns:
            True if a fetch was issued

        """
        if not self.active:
            return False

        if self._in_flight is not None and not self._in_flight.done():
            logger.debug(f"Skipping tick for {self.subject}: fetch outstanding")
            return False

        self._in_flight = asyncio.get_running_loop().create_task(
            self._fetch_and_apply()
        )
        return True

    async def _run(self) -> None:
        while self.active:
            self.tick()
            await asyncio.sleep(self.interval)

    async def _fetch_and_apply(self) -> None:
        extra_error: PipelineClientError | None = None
        try:
            if self.subject.execution_id is not None:
                result, extra_error = await self._fetch_detail(
                    self.subject.execution_id
                )
            else:
                result = await self.client.list_executions()
        except NotFoundError as e:
            if self.active:
                logger.warning(f"{self.subject} not found, stopping polling")
                self._apply(PollEvent.NOT_FOUND)
                self._report(e)
            return
        except PipelineClientError as e:
            if self.active:
                logger.warning(f"Failed to refresh {self.subject}: {e}")
                self._report(e)
            return
        except Exception as e:
            logger.exception(f"Unexpected error refreshing {self.subject}")
            if self.active:
                self._report(e)
            return

        if not self.active:
            logger.debug(f"Discarding result for stopped {self.subject}")
            return

        self.latest = result

        if isinstance(result, ExecutionSnapshot) and result.execution.is_terminal:
            logger.info(
                f"{self.subject} finished with {result.execution.status}, "
                "stopping polling"
            )
            self._apply(PollEvent.TERMINAL_OBSERVED)

        try:
            self._on_update(self.subject, result)
        except Exception:
            logger.exception(f"Update handler failed for {self.subject}")

        if extra_error is not None:
            self._report(extra_error)

    async def _fetch_detail(
        self, execution_id: str
    ) -> tuple[ExecutionSnapshot, PipelineClientError | None]:
        """Fetch the execution, plus its test results once there are any.

        A test result failure keeps the previously known results. Test
        results are not requested once the poller has stopped.
        """
        execution = await self.client.get_execution(execution_id)

        test_results = (
            self.latest.test_results
            if isinstance(self.latest, ExecutionSnapshot)
            else []
        )
        error: PipelineClientError | None = None
        if execution.has_tests and self.active:
            try:
                test_results = await self.client.get_test_results(execution_id)
            except PipelineClientError as e:
                logger.info(f"No test results yet for {self.subject}: {e}")
                error = e

        snapshot = ExecutionSnapshot(execution=execution, test_results=test_results)
        return snapshot, error

    def _report(self, error: Exception) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(self.subject, error)
        except Exception:
            logger.exception(f"Error handler failed for {self.subject}")

    def _apply(self, event: PollEvent) -> None:
        previous = self.state
        self.state = transition(previous, event)
        if self.state is not previous:
            logger.info(
                f"Polling {self.subject}: {previous.value} -> {self.state.value}"
            )

        if self.state is PollState.STOPPED:
            self._stopped.set()
            if (
                self._ticker is not None
                and not self._ticker.done()
                and self._ticker is not asyncio.current_task()
            ):
                self._ticker.cancel()


class PollingController:
    """Owns one poller per monitored subject.

    The execution list is refreshed on a fixed cadence for as long as it is
    watched. A single execution is refreshed until it reaches a terminal
    status, is reported missing, or is unwatched. A stopped subject keeps
    its poller, in STOPPED state, until it is subscribed again.
    """

    def __init__(
        self, client: ExecutionClient, config: PollingConfig | None = None
    ) -> None:
        """Initialize controller with a client and polling cadence."""
        self.client = client
        self.config = config or PollingConfig()
        self._pollers: dict[Subject, SubjectPoller] = {}
        self._draining: set[asyncio.Task[None]] = set()

    def subscribe(
        self,
        subject: Subject,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> SubjectPoller:
        """Start polling a subject, replacing any existing poller for it."""
        existing = self._pollers.pop(subject, None)
        if existing is not None:
            self._retire(existing)

        interval = (
            self.config.detail_interval
            if subject.is_detail
            else self.config.list_interval
        )
        poller = SubjectPoller(self.client, subject, interval, on_update, on_error)
        self._pollers[subject] = poller
        poller.start()
        return poller

    def watch_all(
        self, on_update: UpdateCallback, on_error: ErrorCallback | None = None
    ) -> SubjectPoller:
        """Start polling the execution list."""
        return self.subscribe(Subject.all_executions(), on_update, on_error)

    def watch_execution(
        self,
        execution_id: ExecutionId,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> SubjectPoller:
        """Start polling a single execution."""
        return self.subscribe(Subject.execution(execution_id), on_update, on_error)

    def unsubscribe(self, subject: Subject) -> None:
        """Stop polling a subject; no-op if it is not watched."""
        poller = self._pollers.get(subject)
        if poller is not None and poller.state is not PollState.STOPPED:
            self._retire(poller)

    def state(self, subject: Subject) -> PollState:
        """Poll state of a subject; IDLE when it was never subscribed."""
        poller = self._pollers.get(subject)
        return poller.state if poller is not None else PollState.IDLE

    async def aclose(self) -> None:
        """Stop every poller and wait for outstanding fetches."""
        pollers = list(self._pollers.values())
        for poller in pollers:
            poller.stop()
        await asyncio.gather(*(p.drain() for p in pollers), *self._draining)

    def _retire(self, poller: SubjectPoller) -> None:
        """Stop a poller and let its tasks wind down in the background."""
        poller.stop()
        task = asyncio.get_running_loop().create_task(poller.drain())
        self._draining.add(task)
        task.add_done_callback(self._draining.discard)
