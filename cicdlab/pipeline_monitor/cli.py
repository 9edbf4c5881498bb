"""CLI entry point for the pipeline monitor."""

import asyncio
import json
import logging
import os
import sys

import typer

from cicdlab.pipeline_monitor.client import ExecutionClient
from cicdlab.pipeline_monitor.errors import PipelineClientError
from cicdlab.pipeline_monitor.models.client_config import (
    DEFAULT_API_URL,
    ClientConfig,
    PollingConfig,
)
from cicdlab.pipeline_monitor.models.execution import ExecutionRecord, TriggerRequest
from cicdlab.pipeline_monitor.models.stage import ExecutionSnapshot
from cicdlab.pipeline_monitor.polling import PollingController, PollResult, Subject
from cicdlab.pipeline_monitor.stages import derive_stages
from cicdlab.pipeline_monitor.status import StatusBucket, badge, normalize_status
from cicdlab.pipeline_monitor.summary import summarize

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
    force=True,
)
logger = logging.getLogger(__name__)

app = typer.Typer()

API_URL_ENV = "PIPELINE_API_URL"


def format_duration(seconds: int | None) -> str:
    """Format a duration in seconds as ``42s`` or ``3m 5s``."""
    if not seconds:
        return "N/A"
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}m {secs}s"


def _create_client(api_url: str | None) -> ExecutionClient:
    """Create the backend client; the environment overrides the default URL."""
    config = ClientConfig()
    if API_URL_ENV in os.environ:
        config.base_url = os.environ[API_URL_ENV]
    if api_url:
        config.base_url = api_url
    logger.info(f"Target backend URL: {config.base_url}")
    return ExecutionClient(config)


def _fail(message: str) -> typer.Exit:
    logger.error(message)
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=1)


def _execution_dict(execution: ExecutionRecord) -> dict[str, object]:
    return execution.model_dump(by_alias=True, mode="json", exclude={"test_results"})


def _snapshot_dict(snapshot: ExecutionSnapshot) -> dict[str, object]:
    return {
        "execution": _execution_dict(snapshot.execution),
        "stages": [
            {"name": s.name, "status": s.status}
            for s in derive_stages(snapshot.execution)
        ],
        "testResults": [
            t.model_dump(by_alias=True, mode="json") for t in snapshot.test_results
        ],
    }


def _log_execution_row(execution: ExecutionRecord) -> None:
    tests = (
        f"{execution.tests_passed}/{execution.total_tests}"
        if execution.total_tests is not None
        else "N/A"
    )
    logger.info(
        f"#{execution.display_number} {execution.student_name or '-'} "
        f"[{execution.branch_name}] {badge(execution.status)} "
        f"stage={execution.current_stage or 'N/A'} tests={tests} "
        f"duration={format_duration(execution.duration)}"
    )


def _log_snapshot(snapshot: ExecutionSnapshot) -> None:
    execution = snapshot.execution
    logger.info(f"Build #{execution.display_number}: {badge(execution.status)}")
    for stage in derive_stages(execution):
        logger.info(f"  {stage.name:<8} {badge(stage.status)}")
    if execution.error_message:
        logger.error(f"  Error: {execution.error_message}")


def _on_error(subject: Subject, error: Exception) -> None:
    logger.error(f"Could not refresh {subject}, showing stale data: {error}")


async def _watch_execution(
    client: ExecutionClient, execution_id: str, config: PollingConfig
) -> ExecutionSnapshot | None:
    """Follow one execution until it finishes or disappears."""
    controller = PollingController(client, config)

    def on_update(_subject: Subject, result: PollResult) -> None:
        if isinstance(result, ExecutionSnapshot):
            _log_snapshot(result)

    poller = controller.watch_execution(execution_id, on_update, _on_error)
    try:
        await poller.wait_stopped()
    finally:
        await controller.aclose()

    latest = poller.latest
    return latest if isinstance(latest, ExecutionSnapshot) else None


async def _watch_all(client: ExecutionClient, config: PollingConfig) -> None:
    """Follow the execution list until interrupted."""
    controller = PollingController(client, config)

    def on_update(_subject: Subject, result: PollResult) -> None:
        if isinstance(result, list):
            counts = summarize(result)
            logger.info(
                f"Executions: {counts.total} total, {counts.success} success, "
                f"{counts.failed} failed, {counts.running} running"
            )
            for execution in result:
                _log_execution_row(execution)

    poller = controller.watch_all(on_update, _on_error)
    try:
        await poller.wait_stopped()
    finally:
        await controller.aclose()


def _finish_watch(snapshot: ExecutionSnapshot | None) -> None:
    if snapshot is None:
        raise _fail("Execution could not be followed to completion")
    typer.echo(json.dumps(_snapshot_dict(snapshot), indent=2))
    if normalize_status(snapshot.execution.status) is not StatusBucket.SUCCESS:
        raise typer.Exit(code=1)


@app.command()
def trigger(
    student_name: str = typer.Option(..., help="Student triggering the pipeline"),
    repository_url: str = typer.Option(..., help="Git repository URL to build"),
    branch_name: str = typer.Option("main", help="Branch to build"),
    commit_hash: str | None = typer.Option(None, help="Specific commit to build"),
    watch: bool = typer.Option(False, help="Follow the execution until it ends"),
    detail_interval: float = typer.Option(3.0, help="Seconds between refreshes"),
    api_url: str | None = typer.Option(
        None, help=f"Backend API URL (default: {DEFAULT_API_URL})"
    ),
) -> None:
    """Trigger a new pipeline execution."""
    client = _create_client(api_url)
    request = TriggerRequest(
        student_name=student_name,
        repository_url=repository_url,
        branch_name=branch_name,
        commit_hash=commit_hash,
    )

    try:
        execution = asyncio.run(client.trigger_execution(request))
    except PipelineClientError as e:
        raise _fail(f"Failed to trigger pipeline: {e}")

    if not watch:
        typer.echo(json.dumps(_execution_dict(execution), indent=2))
        return

    config = PollingConfig(detail_interval=detail_interval)
    _finish_watch(asyncio.run(_watch_execution(client, str(execution.id), config)))


@app.command()
def executions(
    student: str | None = typer.Option(None, help="Only show this student's runs"),
    watch: bool = typer.Option(False, help="Keep refreshing until interrupted"),
    list_interval: float = typer.Option(5.0, help="Seconds between refreshes"),
    api_url: str | None = typer.Option(
        None, help=f"Backend API URL (default: {DEFAULT_API_URL})"
    ),
) -> None:
    """List pipeline executions with summary counts."""
    client = _create_client(api_url)

    if watch:
        config = PollingConfig(list_interval=list_interval)
        try:
            asyncio.run(_watch_all(client, config))
        except KeyboardInterrupt:  # pragma: no cover
            logger.info("Stopped watching executions")
        return

    try:
        if student:
            records = asyncio.run(client.list_executions_by_student(student))
        else:
            records = asyncio.run(client.list_executions())
    except PipelineClientError as e:
        raise _fail(f"Failed to fetch executions: {e}")

    output = {
        "summary": summarize(records).model_dump(),
        "executions": [_execution_dict(r) for r in records],
    }
    typer.echo(json.dumps(output, indent=2))


@app.command()
def show(
    execution_id: str = typer.Argument(..., help="Execution ID"),
    watch: bool = typer.Option(False, help="Follow the execution until it ends"),
    detail_interval: float = typer.Option(3.0, help="Seconds between refreshes"),
    api_url: str | None = typer.Option(
        None, help=f"Backend API URL (default: {DEFAULT_API_URL})"
    ),
) -> None:
    """Show an execution with its stages and test results."""
    client = _create_client(api_url)

    if watch:
        config = PollingConfig(detail_interval=detail_interval)
        _finish_watch(asyncio.run(_watch_execution(client, execution_id, config)))
        return

    async def fetch() -> ExecutionSnapshot:
        execution = await client.get_execution(execution_id)
        tests = []
        if execution.has_tests:
            tests = await client.get_test_results(execution_id)
        return ExecutionSnapshot(execution=execution, test_results=tests)

    try:
        snapshot = asyncio.run(fetch())
    except PipelineClientError as e:
        raise _fail(f"Failed to fetch execution {execution_id}: {e}")

    typer.echo(json.dumps(_snapshot_dict(snapshot), indent=2))


@app.command()
def health(
    api_url: str | None = typer.Option(
        None, help=f"Backend API URL (default: {DEFAULT_API_URL})"
    ),
) -> None:
    """Check whether the pipeline backend is up."""
    client = _create_client(api_url)
    if not asyncio.run(client.check_health()):
        typer.echo("DOWN")
        raise typer.Exit(code=1)
    typer.echo("UP")


@app.command()
def commits(
    repo_url: str = typer.Option(..., help="Repository to show recent commits for"),
    api_url: str | None = typer.Option(
        None, help=f"Backend API URL (default: {DEFAULT_API_URL})"
    ),
) -> None:
    """Show recent commits of a repository."""
    client = _create_client(api_url)
    recent = asyncio.run(client.get_recent_commits(repo_url))
    typer.echo(json.dumps([c.model_dump(mode="json") for c in recent], indent=2))


if __name__ == "__main__":  # pragma: no cover
    app()
