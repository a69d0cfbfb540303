"""
Cosmos DB resource lifecycle demo.

Walks one database and one container through their whole life: create,
read, throughput read and replace, enumeration, delete. Each step prints a
numbered progress line. The first failure aborts the remaining steps and is
reported once; the client is closed on every path.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import click

from cosmosdemo.core.config_manager import DemoConfig
from cosmosdemo.core.logging_config import (
    clear_correlation_id,
    get_logger,
    log_with_context,
    set_correlation_id,
)
from cosmosdemo.services.cosmosdb.client import AdminClient, open_admin_client
from cosmosdemo.services.cosmosdb.exceptions import CosmosDBError
from cosmosdemo.services.cosmosdb.feed import FeedIterator

logger = get_logger(__name__)

END_OF_DEMO = "End of demo, press any key to exit."

ClientFactory = Callable[[DemoConfig], AdminClient]


@dataclass
class StepRecord:
    """One numbered progress line and any lines listed under it."""
    number: int
    message: str
    details: List[str] = field(default_factory=list)


@dataclass
class DemoOutcome:
    """What a demo run printed and the error that stopped it, if any."""
    steps: List[StepRecord] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def messages(self) -> List[str]:
        return [step.message for step in self.steps]


def root_cause(error: BaseException) -> BaseException:
    """Follow ``__cause__``/``__context__`` down to the innermost exception."""
    seen = {id(error)}
    while True:
        inner = error.__cause__ or error.__context__
        if inner is None or id(inner) in seen:
            return error
        seen.add(id(inner))
        error = inner


class LifecycleDemo:
    """
    Runs the demonstration sequence against one admin client.

    Args:
        config: Loaded demo configuration
        client_factory: Builds the admin client; defaults to the one the
            configuration selects
        echo: Sink for progress lines
    """

    def __init__(
        self,
        config: DemoConfig,
        client_factory: ClientFactory = open_admin_client,
        echo: Callable[[str], None] = click.echo
    ):
        self._config = config
        self._client_factory = client_factory
        self._echo = echo

    async def run(self) -> DemoOutcome:
        """
        Execute every step and report the result.

        Returns:
            The outcome; never raises for service or configuration failures
        """
        outcome = DemoOutcome()
        set_correlation_id(uuid.uuid4().hex)
        try:
            async with self._client_factory(self._config) as client:
                await self._run_steps(client, outcome)
        except CosmosDBError as e:
            outcome.error = e
            logger.error(f"Demo aborted by service error: {e}")
            logger.debug("Service error details", exc_info=True)
            self._echo(f"\n{type(e).__name__}: {e}")
        except Exception as e:
            outcome.error = e
            base = root_cause(e)
            logger.error(f"Demo aborted: {e}")
            logger.debug("Failure details", exc_info=True)
            self._echo(f"\nError: {e}, Message: {base}")
        finally:
            self._echo(f"\n{END_OF_DEMO}")
            clear_correlation_id()
        return outcome

    def _step(self, outcome: DemoOutcome, message: str, details: Optional[List[str]] = None) -> None:
        step = StepRecord(number=len(outcome.steps) + 1, message=message, details=list(details or []))
        outcome.steps.append(step)
        log_with_context(logger, logging.INFO, message, step=step.number)
        self._echo(f"\n{step.number}. {message}")
        for line in step.details:
            self._echo(line)

    @staticmethod
    async def _drain_ids(feed: FeedIterator) -> List[str]:
        ids: List[str] = []
        while feed.has_more_results:
            for resource in await feed.read_next():
                ids.append(resource.id)
        return ids

    async def _run_steps(self, client: AdminClient, outcome: DemoOutcome) -> None:
        db_config = self._config.database
        container_config = self._config.container
        page_size = self._config.feed.max_item_count

        created = await client.ensure_database(db_config.id, db_config.throughput)
        database = created.resource
        self._step(
            outcome,
            f"Create a database resource with id: {database.id} "
            f"and last modified time stamp: {database.last_modified.isoformat()}"
        )
        self._step(
            outcome,
            f"Create a database resource request charge: {created.request_charge} "
            f"and Activity Id: {created.activity_id}"
        )

        read = await client.read_database(database.id)
        self._step(outcome, f"Read a database: {read.resource.id}")

        db_throughput = (await client.read_database_throughput(database.id)).resource
        if db_throughput is not None:
            self._step(outcome, f"Read a database throughput: {db_throughput}")
            if db_config.replacement_throughput is not None:
                replaced = await client.replace_database_throughput(database.id, db_config.replacement_throughput)
                self._step(outcome, f"Replace a database throughput: {replaced.resource}")

        container = (await client.create_container(
            database.id,
            container_config.id,
            container_config.partition_key_path,
            throughput=container_config.throughput,
            indexing_policy=container_config.indexing_policy,
            default_ttl=container_config.default_ttl
        )).resource
        self._step(
            outcome,
            f"Create a container resource with id: {container.id} "
            f"and partition key: {container.partition_key.path}"
        )

        container_throughput = (await client.read_container_throughput(database.id, container.id)).resource
        if container_throughput is None:
            self._step(outcome, f"Container {container.id} shares the throughput of database {database.id}")
        else:
            self._step(outcome, f"Read a container throughput: {container_throughput}")
            replaced = await client.replace_container_throughput(
                database.id, container.id, container_config.replacement_throughput
            )
            self._step(outcome, f"Replace a container throughput: {replaced.resource}")
            current = (await client.read_container_throughput(database.id, container.id)).resource
            self._step(outcome, f"Read a container throughput: {current}")

        database_ids = await self._drain_ids(client.list_databases(max_item_count=page_size))
        self._step(outcome, "Reading all databases resources for an account", database_ids)

        container_ids = await self._drain_ids(client.list_containers(database.id, max_item_count=page_size))
        self._step(outcome, f"Reading all container resources for database {database.id}", container_ids)

        await client.delete_container(database.id, container.id)
        self._step(outcome, f"Container {container.id} deleted.")

        await client.delete_database(database.id)
        self._step(outcome, f"Database {database.id} deleted.")
