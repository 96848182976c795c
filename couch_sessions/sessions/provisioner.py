"""
Database Provisioner - WBS 2.4

Lazily makes sure the session database exists and hands out a handle bound
to it.

Provisioning runs once per provisioner: the first ready() call starts a
task, every caller awaits that same task, and the outcome (handle or
exception) is cached for the provisioner's lifetime. Failures are not
retried.

Pattern: Lazy one-time async initialization (shared future)
"""

import asyncio
from typing import Optional

from couch_sessions.clients.couchdb import CouchDatabase, CouchDBClient
from couch_sessions.core.exceptions import (
    CouchDBError,
    ProvisioningError,
    SessionStoreException,
    StoreConnectionError,
)
from couch_sessions.observability.logging import get_logger
from couch_sessions.observability.metrics import record_provisioning

logger = get_logger(__name__)


class DatabaseProvisioner:
    """
    Ensures the session database exists, exactly once.

    Attributes:
        database_name: Name of the database to provision.
    """

    def __init__(self, client: CouchDBClient, database_name: str) -> None:
        """
        Initialize the provisioner. No I/O happens until ready().

        Args:
            client: Server-scoped CouchDB client.
            database_name: Database to look up or create.
        """
        self._client = client
        self.database_name = database_name
        self._task: Optional[asyncio.Task[CouchDatabase]] = None
        self._database: Optional[CouchDatabase] = None

    @property
    def database(self) -> Optional[CouchDatabase]:
        """The database handle once provisioning succeeded, else None."""
        return self._database

    @property
    def started(self) -> bool:
        return self._task is not None

    async def ready(self) -> CouchDatabase:
        """
        Return the database handle, provisioning on first use.

        Safe to call concurrently: only one provisioning sequence runs.

        Raises:
            StoreConnectionError: Server unreachable or credentials rejected.
            ProvisioningError: Database absent and could not be created.
        """
        if self._database is not None:
            return self._database
        if self._task is None:
            self._task = asyncio.ensure_future(self._provision())
        # A cancelled waiter must not cancel provisioning for everyone else
        return await asyncio.shield(self._task)

    async def _provision(self) -> CouchDatabase:
        log = logger.bind(database=self.database_name, url=self._client.display_url)
        log.debug("provisioning_started")

        try:
            names = await self._client.list_databases()
        except StoreConnectionError as e:
            log.error("provisioning_connection_failed", error=str(e))
            record_provisioning("failed")
            raise
        except CouchDBError as e:
            log.error("provisioning_list_failed", error=str(e))
            record_provisioning("failed")
            raise StoreConnectionError(
                f"Could not list databases on {self._client.display_url}: {e}",
                url=self._client.display_url,
                status_code=e.status_code,
            ) from e

        if self.database_name in names:
            record_provisioning("existing")
            log.debug("provisioning_database_exists")
        else:
            try:
                created = await self._client.create_database(self.database_name)
            except SessionStoreException as e:
                log.error("provisioning_create_failed", error=str(e))
                record_provisioning("failed")
                raise ProvisioningError(
                    f"Failed to create database {self.database_name}: {e}",
                    database=self.database_name,
                ) from e
            record_provisioning("created" if created else "existing")
            log.info("provisioning_database_created", created=created)

        self._database = self._client.use(self.database_name)
        return self._database
