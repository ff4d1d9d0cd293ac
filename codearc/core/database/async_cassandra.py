"""Async Cassandra connection using cassandra-asyncio-driver.

Provides:
- A lifecycle-scoped connection handle (one per application, no globals)
- Session with aexecute() for non-blocking queries
- Keyspace and table initialization

The cassandra-asyncio-driver extends the standard cassandra-driver with a
``session.aexecute()`` coroutine.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from codearc.auth.models import AUTH_TABLES_CQL
from codearc.chat.models import CHAT_TABLES_CQL
from codearc.config.settings import Settings
from codearc.courses.models import COURSES_TABLES_CQL
from codearc.enrollments.models import ENROLLMENT_TABLES_CQL
from codearc.notifications.models import NOTIFICATIONS_TABLES_CQL
from codearc.progress.models import PROGRESS_TABLES_CQL


logger = structlog.get_logger(__name__)

# Module name -> table definitions, created in this order
SCHEMA: dict[str, list[str]] = {
    "auth": AUTH_TABLES_CQL,
    "courses": COURSES_TABLES_CQL,
    "enrollments": ENROLLMENT_TABLES_CQL,
    "progress": PROGRESS_TABLES_CQL,
    "notifications": NOTIFICATIONS_TABLES_CQL,
    "chat": CHAT_TABLES_CQL,
}


class AsyncCassandraConnection:
    """Owns the cluster and session for the lifetime of the application."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._cluster: Cluster | None = None
        self._session = None  # Session type from cassandra_asyncio

    @property
    def session(self):
        if self._session is None:
            msg = "Cassandra session is not connected"
            raise RuntimeError(msg)
        return self._session

    def connect(self):
        """Establish the connection to the cluster.

        Connecting is synchronous; queries run through ``aexecute``.

        Raises:
            ConnectionError: If the cluster cannot be reached.
        """
        if self._session is not None:
            return self._session

        settings = self.settings
        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        self._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            self._session = self._cluster.connect()
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
            protocol_version=settings.cassandra_protocol_version,
        )
        return self._session

    def close(self) -> None:
        """Shut down the session and cluster."""
        if self._session is not None:
            self._session.shutdown()
            self._session = None
            logger.info("cassandra_session_closed")

        if self._cluster is not None:
            self._cluster.shutdown()
            self._cluster = None
            logger.info("cassandra_cluster_closed")

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.is_shutdown


def keyspace_cql(settings: Settings) -> str:
    """Build the CREATE KEYSPACE statement for the environment."""
    if settings.is_production:
        replication = (
            "'class': 'NetworkTopologyStrategy', "
            f"'datacenter1': {settings.cassandra_replication_factor}"
        )
    else:
        replication = "'class': 'SimpleStrategy', 'replication_factor': 1"

    return (
        f"CREATE KEYSPACE IF NOT EXISTS {settings.cassandra_keyspace} "
        f"WITH replication = {{{replication}}} AND durable_writes = true"
    )


async def init_schema(session, settings: Settings) -> None:
    """Create the keyspace and every table if they do not exist."""
    keyspace = settings.cassandra_keyspace
    await session.aexecute(keyspace_cql(settings))
    logger.info("keyspace_created", keyspace=keyspace)

    for module, tables in SCHEMA.items():
        for cql_template in tables:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("tables_created", module=module, keyspace=keyspace)


async def init_async_cassandra(settings: Settings) -> AsyncCassandraConnection:
    """Connect to Cassandra and make sure the schema exists."""
    connection = AsyncCassandraConnection(settings)
    session = connection.connect()
    await init_schema(session, settings)
    session.set_keyspace(settings.cassandra_keyspace)
    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return connection
