"""Connection settings and engine creation for an Oracle database."""

import logging

import sqlalchemy as sa
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

logger = logging.getLogger(__name__)


class ConnectionSettings(BaseSettings):
    """Where and as whom to connect.

    Every field can be passed directly or taken from an ``ORACLE_`` prefixed
    environment variable: ``ORACLE_HOST``, ``ORACLE_PORT``, ``ORACLE_SERVICE``,
    ``ORACLE_USERNAME`` and ``ORACLE_PASSWORD``.
    """

    model_config = SettingsConfigDict(env_prefix='ORACLE_', case_sensitive=False)

    host: str
    port: int = 1521
    service: str
    username: str
    password: str

    @property
    def url(self) -> sa.engine.URL:
        return sa.engine.URL.create(
            'oracle+oracledb',
            username=self.username,
            password=self.password,
            host=self.host,
            port=self.port,
            query={'service_name': self.service},
        )


def create_engine(settings: ConnectionSettings | None = None, **engine_kwargs) -> sa.engine.Engine:
    """Create an engine and check the database answers.

    Statements are autocommitted: each GRANT, REVOKE or other DDL is applied on
    its own, as Oracle does for DDL anyway.

    Raises:
        sqlalchemy.exc.DBAPIError: If the database cannot be reached or rejects
            the credentials. The attempt is not retried.
    """
    settings = settings if settings is not None else ConnectionSettings()
    engine = sa.create_engine(settings.url, isolation_level='AUTOCOMMIT', **engine_kwargs)
    logger.info('Connecting to %s:%s/%s as %s', settings.host, settings.port, settings.service, settings.username)
    ping(engine)
    return engine


def ping(engine: sa.engine.Engine):
    with engine.connect() as conn:
        conn.execute(sa.text('SELECT 1 FROM DUAL')).fetchall()
