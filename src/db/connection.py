"""
Database connection management
"""
from pathlib import Path
from sqlalchemy import create_engine, Engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool
from contextlib import contextmanager
from typing import Generator, Optional
from config.settings import settings
from src.utils.exceptions import ExternalDependencyError
from src.utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """Owns the engine and hands out sessions"""
    
    def __init__(
        self,
        database_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        echo: Optional[bool] = None
    ):
        self.database_url = database_url or settings.database_url
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.db_timeout_seconds
        self.echo = settings.db_echo if echo is None else echo
        self.engine: Engine = None
        self.SessionLocal: sessionmaker = None
        self._initialize()
    
    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name
    
    def _initialize(self):
        """Create the engine and session factory"""
        url = make_url(self.database_url)
        try:
            if url.get_backend_name() == "sqlite":
                self.engine = self._create_sqlite_engine(url)
            else:
                connect_args = {}
                if url.get_backend_name() == "postgresql":
                    timeout_ms = int(self.timeout_seconds * 1000)
                    connect_args["options"] = (
                        f"-c statement_timeout={timeout_ms} -c lock_timeout={timeout_ms}"
                    )
                self.engine = create_engine(
                    self.database_url,
                    poolclass=QueuePool,
                    pool_size=settings.db_pool_size,
                    max_overflow=settings.db_max_overflow,
                    pool_timeout=self.timeout_seconds,
                    pool_pre_ping=True,
                    connect_args=connect_args,
                    echo=self.echo,
                )
            
            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=self.engine
            )
            
            logger.info(f"Database engine initialised ({self.engine.dialect.name})")
        except Exception as e:
            logger.error(f"Database engine initialisation failed: {str(e)}")
            raise
    
    def _create_sqlite_engine(self, url) -> Engine:
        """
        SQLite engine with serialised write transactions
        
        pysqlite's own transaction handling defers BEGIN and breaks
        SAVEPOINT, so the driver's handling is switched off and every
        transaction is opened with BEGIN IMMEDIATE instead. Concurrent
        writers then queue on the database lock for up to timeout_seconds.
        """
        engine = create_engine(
            self.database_url,
            poolclass=QueuePool,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=self.timeout_seconds,
            connect_args={"check_same_thread": False, "timeout": self.timeout_seconds},
            echo=self.echo,
        )
        
        @event.listens_for(engine, "do_connect")
        def _ensure_directory(dialect, conn_rec, cargs, cparams):
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
        
        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            # pooled connections keep the last busy timeout, so set it every time
            timeout_ms = conn.get_execution_options().get(
                "timeout_ms", int(self.timeout_seconds * 1000)
            )
            conn.exec_driver_sql(f"PRAGMA busy_timeout = {int(timeout_ms)}")
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        
        return engine
    
    def get_session(self) -> Session:
        """
        Open a new session
        
        Returns:
            Session instance
        """
        return self.SessionLocal()
    
    def _apply_timeout(self, session: Session, timeout_seconds: float) -> None:
        """Cap lock waits and statements of the current transaction"""
        timeout_ms = max(int(timeout_seconds * 1000), 1)
        if self.dialect_name == "sqlite":
            # read by the begin listener before BEGIN IMMEDIATE
            session.connection(execution_options={"timeout_ms": timeout_ms})
        elif self.dialect_name == "postgresql":
            session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))
            session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))
    
    @contextmanager
    def get_db_session(self, timeout_seconds: Optional[float] = None) -> Generator[Session, None, None]:
        """
        Session scope: commit on success, roll back on any error
        
        Storage timeouts and lost connections surface as
        ExternalDependencyError without driver details.
        
        Args:
            timeout_seconds: storage timeout for this transaction only,
                capped at the manager's own timeout (None = manager default)
        
        Yields:
            Session instance
        
        Example:
            with db_manager.get_db_session() as session:
                session.add(row)
        """
        session = self.get_session()
        try:
            if timeout_seconds is not None:
                self._apply_timeout(session, min(timeout_seconds, self.timeout_seconds))
            yield session
            session.commit()
        except (OperationalError, PoolTimeoutError) as e:
            session.rollback()
            logger.error(f"Database unavailable: {str(e)}")
            raise ExternalDependencyError("database", "storage unavailable or timed out") from e
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {type(e).__name__}: {str(e)}")
            raise
        finally:
            session.close()
    
    def create_all(self):
        """Create every mapped table"""
        from src.db.base import Base
        import src.db.models  # noqa: F401  (registers the models)
        
        Base.metadata.create_all(self.engine)
        logger.info("Database tables created")
    
    def drop_all(self):
        from src.db.base import Base
        import src.db.models  # noqa: F401
        
        Base.metadata.drop_all(self.engine)
    
    def health_check(self) -> bool:
        """
        Check connectivity
        
        Returns:
            True if the database answers
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.debug("Database health: OK")
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}")
            return False
    
    def close(self):
        """Dispose of the engine"""
        if self.engine:
            self.engine.dispose()
            logger.info("Database engine disposed")


# Global database manager
db_manager = DatabaseManager()

