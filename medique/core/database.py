from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator
import threading
import time
import redis
from .config import settings

database_url = settings.get_database_url

if database_url.startswith("sqlite"):
    # SQLite is only used for tests; sessions are shared across worker threads
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
else:
    engine = create_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,  # Recycle connections after 30 minutes
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Redis setup - in-memory stand-in for tests
if settings.TESTING:
    class RedisMock:
        def __init__(self):
            self.data = {}
            self.expires = {}
            self._lock = threading.Lock()

        def _expire(self, key):
            deadline = self.expires.get(key)
            if deadline is not None and deadline <= time.time():
                self.data.pop(key, None)
                self.expires.pop(key, None)

        def setex(self, key, seconds, value):
            with self._lock:
                self.data[key] = str(value)
                self.expires[key] = time.time() + seconds
            return True

        def get(self, key):
            with self._lock:
                self._expire(key)
                return self.data.get(key)

        def delete(self, key):
            with self._lock:
                self.expires.pop(key, None)
                return 1 if self.data.pop(key, None) is not None else 0

        def incr(self, key):
            with self._lock:
                self._expire(key)
                self.data[key] = str(int(self.data.get(key, "0")) + 1)
                return int(self.data[key])

        def flushall(self):
            with self._lock:
                self.data.clear()
                self.expires.clear()
            return True

    redis_client = RedisMock()
else:
    redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)

# Database dependency
def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Redis dependency
def get_redis():
    """Get Redis client."""
    return redis_client

# Database initialization
def init_db():
    """Initialize database tables."""
    from .. import models  # noqa: F401  register mappers on Base.metadata
    Base.metadata.create_all(bind=engine)
