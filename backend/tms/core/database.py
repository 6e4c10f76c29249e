from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from .config import settings


def build_engine(url: str, echo: bool = False, ssl: bool = False):
    connect_args = {}
    if ssl:
        connect_args = {
            "ssl": "require",
            "server_settings": {
                "application_name": "tms"
            }
        }
    engine = create_async_engine(url, echo=echo, connect_args=connect_args)

    if engine.dialect.name == "sqlite":
        # SQLite ignores foreign keys unless asked, and the restrict policy depends on them
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = build_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    ssl=settings.DATABASE_SSL,
)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()

async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
