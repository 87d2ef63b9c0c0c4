from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from freelancehive.config import get_settings

DATABASE_URL = get_settings().database_url


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    # In-memory databases only exist on one connection
    if url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def import_models():
    """Register every service's tables on `Base.metadata`."""
    from freelancehive.auth_service import models as auth_models  # noqa: F401
    from freelancehive.user_service import models as user_models  # noqa: F401
    from freelancehive.project_service import models as project_models  # noqa: F401
    from freelancehive.contract_service import models as contract_models  # noqa: F401
    from freelancehive.payments_service import models as payments_models  # noqa: F401
    from freelancehive.honey_service import models as honey_models  # noqa: F401


def init_db():
    import_models()
    Base.metadata.create_all(bind=engine)
