from sqlalchemy.engine import Engine

from interaction_api.models.base import Base


def _import_models() -> None:
    """Import all models so their metadata is registered on Base."""
    import interaction_api.models.party_interaction  # noqa: F401


def create_all(engine: Engine) -> None:
    """Create all tables for the registered models (SYNC)."""
    _import_models()
    Base.metadata.create_all(bind=engine)


def drop_all(engine: Engine) -> None:
    _import_models()
    Base.metadata.drop_all(bind=engine)
