def init_db(engine=None):
    """Create tables (simple dev mode)."""
    from tripy.db import engine as default_engine
    from tripy.models import Base

    Base.metadata.create_all(bind=engine or default_engine)
