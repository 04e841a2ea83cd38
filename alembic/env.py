# alembic/env.py
import os
import sys
from logging.config import fileConfig

from alembic import context

# run from the project root: make `app` importable
if os.getcwd() not in sys.path:
    sys.path.insert(0, os.getcwd())

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# the application's engine, so DATABASE_URL (and .env) apply here too
from app.db.session import engine  # noqa: E402
from app.models import Base  # noqa: E402

config.set_main_option("sqlalchemy.url", str(engine.url))
target_metadata = Base.metadata

IS_SQLITE = engine.url.get_backend_name() == "sqlite"


def include_object(object, name, type_, reflected, compare_to):
    """Autogenerate only manages objects the models declare."""
    if type_ == "table" and name == "alembic_version":
        return False
    if reflected and compare_to is None:
        return False
    return True


def process_revision_directives(context, revision, directives):
    # no empty autogenerate revisions
    if getattr(context.config.cmd_opts, "autogenerate", False) and directives[0].upgrade_ops.is_empty():
        directives[:] = []


def _options():
    return dict(
        target_metadata=target_metadata,
        compare_type=True,
        include_object=include_object,
        render_as_batch=IS_SQLITE,  # ALTER TABLE via table copy
        process_revision_directives=process_revision_directives,
    )


if context.is_offline_mode():
    context.configure(
        url=str(engine.url),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_options(),
    )
    with context.begin_transaction():
        context.run_migrations()
else:
    with engine.connect() as connection:
        context.configure(connection=connection, **_options())
        with context.begin_transaction():
            context.run_migrations()
