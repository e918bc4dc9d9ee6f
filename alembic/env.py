from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

from core.config import settings
from core.db.base import Base

# Explicitly import the model classes so Alembic detects them
from models.user import User
from models.workspace import Workspace
from models.collaborators import Collaborator
from models.subscription import Subscription


# Alembic Config object
config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# DB URL from settings (.env)
DATABASE_URL = settings.DB_URL
config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))

# Target metadata for autogenerate
target_metadata = Base.metadata

def run_migrations_offline():
    context.configure(url=DATABASE_URL, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
