from threading import Lock

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from scheduler.core import config


Base = declarative_base()


def _configure_sqlite(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write, which lets two sessions read
    # the same free slot. BEGIN IMMEDIATE takes the write lock up front.
    @event.listens_for(engine, 'connect')
    def _configure_connection(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(engine, 'begin')
    def _begin_immediate(connection):
        connection.exec_driver_sql('BEGIN IMMEDIATE')


def create_store_engine(url: str, **engine_kwargs) -> Engine:
    if url.startswith('sqlite'):
        connect_args = engine_kwargs.setdefault('connect_args', {})
        connect_args.setdefault('check_same_thread', False)
        store_engine = create_engine(url, **engine_kwargs)
        _configure_sqlite(store_engine)
        return store_engine

    engine_kwargs.setdefault('pool_pre_ping', True)
    return create_engine(url, **engine_kwargs)


engine = create_store_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

_schema_lock = Lock()
_availability_schema_checked = False
_booking_schema_checked = False

BOOKING_EXCLUSION_CONSTRAINT = 'bookings_no_overlapping_confirmed'


def ensure_availability_schema(bind: Engine | None = None) -> None:
    global _availability_schema_checked

    if _availability_schema_checked and bind is None:
        return

    target = bind or engine

    with _schema_lock:
        if _availability_schema_checked and bind is None:
            return

        inspector = inspect(target)

        if 'availability' not in inspector.get_table_names():
            return

        existing_columns = {column['name'] for column in inspector.get_columns('availability')}
        migration_steps = [
            ('timezone', "ALTER TABLE availability ADD COLUMN timezone VARCHAR DEFAULT 'UTC'"),
            ('is_default', 'ALTER TABLE availability ADD COLUMN is_default BOOLEAN DEFAULT FALSE'),
        ]

        with target.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_schedules_availability_day ON schedules(availability_id, day_of_week)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_overrides_availability_date ON overrides(availability_id, date)')
            )

        if bind is None:
            _availability_schema_checked = True


def ensure_booking_schema(bind: Engine | None = None) -> None:
    global _booking_schema_checked

    if _booking_schema_checked and bind is None:
        return

    target = bind or engine

    with _schema_lock:
        if _booking_schema_checked and bind is None:
            return

        inspector = inspect(target)

        if 'bookings' not in inspector.get_table_names():
            return

        existing_columns = {column['name'] for column in inspector.get_columns('bookings')}
        migration_steps = [
            ('notes', "ALTER TABLE bookings ADD COLUMN notes VARCHAR DEFAULT ''"),
            ('created_at', 'ALTER TABLE bookings ADD COLUMN created_at TIMESTAMP'),
        ]

        with target.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_bookings_event_status_start '
                    'ON bookings(event_type_id, status, start_time)'
                )
            )

            if target.dialect.name == 'postgresql':
                connection.execute(text('CREATE EXTENSION IF NOT EXISTS btree_gist'))
                constraint_exists = connection.execute(
                    text('SELECT 1 FROM pg_constraint WHERE conname = :name'),
                    {'name': BOOKING_EXCLUSION_CONSTRAINT},
                ).first()
                if not constraint_exists:
                    connection.execute(
                        text(
                            f'ALTER TABLE bookings ADD CONSTRAINT {BOOKING_EXCLUSION_CONSTRAINT} '
                            "EXCLUDE USING gist (event_type_id WITH =, tstzrange(start_time, end_time, '[)') WITH &&) "
                            "WHERE (status = 'confirmed')"
                        )
                    )

        if bind is None:
            _booking_schema_checked = True
