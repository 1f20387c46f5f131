"""SQLite 数据库初始化

PRAGMA 配置 + 业务表 DDL + 索引创建。
任务本身不建表：任务是这些业务表上的实时投影。
时间列统一存储 ISO-8601 UTC 字符串。
"""

import aiosqlite

_REFERENCE_DDL = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id            INTEGER PRIMARY KEY,
        first_name    TEXT NOT NULL DEFAULT '',
        last_name     TEXT NOT NULL DEFAULT '',
        email         TEXT,
        phone_number  TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS moving_partners (
        id            INTEGER PRIMARY KEY,
        name          TEXT NOT NULL,
        email         TEXT,
        phone_number  TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS drivers (
        id            INTEGER PRIMARY KEY,
        first_name    TEXT NOT NULL DEFAULT '',
        last_name     TEXT NOT NULL DEFAULT '',
        phone_number  TEXT
    );
    """,
]

# 预约 + 配送任务
_APPOINTMENT_DDL = [
    """
    CREATE TABLE IF NOT EXISTS appointments (
        id                          INTEGER PRIMARY KEY,
        job_code                    TEXT NOT NULL,
        user_id                     INTEGER NOT NULL,
        moving_partner_id           INTEGER,
        appointment_type            TEXT NOT NULL,
        address                     TEXT NOT NULL DEFAULT '',
        date                        TEXT NOT NULL,
        time                        TEXT NOT NULL DEFAULT '',
        number_of_units             INTEGER,
        status                      TEXT NOT NULL DEFAULT 'Scheduled',
        called_moving_partner       INTEGER NOT NULL DEFAULT 0,
        got_hold_of_moving_partner  INTEGER,
        created_at                  TEXT NOT NULL,

        FOREIGN KEY (user_id) REFERENCES users(id),
        FOREIGN KEY (moving_partner_id) REFERENCES moving_partners(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS driver_tasks (
        id               INTEGER PRIMARY KEY,
        appointment_id   INTEGER NOT NULL,
        external_id      TEXT NOT NULL DEFAULT '',
        short_id         TEXT NOT NULL DEFAULT '',
        step_number      INTEGER NOT NULL DEFAULT 1,
        unit_number      INTEGER NOT NULL DEFAULT 1,
        driver_id        INTEGER,
        storage_unit_id  INTEGER,
        driver_verified  INTEGER,

        FOREIGN KEY (appointment_id) REFERENCES appointments(id),
        FOREIGN KEY (driver_id) REFERENCES drivers(id),
        FOREIGN KEY (storage_unit_id) REFERENCES storage_units(id)
    );
    """,
]

# 储物单元及其使用记录
_STORAGE_DDL = [
    """
    CREATE TABLE IF NOT EXISTS storage_units (
        id                  INTEGER PRIMARY KEY,
        storage_unit_number TEXT NOT NULL UNIQUE,
        status              TEXT NOT NULL DEFAULT 'Empty',
        last_updated        TEXT NOT NULL,
        cleaning_photos     TEXT NOT NULL DEFAULT '[]',
        last_cleaned_at     TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS storage_unit_usages (
        id                    INTEGER PRIMARY KEY,
        storage_unit_id       INTEGER NOT NULL,
        user_id               INTEGER NOT NULL,
        start_appointment_id  INTEGER,
        end_appointment_id    INTEGER,
        warehouse_location    TEXT,
        warehouse_name        TEXT,
        usage_start_date      TEXT NOT NULL,
        usage_end_date        TEXT,
        unit_pickup_photos    TEXT NOT NULL DEFAULT '[]',
        updated_at            TEXT NOT NULL,

        FOREIGN KEY (storage_unit_id) REFERENCES storage_units(id),
        FOREIGN KEY (user_id) REFERENCES users(id),
        FOREIGN KEY (start_appointment_id) REFERENCES appointments(id),
        FOREIGN KEY (end_appointment_id) REFERENCES appointments(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS requested_access_storage_units (
        id                            INTEGER PRIMARY KEY,
        appointment_id                INTEGER NOT NULL,
        storage_unit_id               INTEGER NOT NULL,
        units_ready                   INTEGER NOT NULL DEFAULT 0,
        requested_unit_pickup_photos  TEXT NOT NULL DEFAULT '[]',
        assigned_at                   TEXT,
        created_at                    TEXT NOT NULL,

        UNIQUE (appointment_id, storage_unit_id),
        FOREIGN KEY (appointment_id) REFERENCES appointments(id),
        FOREIGN KEY (storage_unit_id) REFERENCES storage_units(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS storage_unit_cleanings (
        id               INTEGER PRIMARY KEY,
        storage_unit_id  INTEGER NOT NULL,
        admin_id         INTEGER NOT NULL,
        cleaned_at       TEXT NOT NULL,
        photos           TEXT NOT NULL DEFAULT '[]',

        FOREIGN KEY (storage_unit_id) REFERENCES storage_units(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS storage_unit_damage_reports (
        id                  INTEGER PRIMARY KEY,
        storage_unit_id     INTEGER NOT NULL,
        appointment_id      INTEGER NOT NULL,
        admin_id            INTEGER NOT NULL,
        report_date         TEXT NOT NULL,
        damage_description  TEXT NOT NULL,
        damage_photos       TEXT NOT NULL DEFAULT '[]',
        status              TEXT NOT NULL DEFAULT 'Pending',

        FOREIGN KEY (storage_unit_id) REFERENCES storage_units(id),
        FOREIGN KEY (appointment_id) REFERENCES appointments(id)
    );
    """,
]

_FEEDBACK_DDL = [
    """
    CREATE TABLE IF NOT EXISTS feedback (
        id              INTEGER PRIMARY KEY,
        appointment_id  INTEGER NOT NULL,
        rating          INTEGER NOT NULL,
        comment         TEXT NOT NULL DEFAULT '',
        responded       INTEGER NOT NULL DEFAULT 0,
        response        TEXT,
        created_at      TEXT NOT NULL,

        FOREIGN KEY (appointment_id) REFERENCES appointments(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS packing_supply_feedback (
        id          INTEGER PRIMARY KEY,
        order_id    INTEGER NOT NULL,
        rating      INTEGER NOT NULL,
        comment     TEXT NOT NULL DEFAULT '',
        responded   INTEGER NOT NULL DEFAULT 0,
        response    TEXT,
        created_at  TEXT NOT NULL,

        FOREIGN KEY (order_id) REFERENCES packing_supply_orders(id)
    );
    """,
]

_PACKING_SUPPLY_DDL = [
    """
    CREATE TABLE IF NOT EXISTS products (
        id     INTEGER PRIMARY KEY,
        title  TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS packing_supply_orders (
        id                  INTEGER PRIMARY KEY,
        contact_name        TEXT NOT NULL,
        contact_email       TEXT,
        contact_phone       TEXT,
        delivery_address    TEXT NOT NULL,
        delivery_date       TEXT NOT NULL,
        order_date          TEXT NOT NULL,
        status              TEXT NOT NULL DEFAULT 'Pending',
        short_id            TEXT,
        assigned_driver_id  INTEGER,
        is_prepped          INTEGER NOT NULL DEFAULT 0,
        prepped_at          TEXT,
        prepped_by          INTEGER,

        FOREIGN KEY (assigned_driver_id) REFERENCES drivers(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS packing_supply_order_details (
        id          INTEGER PRIMARY KEY,
        order_id    INTEGER NOT NULL,
        product_id  INTEGER NOT NULL,
        quantity    INTEGER NOT NULL DEFAULT 1,

        FOREIGN KEY (order_id) REFERENCES packing_supply_orders(id),
        FOREIGN KEY (product_id) REFERENCES products(id)
    );
    """,
]

_ADMIN_LOG_DDL = [
    """
    CREATE TABLE IF NOT EXISTS admin_logs (
        id           INTEGER PRIMARY KEY,
        admin_id     INTEGER NOT NULL,
        action       TEXT NOT NULL,
        target_type  TEXT NOT NULL,
        target_id    TEXT NOT NULL,
        created_at   TEXT NOT NULL
    );
    """,
]

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_appointments_date ON appointments(date);",
    "CREATE INDEX IF NOT EXISTS idx_appointments_status ON appointments(status);",
    "CREATE INDEX IF NOT EXISTS idx_driver_tasks_appointment ON driver_tasks(appointment_id);",
    "CREATE INDEX IF NOT EXISTS idx_storage_units_status ON storage_units(status);",
    (
        "CREATE INDEX IF NOT EXISTS idx_usages_start_appointment "
        "ON storage_unit_usages(start_appointment_id);"
    ),
    (
        "CREATE INDEX IF NOT EXISTS idx_usages_location "
        "ON storage_unit_usages(warehouse_location) WHERE usage_end_date IS NULL;"
    ),
    (
        "CREATE INDEX IF NOT EXISTS idx_requested_units_appointment "
        "ON requested_access_storage_units(appointment_id);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_feedback_responded ON feedback(responded, rating);",
    (
        "CREATE INDEX IF NOT EXISTS idx_ps_feedback_responded "
        "ON packing_supply_feedback(responded, rating);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_ps_orders_prepped ON packing_supply_orders(is_prepped);",
    "CREATE INDEX IF NOT EXISTS idx_admin_logs_created_at ON admin_logs(created_at DESC);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    for ddl in (
        _REFERENCE_DDL
        + _APPOINTMENT_DDL
        + _STORAGE_DDL
        + _FEEDBACK_DDL
        + _PACKING_SUPPLY_DDL
        + _ADMIN_LOG_DDL
    ):
        await conn.execute(ddl)

    for idx_sql in _INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效"""
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
