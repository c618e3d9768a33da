"""
Module: fx_trading.db.triggers
Responsibility: Installing, removing and verifying database-level
    immutability triggers (Layer 2 of 2).  This is the database complement to
    the ORM listeners in db/immutability.py.
Architecture position: DB layer.  MUST NOT import from models/, services/,
    selectors/ or domain/.

Invariants enforced (SQLite and PostgreSQL variants of the same rules):
    - trade_audit rows: no UPDATE, no DELETE, ever.
    - trades rows: no DELETE; reference, dates, direction, currencies,
      amounts, rate, trader and created_* columns never change.

Failure modes:
    - SQLite RAISE(ABORT) / PostgreSQL RAISE EXCEPTION on violation, surfaced
      by SQLAlchemy as IntegrityError or a generic DBAPIError.
    - ValueError for a dialect with no trigger definitions.

Audit relevance:
    Raw SQL, bulk statements and direct database access bypass the ORM
    listeners; these triggers still refuse to rewrite history.
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine

from fx_trading.logging_config import get_logger

logger = get_logger("db.triggers")

# Columns of trades that are frozen after insert
FROZEN_TRADE_COLUMNS = (
    "trade_reference",
    "trade_date",
    "value_date",
    "direction",
    "base_currency",
    "quote_currency",
    "base_amount",
    "exchange_rate",
    "quote_amount",
    "trader",
    "created_at",
    "created_by",
)

ALL_TRIGGER_NAMES = [
    "trg_trade_audit_immutability_update",
    "trg_trade_audit_immutability_delete",
    "trg_trade_frozen_columns_update",
    "trg_trade_immutability_delete",
]


def _changed_clause(operator: str) -> str:
    return " OR ".join(
        f"NEW.{col} {operator} OLD.{col}" for col in FROZEN_TRADE_COLUMNS
    )


def _sqlite_statements() -> list[str]:
    return [
        """
        CREATE TRIGGER IF NOT EXISTS trg_trade_audit_immutability_update
        BEFORE UPDATE ON trade_audit
        BEGIN
            SELECT RAISE(ABORT, 'IMMUTABILITY_VIOLATION - trade_audit rows are append-only');
        END
        """,
        """
        CREATE TRIGGER IF NOT EXISTS trg_trade_audit_immutability_delete
        BEFORE DELETE ON trade_audit
        BEGIN
            SELECT RAISE(ABORT, 'IMMUTABILITY_VIOLATION - trade_audit rows are append-only');
        END
        """,
        f"""
        CREATE TRIGGER IF NOT EXISTS trg_trade_frozen_columns_update
        BEFORE UPDATE ON trades
        WHEN {_changed_clause("IS NOT")}
        BEGIN
            SELECT RAISE(ABORT, 'IMMUTABILITY_VIOLATION - trade economics are frozen');
        END
        """,
        """
        CREATE TRIGGER IF NOT EXISTS trg_trade_immutability_delete
        BEFORE DELETE ON trades
        BEGIN
            SELECT RAISE(ABORT, 'IMMUTABILITY_VIOLATION - trades cannot be deleted');
        END
        """,
    ]


def _postgresql_statements() -> list[str]:
    return [
        """
        CREATE OR REPLACE FUNCTION fx_reject_mutation() RETURNS trigger AS $body$
        BEGIN
            RAISE EXCEPTION 'IMMUTABILITY_VIOLATION - % on % is not permitted',
                TG_OP, TG_TABLE_NAME;
        END;
        $body$ LANGUAGE plpgsql
        """,
        "DROP TRIGGER IF EXISTS trg_trade_audit_immutability_update ON trade_audit",
        """
        CREATE TRIGGER trg_trade_audit_immutability_update
        BEFORE UPDATE ON trade_audit
        FOR EACH ROW EXECUTE FUNCTION fx_reject_mutation()
        """,
        "DROP TRIGGER IF EXISTS trg_trade_audit_immutability_delete ON trade_audit",
        """
        CREATE TRIGGER trg_trade_audit_immutability_delete
        BEFORE DELETE ON trade_audit
        FOR EACH ROW EXECUTE FUNCTION fx_reject_mutation()
        """,
        "DROP TRIGGER IF EXISTS trg_trade_frozen_columns_update ON trades",
        f"""
        CREATE TRIGGER trg_trade_frozen_columns_update
        BEFORE UPDATE ON trades
        FOR EACH ROW
        WHEN ({_changed_clause("IS DISTINCT FROM")})
        EXECUTE FUNCTION fx_reject_mutation()
        """,
        "DROP TRIGGER IF EXISTS trg_trade_immutability_delete ON trades",
        """
        CREATE TRIGGER trg_trade_immutability_delete
        BEFORE DELETE ON trades
        FOR EACH ROW EXECUTE FUNCTION fx_reject_mutation()
        """,
    ]


def _drop_statements(dialect: str) -> list[str]:
    if dialect == "sqlite":
        return [f"DROP TRIGGER IF EXISTS {name}" for name in ALL_TRIGGER_NAMES]
    table_for = {
        "trg_trade_audit_immutability_update": "trade_audit",
        "trg_trade_audit_immutability_delete": "trade_audit",
        "trg_trade_frozen_columns_update": "trades",
        "trg_trade_immutability_delete": "trades",
    }
    statements = [
        f"DROP TRIGGER IF EXISTS {name} ON {table_for[name]}"
        for name in ALL_TRIGGER_NAMES
    ]
    statements.append("DROP FUNCTION IF EXISTS fx_reject_mutation()")
    return statements


def _statements_for(dialect: str) -> list[str]:
    if dialect == "sqlite":
        return _sqlite_statements()
    if dialect == "postgresql":
        return _postgresql_statements()
    raise ValueError(f"No immutability triggers defined for dialect {dialect!r}")


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install database-level immutability triggers (idempotent).

    Preconditions: Tables must exist (call after create_all()).
    Postconditions: Every trigger in ALL_TRIGGER_NAMES is installed.
    """
    statements = _statements_for(engine.dialect.name)

    with engine.begin() as conn:
        for statement in statements:
            conn.execute(text(statement))

    logger.info(
        "immutability_triggers_installed",
        extra={"dialect": engine.dialect.name, "count": len(ALL_TRIGGER_NAMES)},
    )


def uninstall_immutability_triggers(engine: Engine) -> None:
    """
    Remove database-level immutability triggers.

    WARNING: Only for tests and tooling that must rebuild the schema.
    """
    with engine.begin() as conn:
        for statement in _drop_statements(engine.dialect.name):
            conn.execute(text(statement))


def get_installed_triggers(engine: Engine) -> list[str]:
    """List the immutability triggers currently installed, sorted by name."""
    if engine.dialect.name == "sqlite":
        query = "SELECT name FROM sqlite_master WHERE type = 'trigger'"
    else:
        query = "SELECT tgname FROM pg_trigger WHERE NOT tgisinternal"

    with engine.connect() as conn:
        names = {row[0] for row in conn.execute(text(query))}
    return sorted(name for name in ALL_TRIGGER_NAMES if name in names)


def triggers_installed(engine: Engine) -> bool:
    """True iff every trigger in ALL_TRIGGER_NAMES is installed."""
    return len(get_installed_triggers(engine)) == len(ALL_TRIGGER_NAMES)
