import duckdb
import logging
import threading
from contextlib import contextmanager

from config import DB_FILE, LOG_FILE


# -----------------------------
# Logging
# -----------------------------
def configure_logging(filename=LOG_FILE):
    logging.basicConfig(
        filename=filename,
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s"
    )

def log_info(msg):
    logging.info(msg)
    print(msg)

def log_error(msg):
    logging.error(msg)
    print(msg)

# -----------------------------
# Get a DB connection
# -----------------------------
def get_db(path=None):
    """
    Returns a new DuckDB connection.
    """
    return duckdb.connect(path or DB_FILE)


def get_conn():
    """FastAPI dependency: one connection per request, closed afterwards."""
    conn = get_db()
    try:
        yield conn
    finally:
        conn.close()


def fetch_dicts(result):
    """Turn a DuckDB result into a list of column-name keyed dicts."""
    columns = [col[0] for col in result.description]
    return [dict(zip(columns, row)) for row in result.fetchall()]


# -----------------------------
# Units of work
# -----------------------------
@contextmanager
def transaction(conn, timeout=None):
    """
    Run a block as one all-or-nothing unit against ``conn``.

    Anything raised inside the block rolls the unit back and propagates.
    When ``timeout`` (seconds) elapses the running statement is interrupted,
    which surfaces as ``duckdb.InterruptException`` and also rolls back.
    """
    timer = None
    if timeout:
        timer = threading.Timer(timeout, conn.interrupt)
        timer.daemon = True

    conn.begin()
    if timer is not None:
        timer.start()
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()
    finally:
        if timer is not None:
            timer.cancel()


# -----------------------------
# Initialize database schema
# -----------------------------
def init_db(conn=None):
    own_conn = False
    if conn is None:
        conn = get_db()
        own_conn = True

    try:
        conn.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            id VARCHAR PRIMARY KEY,
            user_id VARCHAR NOT NULL,
            external_id VARCHAR UNIQUE,
            name VARCHAR NOT NULL,
            type VARCHAR NOT NULL DEFAULT 'depository',
            current_balance DOUBLE,
            currency VARCHAR DEFAULT 'USD',
            sync_cursor VARCHAR,
            last_synced TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """)
        log_info("Accounts table ensured.")

        conn.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            id VARCHAR PRIMARY KEY,
            user_id VARCHAR NOT NULL,
            account_id VARCHAR NOT NULL,
            external_id VARCHAR UNIQUE,
            amount DOUBLE NOT NULL,
            date DATE NOT NULL,
            name VARCHAR NOT NULL,
            merchant_name VARCHAR,
            category VARCHAR,
            pending BOOLEAN NOT NULL DEFAULT FALSE,
            original_description VARCHAR,
            last_synced TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """)
        log_info("Transactions table ensured.")

        conn.execute("""
        CREATE TABLE IF NOT EXISTS recurring_patterns (
            id VARCHAR PRIMARY KEY,
            user_id VARCHAR NOT NULL,
            account_id VARCHAR NOT NULL,
            name VARCHAR NOT NULL,
            merchant_name VARCHAR,
            amount DOUBLE NOT NULL CHECK (amount >= 0),
            amount_tolerance DOUBLE NOT NULL DEFAULT 0.10,
            frequency VARCHAR NOT NULL CHECK (frequency IN
                ('daily','weekly','biweekly','monthly','quarterly','yearly')),
            day_of_month INTEGER CHECK (day_of_month BETWEEN 1 AND 31),
            day_of_week INTEGER CHECK (day_of_week BETWEEN 0 AND 6),
            start_date DATE NOT NULL,
            end_date DATE,
            transaction_type VARCHAR NOT NULL CHECK (transaction_type IN ('income','expense')),
            confidence DOUBLE NOT NULL DEFAULT 0.0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CHECK (day_of_month IS NULL OR day_of_week IS NULL)
        );
        """)
        log_info("Recurring patterns table ensured.")

        conn.execute("""
        CREATE TABLE IF NOT EXISTS forecasts (
            id VARCHAR PRIMARY KEY,
            user_id VARCHAR NOT NULL,
            account_id VARCHAR NOT NULL,
            forecast_date TIMESTAMP NOT NULL,
            start_date DATE NOT NULL,
            end_date DATE NOT NULL,
            initial_balance DOUBLE NOT NULL,
            projected_balance DOUBLE NOT NULL,
            metadata VARCHAR,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(user_id, account_id)
        );
        """)
        log_info("Forecasts table ensured.")

        conn.execute("""
        CREATE TABLE IF NOT EXISTS forecast_transactions (
            id VARCHAR PRIMARY KEY,
            user_id VARCHAR NOT NULL,
            account_id VARCHAR NOT NULL,
            forecast_id VARCHAR NOT NULL,
            recurring_pattern_id VARCHAR,
            is_manual BOOLEAN NOT NULL DEFAULT FALSE,
            amount DOUBLE NOT NULL,
            date DATE NOT NULL,
            scheduled_date DATE,
            name VARCHAR NOT NULL,
            category VARCHAR,
            note VARCHAR,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """)
        log_info("Forecast transactions table ensured.")

        # Indexes
        conn.execute("CREATE INDEX IF NOT EXISTS idx_tx_account ON transactions(account_id);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_patterns_account ON recurring_patterns(account_id);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_ftx_forecast ON forecast_transactions(forecast_id);")
        log_info("Indexes created/ensured.")

    except Exception as e:
        log_error(f"Error initializing DB: {e}")
        raise
    finally:
        if own_conn:
            conn.close()
            log_info("Database setup complete and connection closed.")
