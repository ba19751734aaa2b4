import os

# -----------------------------
# Storage
# -----------------------------
DB_FILE = os.getenv("FORECAST_DB_FILE", "forecast.duckdb")
LOG_FILE = os.getenv("FORECAST_LOG_FILE", "forecast.log")

# generate_forecast runs as one store transaction; the day-by-day
# projection over a long window needs a generous budget.
FORECAST_TRANSACTION_TIMEOUT = float(os.getenv("FORECAST_TRANSACTION_TIMEOUT", "30"))
MAX_FORECAST_MONTHS = int(os.getenv("MAX_FORECAST_MONTHS", "24"))

# -----------------------------
# Transaction feed
# -----------------------------
FEED_BASE_URL = os.getenv("FEED_BASE_URL")
FEED_API_KEY = os.getenv("FEED_API_KEY")
FEED_TIMEOUT = float(os.getenv("FEED_TIMEOUT", "30"))

# "outflow_positive": the feed reports expenses as positive numbers.
# "inflow_positive": the feed already uses positive = money in.
FEED_SIGN_CONVENTION = os.getenv("FEED_SIGN_CONVENTION", "outflow_positive")
