import os
import sys

from dotenv import load_dotenv

from enums.reservation_backend import ReservationBackend
from enums.runtime_environment import RuntimeEnvironment

# Load .env but don't override existing environment variables
# This allows test scripts to set RUNTIME_ENVIRONMENT=TEST before import
load_dotenv(".env", override=False)

# Parse RUNTIME_ENVIRONMENT with clear error message on misconfiguration
try:
    RUNTIME_ENVIRONMENT = RuntimeEnvironment(os.environ.get("RUNTIME_ENVIRONMENT", "DEV"))
except ValueError as e:
    valid_values = [env.value for env in RuntimeEnvironment]
    print(f"\n ERROR: Invalid RUNTIME_ENVIRONMENT configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Valid values: {', '.join(valid_values)}", file=sys.stderr)
    print(f"Current value: {os.environ.get('RUNTIME_ENVIRONMENT', '(not set)')}", file=sys.stderr)
    print(f"\nAdd to .env: RUNTIME_ENVIRONMENT={valid_values[0]}\n", file=sys.stderr)
    sys.exit(1)

WEBAPP_HOST = os.environ.get("WEBAPP_HOST", "0.0.0.0")
WEBAPP_PORT = int(os.environ.get("WEBAPP_PORT", "3000"))
FRONTEND_URL = os.environ.get("FRONTEND_URL", "")

# Database
DB_URL = os.environ.get("DB_URL", "sqlite+aiosqlite:///data/storefront.db")

# Reservation ledger backend: in-process map for a single embedded instance,
# shared table when several processes talk to one relational store.
try:
    _default_backend = ReservationBackend.MEMORY if DB_URL.startswith("sqlite") else ReservationBackend.DATABASE
    RESERVATION_BACKEND = ReservationBackend(os.environ.get("RESERVATION_BACKEND", _default_backend.value))
except ValueError as e:
    valid_backends = [b.value for b in ReservationBackend]
    print(f"\n ERROR: Invalid RESERVATION_BACKEND configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Valid values: {', '.join(valid_backends)}", file=sys.stderr)
    print(f"Current value: {os.environ.get('RESERVATION_BACKEND', '(not set)')}\n", file=sys.stderr)
    sys.exit(1)

# Inventory / Reservation Configuration
RESERVATION_TTL_MINUTES = int(os.environ.get("RESERVATION_TTL_MINUTES", "30"))  # Hold length for a pending checkout
RESERVATION_SWEEP_INTERVAL_SECONDS = int(os.environ.get("RESERVATION_SWEEP_INTERVAL_SECONDS", "300"))  # Every 5 minutes
# Serialize the stock-read -> reservation-write section per variant.
# Off by default: two checkouts may both take the last unit (known gap, see DESIGN.md).
STRICT_STOCK_RESERVATION = os.environ.get("STRICT_STOCK_RESERVATION", "false") == "true"
LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))

# Checkout Validation Configuration
PRICE_MISMATCH_TOLERANCE = int(os.environ.get("PRICE_MISMATCH_TOLERANCE", "100"))  # Absolute slack on client total

# Payment Provider (Paystack)
PAYSTACK_SECRET_KEY = os.environ.get("PAYSTACK_SECRET_KEY", "")
PAYSTACK_PUBLIC_KEY = os.environ.get("PAYSTACK_PUBLIC_KEY", "")
PAYSTACK_API_URL = os.environ.get("PAYSTACK_API_URL", "https://api.paystack.co")
PAYSTACK_TIMEOUT_SECONDS = int(os.environ.get("PAYSTACK_TIMEOUT_SECONDS", "15"))

# Logging Configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_MASK_SECRETS = os.environ.get("LOG_MASK_SECRETS", "true") == "true"  # Mask sensitive data in logs

# Log Retention: Environment-specific defaults
if RUNTIME_ENVIRONMENT == RuntimeEnvironment.DEV:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "30"))
else:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "5"))
