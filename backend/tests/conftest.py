import os

# Settings are read at import time, so these must be set before snapscape is imported
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-snapscape")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("ENVIRONMENT", "development")
