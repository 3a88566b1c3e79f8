import os

# Default to in-memory SQLite for tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "x" * 32)
os.environ.setdefault("CREATE_SCHEMA_ON_STARTUP", "false")
