"""Global pytest configuration."""

import os

# Tests run against the in-memory document store unless a fixture opts into SQL
os.environ["DATABASE_URL"] = ""
os.environ["REDIS_URL"] = ""
