import os
import tempfile

_TEST_DATA_DIR = tempfile.mkdtemp(prefix="resume-optimizer-tests-")

os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ["CACHE_DB_PATH"] = os.path.join(_TEST_DATA_DIR, "resume_cache.db")
os.environ.setdefault("AI_PROVIDER", "openai")
os.environ.pop("SENTRY_DSN", None)
