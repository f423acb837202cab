"""
Point the app at a throwaway SQLite database before anything imports
setflow.db, and create the schema once. Runs before any test module loads.
"""
import os
import tempfile

_tmpdir = tempfile.mkdtemp(prefix="setflow-tests-")
os.environ["SQLALCHEMY_DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["GEMINI_API_KEY"] = ""          # summaries use the deterministic fallback
os.environ.pop("DEFAULT_REST_SECONDS", None)

from setflow.db import Base, engine  # noqa: E402
from setflow import models  # noqa: E402,F401

Base.metadata.create_all(engine)
