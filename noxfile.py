import os
from pathlib import Path
import nox

# Reuse existing virtualenvs for faster runs
nox.options.reuse_existing_virtualenvs = True
# Default sessions when running "nox"
nox.options.sessions = ["lint", "unit"]

# Environment variables to propagate
PASSED_ENV_VARS = [
    "DATABASE_URL",
    "SECRET_KEY",
    "ADMIN_PASSWORD",
    "ENVIRONMENT",
    "DEFAULT_TIMEZONE",
    "LOG_LEVEL",
]


def _set_env(session):
    """
    Propagate configuration environment variables into the session.
    Tests always run against the in-memory SQLite engine from tests/conftest.py.
    """
    session.env["PYTHONPATH"] = str(Path.cwd())
    session.env.setdefault("ENVIRONMENT", "development")
    for var in PASSED_ENV_VARS:
        if var in os.environ:
            session.env[var] = os.environ[var]


@nox.session(name="lint")
def lint(session):
    """
    Code formatting, linting, and type-checks:
      - isort
      - black
      - flake8
      - mypy
    """
    _set_env(session)
    session.install("isort", "black", "flake8", "mypy")
    session.run("isort", "geoattend/", "tests/")
    session.run("black", "geoattend/", "tests/")
    session.run("flake8", "--max-line-length=120", "geoattend/", "tests/")
    session.run("mypy", "geoattend/")


@nox.session(name="unit")
def unit(session):
    """
    Run the test suite with coverage.
    Pass positional args to target specific tests.
    Usage:
      nox -s unit             # runs everything under tests/
      nox -s unit -- tests/unit/test_services/test_checkin.py
    """
    _set_env(session)
    session.install("-e", ".[test]")
    tests = session.posargs or ["tests"]
    htmlcov_path = ".nox/htmlcov"
    session.run(
        "pytest",
        *tests,
        "--maxfail=1",
        "-vv",
        "--tb=short",
        "--cov=geoattend",
        "--cov-report=term-missing",
        "--cov-report=html:" + htmlcov_path,
        "--cov-report=xml",
        "--cov-fail-under=80",
    )
