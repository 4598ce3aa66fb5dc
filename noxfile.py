"""Nox sessions for the bracket engine."""

import nox

nox.options.sessions = ["tests", "lint"]
PYTHON = "3.11"
COVERAGE_TARGETS = ("--cov=bracket_engine", "--cov=bracketctl")


@nox.session(python=PYTHON)
def tests(session):
    """pytest against the in-memory table, failing under 80% coverage."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        *COVERAGE_TARGETS,
        "--cov-report=term-missing",
        "--cov-fail-under=80",
        *session.posargs,
    )


@nox.session(python=PYTHON)
def lint(session):
    session.install("ruff>=0.1.0")
    session.run("ruff", "check", "bracket_engine", "bracketctl.py", "tests")
    session.run(
        "ruff", "format", "--check", "bracket_engine", "bracketctl.py", "tests"
    )


@nox.session(python=PYTHON, name="format")
def format_code(session):
    """Apply ruff formatting and autofixes."""
    session.install("ruff>=0.1.0")
    session.run("ruff", "format", "bracket_engine", "bracketctl.py", "tests")
    session.run("ruff", "check", "--fix", "bracket_engine", "bracketctl.py", "tests")


@nox.session(python=PYTHON)
def coverage_report(session):
    """Branch coverage written to htmlcov/ and coverage.xml."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        *COVERAGE_TARGETS,
        "--cov-branch",
        "--cov-report=html:htmlcov",
        "--cov-report=xml:coverage.xml",
        "--tb=short",
    )
