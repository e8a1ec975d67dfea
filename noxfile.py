"""Nox automation configuration for the uArm client."""

import nox

nox.options.sessions = ["lint", "tests"]
nox.options.reuse_existing_virtualenvs = True


@nox.session(python=["3.9", "3.10", "3.11", "3.12"])
def tests(session):
    """Run the test suite."""
    session.install("-e", ".[dev]")
    session.run("pytest", *session.posargs)


@nox.session(python="3.11")
def coverage(session):
    """Run tests with coverage reporting."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        "--cov=uarm_client",
        "--cov-report=term-missing",
        *session.posargs
    )


@nox.session(python="3.11")
def lint(session):
    """Run flake8."""
    session.install("-e", ".[dev]")
    session.run("flake8", "--max-line-length=120", "uarm_client", "tests")
