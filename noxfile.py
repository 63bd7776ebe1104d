"""Nox sessions orchestrating widelog unit suites."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import nox


PYTHON_VERSIONS = ["3.11", "3.12"]
PROJECT_ROOT = Path(__file__).parent

nox.options.sessions = [
    "tests(unit_widelog)",
]


def _install_test_requirements(session: nox.Session) -> None:
    """Install the package with its test toolchain inside the session environment."""

    session.install("-e", f"{PROJECT_ROOT}[test]")


def _run_suite(session: nox.Session, targets: Iterable[str]) -> None:
    _install_test_requirements(session)

    session.run("coverage", "erase")
    session.run(
        "coverage",
        "run",
        "--source=widelog",
        "-m",
        "pytest",
        *targets,
        *session.posargs,
    )
    session.run("coverage", "report", "-m")


@nox.session(python=PYTHON_VERSIONS, reuse_venv=True, name="tests(unit_widelog)")
def tests_unit_widelog(session: nox.Session) -> None:
    """Execute widelog unit suites under coverage."""

    _run_suite(session, ["tests/unit/widelog"])


@nox.session(python=PYTHON_VERSIONS, reuse_venv=True, name="tests(unit_widelog_gcl)")
def tests_unit_widelog_gcl(session: nox.Session) -> None:
    """Run the backend suite with google-cloud-logging installed."""

    session.install("-e", f"{PROJECT_ROOT}[gcl]")
    _run_suite(session, ["tests/unit/widelog/test_backends.py"])
