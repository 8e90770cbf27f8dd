import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]

# Packages with C extensions that must be rebuilt per Python version.
_C_EXT_PACKAGES = ["psycopg2-binary"]


def _install(session: nox.Session) -> None:
    """Install the project with its test extra into the nox virtualenv."""
    session.install("-e", ".[test]")
    session.install("--force-reinstall", "--no-cache-dir", *_C_EXT_PACKAGES)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run full test suite across Python versions."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Run the lifecycle engine and aggregate tests only (no infrastructure required)."""
    _install(session)
    session.run("pytest", "tests/dispatch/domain/", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def loadtest(session: nox.Session) -> None:
    """Run the dispatch lifecycle load test headless against a local server."""
    _install(session)
    session.run(
        "locust",
        "-f",
        "loadtests/locustfile.py",
        "DispatchLifecycleUser",
        "--headless",
        "-u",
        "20",
        "-r",
        "2",
        "-t",
        "120s",
        "--host",
        "http://localhost:8000",
    )
