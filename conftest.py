"""
Pytest configuration for the duskup test suite.

This configuration enables the --full flag to run integration tests.
"""

import pytest


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (downloads releases)",
    )


def pytest_configure(config):
    """Configure pytest based on command-line options."""
    if config.getoption("--full"):
        # Remove the default marker expression that excludes integration tests
        markexpr = config.getoption("-m", "")
        if markexpr == "not integration":
            config.option.markexpr = ""


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep tests away from the user's real cache and toolchain settings."""
    for name in (
        "DUSKUP_CACHE_DIR",
        "DUSKUP_TOOLCHAIN_DIR",
        "DUSKUP_RELEASES_URL",
        "DUSKUP_HOST_TRIPLE",
        "RUSTUP_HOME",
    ):
        monkeypatch.delenv(name, raising=False)
