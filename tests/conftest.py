"""
Pytest configuration and fixtures.

This module configures pytest behavior for different test types:
- Integration tests: Fail on any warnings logged by the code under test
- Unit tests: Allow warnings
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from typing_extensions import override

import pytest
from fakes import PAGE_URL, FakeTransport

from issue_comments import CommentThread, MemoryIdentityCache
from issue_comments.navigation import StaticNavigation

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

# Store warning records during test execution
_integration_test_warnings: dict[str, list[logging.LogRecord]] = {}


class IntegrationTestWarningHandler(logging.Handler):
    """Custom logging handler to capture warnings during integration tests."""

    test_nodeid: str

    def __init__(self, test_nodeid: str) -> None:
        super().__init__()
        self.test_nodeid = test_nodeid
        self.setLevel(logging.WARNING)

    @override
    def emit(self, record: logging.LogRecord) -> None:
        """Capture WARNING and above level logs."""
        if self.test_nodeid not in _integration_test_warnings:
            _integration_test_warnings[self.test_nodeid] = []
        _integration_test_warnings[self.test_nodeid].append(record)


@pytest.fixture(autouse=True)
def fail_on_log_warnings_for_integration_tests(
    request: pytest.FixtureRequest,
) -> Generator[None]:
    """
    Automatically fail integration tests if any WARNING level logs are emitted from the code under test.

    A synchronization run that succeeds or fails in an expected way (such as an
    uninitialized thread) must not log warnings; those are reserved for
    notifications to the user and broken caches.
    """
    is_integration_test = request.node.get_closest_marker("integration") is not None

    if not is_integration_test:
        yield
        return

    test_nodeid = request.node.nodeid
    _integration_test_warnings[test_nodeid] = []

    handler = IntegrationTestWarningHandler(test_nodeid)
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)

    try:
        yield
    finally:
        root_logger.removeHandler(handler)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(
    item: pytest.Item, call: pytest.CallInfo[None]
) -> Generator[None]:  # type: ignore[misc]
    """
    Hook to check for warnings after test execution and mark test as failed if warnings were detected.
    """
    outcome = yield
    report = outcome.get_result()

    if call.when == "call" and report.outcome == "passed":
        test_nodeid = item.nodeid
        warning_records = _integration_test_warnings.get(test_nodeid, [])

        if warning_records:
            warning_messages = [
                f"{record.levelname}: {record.getMessage()} (in {record.name}:{record.lineno})"
                for record in warning_records
            ]

            report.outcome = "failed"
            report.longrepr = f"Integration test failed: {len(warning_records)} warning(s) detected:\n" + "\n".join(
                f"  - {msg}" for msg in warning_messages
            )

        _integration_test_warnings.pop(test_nodeid, None)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def notifications() -> list[str]:
    return []


@pytest.fixture
def make_thread(transport: FakeTransport, notifications: list[str]) -> Callable[..., CommentThread]:
    """Factory for threads on repository a/b wired to the fake transport."""

    def factory(*, token: str | None = None, url: str = PAGE_URL, **options: Any) -> CommentThread:
        identity = options.pop("identity", None) or MemoryIdentityCache()
        if token is not None:
            identity.set("GT_ACCESS_TOKEN", token)
        return CommentThread(
            owner="a",
            repo="b",
            transport=transport,
            identity=identity,
            navigation=options.pop("navigation", None) or StaticNavigation(url, title="A post"),
            notify=notifications.append,
            **options,
        )

    return factory
