"""Global pytest configuration for the test suite."""

from castline.logging_config import setup_logging


def pytest_configure() -> None:
    setup_logging(
        log_format_type="human", app_log_level_name="INFO", include_stacktrace=False
    )
