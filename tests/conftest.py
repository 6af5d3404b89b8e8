"""Pytest configuration and shared fixtures for the richmark test suite.

This module provides shared fixtures, test configuration, and utilities
that are used across the entire test suite.
"""

import os
from pathlib import Path
from typing import Generator

import pytest
from hypothesis import Phase, Verbosity, settings
from utils import cleanup_test_dir, create_test_temp_dir

from richmark.editor import Editor
from richmark.options import EditorOptions

# Register custom Hypothesis profiles
settings.register_profile("ci", max_examples=100, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=20)
settings.register_profile(
    "debug", max_examples=10, verbosity=Verbosity.verbose, phases=[Phase.explicit, Phase.reuse, Phase.generate]
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests - fast, isolated component tests")
    config.addinivalue_line("markers", "integration: Integration tests - component interaction tests")
    config.addinivalue_line("markers", "cli: Tests related to command-line interface")
    config.addinivalue_line("markers", "fuzzing: Property-based tests driven by Hypothesis")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files.

    Yields
    ------
    Path
        Temporary directory path that will be cleaned up after test.

    """
    temp_path = create_test_temp_dir()
    try:
        yield temp_path
    finally:
        cleanup_test_dir(temp_path)


class FakeClock:
    """Manually advanced time source for debounce tests."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def editor(clock) -> Editor:
    """Provide an editor with default options driven by the fake clock."""
    return Editor(EditorOptions(), clock=clock)


@pytest.fixture
def sample_markdown() -> str:
    """Provide sample Markdown used across several tests.

    Returns
    -------
    str
        Document touching every block type.

    """
    return """# Sample Document

This is a **sample document** with *italic text* and some `inline code`.

## Section 2

- Item 1
- Item 2

1. First item
2. Second item

> A quoted line

```python
def hello_world():
    print("Hello, World!")
```

***

| Header 1 | Header 2 |
| --- | --- |
| Row 1 | Data 1 |"""
