import pytest # type: ignore

def pytest_configure(config):
    """Register the test-suite markers."""
    config.addinivalue_line("markers", "quick: fast unit checks of a single sketch")
    config.addinivalue_line("markers", "full: statistical accuracy checks over thousands of elements")
    config.addinivalue_line("markers", "slow: mark test as very slow to run")
