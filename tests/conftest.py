"""Global pytest configuration for all tests."""

import os


def pytest_configure(config):
    """Keep environment overrides from leaking into configuration tests."""
    for key in list(os.environ):
        if key.startswith("STORY_PIPELINE_"):
            del os.environ[key]
