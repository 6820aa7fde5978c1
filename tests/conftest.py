import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--hardware",
        action="store_true",
        default=False,
        help="Run integration tests that call the real macOS radio tools",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--hardware"):
        return
    skip = pytest.mark.skip(reason="needs --hardware flag and a Mac")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip)
