import logging

import pytest


@pytest.fixture(autouse=True)
def reset_package_logging():
    """Undo the logging changes made by ``vcchangelog --verbose``.

    The CLI re-enables propagation on the package loggers and installs
    root handlers bound to the runner's streams. Both are restored after
    each test so later tests never log into a closed stream.
    """
    root_handlers = list(logging.root.handlers)
    try:
        yield
    finally:
        for handler in list(logging.root.handlers):
            if handler not in root_handlers:
                logging.root.removeHandler(handler)
        for name, item in logging.root.manager.loggerDict.items():
            if name.startswith("vc_changelog") and isinstance(item, logging.Logger):
                item.propagate = False
