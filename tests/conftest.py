import logging

import pytest


@pytest.fixture(autouse=True)
def _fresh_package_logger():
    # CLI runs install handlers bound to the runner's temporary streams
    yield
    log = logging.getLogger("gridmdp")
    for h in list(log.handlers):
        log.removeHandler(h)
        h.close()
    log.setLevel(logging.NOTSET)
