"""
Brief: Global pytest configuration: src on sys.path, per-test 10s timeout,
shared hosts file fixtures.

Inputs:
  - None

Outputs:
  - None
"""

import logging
import os
import signal
import sys

import pytest

# Ensure 'src' is on sys.path so 'hostsmod' package is importable in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

SAMPLE_HOSTS = "127.0.0.1 localhost\n::1 localhost\n10.0.0.5 app.example\n"

REALISTIC_HOSTS = (
    "127.0.0.1\tlocalhost\n"
    "127.0.1.1\tthismachine\n"
    "::1\tlocalhost ip6-localhost ip6-loopback\n"
    "ff02::1 ip6-allnodes\n"
    "ff02::2 ip6-allrouters\n"
    "# comment\n"
    "\n"
    "198.51.100.11\twww.employer.example\n"
    "10.0.20.4\tintranet.someclub.example #  with trailing comment!\n"
    "# 10.4.79.99\tdeactivated.host deactivated.host.1\n"
    "    \n"
)


def _alarm_handler(signum, frame):
    """
    Brief: Signal handler that raises TimeoutError when alarm triggers.

    Inputs:
      - signum: signal number (int)
      - frame: current frame (ignored)

    Outputs:
      - None: Raises TimeoutError to fail the test
    """
    raise TimeoutError("Test exceeded 10 seconds")


if hasattr(signal, "SIGALRM"):
    signal.signal(signal.SIGALRM, _alarm_handler)


@pytest.fixture(autouse=True)
def enforce_test_timeout():
    """
    Brief: Enforce a hard 10-second timeout for each test.

    Inputs:
      - None

    Outputs:
      - None: Cancels alarm after test
    """
    if hasattr(signal, "SIGALRM"):
        signal.alarm(10)
        try:
            yield
        finally:
            signal.alarm(0)
    else:
        yield


@pytest.fixture(autouse=True)
def restore_root_logging():
    """
    Brief: Restore root logger handlers/level replaced by init_logging().

    Inputs:
      - None

    Outputs:
      - None
    """
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for h in handlers:
        if h not in root.handlers:
            root.addHandler(h)
    root.setLevel(level)


@pytest.fixture
def hosts_file(tmp_path):
    """
    Brief: Write SAMPLE_HOSTS to a temporary hosts file.

    Inputs:
      - tmp_path: pytest temporary directory

    Outputs:
      - pathlib.Path of the hosts file
    """
    path = tmp_path / "hosts"
    path.write_bytes(SAMPLE_HOSTS.encode("utf-8"))
    return path
