"""
tests/conftest.py: Shared fixtures and path setup for all tests.

Adds the project root to sys.path so tests can import without installing:
    from config.settings import Settings
    from distributive.checklist import parse_checklist
    import distributive.checks   # registers the built-in probes
"""
import pathlib
import subprocess
import sys

import pytest

# Make project root importable without installing as a package
PROJECT_ROOT = pathlib.Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def fake_run(monkeypatch):
    """Replace subprocess.run (as used by distributive.commands) with canned results.

    Usage:
        calls = fake_run({"systemctl": "LoadState=loaded\\n"})
        calls = fake_run({("docker", "ps"): ("", "permission denied", 1)})

    Keys are argv prefixes (a str matches argv[0]); values are stdout or
    (stdout, stderr, returncode). Unmatched commands raise FileNotFoundError,
    like a binary missing from PATH. Returns the list of argv seen.
    """
    from distributive import commands

    def install(responses):
        calls = []

        def run(args, **kwargs):
            calls.append(list(args))
            for key, value in responses.items():
                prefix = (key,) if isinstance(key, str) else tuple(key)
                if tuple(args[: len(prefix)]) == prefix:
                    if isinstance(value, str):
                        value = (value, "", 0)
                    stdout, stderr, returncode = value
                    return subprocess.CompletedProcess(args, returncode, stdout, stderr)
            raise FileNotFoundError(2, "No such file or directory", args[0])

        monkeypatch.setattr(commands.subprocess, "run", run)
        return calls

    return install
