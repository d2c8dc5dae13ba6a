import os

import pytest

from hulybuild.exceptions import CommandError
from hulybuild.RUNNERS.command_runner import CommandRunner, CommandResult


class FakeRunner(CommandRunner):
    """
    Records commands instead of executing them.

    Rules registered with `on` match when their tokens appear contiguously in
    the command; later rules win. A rule can run a side effect (to create the
    files a real tool would) and choose the exit status and stdout.
    """
    def __init__(self, missing_tools=()):
        super().__init__("fake", echo=False)
        self.calls = []
        self.rules = []
        self.missing_tools = set(missing_tools)

    def on(self, *tokens, effect=None, return_code=0, stdout=""):
        self.rules.append((list(tokens), effect, return_code, stdout))
        return self

    @property
    def commands(self):
        return [call["command"] for call in self.calls]

    def ran(self, *tokens):
        return [c for c in self.commands if _contains(c, list(tokens))]

    def run(self, command, cwd=None, env=None, check=False, capture=False):
        command = [str(part) for part in command]
        self.calls.append({"command": command, "cwd": cwd, "env": env})
        return_code, stdout = 0, ""
        for tokens, effect, rc, out in reversed(self.rules):
            if _contains(command, tokens):
                if effect:
                    effect(command, cwd)
                return_code, stdout = rc, out
                break
        result = CommandResult(command=command, return_code=return_code, stdout=stdout)
        if check and not result.ok:
            raise CommandError(result)
        return result

    def which(self, tool):
        return tool not in self.missing_tools


def _contains(command, tokens):
    size = len(tokens)
    return any(command[i:i + size] == tokens for i in range(len(command) - size + 1))


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def write_file():
    """Creates a file (and its parents) and returns its path."""
    def _write(path, content=""):
        path = str(path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            f.write(content)
        return path
    return _write


@pytest.fixture
def deploy_dir(tmp_path):
    root = tmp_path / "deploy"
    root.mkdir()
    return root


@pytest.fixture
def platform_dir(tmp_path):
    root = tmp_path / "platform"
    root.mkdir()
    return root
