"""Tests for bounded external command execution."""
import sys
from pathlib import Path

import pytest

from panelgen.core.errors import CommandError
from panelgen.sync.process import run_command


def test_captures_output(tmp_path):
    result = run_command([sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path)

    assert result.returncode == 0
    assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()


def test_output_is_truncated_to_the_tail(tmp_path):
    result = run_command([sys.executable, "-c", "print('a' * 50 + 'END')"], cwd=tmp_path, output_limit=10)

    assert len(result.stdout) == 10
    assert result.stdout.endswith("END\n")


def test_non_zero_exit_raises(tmp_path):
    script = "import sys; sys.stderr.write('boom'); sys.exit(3)"

    with pytest.raises(CommandError) as excinfo:
        run_command([sys.executable, "-c", script], cwd=tmp_path)

    assert excinfo.value.returncode == 3
    assert excinfo.value.stderr == "boom"


def test_missing_executable(tmp_path):
    with pytest.raises(CommandError) as excinfo:
        run_command("definitely-not-a-real-binary --version", cwd=tmp_path)

    assert excinfo.value.returncode == 127


def test_env_is_passed_to_the_child(tmp_path):
    script = "import os; print(os.environ['DATABASE_URL'])"

    result = run_command([sys.executable, "-c", script], cwd=tmp_path, env={"DATABASE_URL": "mongodb://db/panel"})

    assert result.stdout.strip() == "mongodb://db/panel"
