from __future__ import annotations

import subprocess
import sys
from pathlib import Path


SCRIPT_PATH = Path(__file__).resolve().parents[1] / "scripts" / "bootstrap_admin.py"


def _run_script(*args: str) -> str:
    completed = subprocess.run(
        [sys.executable, str(SCRIPT_PATH), *args],
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout


def test_bootstrap_script_promotes_existing_user() -> None:
    output = _run_script("--username", "u1")

    assert "update users" in output
    assert "set is_admin = true" in output
    assert "where username = 'u1';" in output


def test_bootstrap_script_creates_user_when_email_given() -> None:
    output = _run_script("--username", "o'brien", "--email", "ob@example.com", "--first-name", "Pat")

    assert "insert into users (username, first_name, last_name, email, is_admin)" in output
    assert "values ('o''brien', 'Pat', 'o''brien', 'ob@example.com', true)" in output
    assert "on conflict (username) do update" in output


def test_bootstrap_script_revokes_admin() -> None:
    output = _run_script("--username", "u1", "--revoke")

    assert "set is_admin = false" in output
