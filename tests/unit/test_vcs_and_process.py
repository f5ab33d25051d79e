from __future__ import annotations

import sys
from pathlib import Path

import pytest

from oci_builder import vcs
from oci_builder.errors import ExternalToolError
from oci_builder.process import run_tool


def test_ignore_appends_once(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").write_text("node_modules", encoding="utf-8")

    assert vcs.ignore("ocib-result/", cwd=tmp_path) is True
    assert vcs.ignore("ocib-result/", cwd=tmp_path) is False

    assert (tmp_path / ".gitignore").read_text(encoding="utf-8") == "node_modules\nocib-result/\n"


def test_ignore_treats_slashless_entry_as_present(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").write_text("ocib-result\n", encoding="utf-8")
    assert vcs.ignore("ocib-result/", cwd=tmp_path) is False


def test_ignore_creates_gitignore(tmp_path: Path) -> None:
    vcs.ignore("out/", cwd=tmp_path)
    assert (tmp_path / ".gitignore").read_text(encoding="utf-8") == "out/\n"


def test_add_stages_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[tuple[list[str], Path]] = []
    monkeypatch.setattr(vcs, "run_tool", lambda cmd, cwd, tool: seen.append((cmd, cwd)))
    vcs.add("ocib/", cwd=tmp_path)
    assert seen == [(["git", "add", "--", "ocib/"], tmp_path)]


def test_run_tool_missing_binary() -> None:
    with pytest.raises(ExternalToolError) as exc:
        run_tool(["definitely-not-a-real-tool-ocib"])
    assert exc.value.hint == "Is definitely-not-a-real-tool-ocib installed?"


@pytest.mark.timeout(20)
def test_run_tool_nonzero_exit_carries_stderr() -> None:
    cmd = [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"]
    with pytest.raises(ExternalToolError) as exc:
        run_tool(cmd, capture=True, tool="probe")
    assert exc.value.exit_code == 3
    assert exc.value.message == "probe exited with code 3: bad"


@pytest.mark.timeout(20)
def test_run_tool_captures_stdout() -> None:
    result = run_tool([sys.executable, "-c", "print('ok')"], capture=True)
    assert result.stdout.strip() == "ok"
