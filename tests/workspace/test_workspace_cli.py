from __future__ import annotations

from docbatch.core import workspace as workspace_mod
from docbatch.workspace import cli


def test_init_creates_workspace_from_env(tmp_path, monkeypatch, capsys):
    home = tmp_path / "home"
    monkeypatch.setenv(workspace_mod.WORKSPACE_ENV, str(home))

    assert cli.main([]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[0] == f"Workspace ready at {home} (created)"
    assert (home / "config").is_dir()
    assert (home / "logs").is_dir()


def test_init_reports_existing_directories(tmp_path, capsys):
    home = tmp_path / "home"
    (home / "config").mkdir(parents=True)

    assert cli.main(["--path", str(home)]) == 0

    assert capsys.readouterr().out.splitlines() == [
        f"Workspace ready at {home} (exists)",
        f"  config  {home / 'config'} (exists)",
        f"  logs    {home / 'logs'} (created)",
    ]


def test_init_quiet_prints_nothing(tmp_path, capsys):
    assert cli.main(["--path", str(tmp_path / "home"), "--quiet"]) == 0

    assert capsys.readouterr().out == ""
    assert (tmp_path / "home" / "logs").is_dir()


def test_init_fails_when_path_is_file(tmp_path, capsys):
    target = tmp_path / "home"
    target.write_text("file", encoding="utf-8")

    assert cli.main(["--path", str(target)]) == 1

    assert "not a directory" in capsys.readouterr().err
