"""Tests for the releasectl command line tool."""

from collections.abc import Callable
import json
import pathlib

import pytest
import yaml

from releasectl.tool.releasectl import main

DEMO_CHART = pathlib.Path("tests/testdata/demo-app")
DEV_VALUES = pathlib.Path("tests/testdata/values-dev.yaml")


@pytest.fixture(name="run")
def run_fixture(
    tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
) -> Callable[..., str]:
    """Fixture to run the command line tool against a temporary state directory."""

    def _run(*args: str) -> str:
        main([*args, "--state-dir", str(tmp_path)])
        return capsys.readouterr().out

    return _run


def test_lifecycle(run: Callable[..., str], tmp_path: pathlib.Path) -> None:
    """Test install, upgrade, rollback and uninstall of the demo chart."""
    out = run("install", "demo", str(DEMO_CHART))
    assert "NAME: demo\nREVISION: 1\nSTATUS: deployed\n" in out
    assert "CHART: demo-app-0.1.0\n" in out
    assert "CHANGES: 3 created, 0 updated, 0 deleted, 0 unchanged" in out
    deployment = yaml.safe_load(
        (tmp_path / "cluster" / "Deployment" / "demo.yaml").read_text()
    )
    assert deployment["spec"]["replicas"] == 1

    out = run("upgrade", "demo", str(DEMO_CHART), "--set", "replicaCount=2")
    assert "REVISION: 2" in out
    assert "CHANGES: 0 created, 1 updated, 0 deleted, 2 unchanged" in out
    deployment = yaml.safe_load(
        (tmp_path / "cluster" / "Deployment" / "demo.yaml").read_text()
    )
    assert deployment["spec"]["replicas"] == 2

    out = run("rollback", "demo")
    assert "REVISION: 3" in out
    assert "CHANGES: 0 created, 1 updated, 0 deleted, 2 unchanged" in out

    out = run("history", "demo", "-o", "json")
    history = json.loads(out)
    assert [(r["revision"], r["status"], r["description"]) for r in history] == [
        (1, "superseded", "Install complete"),
        (2, "superseded", "Upgrade complete"),
        (3, "deployed", "Rollback to 1"),
    ]

    out = run("uninstall", "demo")
    assert out == 'release "demo" uninstalled (3 resources deleted)\n'
    assert not list((tmp_path / "cluster").glob("*/*.yaml"))

    out = run("list")
    header = out.splitlines()[0].split()
    assert header == ["NAME", "REVISION", "UPDATED", "STATUS", "CHART"]
    assert "uninstalled" in out


def test_upgrade_values_file(run: Callable[..., str]) -> None:
    """Test upgrading with a values file."""
    run("install", "demo", str(DEMO_CHART))
    out = run("upgrade", "demo", str(DEMO_CHART), "-f", str(DEV_VALUES))
    assert "CHANGES: 0 created, 2 updated, 0 deleted, 1 unchanged" in out

    out = run("get", "values", "demo")
    values = yaml.safe_load(out)
    assert values["replicaCount"] == 2
    assert values["service"] == {"type": "ClusterIP", "port": 8080}

    out = run("get", "values", "demo", "--revision", "1")
    assert yaml.safe_load(out)["replicaCount"] == 1


def test_upgrade_dry_run(run: Callable[..., str], tmp_path: pathlib.Path) -> None:
    """Test a dry run upgrade prints the changes without applying them."""
    run("install", "demo", str(DEMO_CHART))
    out = run(
        "upgrade", "demo", str(DEMO_CHART), "--set", "replicaCount=2", "--dry-run"
    )
    assert "REVISION: 2 (dry run)" in out
    assert "CHANGES:\n  update Deployment/demo\n" in out
    assert "-  replicas: 1\n+  replicas: 2\n" in out

    out = run("history", "demo")
    assert len(out.splitlines()) == 2
    deployment = yaml.safe_load(
        (tmp_path / "cluster" / "Deployment" / "demo.yaml").read_text()
    )
    assert deployment["spec"]["replicas"] == 1


def test_get_manifest_and_status(run: Callable[..., str]) -> None:
    """Test printing the manifests and status of a release."""
    run("install", "demo", str(DEMO_CHART))
    out = run("get", "manifest", "demo")
    docs = list(yaml.safe_load_all(out))
    assert [(doc["kind"], doc["metadata"]["name"]) for doc in docs] == [
        ("ConfigMap", "demo-content"),
        ("Deployment", "demo"),
        ("Service", "demo"),
    ]

    out = run("status", "demo")
    assert "STATUS: deployed" in out
    assert "DESCRIPTION: Install complete" in out
    lines = out.splitlines()
    resources = lines[lines.index("RESOURCES:") + 1 :]
    assert [line.split() for line in resources] == [
        ["KIND", "NAME", "PRESENT"],
        ["ConfigMap", "demo-content", "True"],
        ["Deployment", "demo", "True"],
        ["Service", "demo", "True"],
    ]


def test_errors(
    run: Callable[..., str], capsys: pytest.CaptureFixture[str]
) -> None:
    """Test failures are reported on stderr with a non-zero exit code."""
    run("install", "demo", str(DEMO_CHART))
    with pytest.raises(SystemExit) as err:
        run("install", "demo", str(DEMO_CHART))
    assert err.value.code == 1
    assert "Release demo already exists" in capsys.readouterr().err

    with pytest.raises(SystemExit):
        run("rollback", "demo")
    assert "Release demo has no revision 0" in capsys.readouterr().err

    with pytest.raises(SystemExit):
        run("upgrade", "missing", str(DEMO_CHART))
    assert "Release missing has no deployed revision" in capsys.readouterr().err

    with pytest.raises(SystemExit):
        run("upgrade", "demo", str(DEMO_CHART), "--set", "replicaCount=")
    assert "replicaCount is required" in capsys.readouterr().err

    with pytest.raises(SystemExit):
        run("upgrade", "demo", str(DEMO_CHART), "--workers", "0")
    assert "max_workers must be at least 1" in capsys.readouterr().err


def test_template(capsys: pytest.CaptureFixture[str]) -> None:
    """Test rendering a chart without a release."""
    main(["template", "web", str(DEMO_CHART), "--set", "configmap.enabled=false"])
    docs = list(yaml.safe_load_all(capsys.readouterr().out))
    assert [(doc["kind"], doc["metadata"]["name"]) for doc in docs] == [
        ("Deployment", "web"),
        ("Service", "web"),
    ]


def test_lint(tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test linting charts."""
    main(["lint", str(DEMO_CHART)])
    assert "1 chart(s) linted, 0 chart(s) failed" in capsys.readouterr().out

    with pytest.raises(SystemExit):
        main(["lint", str(DEMO_CHART), str(tmp_path / "missing")])
    out = capsys.readouterr().out
    assert "[ERROR] Chart path" in out
    assert "2 chart(s) linted, 1 chart(s) failed" in out
