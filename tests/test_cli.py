"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner
from rich.console import Console

from dod_gate.cli.main import cli

PROFILE_YAML = """\
name: docs-only
required_checks: [WHY_INTENT]
optional_checks: [H1_ARTIFACTS]
category_weights:
  intent_alignment: 1.0
concurrency: serial
"""


@pytest.fixture
def runner(monkeypatch):
    # Wide console so table cells are not folded
    monkeypatch.setattr("dod_gate.cli.main.console", Console(width=200))
    return CliRunner()


@pytest.fixture
def profile_file(tmp_path):
    path = tmp_path / "docs-only.yaml"
    path.write_text(PROFILE_YAML)
    return path


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "project"
    (root / "docs" / "adr").mkdir(parents=True)
    (root / "README.md").write_text("This project exists to demonstrate the gate. " * 10)
    (root / "docs" / "adr" / "0001-use-yaml.md").write_text("# Use YAML profiles\n")
    (root / "pyproject.toml").write_text("[project]\nname = 'project'\n")
    return root


def receipts_under(root):
    return sorted(root.glob("dod_reports/*/receipt.json"))


class TestListCommands:
    """Tests for the listing commands."""

    def test_list_checks(self, runner):
        """Test that every built-in check is listed."""
        result = runner.invoke(cli, ["list-checks"])

        assert result.exit_code == 0
        for check_id in ("G0_WORKSPACE", "BUILD_CHECK", "TEST_UNIT", "G8_SECRETS", "H1_ARTIFACTS"):
            assert check_id in result.output

    def test_list_checks_by_category(self, runner):
        """Test category filtering."""
        result = runner.invoke(cli, ["list-checks", "--category", "safety_invariants"])

        assert result.exit_code == 0
        assert "G8_SECRETS" in result.output
        assert "BUILD_CHECK" not in result.output

    def test_profiles(self, runner):
        """Test that bundled profiles are listed."""
        result = runner.invoke(cli, ["profiles"])

        assert result.exit_code == 0
        assert "default" in result.output
        assert "strict" in result.output


class TestValidateCommand:
    """Tests for the validate command."""

    def test_ready_workspace(self, runner, workspace, profile_file):
        """Test a ready run, its artifacts, and verifying the receipt."""
        result = runner.invoke(cli, ["validate", str(workspace), "--profile-file", str(profile_file)])

        assert result.exit_code == 0, result.output
        receipts = receipts_under(workspace)
        assert len(receipts) == 1
        assert (receipts[0].parent / "evidence.tar.gz").is_file()
        assert (receipts[0].parent / "report.md").is_file()
        assert json.loads(receipts[0].read_text())["verdict"] == "ready"
        assert "success rate" in result.output

        verified = runner.invoke(cli, ["verify", str(receipts[0])])
        assert verified.exit_code == 0, verified.output

    def test_tampered_receipt_fails_verification(self, runner, workspace, profile_file):
        """Test that editing a recorded outcome breaks verification."""
        runner.invoke(cli, ["validate", str(workspace), "--profile-file", str(profile_file)])
        receipt_path = receipts_under(workspace)[0]
        data = json.loads(receipt_path.read_text())
        data["check_results"][0]["message"] = "edited after the fact"
        receipt_path.write_text(json.dumps(data))

        result = runner.invoke(cli, ["verify", str(receipt_path.parent)])

        assert result.exit_code == 1

    def test_not_ready_exit_code(self, runner, tmp_path, profile_file):
        """Test that a NotReady verdict exits 1."""
        empty = tmp_path / "empty"
        empty.mkdir()

        result = runner.invoke(cli, ["validate", str(empty), "--profile-file", str(profile_file)])

        assert result.exit_code == 1
        assert len(receipts_under(empty)) == 1

    def test_extra_json_report(self, runner, workspace, profile_file):
        """Test writing a JSON report next to the receipt."""
        result = runner.invoke(cli, [
            "validate", str(workspace), "--profile-file", str(profile_file), "-f", "json",
        ])

        assert result.exit_code == 0
        report = receipts_under(workspace)[0].parent / "report.json"
        assert json.loads(report.read_text())["summary"]["verdict"] == "ready"

    def test_no_save(self, runner, workspace, profile_file):
        """Test that --no-save writes nothing."""
        result = runner.invoke(cli, [
            "validate", str(workspace), "--profile-file", str(profile_file), "--no-save",
        ])

        assert result.exit_code == 0
        assert not (workspace / "dod_reports").exists()

    def test_unknown_profile(self, runner, workspace):
        """Test that an unknown bundled profile exits 2."""
        result = runner.invoke(cli, ["validate", str(workspace), "-p", "nope"])

        assert result.exit_code == 2
        assert "Unknown profile" in result.output

    def test_unknown_check_in_profile(self, runner, workspace, tmp_path):
        """Test that a profile naming an unknown check exits 2."""
        bad = tmp_path / "bad.yaml"
        bad.write_text("required_checks: [WHY_INTENT, GHOST_CHECK]\n")

        result = runner.invoke(cli, ["validate", str(workspace), "--profile-file", str(bad)])

        assert result.exit_code == 2
        assert "GHOST_CHECK" in result.output

    def test_unwritable_output(self, runner, workspace, profile_file, tmp_path):
        """Test that a failed write exits 3."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")

        result = runner.invoke(cli, [
            "validate", str(workspace), "--profile-file", str(profile_file),
            "-o", str(blocker / "reports"),
        ])

        assert result.exit_code == 3

    def test_output_from_environment(self, runner, workspace, profile_file, tmp_path):
        """Test that DOD_OUTPUT_DIR sets the output directory."""
        out = tmp_path / "from-env"

        result = runner.invoke(
            cli,
            ["validate", str(workspace), "--profile-file", str(profile_file)],
            env={"DOD_OUTPUT_DIR": str(out)},
        )

        assert result.exit_code == 0
        assert len(list(out.glob("*/receipt.json"))) == 1
