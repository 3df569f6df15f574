"""Tests for CLI commands."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from miniapp.cli import app
from miniapp.models import MiniAppConfig


class TestCLI:
    """Test CLI commands."""

    @pytest.fixture
    def runner(self) -> CliRunner:
        """Create CLI test runner."""
        return CliRunner()

    @pytest.fixture(autouse=True)
    def fake_plutil(self, monkeypatch: pytest.MonkeyPatch, converter):
        """Route every conversion through the in-process converter."""
        monkeypatch.setattr("miniapp.installer.PlistConverter", lambda _executable: converter)
        return converter

    def _install(self, runner: CliRunner, *args: str):
        return runner.invoke(app, ["host", "sdk", "install", *args], obj=MiniAppConfig(version="9.9.9"))

    def test_version_flag(self, runner: CliRunner) -> None:
        """--version prints the configured release."""
        result = runner.invoke(app, ["--version"], obj=MiniAppConfig(version="9.9.9"))

        assert result.exit_code == 0
        assert "miniapp version 9.9.9" in result.output

    def test_version_command(self, runner: CliRunner) -> None:
        """The version command prints the configured release."""
        result = runner.invoke(app, ["version"], obj=MiniAppConfig(version="9.9.9"))

        assert result.exit_code == 0
        assert "miniapp version 9.9.9" in result.output

    def test_install_injects_phase(self, runner: CliRunner, app_project: Path, tmp_path: Path) -> None:
        """A first install reports the script and the injected phase."""
        result = self._install(runner, "--project", str(app_project))

        assert result.exit_code == 0, result.output
        assert f"[miniapp] Generator script: {tmp_path / 'Scripts' / 'sdm-gen-deps.sh'}" in result.output
        assert "[miniapp] Injected Run Script build phase into target: App" in result.output
        assert "[miniapp] Install completed" in result.output
        script = (tmp_path / "Scripts" / "sdm-gen-deps.sh").read_text(encoding="utf-8")
        assert "# Generated by miniapp 9.9.9." in script

    def test_install_twice_skips(self, runner: CliRunner, app_project: Path) -> None:
        """Re-running without --force leaves the project alone."""
        self._install(runner, "--project", str(app_project))
        before = (app_project / "project.pbxproj").read_bytes()

        result = self._install(runner, "--project", str(app_project))

        assert result.exit_code == 0
        assert "already present; skipping" in result.output
        assert (app_project / "project.pbxproj").read_bytes() == before

    def test_install_force_replaces(self, runner: CliRunner, app_project: Path) -> None:
        """--force reports a replacement."""
        self._install(runner, "--project", str(app_project))

        result = self._install(runner, "--project", str(app_project), "--force")

        assert result.exit_code == 0
        assert "Replaced Run Script build phase in target: App" in result.output

    def test_install_roundtrip_strategy(
        self,
        runner: CliRunner,
        app_project: Path,
        fake_plutil,
    ) -> None:
        """--strategy accepts any case and selects re-serialization."""
        result = self._install(runner, "--project", str(app_project), "--strategy", "ROUNDTRIP")

        assert result.exit_code == 0, result.output
        assert len(fake_plutil.written) == 1

    def test_install_explicit_target(self, runner: CliRunner, multi_project: Path) -> None:
        """--target picks one of several application targets."""
        result = self._install(runner, "--project", str(multi_project), "--target", "Beta")

        assert result.exit_code == 0, result.output
        assert "into target: Beta" in result.output

    def test_install_ambiguous_target(self, runner: CliRunner, multi_project: Path) -> None:
        """Ambiguity is an error listing the candidates."""
        result = self._install(runner, "--project", str(multi_project))

        assert result.exit_code == 1
        assert "[miniapp] ERROR: Multiple app targets found" in result.output
        assert "[Alpha, Beta]" in result.output

    def test_install_unknown_target(self, runner: CliRunner, multi_project: Path) -> None:
        """Unknown targets are reported with the available ones."""
        result = self._install(runner, "--project", str(multi_project), "--target", "Gamma")

        assert result.exit_code == 1
        assert "Target not found: Gamma. Available app targets: [Alpha, Beta]" in result.output

    def test_install_rejects_non_xcodeproj(self, runner: CliRunner, tmp_path: Path) -> None:
        """--project must name an .xcodeproj bundle."""
        result = self._install(runner, "--project", str(tmp_path / "App.xcworkspace"))

        assert result.exit_code == 1
        assert "--project must point to a .xcodeproj" in result.output

    def test_install_without_project(
        self,
        runner: CliRunner,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """An empty working directory has nothing to install into."""
        monkeypatch.chdir(tmp_path)

        result = self._install(runner)

        assert result.exit_code == 1
        assert "No .xcodeproj found. Pass --project <path/to/App.xcodeproj>." in result.output

    def test_install_discovers_project(
        self,
        runner: CliRunner,
        app_project: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Without --project the working directory is searched."""
        monkeypatch.chdir(tmp_path)

        result = self._install(runner)

        assert result.exit_code == 0, result.output
        assert "into target: App" in result.output
