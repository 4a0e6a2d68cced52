"""Tests for project sync sessions and the finalize pipeline."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, call

import pytest

from skybox.core.mutagen import EngineResult, SyncStatus
from skybox.core.project_sync import (
    FinalizeProjectSyncOptions,
    finalize_project_sync,
    register_project,
)
from skybox.core.sync_session import (
    SyncSessionOptions,
    SyncSessionOrchestrator,
    project_session_names,
)
from skybox.models.config import ProjectConfig

OK = EngineResult(success=True)
MISSING = SyncStatus(exists=False, paused=False, status="none")


@pytest.fixture
def engine() -> MagicMock:
    mock = MagicMock()
    mock.create.return_value = OK
    mock.wait_until_flushed.return_value = OK
    mock.pause.return_value = OK
    mock.resume.return_value = OK
    mock.terminate.return_value = OK
    mock.status.return_value = MISSING
    return mock


@pytest.fixture
def orchestrator(engine: MagicMock) -> SyncSessionOrchestrator:
    return SyncSessionOrchestrator(engine)


def _options(**overrides) -> SyncSessionOptions:
    values = {
        "project": "myapp",
        "local_path": Path("/home/bob/Projects/myapp"),
        "remote_host": "deploy@build",
        "remote_path": "~/code/myapp",
        "ignores": ["node_modules"],
    }
    values.update(overrides)
    return SyncSessionOptions(**values)


class TestCreateSessions:
    def test_whole_tree(self, orchestrator, engine):
        result = orchestrator.create_project_sync_session(_options())
        assert result.success is True
        assert result.session_names == ["skybox-myapp"]
        engine.create.assert_called_once_with(
            "skybox-myapp",
            Path("/home/bob/Projects/myapp"),
            "deploy@build:~/code/myapp",
            ["node_modules"],
        )

    def test_selective_fan_out(self, orchestrator, engine):
        result = orchestrator.create_project_sync_session(
            _options(sync_paths=["packages/frontend", "packages/backend"])
        )
        assert result.session_names == ["skybox-myapp-packages-frontend", "skybox-myapp-packages-backend"]
        first, second = engine.create.call_args_list
        assert first == call(
            "skybox-myapp-packages-frontend",
            Path("/home/bob/Projects/myapp/packages/frontend"),
            "deploy@build:~/code/myapp/packages/frontend",
            ["node_modules"],
        )
        assert second.args[2] == "deploy@build:~/code/myapp/packages/backend"

    def test_selective_stops_at_first_failure(self, orchestrator, engine):
        engine.create.side_effect = [OK, EngineResult(success=False, error="permission denied"), OK]
        result = orchestrator.create_project_sync_session(_options(sync_paths=["a", "b", "c"]))
        assert result.success is False
        assert result.error == "permission denied"
        assert result.session_names == ["skybox-myapp-a"]
        assert engine.create.call_count == 2

    def test_whole_tree_failure(self, orchestrator, engine):
        engine.create.return_value = EngineResult(success=False, error="no daemon")
        result = orchestrator.create_project_sync_session(_options())
        assert result.success is False
        assert result.session_names == []

    def test_reuses_existing_session(self, orchestrator, engine):
        engine.status.return_value = SyncStatus(exists=True, paused=False, status="syncing")
        result = orchestrator.create_project_sync_session(_options())
        assert result.success is True
        assert result.session_names == ["skybox-myapp"]
        engine.create.assert_not_called()
        engine.resume.assert_not_called()

    def test_resumes_paused_session(self, orchestrator, engine):
        engine.status.return_value = SyncStatus(exists=True, paused=True, status="paused")
        assert orchestrator.create_project_sync_session(_options()).success is True
        engine.resume.assert_called_once_with("skybox-myapp")
        engine.create.assert_not_called()

    def test_failed_resume_still_reports_session(self, orchestrator, engine):
        engine.status.return_value = SyncStatus(exists=True, paused=True, status="paused")
        engine.resume.return_value = EngineResult(success=False, error="daemon busy")
        result = orchestrator.create_project_sync_session(_options())
        assert result.success is False
        assert result.session_names == ["skybox-myapp"]

    def test_selective_creates_only_missing(self, orchestrator, engine):
        engine.status.side_effect = [SyncStatus(exists=True, paused=False, status="watching"), MISSING]
        result = orchestrator.create_project_sync_session(_options(sync_paths=["a", "b"]))
        assert result.session_names == ["skybox-myapp-a", "skybox-myapp-b"]
        assert [c.args[0] for c in engine.create.call_args_list] == ["skybox-myapp-b"]


class TestWaitForSync:
    def test_default_session(self, orchestrator, engine):
        messages: list[str] = []
        assert orchestrator.wait_for_sync("myapp", messages.append).success is True
        engine.wait_until_flushed.assert_called_once_with("skybox-myapp", messages.append)
        assert messages[0] == "Waiting for sync to complete..."
        assert messages[-1] == "Sync complete"

    def test_waits_on_every_session(self, orchestrator, engine):
        names = ["skybox-myapp-a", "skybox-myapp-b"]
        orchestrator.wait_for_sync("myapp", session_names=names)
        assert [c.args[0] for c in engine.wait_until_flushed.call_args_list] == names

    def test_failure(self, orchestrator, engine):
        engine.wait_until_flushed.return_value = EngineResult(success=False, error="halted")
        messages: list[str] = []
        result = orchestrator.wait_for_sync("myapp", messages.append)
        assert result.error == "halted"
        assert "Sync complete" not in messages


class TestProjectLifecycle:
    def test_session_names(self):
        assert project_session_names("myapp") == ["skybox-myapp"]
        assert project_session_names("myapp", ["x/y"]) == ["skybox-myapp-x-y"]

    def test_pause(self, orchestrator, engine):
        assert orchestrator.pause_project("myapp").success is True
        engine.pause.assert_called_once_with("skybox-myapp")

    def test_resume_selective(self, orchestrator, engine):
        orchestrator.resume_project("myapp", ["a", "b"])
        assert engine.resume.call_count == 2

    def test_terminate_continues_past_failures(self, orchestrator, engine):
        engine.terminate.side_effect = [EngineResult(success=False, error="gone"), OK]
        result = orchestrator.terminate_project("myapp", ["a", "b"])
        assert result.success is False
        assert result.error == "skybox-myapp-a: gone"
        assert engine.terminate.call_count == 2

    @pytest.mark.parametrize(
        ("statuses", "expected"),
        [
            ([SyncStatus(True, False, "syncing")] * 2, "syncing"),
            ([SyncStatus(True, False, "syncing"), SyncStatus(True, True, "paused")], "paused"),
            ([SyncStatus(True, True, "paused"), SyncStatus(False, False, "none")], "none"),
            ([SyncStatus(False, False, "none"), SyncStatus(False, False, "error")], "error"),
        ],
    )
    def test_project_status(self, orchestrator, engine, statuses, expected):
        engine.status.side_effect = statuses
        assert orchestrator.project_status("myapp", ["a", "b"]).status == expected


class TestRegisterProject:
    def test_adds_and_saves(self, sample_config):
        save = MagicMock()
        register_project(sample_config, "myapp", "myserver", save, sync_paths=["src"])
        assert sample_config.projects["myapp"] == ProjectConfig(remote="myserver", sync_paths=["src"])
        save.assert_called_once_with(sample_config)

    def test_keeps_project_ignores(self, sample_config):
        sample_config.projects["existing"] = ProjectConfig(remote="myserver", ignore=["*.log"])
        register_project(sample_config, "existing", "myserver", MagicMock())
        assert sample_config.projects["existing"].ignore == ["*.log"]

    @pytest.mark.parametrize("name", ["my app", "a/b", "", "-rf", "x" * 65])
    def test_rejects_bad_name(self, sample_config, name):
        save = MagicMock()
        with pytest.raises(ValueError, match="Project name"):
            register_project(sample_config, name, "myserver", save)
        assert name not in sample_config.projects
        save.assert_not_called()


class TestFinalizeProjectSync:
    def _finalize(self, orchestrator, sample_config, save, **overrides):
        values = {
            "project": "myapp",
            "local_path": Path("/home/bob/Projects/myapp"),
            "remote_host": "deploy@build.example.com",
            "remote_path": "~/code/myapp",
            "remote_name": "myserver",
            "config": sample_config,
            "save": save,
        }
        values.update(overrides)
        return finalize_project_sync(FinalizeProjectSyncOptions(**values), orchestrator)

    def test_success_registers_project(self, orchestrator, sample_config):
        save = MagicMock()
        result = self._finalize(orchestrator, sample_config, save)
        assert result.success is True
        assert result.stage is None
        assert sample_config.projects["myapp"].remote == "myserver"
        assert "existing" in sample_config.projects
        save.assert_called_once()

    def test_create_failure_leaves_config_alone(self, orchestrator, engine, sample_config):
        engine.create.return_value = EngineResult(success=False, error="Mutagen not found at mutagen")
        save = MagicMock()
        result = self._finalize(orchestrator, sample_config, save)
        assert result.success is False
        assert result.stage == "create"
        assert result.error == "Mutagen not found at mutagen"
        assert "myapp" not in sample_config.projects
        save.assert_not_called()
        engine.wait_until_flushed.assert_not_called()

    def test_create_failure_default_message(self, orchestrator, engine, sample_config):
        engine.create.return_value = EngineResult(success=False)
        result = self._finalize(orchestrator, sample_config, MagicMock())
        assert result.error == "Failed to create sync session"

    def test_sync_failure_leaves_config_alone(self, orchestrator, engine, sample_config):
        engine.wait_until_flushed.return_value = EngineResult(success=False)
        save = MagicMock()
        result = self._finalize(orchestrator, sample_config, save)
        assert result.stage == "sync"
        assert result.error == "Sync failed"
        assert "myapp" not in sample_config.projects
        save.assert_not_called()

    def test_selective_waits_on_created_sessions(self, orchestrator, engine, sample_config):
        result = self._finalize(
            orchestrator, sample_config, MagicMock(), sync_paths=["packages/frontend", "packages/backend"]
        )
        assert result.success is True
        flushed = [c.args[0] for c in engine.wait_until_flushed.call_args_list]
        assert flushed == ["skybox-myapp-packages-frontend", "skybox-myapp-packages-backend"]
        assert sample_config.projects["myapp"].sync_paths == ["packages/frontend", "packages/backend"]

    def test_progress_forwarded(self, orchestrator, engine, sample_config):
        progress = MagicMock()
        self._finalize(orchestrator, sample_config, MagicMock(), on_progress=progress)
        progress.assert_any_call("Sync complete")

    def test_sync_failure_reports_sessions(self, orchestrator, engine, sample_config):
        engine.wait_until_flushed.return_value = EngineResult(success=False, error="halted")
        result = self._finalize(orchestrator, sample_config, MagicMock())
        assert result.session_names == ["skybox-myapp"]

    def test_retry_after_sync_failure(self, orchestrator, engine, sample_config):
        engine.wait_until_flushed.return_value = EngineResult(success=False, error="halted")
        save = MagicMock()
        assert self._finalize(orchestrator, sample_config, save).stage == "sync"

        # the first attempt left its session behind on the engine
        engine.status.return_value = SyncStatus(exists=True, paused=False, status="syncing")
        engine.create.return_value = EngineResult(success=False, error="session name already exists")
        engine.wait_until_flushed.return_value = OK
        result = self._finalize(orchestrator, sample_config, save)

        assert result.success is True
        assert engine.create.call_count == 1
        assert sample_config.projects["myapp"].remote == "myserver"
        save.assert_called_once()

    def test_invalid_name_touches_nothing(self, orchestrator, engine, sample_config):
        save = MagicMock()
        result = self._finalize(orchestrator, sample_config, save, project="my app")
        assert result.success is False
        assert result.stage == "create"
        assert "Project name" in result.error
        assert result.session_names == []
        engine.status.assert_not_called()
        engine.create.assert_not_called()
        save.assert_not_called()
