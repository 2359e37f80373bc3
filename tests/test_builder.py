"""Tests for the autodetect launch builder."""

import logging
from pathlib import Path

import pytest

from nativepath.core.job import ListDocument, Quantiles
from nativepath.process import builder as builder_module
from nativepath.process.builder import (
    FIELD_CONFIG_ARG,
    LIMIT_CONFIG_ARG,
    MODEL_DEBUG_CONFIG_ARG,
    AutodetectBuilder,
    LaunchOptions,
    assemble_command,
)
from nativepath.process.controller import ControllerTimeoutError
from nativepath.process.ctrl import (
    DELETE_STATE_FILES_ARG,
    QUANTILES_STATE_PATH_ARG,
    build_autodetect_command,
)
from nativepath.process.writers import ConfigWriter


def _base(env, settings, job, controller, ignore_downtime=False):
    return build_autodetect_command(
        env, settings, job, logging.getLogger("test"), ignore_downtime, controller.pid
    )


def _pipe_args(pipes):
    args = []
    pipes.add_args(args)
    return args


@pytest.fixture
def make_builder(env, settings, job_logger, controller, pipes):
    def _make(job, files_to_delete):
        return AutodetectBuilder(
            job, files_to_delete, job_logger, env, settings, controller, pipes
        )
    return _make


class TestConstruction:
    @pytest.mark.parametrize("missing", ["job", "files_to_delete", "job_logger"])
    def test_required_arguments(self, missing, make_job, job_logger, env, settings,
                                controller, pipes):
        kwargs = dict(
            job=make_job(),
            files_to_delete=[],
            job_logger=job_logger,
            env=env,
            settings=settings,
            controller=controller,
            process_pipes=pipes,
        )
        kwargs[missing] = None
        with pytest.raises(ValueError, match=f"{missing} is required"):
            AutodetectBuilder(**kwargs)

    def test_initial_options(self, make_builder, make_job):
        assert make_builder(make_job(), []).options == LaunchOptions()
        assert LaunchOptions().referenced_lists == frozenset()


class TestSetters:
    def test_fluent_setters_return_builder(self, make_builder, make_job):
        b = make_builder(make_job(), [])
        assert b.ignore_downtime(True) is b
        assert b.referenced_lists(set()) is b
        assert b.quantiles(None) is b

    def test_last_value_wins(self, make_builder, make_job):
        b = make_builder(make_job(), [])
        b.referenced_lists({ListDocument("a")}).referenced_lists({ListDocument("b")})
        b.ignore_downtime(True).ignore_downtime(False)
        assert b.options.referenced_lists == frozenset({ListDocument("b")})
        assert b.options.ignore_downtime is False

    def test_none_lists_rejected(self, make_builder, make_job):
        with pytest.raises(ValueError, match="must not be None"):
            make_builder(make_job(), []).referenced_lists(None)

    def test_has_quantile_state(self):
        assert not LaunchOptions().has_quantile_state
        assert not LaunchOptions(quantiles=Quantiles("j")).has_quantile_state
        assert LaunchOptions(quantiles=Quantiles("j", "abc")).has_quantile_state


class TestBuildCommand:
    def test_no_optional_sections(self, make_builder, make_job, env, settings,
                                  controller, pipes):
        """Base command plus pipe args only, nothing registered."""
        job = make_job()
        files_to_delete = []

        command = make_builder(job, files_to_delete).build_command()

        assert command == _base(env, settings, job, controller) + _pipe_args(pipes)
        assert files_to_delete == []
        assert list(env.tmp_dir.iterdir()) == []

    def test_limits_only(self, make_builder, make_job):
        files_to_delete = []
        command = make_builder(make_job(limits=True), files_to_delete).build_command()

        limit_args = [a for a in command if a.startswith(LIMIT_CONFIG_ARG)]
        assert len(limit_args) == 1
        assert len(files_to_delete) == 1
        path = files_to_delete[0]
        assert limit_args[0] == LIMIT_CONFIG_ARG + str(path)
        assert path.name.startswith("limitconfig")
        assert "modelmemorylimit = 4096" in path.read_text(encoding="utf-8")

    def test_model_debug_config(self, make_builder, make_job):
        files_to_delete = []
        command = make_builder(make_job(debug=True), files_to_delete).build_command()

        path = files_to_delete[0]
        assert path.name.startswith("modeldebugconfig")
        assert MODEL_DEBUG_CONFIG_ARG + str(path) in command
        assert "boundspercentile = 90.0" in path.read_text(encoding="utf-8")

    def test_field_config_uses_referenced_lists(self, make_builder, make_job):
        files_to_delete = []
        b = make_builder(make_job(analysis=True), files_to_delete)
        b.referenced_lists([ListDocument("safe_ips", frozenset({"10.0.0.1"}))])
        command = b.build_command()

        path = files_to_delete[0]
        assert path.name.startswith("fieldconfig")
        assert FIELD_CONFIG_ARG + str(path) in command
        text = path.read_text(encoding="utf-8")
        assert "detector.0.clause = mean(responsetime) by airline\n" in text
        assert 'filter.safe_ips = ["10.0.0.1"]\n' in text

    def test_empty_quantiles_ignored(self, make_builder, make_job, env):
        command = (
            make_builder(make_job(), [])
            .quantiles(Quantiles("farequote", ""))
            .build_command()
        )
        assert not any(a.startswith(QUANTILES_STATE_PATH_ARG) for a in command)
        assert DELETE_STATE_FILES_ARG not in command
        assert list(env.tmp_dir.iterdir()) == []

    def test_quantile_state_restored(self, make_builder, make_job, env, caplog):
        caplog.set_level(logging.INFO, logger="nativepath.test.job")
        files_to_delete = []

        command = (
            make_builder(make_job(), files_to_delete)
            .quantiles(Quantiles("farequote", "abc123"))
            .build_command()
        )

        index = next(i for i, a in enumerate(command) if a.startswith(QUANTILES_STATE_PATH_ARG))
        assert command[index + 1] == DELETE_STATE_FILES_ARG
        state_file = Path(command[index][len(QUANTILES_STATE_PATH_ARG):])
        assert state_file.parent == env.tmp_dir
        assert state_file.name.startswith("farequote_quantiles_")
        assert state_file.read_text(encoding="utf-8") == "abc123"
        assert files_to_delete == []
        assert [p.name for p in env.tmp_dir.iterdir()] == [state_file.name]
        assert "Restoring quantiles for job 'farequote'" in caplog.text

    def test_section_order(self, make_builder, make_job):
        b = make_builder(make_job(limits=True, debug=True, analysis=True), [])
        command = b.quantiles(Quantiles("farequote", "s")).build_command()

        def index(prefix):
            return next(i for i, a in enumerate(command) if a.startswith(prefix))

        assert (
            index(LIMIT_CONFIG_ARG)
            < index(MODEL_DEBUG_CONFIG_ARG)
            < index(QUANTILES_STATE_PATH_ARG)
            < index(FIELD_CONFIG_ARG)
            < index("--namedPipeConnectTimeout=")
        )

    def test_failing_writer_keeps_earlier_files_registered(
        self, make_builder, make_job, monkeypatch
    ):
        class FailingWriter(ConfigWriter):
            def __init__(self, *args, **kwargs):
                pass

            def write(self):
                raise OSError("disk full")

        monkeypatch.setattr(builder_module, "FieldConfigWriter", FailingWriter)
        files_to_delete = []

        with pytest.raises(OSError, match="disk full"):
            make_builder(make_job(limits=True, analysis=True), files_to_delete).build_command()

        assert len(files_to_delete) == 2
        assert files_to_delete[0].name.startswith("limitconfig")
        assert files_to_delete[1].name.startswith("fieldconfig")


class TestBuild:
    def test_limits_and_field_config_end_to_end(
        self, make_builder, make_job, env, settings, controller, pipes
    ):
        """Limits and field config with ignore-downtime, started once."""
        job = make_job(limits=True, analysis=True)
        files_to_delete = []

        result = make_builder(job, files_to_delete).ignore_downtime(True).build()

        assert result is None
        controller.start_process.assert_called_once()
        command = controller.start_process.call_args[0][0]
        p1, p2 = files_to_delete
        assert command == (
            _base(env, settings, job, controller, ignore_downtime=True)
            + [LIMIT_CONFIG_ARG + str(p1), FIELD_CONFIG_ARG + str(p2)]
            + _pipe_args(pipes)
        )
        assert "--ignoreDowntime" in command

    def test_controller_error_propagates_with_files_registered(
        self, make_builder, make_job, controller
    ):
        controller.start_process.side_effect = ControllerTimeoutError("no answer")
        files_to_delete = []

        with pytest.raises(ControllerTimeoutError):
            make_builder(make_job(limits=True), files_to_delete).build()

        assert len(files_to_delete) == 1
        assert files_to_delete[0].exists()

    def test_builder_never_deletes(self, make_builder, make_job):
        files_to_delete = []
        make_builder(make_job(limits=True, debug=True, analysis=True), files_to_delete).build()
        assert len(files_to_delete) == 3
        assert all(p.exists() for p in files_to_delete)


class TestAssembleCommand:
    def test_matches_builder(self, make_builder, make_job, env, settings, controller, pipes):
        job = make_job(analysis=True)
        options = LaunchOptions(ignore_downtime=True)
        direct = assemble_command(job, options, [], env, settings, 4242, pipes)
        built = make_builder(job, []).ignore_downtime(True).build_command()
        # Temp file names differ between the two runs
        assert [a.split("=")[0] for a in direct] == [a.split("=")[0] for a in built]
