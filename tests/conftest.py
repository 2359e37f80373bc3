"""Shared fixtures for nativepath tests.

No supervisor daemon or worker binary is needed: controllers are mocks
or an in-thread ZMQ REP server.
"""

import logging
from unittest.mock import MagicMock

import pytest

from nativepath.core import (
    AnalysisConfig,
    AnalysisLimits,
    Detector,
    Environment,
    Job,
    ModelDebugConfig,
    Settings,
)
from nativepath.ipc.pipes import ProcessPipes


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("NATIVEPATH_HOME", "NATIVEPATH_TMPDIR",
                 "NATIVEPATH_BIN_DIR", "NATIVEPATH_CONFIG_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def env(tmp_path):
    return Environment.for_directory(tmp_path)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def job_logger():
    return logging.getLogger("nativepath.test.job")


@pytest.fixture
def controller():
    """Mock NativeController with a fixed pid."""
    mock = MagicMock()
    mock.pid = 4242
    mock.start_process.return_value = 9999
    return mock


@pytest.fixture
def pipes(tmp_path):
    return ProcessPipes(
        log_pipe=str(tmp_path / "autodetect_log_job"),
        input_pipe=str(tmp_path / "autodetect_input_job"),
        output_pipe=str(tmp_path / "autodetect_output_job"),
    )


@pytest.fixture
def make_job():
    """Factory fixture for jobs with selected optional sections."""
    def _make(
        job_id: str = "farequote",
        limits: bool = False,
        debug: bool = False,
        analysis: bool = False,
    ) -> Job:
        return Job(
            id=job_id,
            analysis_limits=AnalysisLimits(model_memory_limit=4096) if limits else None,
            model_debug_config=ModelDebugConfig(bounds_percentile=90.0) if debug else None,
            analysis_config=AnalysisConfig(
                bucket_span=3600,
                detectors=[Detector(function="mean", field_name="responsetime",
                                    by_field_name="airline")],
                influencers=["airline"],
            ) if analysis else None,
        )
    return _make
