"""Tests for the job model (from_dict / to_dict / YAML loading)."""

import json

import pytest

from nativepath.core.job import (
    AnalysisConfig,
    DebugDestination,
    ExcludeFrequent,
    IgnoreDowntime,
    Job,
    ListDocument,
    ModelDebugConfig,
    Quantiles,
)


class TestEnums:
    def test_from_string_case_insensitive(self):
        assert IgnoreDowntime.from_string("ONCE") is IgnoreDowntime.ONCE
        assert ExcludeFrequent.from_string("by") is ExcludeFrequent.BY
        assert DebugDestination.from_string("data_store") is DebugDestination.DATA_STORE

    def test_unknown_value_raises(self):
        with pytest.raises(ValueError, match="Unknown IgnoreDowntime"):
            IgnoreDowntime.from_string("sometimes")

    def test_exclude_frequent_token(self):
        assert ExcludeFrequent.OVER.token == "over"


class TestJobFromDict:
    def test_minimal_job_has_no_sections(self):
        job = Job.from_dict({"id": "minimal"})
        assert job.analysis_config is None
        assert job.analysis_limits is None
        assert job.model_debug_config is None
        assert job.ignore_downtime is None

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError, match="must not be empty"):
            Job(id="")

    @pytest.mark.parametrize("job_id", [
        "../../escaped", "a/b", "..", "FareQuote", "has space", "-leading", "trailing_",
    ])
    def test_unsafe_id_rejected(self, job_id):
        with pytest.raises(ValueError, match="Invalid job id"):
            Job(id=job_id)

    @pytest.mark.parametrize("job_id", ["a", "farequote", "web-logs_2024", "7"])
    def test_valid_ids(self, job_id):
        assert Job(id=job_id).id == job_id

    @pytest.mark.parametrize("data", [None, [], "farequote"])
    def test_non_mapping_rejected(self, data):
        with pytest.raises(ValueError, match="must be a mapping"):
            Job.from_dict(data)

    def test_full_job(self):
        job = Job.from_dict({
            "id": "farequote",
            "analysis_config": {
                "bucket_span": 3600,
                "detectors": [{
                    "function": "mean",
                    "field_name": "responsetime",
                    "by_field_name": "airline",
                    "exclude_frequent": "all",
                }],
                "influencers": ["airline"],
            },
            "analysis_limits": {"model_memory_limit": 4096},
            "model_debug_config": {"write_to": "file", "terms": "AAL"},
            "data_description": {"time_field": "@timestamp", "time_format": "epoch_ms"},
            "ignore_downtime": "always",
            "background_persist_interval": 7200,
        })

        detector = job.analysis_config.detectors[0]
        assert detector.function == "mean"
        assert detector.exclude_frequent is ExcludeFrequent.ALL
        assert job.analysis_limits.model_memory_limit == 4096
        assert job.model_debug_config.write_to is DebugDestination.FILE
        assert job.model_debug_config.bounds_percentile == 95.0
        assert job.data_description.time_field == "@timestamp"
        assert job.ignore_downtime is IgnoreDowntime.ALWAYS
        assert job.background_persist_interval == 7200

    def test_to_dict_round_trip(self):
        data = {
            "id": "farequote",
            "analysis_config": {
                "detectors": [{"function": "count", "use_null": True}],
                "bucket_span": 600,
                "overlapping_buckets": True,
            },
            "analysis_limits": {"categorization_examples_limit": 4},
            "model_debug_config": {"bounds_percentile": 90.0},
        }
        assert Job.from_dict(data).to_dict() == data

    def test_empty_sections_are_present(self):
        """An empty mapping still means the section is configured."""
        job = Job.from_dict({"id": "x", "analysis_limits": {}})
        assert job.analysis_limits is not None
        assert job.analysis_limits.model_memory_limit is None


class TestJobFromYaml:
    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ValueError, match="must be a mapping"):
            Job.from_yaml(str(path))

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "job.yaml"
        path.write_text(
            "id: web_logs\n"
            "analysis_config:\n"
            "  bucket_span: 300\n"
            "  detectors:\n"
            "    - function: count\n"
            "      by_field_name: status\n"
        )
        job = Job.from_yaml(str(path))
        assert job.id == "web_logs"
        assert job.analysis_config.bucket_span == 300
        assert job.analysis_config.detectors[0].by_field_name == "status"

    def test_json_file(self, tmp_path):
        path = tmp_path / "job.json"
        path.write_text(json.dumps({"id": "json_job", "analysis_limits": {"model_memory_limit": 10}}))
        job = Job.from_yaml(str(path))
        assert job.analysis_limits.model_memory_limit == 10

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Job.from_yaml(str(tmp_path / "nope.yaml"))


class TestSupportingTypes:
    def test_list_documents_are_hashable(self):
        a = ListDocument.from_dict({"id": "hosts", "items": ["a", "b"]})
        b = ListDocument(id="hosts", items=frozenset({"b", "a"}))
        assert {a, b} == {a}

    def test_quantiles_defaults(self):
        q = Quantiles.from_dict({"job_id": "farequote"})
        assert q.quantile_state == ""
        assert q.timestamp is None

    def test_quantiles_and_lists_require_mappings(self):
        with pytest.raises(ValueError, match="Quantiles must be a mapping"):
            Quantiles.from_dict(None)
        with pytest.raises(ValueError, match="List document must be a mapping"):
            ListDocument.from_dict("safe_ips")

    def test_default_finalization_window(self):
        assert AnalysisConfig.DEFAULT_RESULT_FINALIZATION_WINDOW == 2

    def test_model_debug_defaults(self):
        config = ModelDebugConfig()
        assert config.write_to is None
        assert config.terms is None
