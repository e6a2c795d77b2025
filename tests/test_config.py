import json

import boto3
import pytest
from botocore.stub import Stubber

from fastscaler.config import (
    DEFAULT_CHECK_INTERVAL_S,
    DEFAULT_MIN_DESIRED_COUNT,
    DEFAULT_SCALEOUT_THRESHOLD,
    fetch_parameter,
    load_config,
    parse_config,
)
from fastscaler.errors import ConfigError


def _doc(**service_overrides):
    svc = {
        "StatusUrl": "https://lb.internal/nginx_status",
        "StatusAuthName": "X-Status-Token",
        "StatusAuthValue": "s3cret",
        "EcsClusterName": "prod",
        "EcsServiceName": "web",
        "SlackWebhookUrl": "https://hooks.example/T000",
    }
    svc.update(service_overrides)
    return {"Services": [svc]}


def test_missing_numbers_get_defaults():
    cfg = parse_config(_doc(), default_region="ap-northeast-1")
    s = cfg.services[0]
    assert s.scaleout_threshold == DEFAULT_SCALEOUT_THRESHOLD == 150
    assert s.min_desired_count == DEFAULT_MIN_DESIRED_COUNT == 5
    assert s.check_interval == DEFAULT_CHECK_INTERVAL_S == 3
    assert cfg.region == "ap-northeast-1"


def test_zero_and_null_numbers_get_defaults():
    cfg = parse_config(_doc(ScaleoutThreshold=0, MinDesiredCount=None, CheckInterval=0))
    s = cfg.services[0]
    assert (s.scaleout_threshold, s.min_desired_count, s.check_interval) == (150, 5, 3)


def test_configured_threshold_is_kept():
    cfg = parse_config(_doc(ScaleoutThreshold=400, MinDesiredCount=2, CheckInterval=10))
    s = cfg.services[0]
    assert s.scaleout_threshold == 400
    assert s.min_desired_count == 2
    assert s.check_interval == 10


def test_region_in_document_wins_over_default():
    doc = _doc()
    doc["Region"] = "eu-west-1"
    assert parse_config(json.dumps(doc), default_region="ap-northeast-1").region == "eu-west-1"


@pytest.mark.parametrize("field", ["StatusUrl", "EcsClusterName", "EcsServiceName"])
def test_required_fields_rejected_when_empty(field):
    with pytest.raises(ConfigError):
        parse_config(_doc(**{field: ""}))


def test_required_field_missing():
    doc = _doc()
    del doc["Services"][0]["EcsServiceName"]
    with pytest.raises(ConfigError, match="EcsServiceName"):
        parse_config(doc)


def test_empty_service_list_rejected():
    with pytest.raises(ConfigError):
        parse_config({"Services": []})
    with pytest.raises(ConfigError):
        parse_config({})


def test_not_json_rejected():
    with pytest.raises(ConfigError, match="JSON"):
        parse_config("{not json")


def test_spec_is_immutable():
    s = parse_config(_doc()).services[0]
    with pytest.raises(Exception):
        s.scaleout_threshold = 1


def test_auth_value_hidden_in_repr():
    s = parse_config(_doc()).services[0]
    assert "s3cret" not in repr(s)


def test_load_config_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(_doc(ScaleoutThreshold=42)), encoding="utf-8")
    cfg = load_config(str(path), param_key="/unused", region="us-east-1")
    assert cfg.services[0].scaleout_threshold == 42
    assert cfg.region == "us-east-1"


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "nope.json"), param_key="/unused", region="us-east-1")


def _ssm():
    return boto3.client(
        "ssm",
        region_name="ap-northeast-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def test_load_config_from_parameter_store():
    client = _ssm()
    with Stubber(client) as stub:
        stub.add_response(
            "get_parameter",
            {"Parameter": {"Name": "/ecs/fast-autoscaler/config.json", "Value": json.dumps(_doc())}},
            {"Name": "/ecs/fast-autoscaler/config.json", "WithDecryption": True},
        )
        cfg = load_config(
            None,
            param_key="/ecs/fast-autoscaler/config.json",
            region="ap-northeast-1",
            ssm_client=client,
        )
    assert cfg.services[0].service == "web"


def test_parameter_not_found_is_config_error():
    client = _ssm()
    with Stubber(client) as stub:
        stub.add_client_error("get_parameter", service_error_code="ParameterNotFound")
        with pytest.raises(ConfigError, match="ParameterNotFound"):
            fetch_parameter("/missing", "ap-northeast-1", client=client)
