import json

import pytest

from static_site.policy_template import (
    PolicyRenderError,
    load_bucket_policy_template,
    render_bucket_policy,
    render_policy,
)


def test_bucket_policy_template_has_both_placeholders():
    template = load_bucket_policy_template()

    assert template.count("${bucket_name}") == 1
    assert template.count("${secret}") == 1


def test_render_bucket_policy_substitutes_values():
    rendered = render_bucket_policy(bucket_name="example-bucket", secret="s3cr3t")
    policy = json.loads(rendered)
    statement = policy["Statement"][0]

    assert "${" not in rendered
    assert statement["Resource"] == "arn:aws:s3:::example-bucket/*"
    assert statement["Condition"] == {"StringEquals": {"aws:UserAgent": "s3cr3t"}}
    assert statement["Action"] == "s3:GetObject"


def test_render_is_pure():
    first = render_bucket_policy(bucket_name="example-bucket", secret="s3cr3t")
    second = render_bucket_policy(bucket_name="example-bucket", secret="s3cr3t")

    assert first == second
    assert first == load_bucket_policy_template().replace(
        "${bucket_name}", "example-bucket"
    ).replace("${secret}", "s3cr3t")


def test_missing_placeholder_value_fails():
    with pytest.raises(PolicyRenderError, match="secret"):
        render_policy(load_bucket_policy_template(), {"bucket_name": "example-bucket"})


@pytest.mark.parametrize("value", ["", None])
def test_empty_value_fails(value):
    with pytest.raises(PolicyRenderError, match="bucket_name"):
        render_policy(
            load_bucket_policy_template(), {"bucket_name": value, "secret": "s3cr3t"}
        )


def test_values_are_escaped_to_keep_json_valid():
    rendered = render_bucket_policy(bucket_name="example-bucket", secret='quo"te\\')

    assert json.loads(rendered)["Statement"][0]["Condition"]["StringEquals"][
        "aws:UserAgent"
    ] == 'quo"te\\'


def test_non_json_result_fails():
    with pytest.raises(PolicyRenderError, match="not valid JSON"):
        render_policy('{"Resource": ${bucket_name}}', {"bucket_name": "example-bucket"})
