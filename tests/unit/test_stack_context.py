import pytest
from aws_cdk import App, Stack, aws_lambda as _lambda
from aws_cdk.assertions import Match, Template

from common import constants
from common.stack_context import StackContext
from stack_test_helpers import SKIP_BUNDLING_CONTEXT, TEST_CONTEXT


@pytest.fixture
def stack() -> Stack:
    return Stack(App(context={**SKIP_BUNDLING_CONTEXT, **TEST_CONTEXT}), "LayerStack")


def test_common_layer_is_bundled_from_its_requirements(monkeypatch, stack: Stack):
    calls = []
    from_asset = _lambda.Code.from_asset

    def recording_from_asset(path, **kwargs):
        calls.append((path, kwargs))
        return from_asset(path, **kwargs)

    monkeypatch.setattr(_lambda.Code, "from_asset", recording_from_asset)

    StackContext(scope=stack).build_lambda_layers()

    path, kwargs = calls[0]
    bundling = kwargs["bundling"]
    assert path == constants.COMMON_LAYER_SRC
    assert bundling.image.image == _lambda.Runtime.PYTHON_3_12.bundling_image.image
    assert bundling.command == [
        "bash",
        "-c",
        "pip install -r requirements.txt -t /asset-output/python",
    ]


def test_common_layer_targets_the_lambda_runtime(stack: Stack):
    StackContext(scope=stack).build_lambda_layers()

    Template.from_stack(stack).has_resource_properties(
        "AWS::Lambda::LayerVersion",
        {
            "CompatibleRuntimes": ["python3.12"],
            "CompatibleArchitectures": ["x86_64"],
            "Content": {"S3Bucket": Match.any_value(), "S3Key": Match.any_value()},
        },
    )


def test_missing_context_names_the_flag(stack: Stack):
    context = StackContext(scope=stack)

    with pytest.raises(ValueError, match="-c undefinedKey=<value>"):
        context.require_context("undefinedKey")
