#!/usr/bin/env python3
"""AWS CDK entrypoint for the private API Gateway deployment.

The networking stack owns the VPCs, the API Gateway interface endpoint and the
internal NLB; the API stack publishes the private REST API behind them. Both
share one deployment environment sourced from the CDK CLI defaults. The custom
domain and its ACM certificate come from context:

    cdk deploy --all -c myDomain=api.example.internal -c myCertArn=arn:aws:acm:...
"""
import os

import aws_cdk as cdk
from aws_cdk import Environment

from common import constants
from networking.networking_stack import NetworkingStack
from private_api.private_api_stack import PrivateApiStack

app = cdk.App()

env = Environment(
    account=os.getenv("CDK_DEFAULT_ACCOUNT"),
    region=os.getenv("CDK_DEFAULT_REGION"),
)
deploy_env = app.node.try_get_context(constants.CONTEXT_ENV) or constants.DEFAULT_ENV

networking = NetworkingStack(
    app, "PrivateApiGwNetworkingStack", deploy_env=deploy_env, env=env
)
PrivateApiStack(
    app,
    "PrivateApiGwStack",
    vpc=networking.vpc,
    test_vpc=networking.test_vpc,
    api_endpoint=networking.api_endpoint,
    load_balancer=networking.nlb,
    deploy_env=deploy_env,
    env=env,
)

app.synth()
