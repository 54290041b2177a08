from aws_cdk import aws_lambda as _lambda

POWER_TOOLS_PYTHON_RUNTIME = "python312"
POWER_TOOLS_LAMBDA_LAYER_NAME = "AWSLambdaPowertoolsPythonV3"
POWER_TOOLS_LAMBDA_LAYER_ACCOUNT = "017000801446"
POWER_TOOLS_VERSION = "18"
POWER_TOOLS_ARCHITECTURE = "x86_64"
POWER_TOOLS_LAYER = "arn:aws:lambda:{region}:{lambda_layer_account}:layer:{power_tools_type}-{runtime}-{architecture}:{version}"

PYTHON_RUNTIME = _lambda.Runtime.PYTHON_3_12
DEFAULT_ARCHITECTURE = _lambda.Architecture.X86_64
LAMBDA_SRC = "lambdas"
COMMON_LAYER_SRC = "layers/common"
COMMON_LAYER_BUNDLING_COMMAND = [
    "bash",
    "-c",
    "pip install -r requirements.txt -t /asset-output/python",
]

DEFAULT_ENV = "dev"

# CDK context keys
CONTEXT_ENV = "env"
CONTEXT_DOMAIN_NAME = "myDomain"
CONTEXT_CERTIFICATE_ARN = "myCertArn"

# Naming convention components
SERVICE_NAME = "privateapigw"  # The application name
NETWORK_DOMAIN = "network"  # VPCs, endpoint and load balancer
API_DOMAIN = "api"  # REST API and its backend
COMPONENT = "ingress"  # The functional component/subsystem

# Lambda action types (used in naming)
ACTION_RESOLVER = "resolver"  # Resolves endpoint ENI addresses at deploy time
ACTION_BACKEND = "backend"  # Serves API requests

# Source VPC hosting the API Gateway interface endpoint
VPC_NAME = "privateapigw-vpc"
VPC_CIDR = "10.0.0.0/16"
VPC_MAX_AZS = 2
SUBNET_NAME = "isolated"
CIDR_MASK = 24

# Peered VPC used to reach the API through the custom domain
TEST_VPC_NAME = "privateapigw-test-vpc"
TEST_VPC_CIDR = "192.168.0.0/16"
TEST_VPC_MAX_AZS = 1
TEST_VPC_NAT_GATEWAYS = 1

HTTPS_PORT = 443

# Endpoint IP resolution
ENDPOINT_IPS_RESOURCE_TYPE = "Custom::VpcEndpointIps"
PRIVATE_IP_ATTRIBUTE = "PrivateIpAddress{index}"
PRIVATE_IPS_ATTRIBUTE = "PrivateIpAddresses"
RESOLVER_MAX_ATTEMPTS = 8
RESOLVER_BASE_DELAY_SECONDS = 2
RESOLVER_MAX_DELAY_SECONDS = 30
RESOLVER_TIMEOUT_SECONDS = 300

# SSM parameters consumed by downstream stacks
VPC_ID_PARAMETER_NAME = "PrivateApiGwVpcId"
ENDPOINT_ID_PARAMETER_NAME = "PrivateApiGwEndpointId"

API_STAGE_NAME = "prod"
