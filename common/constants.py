DEFAULT_ENV = "dev"
DEFAULT_REGION = "us-east-1"

# Naming convention components
SERVICE_NAME = "skillshift"  # The application name
COMPONENT = "baseapp"  # The functional component/subsystem

# Stack ids, also the CDK construct ids once prefixed
STACK_PREFIX = "SkillShift"
NETWORK_STACK = "Network"
ECR_STACK = "Ecr"
IAM_STACK = "Iam"
PARAMETERS_STACK = "Parameters"
CLUSTER_STACK = "Cluster"
SERVICE_STACK = "Service"
PIPELINE_STACK = "Pipeline"
ALL_STACKS = (
    NETWORK_STACK,
    ECR_STACK,
    IAM_STACK,
    PARAMETERS_STACK,
    CLUSTER_STACK,
    SERVICE_STACK,
    PIPELINE_STACK,
)

# Export names published between stacks and across runs
VPC_ID_EXPORT = "SkillShiftVpcId"
REPOSITORY_URI_EXPORT = "SkillShiftRepositoryUri"
TASK_ROLE_ARN_EXPORT = "SkillShiftTaskRoleArn"
API_BASE_URL_PARAMETER_EXPORT = "SkillShiftApiBaseUrlParameter"
CLUSTER_NAME_EXPORT = "SkillShiftClusterName"
LOAD_BALANCER_DNS_EXPORT = "SkillShiftLoadBalancerDns"

# Network
VPC_CIDR = "10.0.0.0/16"
MAX_AZS = 2
NAT_GATEWAYS = 1
CIDR_MASK = 24
ANY_IPV4_CIDR = "0.0.0.0/0"
VPC_ID_PARAMETER_NAME = "/skillshift/network/vpc-id"

# Registry
REPOSITORY_NAME = "skill-shift"
MAX_IMAGE_COUNT = 10
IMAGE_TAG = "latest"

# Access control
ECS_TASKS_PRINCIPAL = "ecs-tasks.amazonaws.com"
TASK_ROLE_S3_ACTIONS = ["s3:PutObject", "s3:GetObject", "s3:ListBucket", "s3:DeleteObject"]
DEVOPS_GROUP_NAME = "DevOpsGroup"
DEVOPS_MANAGED_POLICIES = [
    "AmazonEC2ContainerRegistryPowerUser",
    "AmazonECS_FullAccess",
    "AWSCodeBuildDeveloperAccess",
    "AWSCodePipeline_FullAccess",
]

# Parameters
API_BASE_URL_PARAMETER_NAME = "/skillshift/production/NEXT_PUBLIC_API_BASE_URL"
DEFAULT_API_BASE_URL = "https://api.example.com"

# Service
CONTAINER_PORT = 3000
LISTENER_PORT = 80
TASK_CPU = 512
TASK_MEMORY_MIB = 1024
DESIRED_COUNT = 1
HEALTH_CHECK_PATH = "/"

# Pipeline
BUILD_SPEC_FILENAME = "buildspec.yml"
IMAGE_DEFINITIONS_FILENAME = "imagedefinitions.json"
DEFAULT_SOURCE_BRANCH = "main"
