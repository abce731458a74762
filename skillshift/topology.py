"""Declares the SkillShift stacks for the provisioning planner.

Each descriptor states what its stack requires and produces up front; the body
only runs once the planner has bound every required resource.
"""
from typing import Callable, Iterable

from aws_cdk import Stack
from constructs import Construct

import common.constants as constants
from common.config import TopologyConfig
from networking.networking_stack import NetworkingStack
from provisioning.descriptor import Bindings, StackDescriptor
from provisioning.resources import ExportSpec, Resource, ResourceKind, ResourceSelector
from skillshift.cluster_stack import ClusterStack
from skillshift.ecr_stack import EcrStack
from skillshift.iam_stack import IamStack
from skillshift.parameters_stack import ParametersStack
from skillshift.pipeline_stack import PipelineStack
from skillshift.service_stack import ServiceStack

NETWORK = ResourceSelector.from_stack(ResourceKind.Network, constants.NETWORK_STACK)
CLUSTER = ResourceSelector.from_stack(ResourceKind.Cluster, constants.CLUSTER_STACK)
REPOSITORY = ResourceSelector.from_stack(ResourceKind.Repository, constants.ECR_STACK)
TASK_ROLE = ResourceSelector.from_stack(ResourceKind.Role, constants.IAM_STACK)
SERVICE = ResourceSelector.from_stack(ResourceKind.Service, constants.SERVICE_STACK)
API_BASE_URL_PARAMETER = ResourceSelector.from_export(
    constants.API_BASE_URL_PARAMETER_EXPORT, ResourceKind.Parameter
)


def cdk_stack_id(stack_id: str) -> str:
    return f"{constants.STACK_PREFIX}{stack_id}"


def _depend_on_producers(stack: Stack, bindings: Bindings) -> None:
    """Order ``stack`` after every in-run producer, even without a CDK token reference."""
    for resource in bindings.values():
        if resource.handle is not None:
            producer = Stack.of(resource.handle)
            if producer is not stack:
                stack.add_dependency(producer)


class SkillShiftTopology:
    """Builds the descriptors of every selected stack inside one CDK app."""

    def __init__(self, scope: Construct, config: TopologyConfig) -> None:
        self.scope = scope
        self.config = config
        self.stacks: dict[str, Stack] = {}

    def _stack_kwargs(self) -> dict:
        return {"env": self.config.environment, "env_name": self.config.env}

    def _register(self, stack_id: str, stack: Stack, bindings: Bindings) -> None:
        _depend_on_producers(stack, bindings)
        self.stacks[stack_id] = stack

    def descriptors(self) -> list[StackDescriptor]:
        factories: dict[str, Callable[[], StackDescriptor]] = {
            constants.NETWORK_STACK: self.network,
            constants.ECR_STACK: self.ecr,
            constants.IAM_STACK: self.iam,
            constants.PARAMETERS_STACK: self.parameters,
            constants.CLUSTER_STACK: self.cluster,
            constants.SERVICE_STACK: self.service,
            constants.PIPELINE_STACK: self.pipeline,
        }
        return [factories[stack_id]() for stack_id in self.config.stacks]

    # ---------- declarations ----------

    def network(self) -> StackDescriptor:
        stack_id = constants.NETWORK_STACK

        def body(bindings: Bindings) -> Iterable[Resource]:
            stack = NetworkingStack(self.scope, cdk_stack_id(stack_id), **self._stack_kwargs())
            self._register(stack_id, stack, bindings)
            return [Resource.create(stack_id, ResourceKind.Network, "Vpc", stack.vpc, vpc_id=stack.vpc.vpc_id)]

        return StackDescriptor(
            id=stack_id,
            body=body,
            produces={ResourceKind.Network},
            exports={constants.VPC_ID_EXPORT: ExportSpec(ResourceKind.Network)},
            description="VPC with public and private subnets",
        )

    def ecr(self) -> StackDescriptor:
        stack_id = constants.ECR_STACK

        def body(bindings: Bindings) -> Iterable[Resource]:
            stack = EcrStack(
                self.scope,
                cdk_stack_id(stack_id),
                max_image_count=self.config.max_image_count,
                **self._stack_kwargs(),
            )
            self._register(stack_id, stack, bindings)
            repository = stack.repository
            return [
                Resource.create(
                    stack_id,
                    ResourceKind.Repository,
                    "Repository",
                    repository,
                    repository_uri=repository.repository_uri,
                    repository_name=repository.repository_name,
                    repository_arn=repository.repository_arn,
                )
            ]

        return StackDescriptor(
            id=stack_id,
            body=body,
            produces={ResourceKind.Repository},
            exports={constants.REPOSITORY_URI_EXPORT: ExportSpec(ResourceKind.Repository)},
            description="Container image repository",
        )

    def iam(self) -> StackDescriptor:
        stack_id = constants.IAM_STACK

        def body(bindings: Bindings) -> Iterable[Resource]:
            stack = IamStack(self.scope, cdk_stack_id(stack_id), **self._stack_kwargs())
            self._register(stack_id, stack, bindings)
            role = stack.task_role
            return [
                Resource.create(
                    stack_id, ResourceKind.Role, "TaskRole", role, role_arn=role.role_arn, role_name=role.role_name
                )
            ]

        return StackDescriptor(
            id=stack_id,
            body=body,
            produces={ResourceKind.Role},
            exports={constants.TASK_ROLE_ARN_EXPORT: ExportSpec(ResourceKind.Role)},
            description="ECS task role and DevOps group",
        )

    def parameters(self) -> StackDescriptor:
        stack_id = constants.PARAMETERS_STACK

        def body(bindings: Bindings) -> Iterable[Resource]:
            stack = ParametersStack(
                self.scope,
                cdk_stack_id(stack_id),
                api_base_url=self.config.api_base_url,
                **self._stack_kwargs(),
            )
            self._register(stack_id, stack, bindings)
            return [
                Resource.create(
                    stack_id,
                    ResourceKind.Parameter,
                    "ApiBaseUrl",
                    stack.api_base_url,
                    parameter_name=constants.API_BASE_URL_PARAMETER_NAME,
                )
            ]

        return StackDescriptor(
            id=stack_id,
            body=body,
            produces={ResourceKind.Parameter},
            exports={constants.API_BASE_URL_PARAMETER_EXPORT: ExportSpec(ResourceKind.Parameter)},
            description="SSM parameters read by the service",
        )

    def cluster(self) -> StackDescriptor:
        stack_id = constants.CLUSTER_STACK

        def body(bindings: Bindings) -> Iterable[Resource]:
            stack = ClusterStack(
                self.scope, cdk_stack_id(stack_id), vpc=bindings.handle(NETWORK), **self._stack_kwargs()
            )
            self._register(stack_id, stack, bindings)
            cluster = stack.cluster
            return [
                Resource.create(
                    stack_id,
                    ResourceKind.Cluster,
                    "Cluster",
                    cluster,
                    cluster_name=cluster.cluster_name,
                    cluster_arn=cluster.cluster_arn,
                    vpc_id=bindings.value(NETWORK),
                )
            ]

        return StackDescriptor(
            id=stack_id,
            body=body,
            requires={NETWORK},
            produces={ResourceKind.Cluster},
            exports={constants.CLUSTER_NAME_EXPORT: ExportSpec(ResourceKind.Cluster)},
            description="ECS cluster inside the network",
        )

    def service(self) -> StackDescriptor:
        stack_id = constants.SERVICE_STACK

        def body(bindings: Bindings) -> Iterable[Resource]:
            stack = ServiceStack(
                self.scope,
                cdk_stack_id(stack_id),
                cluster=bindings.handle(CLUSTER),
                repository=bindings.handle(REPOSITORY),
                task_role=bindings.handle(TASK_ROLE),
                api_base_url_parameter_name=bindings.value(API_BASE_URL_PARAMETER),
                **self._stack_kwargs(),
            )
            self._register(stack_id, stack, bindings)
            load_balancer = stack.load_balancer
            return [
                Resource.create(
                    stack_id,
                    ResourceKind.Service,
                    "FargateService",
                    stack.service,
                    service_name=stack.service.service_name,
                    service_arn=stack.service.service_arn,
                    cluster_name=bindings.value(CLUSTER),
                ),
                Resource.create(
                    stack_id,
                    ResourceKind.LoadBalancer,
                    "LoadBalancer",
                    load_balancer,
                    dns_name=load_balancer.load_balancer_dns_name,
                    load_balancer_arn=load_balancer.load_balancer_arn,
                ),
            ]

        return StackDescriptor(
            id=stack_id,
            body=body,
            requires={CLUSTER, REPOSITORY, TASK_ROLE, API_BASE_URL_PARAMETER},
            produces={ResourceKind.Service, ResourceKind.LoadBalancer},
            exports={constants.LOAD_BALANCER_DNS_EXPORT: ExportSpec(ResourceKind.LoadBalancer)},
            description="Load-balanced Fargate service",
        )

    def pipeline(self) -> StackDescriptor:
        stack_id = constants.PIPELINE_STACK

        def body(bindings: Bindings) -> Iterable[Resource]:
            stack = PipelineStack(
                self.scope,
                cdk_stack_id(stack_id),
                repository=bindings.handle(REPOSITORY),
                service=bindings.handle(SERVICE),
                github_owner=self.config.github_owner,
                github_repo=self.config.github_repo,
                connection_arn=self.config.connection_arn,
                branch=self.config.github_branch,
                **self._stack_kwargs(),
            )
            self._register(stack_id, stack, bindings)
            pipeline = stack.pipeline
            return [
                Resource.create(
                    stack_id,
                    ResourceKind.Pipeline,
                    "Pipeline",
                    pipeline,
                    pipeline_name=pipeline.pipeline_name,
                    pipeline_arn=pipeline.pipeline_arn,
                )
            ]

        return StackDescriptor(
            id=stack_id,
            body=body,
            requires={REPOSITORY, SERVICE},
            produces={ResourceKind.Pipeline},
            description="CodePipeline building and deploying the web image",
        )
