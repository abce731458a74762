from aws_cdk import (
    Duration,
    Stack,
    aws_ecr as ecr,
    aws_ecs as ecs,
    aws_ecs_patterns as ecs_patterns,
    aws_iam as iam,
    aws_ssm as ssm,
)
from constructs import Construct

import common.constants as constants
from common.stack_context import StackContext


class ServiceStack(Stack):
    """Load-balanced Fargate service running the web image from the repository."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        cluster: ecs.ICluster,
        repository: ecr.IRepository,
        task_role: iam.IRole,
        api_base_url_parameter_name: str,
        env_name: str = constants.DEFAULT_ENV,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(scope=self, env=env_name)

        self.log_group = self.context.build_log_group("service", prefix="ecs")
        api_base_url = ssm.StringParameter.value_for_string_parameter(self, api_base_url_parameter_name)

        self.fargate_service = self._build_fargate_service(
            cluster=cluster,
            repository=repository,
            task_role=task_role,
            environment={"NEXT_PUBLIC_API_BASE_URL": api_base_url},
        )
        self.service = self.fargate_service.service
        self.load_balancer = self.fargate_service.load_balancer

        self.context.export(
            constants.LOAD_BALANCER_DNS_EXPORT,
            self.load_balancer.load_balancer_dns_name,
            "DNS name of the public load balancer",
        )

    def _build_fargate_service(
        self,
        cluster: ecs.ICluster,
        repository: ecr.IRepository,
        task_role: iam.IRole,
        environment: dict[str, str],
    ) -> ecs_patterns.ApplicationLoadBalancedFargateService:
        fargate_service = ecs_patterns.ApplicationLoadBalancedFargateService(
            self,
            self.context.build_resource_id("FargateService"),
            cluster=cluster,
            service_name=self.context.build_resource_name("service"),
            cpu=constants.TASK_CPU,
            memory_limit_mib=constants.TASK_MEMORY_MIB,
            desired_count=constants.DESIRED_COUNT,
            public_load_balancer=True,
            listener_port=constants.LISTENER_PORT,
            task_image_options=ecs_patterns.ApplicationLoadBalancedTaskImageOptions(
                image=ecs.ContainerImage.from_ecr_repository(repository, tag=constants.IMAGE_TAG),
                container_name="web",
                container_port=constants.CONTAINER_PORT,
                task_role=task_role,
                environment=environment,
                log_driver=ecs.LogDrivers.aws_logs(
                    stream_prefix="web",
                    log_group=self.log_group,
                ),
            ),
        )
        fargate_service.target_group.configure_health_check(
            path=constants.HEALTH_CHECK_PATH,
            healthy_http_codes="200,301,302",
            interval=Duration.seconds(30),
        )
        return fargate_service
