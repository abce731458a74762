from aws_cdk import (
    Stack,
    aws_ec2 as ec2,
    aws_ssm as ssm,
)
from constructs import Construct

from common import constants
from common.stack_context import StackContext


class NetworkingStack(Stack):

    def __init__(
        self, scope: Construct, construct_id: str, env_name: str = constants.DEFAULT_ENV, **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(scope=self, env=env_name)

        self.vpc = self.create_vpc()
        self.vpc_endpoint()
        self.create_vpc_id_ssm_parameter()

        self.context.export(constants.VPC_ID_EXPORT, self.vpc.vpc_id, "SkillShift VPC id")

    def create_vpc_id_ssm_parameter(self) -> ssm.StringParameter:
        """Persist vpc id in SSM"""
        return ssm.StringParameter(
            self,
            "SkillShiftVPCID",
            description="Contains the SkillShift VPC ID",
            parameter_name=constants.VPC_ID_PARAMETER_NAME,
            string_value=self.vpc.vpc_id,
        )

    def vpc_endpoint(self) -> None:
        """Add the S3 gateway endpoint so image layers skip the NAT gateway."""
        self.vpc.add_gateway_endpoint(
            "S3Endpoint",
            service=ec2.GatewayVpcEndpointAwsService.S3,
            subnets=[
                ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS),
            ],
        )

    def create_vpc(self) -> ec2.Vpc:

        vpc = ec2.Vpc(
            self,
            "SkillShiftVPC",
            max_azs=constants.MAX_AZS,
            nat_gateways=constants.NAT_GATEWAYS,
            vpc_name=self.context.build_resource_name("vpc"),
            ip_addresses=ec2.IpAddresses.cidr(constants.VPC_CIDR),
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public-Subnet",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=constants.CIDR_MASK,
                ),
                ec2.SubnetConfiguration(
                    name="Private-Subnet",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=constants.CIDR_MASK,
                ),
            ],
        )
        return vpc
