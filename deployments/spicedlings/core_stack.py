"""
Core CDK Stack for the Spicedlings Final Projects.

This stack sets up the VPC in which the project containers run, and the load
balancer with the HTTP listener that the per-student Fargate service stacks
configure to forward requests to their containers.

With the PRIVATE_SUBNET setting enabled, the project containers run in a
private subnet equipped with a NAT gateway, which is costly (~100€/month).

The stack is deployed once initially:

    cdk deploy SpicedlingsFinalProjectsCore

After the first deploy, the load balancer security group id must be copied to
the CORE_LOAD_BALANCER_SECURITY_GROUP_ID setting.
"""

from aws_cdk import (
    Annotations,
    CfnOutput,
    Stack,
    aws_ec2 as ec2,
    aws_elasticloadbalancingv2 as elbv2,
)
from constructs import Construct

from spicedlings_shared.paths import DEFAULT_PAGE
from spicedlings_shared.settings import DOMAIN_NAME


class CoreStack(Stack):
    """
    Shared network and load balancer of all projects.

    Attributes:
        vpc: VPC in which the project containers run
        load_balancer: Internet facing application load balancer
        http_listener: Listener the project target groups are attached to
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        private_subnet: bool = False,
        **kwargs
    ) -> None:
        """
        Initialize the core stack.

        Args:
            scope: CDK app scope
            construct_id: Stack identifier (CORE_STACK_NAME)
            private_subnet: Run containers in private subnets behind a NAT gateway
            **kwargs: Additional stack properties (env, tags, etc.)
        """
        super().__init__(scope, construct_id, **kwargs)

        # VPC
        if private_subnet:
            self.vpc = ec2.Vpc(self, 'Vpc', max_azs=2)
        else:
            self.vpc = ec2.Vpc(
                self,
                'Vpc',
                max_azs=2,
                subnet_configuration=[
                    ec2.SubnetConfiguration(name='public', subnet_type=ec2.SubnetType.PUBLIC),
                ],
                nat_gateways=0,
            )

        # Load balancer
        load_balancer_name = self.stack_name
        self.load_balancer = elbv2.ApplicationLoadBalancer(
            self,
            'LoadBalancer',
            load_balancer_name=load_balancer_name,
            vpc=self.vpc,
            internet_facing=True,
        )

        # HTTP listener, unknown hosts get the default 404 page
        self.http_listener = elbv2.ApplicationListener(
            self,
            'HttpListener',
            protocol=elbv2.ApplicationProtocol.HTTP,
            load_balancer=self.load_balancer,
            default_action=elbv2.ListenerAction.fixed_response(
                404,
                content_type='text/html',
                message_body=DEFAULT_PAGE.read_text(encoding='utf-8'),
            ),
        )

        CfnOutput(
            self,
            'LoadBalancerDnsName',
            value=self.load_balancer.load_balancer_dns_name,
            description='DNS name the wildcard CNAME record must point to',
        )

        Annotations.of(self).add_warning(
            f"Make sure to configure a CNAME record for \"*.{DOMAIN_NAME}\" pointing to the DNS "
            f"name of the load balancer \"{load_balancer_name}\"."
        )
        Annotations.of(self).add_warning(
            'Make sure to specify the "CORE_LOAD_BALANCER_SECURITY_GROUP_ID" setting variable after '
            'creation of the load balancer and its security group.'
        )
