"""
Fargate Service CDK Stack of a Spicedling project.

This stack sets up one container definition per registered service, links them
to a task definition run by the project's Fargate service, and wires services
that expose a port to the core HTTP listener:

- ingress from the load balancer security group on the service port
- port mapping on the container
- target group with health check
- listener rule on the host header <sub domain>.<DOMAIN_NAME>, with a priority
  from the target group priority allocator

The load balancer security group and the HTTP listener are imported through
their ids and ARNs instead of being referenced from the core stack; direct
references create cross dependencies between the projects' stacks.

Dependencies:
- CoreStack
- SpicedlingServicesStack

    cdk deploy SpicedlingFinalProjectFargateServiceJasmineDanielStreif
"""

from aws_cdk import (
    Duration,
    Stack,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_logs as logs,
)
from constructs import Construct

from spicedlings_shared.names import (
    ascii_only,
    main_resource_pascal_case_name,
    resource_kebab_case_name,
    services_stack_name,
)
from spicedlings_shared.priorities import TargetGroupPriorities
from spicedlings_shared.services import Service
from spicedlings_shared.settings import (
    CORE_LOAD_BALANCER_SECURITY_GROUP_ID,
    DOCKER_IMAGES_LATEST_TAG,
    DOMAIN_NAME,
)
from spicedlings_shared.types import SpicedlingConfigs

from .core_stack import CoreStack
from .services_stack import SpicedlingServicesStack


class SpicedlingFargateServiceStack(Stack):
    """
    Fargate service running the containers of one project.

    Attributes:
        fargate_service: The project's Fargate service, consumed by the pipeline Deploy stage
        security_group: Security group of the Fargate service
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        spicedling_configs: SpicedlingConfigs,
        core: CoreStack,
        services: SpicedlingServicesStack,
        priorities: TargetGroupPriorities,
        private_subnet: bool = False,
        **kwargs
    ) -> None:
        """
        Initialize the Fargate service stack.

        Args:
            scope: CDK app scope
            construct_id: Stack identifier (see names.fargate_service_stack_name)
            spicedling_configs: Validated project configuration
            core: Core stack providing the VPC and HTTP listener
            services: Services stack holding the registry and the service resources
            priorities: Allocator of listener rule priorities
            private_subnet: Whether the containers run in private subnets
            **kwargs: Additional stack properties (env, tags, etc.)
        """
        super().__init__(scope, construct_id, **kwargs)

        self._configs = spicedling_configs
        self._core = core
        self._priorities = priorities
        identity = spicedling_configs.identity

        # 1. Task definition
        task_definition = ecs.FargateTaskDefinition(self, 'TaskDefinition')

        # 2. Security group, lets the load balancer reach the container targets
        self.security_group = ec2.SecurityGroup(
            self,
            'SecurityGroup',
            vpc=core.vpc,
            security_group_name=self.stack_name,
            description=ascii_only(
                f"Fargate Service - {identity.cohort} - {identity.first_name} {identity.last_name}"
            ),
        )

        # 3. Fargate service
        self.fargate_service = ecs.FargateService(
            self,
            'FargateService',
            service_name=main_resource_pascal_case_name(identity),
            cluster=ecs.Cluster(
                self,
                'Cluster',
                cluster_name=main_resource_pascal_case_name(identity),
                vpc=core.vpc,
            ),
            task_definition=task_definition,
            assign_public_ip=not private_subnet,
            circuit_breaker=ecs.DeploymentCircuitBreaker(rollback=True),
            enable_ecs_managed_tags=True,
            desired_count=1,
            min_healthy_percent=100,
            max_healthy_percent=200,
            health_check_grace_period=Duration.seconds(10),
            propagate_tags=ecs.PropagatedTagSource.SERVICE,
            security_groups=[self.security_group],
        )

        # 4. Containers, in registration order
        for service in services.registry:
            resources = services.resources[service.container_name]
            container = ecs.ContainerDefinition(
                self,
                service.container_name,
                image=ecs.ContainerImage.from_ecr_repository(resources.repository, DOCKER_IMAGES_LATEST_TAG),
                task_definition=task_definition,
                logging=ecs.LogDrivers.aws_logs(
                    stream_prefix=resource_kebab_case_name(service.name, identity),
                    log_retention=logs.RetentionDays.THREE_MONTHS,
                ),
                environment=dict(service.environment),
                secrets=dict(resources.secrets),
            )

            if service.port is not None:
                self._add_as_target(service, container)

            services.registry.wire(service)

    def _add_as_target(self, service: Service, container: ecs.ContainerDefinition) -> None:
        """
        Route <sub domain>.<DOMAIN_NAME> from the core HTTP listener to the container.
        """
        sub_domain = self._configs.sub_domain

        # 1. Core resources, imported by id/ARN
        load_balancer_security_group = ec2.SecurityGroup.from_security_group_id(
            self,
            'LoadBalancerSecurityGroup',
            CORE_LOAD_BALANCER_SECURITY_GROUP_ID,
            allow_all_outbound=False,
        )
        http_listener = elbv2.ApplicationListener.from_application_listener_attributes(
            self,
            'HttpListener',
            listener_arn=self._core.http_listener.listener_arn,
            security_group=load_balancer_security_group,
        )

        # 2. Traffic rule and port mapping
        self.security_group.add_ingress_rule(
            load_balancer_security_group,
            ec2.Port.tcp(service.port),
            f"Load balancer to target: {sub_domain}",
        )
        container.add_port_mappings(
            ecs.PortMapping(container_port=service.port, host_port=service.port)
        )

        # 3. Target group and listener rule
        target_group = elbv2.ApplicationTargetGroup(
            self,
            'TargetGroup',
            target_group_name=sub_domain,
            protocol=elbv2.ApplicationProtocol.HTTP,
            vpc=self._core.vpc,
            targets=[
                self.fargate_service.load_balancer_target(
                    container_name=container.container_name,
                    container_port=service.port,
                ),
            ],
            health_check=elbv2.HealthCheck(
                enabled=True,
                healthy_http_codes='200-399',
                healthy_threshold_count=2,
            ),
        )
        http_listener.add_target_groups(
            'TargetGroup',
            conditions=[elbv2.ListenerCondition.host_headers([f"{sub_domain}.{DOMAIN_NAME}"])],
            target_groups=[target_group],
            # Keyed on the services stack name, like every priority already allocated
            priority=self._priorities.get_available_priority(services_stack_name(self._configs.identity)),
        )
