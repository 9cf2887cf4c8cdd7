"""
Pipeline CDK Stack of a Spicedling project.

The deployment pipeline of a project has three stages, deployed in two steps:

I) Standard deploy
    - Source: polls the project's GitHub repository with the token of the
      invited user.
    - Build: dockerizes every registered service with the dockerizer and
      pushes the images to ECR.

II) Deploy with `-c fargateDeployStage=true`, after the Fargate service stack
    - Deploy: rolls the new images out to the Fargate service.

Splitting the stages this way keeps the pipeline and Fargate service stacks
separate without circular dependencies. With the Deploy stage in the first
step, a Fargate service that fails to start its containers also rolls back
the pipeline deploy.

Make sure a GitHub token for the invited user is stored in the secret named by
SECRETS_MANAGER_GITHUB_TOKENS_SECRET_NAME (JSON field = GitHub username).

Dependencies:
- SpicedlingServicesStack
- SpicedlingFargateServiceStack (step II only)

    cdk deploy SpicedlingFinalProjectPipelineJasmineDanielStreif
    cdk deploy SpicedlingFinalProjectFargateServiceJasmineDanielStreif
    cdk deploy SpicedlingFinalProjectPipelineJasmineDanielStreif -c fargateDeployStage=true
"""

from typing import Any

from aws_cdk import (
    Annotations,
    Duration,
    SecretValue,
    Stack,
    aws_codebuild as codebuild,
    aws_codepipeline as codepipeline,
    aws_codepipeline_actions as cpactions,
    aws_ecs as ecs,
    aws_iam as iam,
)
from constructs import Construct

from spicedlings_shared.buildspec import build_spec
from spicedlings_shared.names import (
    main_resource_pascal_case_name,
    resource_kebab_case_name,
    resource_pascal_case_name_without_separator,
)
from spicedlings_shared.services import ServiceRegistry
from spicedlings_shared.settings import SECRETS_MANAGER_GITHUB_TOKENS_SECRET_NAME
from spicedlings_shared.types import SpicedlingConfigs

FARGATE_DEPLOY_STAGE_CONTEXT = 'fargateDeployStage'


def is_enabled(context_value: Any) -> bool:
    """Context values given on the command line arrive as strings."""
    if isinstance(context_value, str):
        return context_value.strip().lower() == 'true'
    return bool(context_value)


class SpicedlingPipelineStack(Stack):
    """
    GitHub -> Docker build -> Fargate deploy pipeline of one project.

    Attributes:
        pipeline: The CodePipeline pipeline
        build_role: Role of the Docker build, allowed to push to the service repositories
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        spicedling_configs: SpicedlingConfigs,
        registry: ServiceRegistry,
        fargate_service: ecs.FargateService,
        **kwargs
    ) -> None:
        """
        Initialize the pipeline stack.

        Args:
            scope: CDK app scope
            construct_id: Stack identifier (see names.pipeline_stack_name)
            spicedling_configs: Validated project configuration
            registry: Populated service registry
            fargate_service: Service of the Fargate service stack, used by the Deploy stage
            **kwargs: Additional stack properties (env, tags, etc.)
        """
        super().__init__(scope, construct_id, **kwargs)

        identity = spicedling_configs.identity

        # 1. Artifacts
        source_artifact = codepipeline.Artifact('GitHubSource')
        image_artifact = codepipeline.Artifact('DockerizedApplication')

        # 2. Build role, pushes the images to ECR
        self.build_role = iam.Role(
            self,
            'BuildRole',
            role_name=resource_pascal_case_name_without_separator('BuildRole', identity),
            assumed_by=iam.ServicePrincipal('codebuild.amazonaws.com'),
        )
        self.build_role.add_to_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=[
                    'ecr:BatchCheckLayerAvailability',
                    'ecr:InitiateLayerUpload',
                    'ecr:CompleteLayerUpload',
                    'ecr:UploadLayerPart',
                    'ecr:PutImage',
                ],
                resources=registry.repository_arns,
            )
        )
        self.build_role.add_to_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=['ecr:GetAuthorizationToken'],
                resources=['*'],
            )
        )

        # 3. Pipeline
        build_project = codebuild.PipelineProject(
            self,
            'DockerBuild',
            project_name=self.stack_name,
            description=(
                f"Dockerize and Upload Application | {identity.cohort} - "
                f"{identity.first_name} {identity.last_name}"
            ),
            environment=codebuild.BuildEnvironment(privileged=True),  # Docker
            role=self.build_role,
            build_spec=codebuild.BuildSpec.from_object(
                build_spec(registry, resource_kebab_case_name('artifact', identity))
            ),
        )

        self.pipeline = codepipeline.Pipeline(
            self,
            'Pipeline',
            pipeline_name=main_resource_pascal_case_name(identity),
            restart_execution_on_update=True,
            stages=[
                codepipeline.StageProps(
                    stage_name='Source',
                    actions=[
                        cpactions.GitHubSourceAction(
                            action_name='GitHubSource',
                            owner=spicedling_configs.github_owner,
                            repo=spicedling_configs.repo_name,
                            branch=spicedling_configs.branch,
                            oauth_token=SecretValue.secrets_manager(
                                SECRETS_MANAGER_GITHUB_TOKENS_SECRET_NAME,
                                json_field=spicedling_configs.invited_github_username,
                            ),
                            # Webhooks are only available to the repository owner
                            trigger=cpactions.GitHubTrigger.POLL,
                            output=source_artifact,
                        ),
                    ],
                ),
                codepipeline.StageProps(
                    stage_name='Build',
                    actions=[
                        cpactions.CodeBuildAction(
                            action_name='DockerBuild',
                            input=source_artifact,
                            outputs=[image_artifact],
                            project=build_project,
                        ),
                    ],
                ),
            ],
        )

        # 4. Deploy stage, second step only
        if is_enabled(self.node.try_get_context(FARGATE_DEPLOY_STAGE_CONTEXT)):
            self.pipeline.add_stage(
                stage_name='Deploy',
                actions=[
                    cpactions.EcsDeployAction(
                        action_name='FargateDeploy',
                        input=image_artifact,
                        deployment_timeout=Duration.minutes(30),
                        service=fargate_service,
                    ),
                ],
            )

        Annotations.of(self).add_warning(
            f"Make sure a GitHub token for the invited user \"{spicedling_configs.invited_github_username}\" "
            f"is provided in the secrets manager for the secret \"{SECRETS_MANAGER_GITHUB_TOKENS_SECRET_NAME}\"."
        )
