from aws_cdk import (
    Stack,
    aws_codebuild as codebuild,
    aws_codepipeline as codepipeline,
    aws_codepipeline_actions as codepipeline_actions,
    aws_ecr as ecr,
    aws_ecs as ecs,
)
from constructs import Construct

import common.constants as constants
from common.stack_context import StackContext


class PipelineStack(Stack):
    """Source -> Docker build -> ECS deploy for the web image."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        repository: ecr.IRepository,
        service: ecs.IBaseService,
        github_owner: str,
        github_repo: str,
        connection_arn: str,
        branch: str = constants.DEFAULT_SOURCE_BRANCH,
        env_name: str = constants.DEFAULT_ENV,
        **kwargs,
    ) -> None:
        if not connection_arn:
            raise ValueError("A CodeStar connection ARN is required to build the source stage")
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(scope=self, env=env_name)

        self.build_project = self._build_codebuild_project(repository)
        repository.grant_pull_push(self.build_project)

        source_output = codepipeline.Artifact("SourceOutput")
        build_output = codepipeline.Artifact("BuildOutput")

        self.pipeline = codepipeline.Pipeline(
            self,
            self.context.build_resource_id("Pipeline"),
            pipeline_name=self.context.build_resource_name("pipeline"),
        )
        self.pipeline.add_stage(
            stage_name="Source",
            actions=[
                codepipeline_actions.CodeStarConnectionsSourceAction(
                    action_name="GitHub_Source",
                    owner=github_owner,
                    repo=github_repo,
                    branch=branch,
                    connection_arn=connection_arn,
                    output=source_output,
                )
            ],
        )
        self.pipeline.add_stage(
            stage_name="Build",
            actions=[
                codepipeline_actions.CodeBuildAction(
                    action_name="Build",
                    project=self.build_project,
                    input=source_output,
                    outputs=[build_output],
                )
            ],
        )
        self.pipeline.add_stage(
            stage_name="Deploy",
            actions=[
                codepipeline_actions.EcsDeployAction(
                    action_name="Deploy",
                    service=service,
                    image_file=build_output.at_path(constants.IMAGE_DEFINITIONS_FILENAME),
                )
            ],
        )

    def _build_codebuild_project(self, repository: ecr.IRepository) -> codebuild.PipelineProject:
        log_group = self.context.build_log_group("build", prefix="aws/codebuild")
        return codebuild.PipelineProject(
            self,
            self.context.build_resource_id("Project", action="build"),
            project_name=self.context.build_resource_name("project", action="build"),
            environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0,
                privileged=True,
            ),
            environment_variables={
                "REPOSITORY_URI": codebuild.BuildEnvironmentVariable(value=repository.repository_uri),
                "CONTAINER_NAME": codebuild.BuildEnvironmentVariable(value="web"),
            },
            build_spec=codebuild.BuildSpec.from_source_filename(constants.BUILD_SPEC_FILENAME),
            logging=codebuild.LoggingOptions(
                cloud_watch=codebuild.CloudWatchLoggingOptions(log_group=log_group),
            ),
        )
