"""
hello-deploy: build, push and run the hello service on ECS.

Each command maps to one step of the container workflow; ``deploy``
chains them.
"""
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional

import boto3
import typer
from botocore.exceptions import BotoCoreError, ClientError
from typing_extensions import Annotated

from hello_service import orchestrator, registry
from hello_service.config import settings as default_settings
from hello_service.server import LOG_FORMAT

app = typer.Typer(
    name="hello-deploy",
    help="Build, push and run the hello service container on AWS ECS",
    no_args_is_help=True,
    add_completion=False,
)

TagOption = Annotated[str, typer.Option("--tag", "-t", help="Image tag")]
RegionOption = Annotated[Optional[str], typer.Option("--region", help="AWS region")]
WaitOption = Annotated[bool, typer.Option("--wait", help="Wait until the service is stable")]
ContextOption = Annotated[Path, typer.Option("--context", help="Docker build context")]


def _settings(region):
    if region:
        return dataclasses.replace(default_settings, aws_region=region)
    return default_settings


def _local_tag(settings, tag):
    return f"{settings.ecr_repository}:{tag}"


def _fail(message):
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _run_step(step, *args, **kwargs):
    try:
        return step(*args, **kwargs)
    except registry.DeployError as e:
        _fail(f"{e}\n{e.output.strip()}" if e.output.strip() else str(e))
    except ClientError as e:
        _fail(e.response['Error']['Message'])
    except BotoCoreError as e:
        # WaiterError, NoCredentialsError, EndpointConnectionError, ...
        _fail(str(e))


def _build(settings, tag, context):
    local_tag = _local_tag(settings, tag)
    _run_step(registry.build_image, context, local_tag)
    typer.echo(f"Built {local_tag}")
    return local_tag


def _push(settings, tag):
    ecr = boto3.client('ecr', region_name=settings.aws_region)
    target = _run_step(registry.publish_image, ecr, settings, _local_tag(settings, tag), tag)
    typer.echo(f"Pushed {target}")
    return target


def _run(settings, image, wait):
    ecs = boto3.client('ecs', region_name=settings.aws_region)
    _run_step(orchestrator.ensure_cluster, ecs, settings.ecs_cluster)
    task_definition_arn = _run_step(orchestrator.register_task_definition, ecs, settings, image)
    service = _run_step(orchestrator.deploy_service, ecs, settings, task_definition_arn)
    typer.echo(f"Service {service['serviceName']} -> {task_definition_arn}")
    if wait:
        _run_step(orchestrator.wait_for_service, ecs, settings)
        typer.echo("Service is stable")


@app.callback()
def main(verbose: Annotated[bool, typer.Option("--verbose", "-v")] = False):
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    # botocore logs credential lookups at INFO
    logging.getLogger('botocore').setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.command()
def build(tag: TagOption = "latest", context: ContextOption = Path("."), region: RegionOption = None):
    """Build the container image locally."""
    _build(_settings(region), tag, context)


@app.command()
def push(tag: TagOption = "latest", region: RegionOption = None):
    """Log in to ECR, tag the local image and push it."""
    _push(_settings(region), tag)


@app.command()
def run(
    tag: TagOption = "latest",
    region: RegionOption = None,
    image: Annotated[Optional[str], typer.Option("--image", help="Full image URI to run")] = None,
    wait: WaitOption = False,
):
    """Register a task definition and create or update the ECS service."""
    settings = _settings(region)
    if image is None:
        ecr = boto3.client('ecr', region_name=settings.aws_region)
        repository_uri = _run_step(registry.ensure_repository, ecr, settings.ecr_repository)
        image = registry.image_uri(repository_uri, tag)
    _run(settings, image, wait)


@app.command()
def deploy(
    tag: TagOption = "latest",
    context: ContextOption = Path("."),
    region: RegionOption = None,
    wait: WaitOption = False,
):
    """Build, push and run in one go."""
    settings = _settings(region)
    _build(settings, tag, context)
    image = _push(settings, tag)
    _run(settings, image, wait)


@app.command()
def status(region: RegionOption = None):
    """Show the running and desired task counts of the service."""
    settings = _settings(region)
    ecs = boto3.client('ecs', region_name=settings.aws_region)
    service = _run_step(orchestrator.describe_service, ecs, settings)
    if service is None:
        _fail(f"service {settings.ecs_service} not found in cluster {settings.ecs_cluster}")
    typer.echo(
        f"{service['serviceName']}: {service['status']} "
        f"running={service.get('runningCount', 0)} desired={service.get('desiredCount', 0)}"
    )


if __name__ == "__main__":
    app()
