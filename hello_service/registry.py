"""Container image build and ECR publishing.

Wraps the docker CLI for build/login/tag/push and boto3's ECR client for
repository management and registry credentials.
"""
import base64
import logging
import subprocess
from dataclasses import dataclass

from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class DeployError(Exception):
    """A docker command exited with a non-zero status or could not be started."""

    def __init__(self, command, returncode, output=""):
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(f"{command[0]} {command[1]} failed with exit status {returncode}")


@dataclass(frozen=True)
class RegistryLogin:
    username: str
    password: str
    endpoint: str

    def __repr__(self):
        return f"RegistryLogin(username={self.username!r}, endpoint={self.endpoint!r})"


def _docker(args, input=None):
    command = ["docker", *args]
    logger.info(f"Running: {' '.join(command)}")
    try:
        result = subprocess.run(command, input=input, capture_output=True, text=True)
    except OSError as e:
        # docker binary missing or not executable
        logger.error(f"docker {args[0]} could not start: {e}")
        raise DeployError(command, 127, str(e)) from e
    if result.returncode != 0:
        logger.error(f"docker {args[0]} failed: {result.stderr.strip()}")
        raise DeployError(command, result.returncode, result.stderr)
    return result.stdout


def ensure_repository(ecr, name):
    """Return the URI of repository ``name``, creating it if needed."""
    try:
        response = ecr.describe_repositories(repositoryNames=[name])
        return response['repositories'][0]['repositoryUri']
    except ClientError as e:
        if e.response['Error']['Code'] != 'RepositoryNotFoundException':
            logger.error(f"ECR describe error: {e.response['Error']['Message']}", exc_info=True)
            raise

    logger.info(f"Creating ECR repository {name}")
    response = ecr.create_repository(repositoryName=name)
    return response['repository']['repositoryUri']


def get_registry_login(ecr):
    data = ecr.get_authorization_token()['authorizationData'][0]
    token = base64.b64decode(data['authorizationToken']).decode('utf-8')
    username, _, password = token.partition(':')
    return RegistryLogin(username=username, password=password, endpoint=data['proxyEndpoint'])


def docker_login(login):
    # Password goes through stdin so it never shows up in the process list.
    _docker(["login", "--username", login.username, "--password-stdin", login.endpoint],
            input=login.password)


def build_image(context, local_tag):
    _docker(["build", "-t", local_tag, str(context)])


def tag_image(source, target):
    _docker(["tag", source, target])


def push_image(target):
    _docker(["push", target])


def image_uri(repository_uri, tag):
    return f"{repository_uri}:{tag}"


def publish_image(ecr, settings, local_tag, tag="latest"):
    """Push ``local_tag`` to the configured ECR repository as ``tag``."""
    repository_uri = ensure_repository(ecr, settings.ecr_repository)
    docker_login(get_registry_login(ecr))
    target = image_uri(repository_uri, tag)
    tag_image(local_tag, target)
    push_image(target)
    logger.info(f"Pushed {target}")
    return target
