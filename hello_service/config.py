import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

# =======================================================
# Defaults (all can be overridden through environment variables)
# =======================================================
DEFAULT_HOST = '0.0.0.0'
DEFAULT_PORT = 8000
DEFAULT_GREETING = 'Hello World!'

AWS_REGION = 'ap-northeast-2'
ECR_REPOSITORY = 'hello-service'
ECS_CLUSTER = 'hello-cluster'
ECS_SERVICE = 'hello-service'


def _split(value):
    return tuple(s.strip() for s in (value or '').split(',') if s.strip())


def _flag(value, default):
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    greeting: str = DEFAULT_GREETING
    log_level: str = 'INFO'
    cors_origins: Tuple[str, ...] = ('*',)

    # Deployment target
    aws_region: str = AWS_REGION
    ecr_repository: str = ECR_REPOSITORY
    ecs_cluster: str = ECS_CLUSTER
    ecs_service: str = ECS_SERVICE
    task_family: str = 'hello-service-task'
    container_name: str = 'hello-service'
    task_cpu: str = '256'
    task_memory: str = '512'
    desired_count: int = 1
    execution_role_arn: Optional[str] = None
    subnets: Tuple[str, ...] = field(default_factory=tuple)
    security_groups: Tuple[str, ...] = field(default_factory=tuple)
    assign_public_ip: bool = True

    @classmethod
    def from_env(cls, environ=None):
        """Build settings from ``environ`` (``os.environ`` by default).

        Malformed integers raise ``ValueError`` right away so a bad ``PORT``
        fails the process at startup instead of at bind time.
        """
        env = os.environ if environ is None else environ
        return cls(
            host=env.get('HOST', DEFAULT_HOST),
            port=int(env.get('PORT', DEFAULT_PORT)),
            greeting=env.get('GREETING', DEFAULT_GREETING),
            log_level=env.get('LOG_LEVEL', 'INFO').upper(),
            cors_origins=_split(env.get('CORS_ORIGINS', '*')),
            aws_region=env.get('AWS_REGION', AWS_REGION),
            ecr_repository=env.get('ECR_REPOSITORY', ECR_REPOSITORY),
            ecs_cluster=env.get('ECS_CLUSTER', ECS_CLUSTER),
            ecs_service=env.get('ECS_SERVICE', ECS_SERVICE),
            task_family=env.get('TASK_FAMILY', 'hello-service-task'),
            container_name=env.get('CONTAINER_NAME', 'hello-service'),
            task_cpu=env.get('TASK_CPU', '256'),
            task_memory=env.get('TASK_MEMORY', '512'),
            desired_count=int(env.get('DESIRED_COUNT', 1)),
            execution_role_arn=env.get('EXECUTION_ROLE_ARN') or None,
            subnets=_split(env.get('SUBNETS')),
            security_groups=_split(env.get('SECURITY_GROUPS')),
            assign_public_ip=_flag(env.get('ASSIGN_PUBLIC_IP'), True),
        )


settings = Settings.from_env()
