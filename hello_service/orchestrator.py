"""ECS (Fargate) cluster, task definition and service management."""
import logging

from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


def ensure_cluster(ecs, name):
    response = ecs.describe_clusters(clusters=[name])
    for cluster in response.get('clusters', []):
        if cluster['status'] == 'ACTIVE':
            return cluster['clusterArn']

    logger.info(f"Creating ECS cluster {name}")
    return ecs.create_cluster(clusterName=name)['cluster']['clusterArn']


def register_task_definition(ecs, settings, image):
    """Register a Fargate task definition running ``image`` and return its ARN."""
    container = {
        'name': settings.container_name,
        'image': image,
        'essential': True,
        'portMappings': [{'containerPort': settings.port, 'protocol': 'tcp'}],
        'environment': [{'name': 'PORT', 'value': str(settings.port)}],
    }
    kwargs = {
        'family': settings.task_family,
        'networkMode': 'awsvpc',
        'requiresCompatibilities': ['FARGATE'],
        'cpu': settings.task_cpu,
        'memory': settings.task_memory,
        'containerDefinitions': [container],
    }
    if settings.execution_role_arn:
        kwargs['executionRoleArn'] = settings.execution_role_arn

    task_definition = ecs.register_task_definition(**kwargs)['taskDefinition']
    logger.info(f"Registered task definition {task_definition['family']}:{task_definition['revision']}")
    return task_definition['taskDefinitionArn']


def _network_configuration(settings):
    return {
        'awsvpcConfiguration': {
            'subnets': list(settings.subnets),
            'securityGroups': list(settings.security_groups),
            'assignPublicIp': 'ENABLED' if settings.assign_public_ip else 'DISABLED',
        }
    }


def describe_service(ecs, settings):
    """Return the service description, or None if it does not exist."""
    try:
        response = ecs.describe_services(cluster=settings.ecs_cluster, services=[settings.ecs_service])
    except ClientError as e:
        if e.response['Error']['Code'] == 'ClusterNotFoundException':
            return None
        logger.error(f"ECS describe error: {e.response['Error']['Message']}", exc_info=True)
        raise
    services = response.get('services', [])
    return services[0] if services else None


def deploy_service(ecs, settings, task_definition_arn):
    """Create the service, or roll the existing one onto ``task_definition_arn``.

    An INACTIVE service (deleted but still listed) is recreated rather than
    updated, since ECS refuses updates on it.
    """
    existing = describe_service(ecs, settings)

    if existing is None or existing['status'] == 'INACTIVE':
        logger.info(f"Creating ECS service {settings.ecs_service} in {settings.ecs_cluster}")
        kwargs = {
            'cluster': settings.ecs_cluster,
            'serviceName': settings.ecs_service,
            'taskDefinition': task_definition_arn,
            'desiredCount': settings.desired_count,
            'launchType': 'FARGATE',
        }
        if settings.subnets:
            kwargs['networkConfiguration'] = _network_configuration(settings)
        return ecs.create_service(**kwargs)['service']

    logger.info(f"Updating ECS service {settings.ecs_service} to {task_definition_arn}")
    return ecs.update_service(
        cluster=settings.ecs_cluster,
        service=settings.ecs_service,
        taskDefinition=task_definition_arn,
        desiredCount=settings.desired_count,
        forceNewDeployment=True,
    )['service']


def wait_for_service(ecs, settings, delay=15, max_attempts=40):
    waiter = ecs.get_waiter('services_stable')
    waiter.wait(
        cluster=settings.ecs_cluster,
        services=[settings.ecs_service],
        WaiterConfig={'Delay': delay, 'MaxAttempts': max_attempts},
    )
    logger.info(f"ECS service {settings.ecs_service} is stable")
