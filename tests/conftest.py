"""Shared fixtures for the service and deployment tests."""

import dataclasses

import boto3
import pytest
from moto import mock_aws

from hello_service.app import create_app
from hello_service.config import Settings

REGION = "us-east-1"


@pytest.fixture(autouse=True)
def _aws_env(monkeypatch):
    """Fake AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)


@pytest.fixture()
def settings():
    """Local-only settings; port 0 lets the OS pick a free port."""
    return dataclasses.replace(
        Settings.from_env({}),
        host="127.0.0.1",
        port=0,
        aws_region=REGION,
    )


@pytest.fixture()
def client(settings):
    app = create_app(settings)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture()
def ecr_client():
    with mock_aws():
        yield boto3.client("ecr", region_name=REGION)


@pytest.fixture()
def ecs_client():
    with mock_aws():
        yield boto3.client("ecs", region_name=REGION)


@pytest.fixture()
def ecs_settings(ecs_client, settings):
    """Settings pointing at a VPC subnet and security group that exist in moto."""
    ec2 = boto3.client("ec2", region_name=REGION)
    vpc_id = ec2.create_vpc(CidrBlock="10.0.0.0/16")["Vpc"]["VpcId"]
    subnet_id = ec2.create_subnet(VpcId=vpc_id, CidrBlock="10.0.1.0/24")["Subnet"]["SubnetId"]
    group_id = ec2.create_security_group(
        GroupName="hello-service", Description="hello service tasks", VpcId=vpc_id
    )["GroupId"]
    return dataclasses.replace(settings, subnets=(subnet_id,), security_groups=(group_id,))
