"""AWS EC2 provider for ec2node.

Example:
    from ec2node.providers.aws import EC2Client
    from ec2node.types import Credentials

    client = EC2Client(Credentials(access_key="...", secret_key="..."))
    zones = client.list_availability_zones()
"""

from ec2node.providers.aws.client import EC2Client

__all__ = ["EC2Client"]
