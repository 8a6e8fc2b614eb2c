from ec2node.providers.aws import EC2Client

__all__ = ["EC2Client"]
