"""
galib — Global Accelerator endpoint automation for a single EC2 instance.

Modules:
    config       settings singleton (config.json, environment, defaults)
    log          console + file logging
    errors       standardized AWS error handling
    retry        bounded exponential-backoff retry
    state        key files in the state directory
    aws_client   boto3 client factory
    metadata     IMDSv2 instance identity and primary ENI
    accelerator  accelerator/listener/endpoint-group lifecycle
    dns          Route 53 CNAME management
    iam          automation role setup
"""

__version__ = "1.0.0"
