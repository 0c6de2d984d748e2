from aws_cdk import Stack
from constructs import Construct


class GlobalWebAclStack(Stack):
    """Holds the global WAF resources of a site deployed outside us-east-1.

    CloudFront only accepts web ACLs declared in us-east-1. The site stack
    declares the IP set, rule and ACL into this stack through its own
    ``StackContext`` and reads the ACL back with a cross-region reference.
    """

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)
