#!/usr/bin/env python3
"""AWS CDK entrypoint for provisioning the static website stack.

Site inputs are read from CDK context: the ``context`` block of ``cdk.json``
or ``-c key=value`` flags on the command line, for example
``cdk synth -c enable-ip-filter=1 -c authorized-ips='["203.0.113.10/32"]'``.
The stack is deployed to the configured region in the CDK CLI default account.
An enabled IP filter outside us-east-1 adds a second stack there for the
global WAF resources.
"""
import os

import aws_cdk as cdk

from common.site_config import SiteConfig
from static_site.static_site_stack import add_static_site

app = cdk.App()

config = SiteConfig.from_context(app.node)

add_static_site(
    app,
    "StaticSiteStack",
    config=config,
    account=os.getenv("CDK_DEFAULT_ACCOUNT"),
)

app.synth()
