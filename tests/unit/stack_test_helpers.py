from dataclasses import dataclass
from typing import Any, Mapping, Optional

import attrs
import pytest
from aws_cdk import App
from aws_cdk.assertions import Template

from common.site_config import SiteConfig
from static_site.static_site_stack import StaticSiteStack, add_static_site

ACCOUNT = "123456789012"
CERTIFICATE_ARN = (
    "arn:aws:acm:us-east-1:123456789012:certificate/11111111-2222-3333-4444-555555555555"
)


# ------------------- Test Case Data Classes -------------------
@dataclass(frozen=True)
class ResourceCountTestCase:
    id: str
    resource_type: str
    expected: int


@dataclass(frozen=True)
class RoutingRuleTestCase:
    id: str
    rule: Mapping[str, Any]
    expected: Mapping[str, Any]


# ------------------- Helper Functions -------------------


def build_config(**overrides: Any) -> SiteConfig:
    values: dict[str, Any] = dict(
        region="us-east-1",
        bucket_name="www.example.com",
        domain="www.example.com",
        project="acme",
        environment="prod",
        tags={"Owner": "web-team"},
        duplicate_content_penalty_secret="s3cr3t",
        acm_certificate_arn=CERTIFICATE_ARN,
    )
    values.update(overrides)
    return SiteConfig(**values)


def build_stack(config: SiteConfig, stack_id: str = "TestStaticSiteStack") -> StaticSiteStack:
    return add_static_site(App(), stack_id, config=config, account=ACCOUNT)


def build_web_acl_template(stack: StaticSiteStack) -> Template:
    """Template of the stack holding the global WAF resources."""
    return Template.from_stack(stack.web_acl_context.scope)


def build_template(config: SiteConfig, stack_id: str = "TestStaticSiteStack") -> Template:
    return Template.from_stack(build_stack(config, stack_id))


def find_resources_by_type(
    template: Template, resource_type: str, props: Optional[dict] = None
) -> Mapping[str, Any]:

    return template.find_resources(resource_type, props=props)


def get_single_resource_id(
    resources: Mapping[str, Any], resource_type: str = "resource"
) -> str:
    assert len(resources) == 1, f"expected exactly one {resource_type}, found {len(resources)}"
    return next(iter(resources))


def distribution_config(template: Template) -> Mapping[str, Any]:
    resources = find_resources_by_type(template, "AWS::CloudFront::Distribution")
    logical_id = get_single_resource_id(resources, "AWS::CloudFront::Distribution")
    return resources[logical_id]["Properties"]["DistributionConfig"]


# ------------------- Pytest Fixtures -------------------


@pytest.fixture
def config() -> SiteConfig:
    return build_config()


@pytest.fixture
def filtered_config() -> SiteConfig:
    return build_config(
        enable_ip_filter=1, authorized_ips=["203.0.113.10", "198.51.100.0/24"]
    )


@pytest.fixture
def template(config: SiteConfig) -> Template:
    return build_template(config)


@pytest.fixture
def filtered_template(filtered_config: SiteConfig) -> Template:
    return build_template(filtered_config)


@pytest.fixture
def json_template(template: Template) -> Mapping[str, Any]:
    return template.to_json()


def with_certificate(config: SiteConfig, certificate_arn: str) -> SiteConfig:
    return attrs.evolve(config, acm_certificate_arn=certificate_arn)
