import re

from attrs import define, field
from aws_cdk import Stack

import common.constants as constants
from common.site_config import SiteConfig
from common.tags import build_tags


def origin_id_for(bucket_name: str) -> str:
    return f"{constants.ORIGIN_ID_PREFIX}{bucket_name}"


@define(slots=True, frozen=True)
class StackContext:
    scope: Stack
    config: SiteConfig = field(
        metadata={"description": "Variable inputs shared by every resource in the stack"},
    )

    @property
    def aws_region(self) -> str:
        return Stack.of(self.scope).region

    @property
    def is_global_region(self) -> bool:
        # CloudFront only attaches WAF resources declared in this region
        return self.aws_region == constants.CDN_CERTIFICATE_REGION

    @property
    def origin_id(self) -> str:
        return origin_id_for(self.config.bucket_name)

    # ---------- naming ----------
    def build_resource_name(self, resource_type: str) -> str:
        """Build a physical resource name.

        Examples:
            - acme-prod-ip-set
        """
        return f"{self.config.project}-{self.config.environment}-{resource_type}".lower()

    def build_resource_id(self, resource_type: str) -> str:
        """Build a construct ID.

        Examples:
            - WebsiteIpSet
        """
        return f"Website{resource_type[0].upper()}{resource_type[1:]}"

    def build_metric_name(self, resource_type: str) -> str:
        # WAF metric names are limited to alphanumeric characters
        name = f"{self.config.project}{self.config.environment}{resource_type}"
        return re.sub(r"[^A-Za-z0-9]", "", name)

    # ---------- tags ----------
    def build_tags(self) -> dict[str, str]:
        return build_tags(
            self.config.tags,
            project=self.config.project,
            environment=self.config.environment,
            domain=self.config.domain,
        )
