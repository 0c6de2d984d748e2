import ipaddress
import json
import os
from typing import Any, Mapping, Optional

from aws_cdk import (
    CfnOutput,
    Environment,
    RemovalPolicy,
    Stack,
    Tags,
    aws_cloudfront as cloudfront,
    aws_s3 as s3,
    aws_waf as waf,
)
from aws_lambda_powertools.logging.logger import Logger
from constructs import Construct

import common.constants as constants
from common.resource_graph import ResolvedResources, ResourceGraph
from common.site_config import ConfigurationError, SiteConfig
from common.stack_context import StackContext
from static_site.global_web_acl_stack import GlobalWebAclStack
from static_site.policy_template import render_bucket_policy

logger: Logger = Logger(
    service=constants.SERVICE_NAME,
    level=os.getenv("LOG_LEVEL", constants.LOG_LEVEL).upper(),
)


def build_routing_rule(rule: Mapping[str, Any]) -> s3.RoutingRule:
    """Translate an S3 website routing rule into its CDK form.

    Accepts the S3 API shape, e.g.
    ``{"Condition": {"KeyPrefixEquals": "docs/"},
       "Redirect": {"ReplaceKeyPrefixWith": "documents/"}}``
    """
    condition = rule.get("Condition") or {}
    redirect = rule.get("Redirect") or {}

    if "ReplaceKeyWith" in redirect and "ReplaceKeyPrefixWith" in redirect:
        raise ConfigurationError(
            "Routing rule redirect cannot set both ReplaceKeyWith and ReplaceKeyPrefixWith"
        )
    replace_key = None
    if "ReplaceKeyWith" in redirect:
        replace_key = s3.ReplaceKey.with_(redirect["ReplaceKeyWith"])
    elif "ReplaceKeyPrefixWith" in redirect:
        replace_key = s3.ReplaceKey.prefix_with(redirect["ReplaceKeyPrefixWith"])

    protocol = None
    if "Protocol" in redirect:
        try:
            protocol = s3.RedirectProtocol[str(redirect["Protocol"]).upper()]
        except KeyError as e:
            raise ConfigurationError(
                f"Routing rule {dict(rule)} redirects to unsupported protocol "
                f"'{redirect['Protocol']}', expected http or https"
            ) from e

    routing_condition = None
    if condition:
        routing_condition = s3.RoutingRuleCondition(
            key_prefix_equals=condition.get("KeyPrefixEquals"),
            http_error_code_returned_equals=condition.get("HttpErrorCodeReturnedEquals"),
        )

    return s3.RoutingRule(
        condition=routing_condition,
        host_name=redirect.get("HostName"),
        http_redirect_code=redirect.get("HttpRedirectCode"),
        protocol=protocol,
        replace_key=replace_key,
    )


class StaticSiteStack(Stack):

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        config: SiteConfig,
        web_acl_stack: Optional[GlobalWebAclStack] = None,
        **kwargs,
    ) -> None:
        if web_acl_stack is not None:
            kwargs.setdefault("cross_region_references", True)
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(scope=self, config=config)
        self.config = config

        # Global WAF resources go wherever the us-east-1 binding lives
        self.web_acl_context = (
            StackContext(scope=web_acl_stack, config=config)
            if web_acl_stack is not None
            else self.context
        )
        if config.ip_filter_count and not self.web_acl_context.is_global_region:
            raise ConfigurationError(
                f"Stack region {self.context.aws_region} cannot hold global WAF "
                f"resources; pass a GlobalWebAclStack in {constants.CDN_CERTIFICATE_REGION}"
            )

        graph = ResourceGraph()
        graph.declare(constants.BUCKET, self._build_website_bucket)
        graph.declare(
            constants.BUCKET_POLICY,
            self._build_bucket_policy,
            depends_on=[constants.BUCKET],
        )

        # WAF resources share one count so the ACL never points at a missing rule or set
        ip_filter_count = config.ip_filter_count
        graph.declare(constants.IP_SET, self._build_ip_set, count=ip_filter_count)
        graph.declare(
            constants.IP_RULE,
            self._build_ip_rule,
            depends_on=[constants.IP_SET],
            count=ip_filter_count,
        )
        graph.declare(
            constants.WEB_ACL,
            self._build_web_acl,
            depends_on=[constants.IP_RULE],
            count=ip_filter_count,
        )

        graph.declare(
            constants.DISTRIBUTION,
            self._build_distribution,
            depends_on=[constants.BUCKET, constants.WEB_ACL],
        )

        self.resources = graph.build()
        self.apply_order = self.resources.apply_order

        self.website_bucket: s3.Bucket = self.resources.one(constants.BUCKET)
        self.bucket_policy: s3.CfnBucketPolicy = self.resources.one(constants.BUCKET_POLICY)
        self.web_acl: Optional[waf.CfnWebACL] = self.resources.first(constants.WEB_ACL)
        self.distribution: cloudfront.CfnDistribution = self.resources.one(
            constants.DISTRIBUTION
        )

        for key, value in self.context.build_tags().items():
            Tags.of(self.website_bucket).add(key, value)
            Tags.of(self.distribution).add(key, value)

        self._build_outputs()
        logger.info(
            "Declared static site stack",
            stack=construct_id,
            ip_filter_enabled=self.web_acl is not None,
        )

    # Resource creation

    def _build_website_bucket(self, resolved: ResolvedResources, index: int) -> s3.Bucket:
        """Create the S3 bucket serving the site through its website endpoint."""
        return s3.Bucket(
            self,
            self.context.build_resource_id(constants.BUCKET),
            bucket_name=self.config.bucket_name,
            website_index_document=constants.INDEX_DOCUMENT,
            website_error_document=constants.ERROR_DOCUMENT,
            website_routing_rules=[
                build_routing_rule(rule) for rule in self.config.routing_rules
            ]
            or None,
            block_public_access=s3.BlockPublicAccess(
                block_public_acls=True,
                ignore_public_acls=True,
                block_public_policy=False,
                restrict_public_buckets=False,
            ),
            removal_policy=RemovalPolicy.RETAIN,
        )

    def _build_bucket_policy(
        self, resolved: ResolvedResources, index: int
    ) -> s3.CfnBucketPolicy:
        bucket: s3.Bucket = resolved.one(constants.BUCKET)
        policy = render_bucket_policy(
            bucket_name=self.config.bucket_name,
            secret=self.config.duplicate_content_penalty_secret,
        )
        return s3.CfnBucketPolicy(
            self,
            self.context.build_resource_id(constants.BUCKET_POLICY),
            bucket=bucket.bucket_name,
            policy_document=json.loads(policy),
        )

    def _build_ip_set(self, resolved: ResolvedResources, index: int) -> waf.CfnIPSet:
        return waf.CfnIPSet(
            self.web_acl_context.scope,
            self.web_acl_context.build_resource_id(constants.IP_SET),
            name=self.web_acl_context.build_resource_name("ip-set"),
            ip_set_descriptors=[
                waf.CfnIPSet.IPSetDescriptorProperty(
                    type=constants.WAF_IP_DESCRIPTOR_TYPE,
                    value=str(ipaddress.IPv4Network(ip, strict=False)),
                )
                for ip in self.config.authorized_ips
            ],
        )

    def _build_ip_rule(self, resolved: ResolvedResources, index: int) -> waf.CfnRule:
        ip_set: waf.CfnIPSet = resolved.instances(constants.IP_SET)[index]
        return waf.CfnRule(
            self.web_acl_context.scope,
            self.web_acl_context.build_resource_id(constants.IP_RULE),
            name=self.web_acl_context.build_resource_name("ip-rule"),
            metric_name=self.web_acl_context.build_metric_name("IpRule"),
            predicates=[
                waf.CfnRule.PredicateProperty(
                    data_id=ip_set.ref,
                    negated=False,
                    type=constants.WAF_PREDICATE_TYPE,
                )
            ],
        )

    def _build_web_acl(self, resolved: ResolvedResources, index: int) -> waf.CfnWebACL:
        """Deny everything except requests from the authorized IP set."""
        ip_rule: waf.CfnRule = resolved.instances(constants.IP_RULE)[index]
        return waf.CfnWebACL(
            self.web_acl_context.scope,
            self.web_acl_context.build_resource_id(constants.WEB_ACL),
            name=self.web_acl_context.build_resource_name("web-acl"),
            metric_name=self.web_acl_context.build_metric_name("WebAcl"),
            default_action=waf.CfnWebACL.WafActionProperty(
                type=constants.WAF_DEFAULT_ACTION
            ),
            rules=[
                waf.CfnWebACL.ActivatedRuleProperty(
                    priority=constants.WAF_RULE_PRIORITY,
                    rule_id=ip_rule.ref,
                    action=waf.CfnWebACL.WafActionProperty(
                        type=constants.WAF_RULE_ACTION
                    ),
                )
            ],
        )

    def _build_distribution(
        self, resolved: ResolvedResources, index: int
    ) -> cloudfront.CfnDistribution:
        """Create the CloudFront distribution fronting the bucket website endpoint."""
        bucket: s3.Bucket = resolved.one(constants.BUCKET)
        web_acl: Optional[waf.CfnWebACL] = resolved.first(constants.WEB_ACL)
        origin_id = self.context.origin_id

        return cloudfront.CfnDistribution(
            self,
            self.context.build_resource_id(constants.DISTRIBUTION),
            distribution_config=cloudfront.CfnDistribution.DistributionConfigProperty(
                enabled=True,
                aliases=[self.config.domain],
                price_class=constants.PRICE_CLASS,
                http_version=constants.HTTP_VERSION,
                default_root_object=constants.INDEX_DOCUMENT,
                origins=[
                    cloudfront.CfnDistribution.OriginProperty(
                        id=origin_id,
                        domain_name=bucket.bucket_website_domain_name,
                        custom_origin_config=cloudfront.CfnDistribution.CustomOriginConfigProperty(
                            origin_protocol_policy=constants.ORIGIN_PROTOCOL_POLICY,
                            http_port=constants.ORIGIN_HTTP_PORT,
                            https_port=constants.ORIGIN_HTTPS_PORT,
                            origin_ssl_protocols=constants.ORIGIN_SSL_PROTOCOLS,
                        ),
                        origin_custom_headers=[
                            cloudfront.CfnDistribution.OriginCustomHeaderProperty(
                                header_name=constants.SECRET_HEADER_NAME,
                                header_value=self.config.duplicate_content_penalty_secret,
                            )
                        ],
                    )
                ],
                custom_error_responses=[
                    cloudfront.CfnDistribution.CustomErrorResponseProperty(
                        error_code=constants.NOT_FOUND_ERROR_CODE,
                        error_caching_min_ttl=constants.ERROR_CACHING_MIN_TTL,
                        response_code=constants.NOT_FOUND_RESPONSE_CODE,
                        response_page_path=self.config.not_found_response_path,
                    )
                ],
                default_cache_behavior=cloudfront.CfnDistribution.DefaultCacheBehaviorProperty(
                    target_origin_id=origin_id,
                    viewer_protocol_policy=constants.VIEWER_PROTOCOL_POLICY,
                    allowed_methods=constants.ALLOWED_METHODS,
                    cached_methods=constants.CACHED_METHODS,
                    forwarded_values=cloudfront.CfnDistribution.ForwardedValuesProperty(
                        query_string=self.config.forward_query_string,
                        cookies=cloudfront.CfnDistribution.CookiesProperty(
                            forward=constants.COOKIES_FORWARD
                        ),
                    ),
                    trusted_signers=self.config.trusted_signers or None,
                    min_ttl=constants.MIN_TTL,
                    default_ttl=constants.DEFAULT_TTL,
                    max_ttl=constants.MAX_TTL,
                    compress=True,
                ),
                restrictions=cloudfront.CfnDistribution.RestrictionsProperty(
                    geo_restriction=cloudfront.CfnDistribution.GeoRestrictionProperty(
                        restriction_type=constants.GEO_RESTRICTION_TYPE
                    )
                ),
                viewer_certificate=cloudfront.CfnDistribution.ViewerCertificateProperty(
                    acm_certificate_arn=self.config.acm_certificate_arn,
                    ssl_support_method=constants.SSL_SUPPORT_METHOD,
                    minimum_protocol_version=constants.MINIMUM_PROTOCOL_VERSION,
                ),
                web_acl_id=web_acl.ref if web_acl is not None else None,
            ),
        )

    def _build_outputs(self) -> None:
        CfnOutput(
            self,
            "WebsiteCdnHostname",
            value=self.distribution.attr_domain_name,
            description="CloudFront domain name to alias the site domain to",
        )
        CfnOutput(
            self,
            "WebsiteCdnZoneId",
            value=constants.CLOUDFRONT_HOSTED_ZONE_ID,
            description="Route 53 hosted zone ID of CloudFront distributions",
        )
        CfnOutput(self, "WebsiteCdnId", value=self.distribution.ref)
        CfnOutput(self, "WebsiteBucketId", value=self.website_bucket.bucket_name)
        CfnOutput(
            self,
            "WebsiteBucketEndpoint",
            value=self.website_bucket.bucket_website_domain_name,
        )
        if self.web_acl is not None:
            CfnOutput(self, "WebAclId", value=self.web_acl.ref)


def add_static_site(
    scope: Construct,
    construct_id: str,
    *,
    config: SiteConfig,
    account: Optional[str] = None,
) -> StaticSiteStack:
    """Add the site stack, plus a us-east-1 WAF stack when the filter needs one."""
    web_acl_stack = None
    if config.ip_filter_count and config.region != constants.CDN_CERTIFICATE_REGION:
        web_acl_stack = GlobalWebAclStack(
            scope,
            f"{construct_id}GlobalWebAcl",
            env=Environment(account=account, region=constants.CDN_CERTIFICATE_REGION),
        )
    return StaticSiteStack(
        scope,
        construct_id,
        config=config,
        web_acl_stack=web_acl_stack,
        env=Environment(account=account, region=config.region),
    )
