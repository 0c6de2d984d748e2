import ipaddress
import json
import os
import re
from typing import Any, Mapping

from attrs import define, field
from attrs.validators import deep_iterable, deep_mapping, in_, instance_of
from aws_lambda_powertools.logging.logger import Logger
from constructs import Node

import common.constants as constants

logger: Logger = Logger(
    service=constants.SERVICE_NAME,
    level=os.getenv("LOG_LEVEL", constants.LOG_LEVEL).upper(),
)


class ConfigurationError(ValueError):
    pass


def _non_empty(instance, attribute, value: str) -> None:
    if not value.strip():
        raise ConfigurationError(f"'{attribute.name}' must not be empty")


def _ipv4_network(instance, attribute, value: list[str]) -> None:
    for ip in value:
        try:
            ipaddress.IPv4Network(ip, strict=False)
        except ValueError as e:
            raise ConfigurationError(
                f"'{ip}' in '{attribute.name}' is not an IPv4 address or CIDR"
            ) from e


def _cdn_certificate(instance, attribute, value: str) -> None:
    match = re.match(constants.ACM_ARN_PATTERN, value)
    if not match:
        raise ConfigurationError(f"'{value}' is not an ACM certificate ARN")
    if match.group("region") != constants.CDN_CERTIFICATE_REGION:
        raise ConfigurationError(
            "CloudFront only accepts certificates issued in "
            f"{constants.CDN_CERTIFICATE_REGION}, got {match.group('region')}"
        )


def _not_bool(instance, attribute, value: int) -> None:
    # bool is a subclass of int, so True would otherwise pass as 1
    if isinstance(value, bool):
        raise ConfigurationError(f"'{attribute.name}' must be 0 or 1, not a boolean")


_str = [instance_of(str), _non_empty]
_str_list = deep_iterable(member_validator=instance_of(str), iterable_validator=instance_of(list))


@define(slots=True, frozen=True, kw_only=True)
class SiteConfig:
    region: str = field(validator=_str)
    bucket_name: str = field(validator=_str)
    domain: str = field(validator=_str)
    project: str = field(validator=_str)
    environment: str = field(validator=_str)
    duplicate_content_penalty_secret: str = field(
        validator=_str,
        metadata={"description": "Shared secret CloudFront sends to the bucket origin"},
    )
    acm_certificate_arn: str = field(validator=[instance_of(str), _cdn_certificate])
    tags: Mapping[str, str] = field(
        factory=dict,
        validator=deep_mapping(
            key_validator=instance_of(str), value_validator=instance_of(str)
        ),
    )
    routing_rules: list[Mapping[str, Any]] = field(
        factory=list,
        validator=deep_iterable(
            member_validator=instance_of(Mapping), iterable_validator=instance_of(list)
        ),
    )
    not_found_response_path: str = field(
        default=constants.DEFAULT_NOT_FOUND_RESPONSE_PATH, validator=_str
    )
    trusted_signers: list[str] = field(factory=list, validator=_str_list)
    forward_query_string: bool = field(default=False, validator=instance_of(bool))
    enable_ip_filter: int = field(
        default=0, validator=[instance_of(int), _not_bool, in_((0, 1))]
    )
    authorized_ips: list[str] = field(factory=list, validator=[_str_list, _ipv4_network])

    def __attrs_post_init__(self) -> None:
        if not self.enable_ip_filter:
            return
        if not self.authorized_ips:
            raise ConfigurationError(
                "'authorized_ips' must list at least one address when the IP filter is enabled"
            )

    @property
    def ip_filter_count(self) -> int:
        return self.enable_ip_filter

    @classmethod
    def from_context(cls, node: Node) -> "SiteConfig":
        """Build the configuration from CDK context.

        Values come from the ``context`` block of ``cdk.json`` or from
        ``cdk synth -c key=value``; the latter always arrive as strings.
        """
        config = cls(
            region=_required(node, "region"),
            bucket_name=_required(node, "bucket-name"),
            domain=_required(node, "domain"),
            project=_required(node, "project"),
            environment=_required(node, "environment"),
            duplicate_content_penalty_secret=_required(
                node, "duplicate-content-penalty-secret"
            ),
            acm_certificate_arn=_required(node, "acm-certificate-arn"),
            tags=_as_json(node, "tags", default={}),
            routing_rules=_as_json(node, "routing-rules", default=[]),
            not_found_response_path=_optional(
                node, "not-found-response-path", constants.DEFAULT_NOT_FOUND_RESPONSE_PATH
            ),
            trusted_signers=_as_json(node, "trusted-signers", default=[]),
            forward_query_string=_as_bool(node, "forward-query-string"),
            enable_ip_filter=_as_int(node, "enable-ip-filter"),
            authorized_ips=_as_json(node, "authorized-ips", default=[]),
        )
        logger.info(
            "Loaded site configuration",
            domain=config.domain,
            environment=config.environment,
            ip_filter_enabled=bool(config.enable_ip_filter),
        )
        return config


def _optional(node: Node, key: str, default: Any = None) -> Any:
    value = node.try_get_context(key)
    return default if value is None else value


def _required(node: Node, key: str) -> Any:
    value = node.try_get_context(key)
    if value is None:
        raise ConfigurationError(f"Missing required context value '{key}'")
    return value


def _as_json(node: Node, key: str, default: Any) -> Any:
    value = _optional(node, key, default)
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Context value '{key}' is not valid JSON") from e
    return value


def _as_bool(node: Node, key: str, default: bool = False) -> bool:
    value = _optional(node, key, default)
    if isinstance(value, str):
        if value.lower() not in ("true", "false"):
            raise ConfigurationError(f"Context value '{key}' must be true or false")
        return value.lower() == "true"
    return value


def _as_int(node: Node, key: str, default: int = 0) -> int:
    value = _optional(node, key, default)
    if isinstance(value, bool):
        raise ConfigurationError(f"Context value '{key}' must be an integer, not a boolean")
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError as e:
            raise ConfigurationError(f"Context value '{key}' must be an integer") from e
    return value
