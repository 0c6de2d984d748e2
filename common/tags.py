from typing import Mapping

DERIVED_TAG_KEYS = ("Name", "Environment", "Project")


def build_name_tag(project: str, environment: str, domain: str) -> str:
    return f"{project}-{environment}-{domain}"


def build_tags(
    base_tags: Mapping[str, str], project: str, environment: str, domain: str
) -> dict[str, str]:
    """Merge the base tags with the tags derived from the site identity.

    Derived keys (``Name``, ``Environment``, ``Project``) override base keys of
    the same name. Keys are returned sorted so the result does not depend on the
    ordering of ``base_tags``.

    Examples:
        - build_tags({"Owner": "web"}, "acme", "prod", "example.com")
          -> {"Environment": "prod", "Name": "acme-prod-example.com",
              "Owner": "web", "Project": "acme"}
    """
    derived = (build_name_tag(project, environment, domain), environment, project)
    merged = {**base_tags, **dict(zip(DERIVED_TAG_KEYS, derived))}
    return {key: merged[key] for key in sorted(merged)}
