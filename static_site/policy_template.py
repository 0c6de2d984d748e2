import json
from pathlib import Path
from string import Template
from typing import Mapping

import common.constants as constants

POLICY_DIR = Path(__file__).resolve().parent


class PolicyRenderError(ValueError):
    """Raised when a policy template cannot be rendered into valid JSON."""


def _escape(value: str) -> str:
    # JSON-escape without the surrounding quotes; placeholders sit inside strings
    return json.dumps(value)[1:-1]


def render_policy(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``${name}`` placeholders and return the policy JSON text.

    Every value must be a non-empty string. Rendering is all-or-nothing: a
    missing placeholder value, an empty value or a result that is not valid
    JSON raises :class:`PolicyRenderError` and nothing is returned.
    """
    for name, value in values.items():
        if not isinstance(value, str) or not value:
            raise PolicyRenderError(
                f"Policy placeholder '{name}' requires a non-empty string value"
            )

    try:
        rendered = Template(template).substitute(
            {name: _escape(value) for name, value in values.items()}
        )
    except KeyError as e:
        raise PolicyRenderError(f"No value supplied for policy placeholder {e}") from e
    except ValueError as e:
        raise PolicyRenderError(f"Malformed policy template: {e}") from e

    try:
        json.loads(rendered)
    except json.JSONDecodeError as e:
        raise PolicyRenderError(f"Rendered policy is not valid JSON: {e}") from e
    return rendered


def load_bucket_policy_template() -> str:
    return (POLICY_DIR / constants.BUCKET_POLICY_TEMPLATE).read_text(encoding="utf-8")


def render_bucket_policy(bucket_name: str, secret: str) -> str:
    """Render the website bucket policy.

    Objects are publicly readable only for requests whose ``User-Agent`` equals
    the shared secret, which CloudFront sends as an origin custom header.
    """
    return render_policy(
        load_bucket_policy_template(),
        {"bucket_name": bucket_name, "secret": secret},
    )
