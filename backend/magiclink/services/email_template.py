"""Email template rendering and magic link construction.

Templates use ``{{ NAME }}`` placeholders. Names are letters and
underscores, matched case-insensitively; unknown names render as "".
"""

import re
from collections.abc import Mapping
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Z_]+)\s*\}\}", re.IGNORECASE)

_TOKEN_PARAM = "token"


def render_template(template: str | None, variables: Mapping[str, str]) -> str | None:
    """Substitute ``{{ NAME }}`` placeholders in a template.

    Args:
        template: Template text. None or "" means "field not set".
        variables: Values keyed by upper-case placeholder name.

    Returns:
        Rendered text, or None when there was no template.
    """
    if not template:
        return None

    def _substitute(match: re.Match[str]) -> str:
        value = variables.get(match.group(1).upper())
        return "" if value is None else str(value)

    return _PLACEHOLDER_RE.sub(_substitute, template)


def build_magic_link(base_url: str | None, token: str) -> str | None:
    """Attach a token to a base URL as the ``token`` query parameter.

    Absolute URLs are parsed: an existing ``token`` parameter is replaced
    in place, other parameters keep their order and an empty path becomes
    "/". Anything that does not parse as an absolute URL gets the token
    appended with "?" or "&". Never raises.

    Args:
        base_url: Link target supplied by the caller; None or "" means no link.
        token: Plaintext token.

    Returns:
        The link, or None when no base URL was given.
    """
    if not base_url:
        return None

    try:
        parts = urlsplit(base_url)
    except ValueError:
        parts = None

    if parts is None or not parts.scheme or not parts.netloc:
        separator = "&" if "?" in base_url else "?"
        return f"{base_url}{separator}{_TOKEN_PARAM}={quote(token, safe='')}"

    params = parse_qsl(parts.query, keep_blank_values=True)
    replaced = False
    updated: list[tuple[str, str]] = []
    for key, value in params:
        if key == _TOKEN_PARAM:
            if not replaced:
                updated.append((key, token))
                replaced = True
            continue
        updated.append((key, value))
    if not replaced:
        updated.append((_TOKEN_PARAM, token))

    return urlunsplit(
        (
            parts.scheme,
            parts.netloc,
            parts.path or "/",
            urlencode(updated),
            parts.fragment,
        )
    )
