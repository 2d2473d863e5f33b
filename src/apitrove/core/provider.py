# ABOUTME: Derives a provider name from the server URL or host a document declares.
# ABOUTME: The name is the registrable domain, so "https://petstore.swagger.io/v2" becomes "swagger.io".

from urllib.parse import urlparse

import tldextract

_STRIPPED_LABELS = ("api.", "www.")

# Bundled public suffix snapshot only; naming a provider never touches the network.
_extract = tldextract.TLDExtract(cache_dir=None, suffix_list_urls=())


def provider_from_url(url: str) -> str:
    """Return the provider name for a server URL, bare host, or source locator.

    The hostname is lowercased and ports are dropped. Hosts under a public
    suffix reduce to their registrable domain ("maps.googleapis.com" is
    "googleapis.com"). Other hosts (IP addresses, single labels, private
    names) lose one leading "api." or "www." label instead.

    Raises:
        ValueError: If no hostname can be found.
    """
    candidate = url if "://" in url else f"//{url}"
    host = urlparse(candidate).hostname
    if not host:
        raise ValueError(f"Cannot determine provider from {url!r}")
    host = host.lower()
    parts = _extract(host)
    if parts.domain and parts.suffix:
        return f"{parts.domain}.{parts.suffix}"
    for label in _STRIPPED_LABELS:
        if host.startswith(label) and host.count(".") > 1:
            return host[len(label):]
    return host
