"""Image proxy package: SSRF-guarded fetching of remote images."""

from linkscope.proxy.addresses import is_private_ip
from linkscope.proxy.image_proxy import ProxiedImage, proxy_image, validate_image_url
from linkscope.proxy.transport import GuardedNetworkBackend, GuardedTransport

__all__ = [
    "proxy_image",
    "validate_image_url",
    "ProxiedImage",
    "GuardedTransport",
    "GuardedNetworkBackend",
    "is_private_ip",
]
