"""Browser fingerprint randomisation and anti-automation patches.

Headless Chromium announces itself in several ways (``navigator.webdriver``,
an empty plugin list, a missing ``window.chrome``, a SwiftShader WebGL
renderer).  Bot walls key on those, so every browsing context gets a random
but plausible desktop fingerprint plus an init script that papers over the
obvious tells before any page script runs.
"""

from __future__ import annotations

import random
from typing import Any

# Chromium launch flags for a memory-constrained host.
LAUNCH_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-software-rasterizer",
    "--disable-extensions",
    "--no-zygote",
    "--js-flags=--max-old-space-size=512",
    "--disable-blink-features=AutomationControlled",
]

USER_AGENTS: list[str] = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36 Edg/121.0.0.0",
]

LOCALES: list[str] = ["en-US", "en-GB", "en-CA", "fr-FR", "de-DE", "es-ES"]

TIMEZONES: list[str] = [
    "America/New_York",
    "Europe/London",
    "Europe/Paris",
    "Europe/Berlin",
    "Asia/Tokyo",
]

_VIEWPORT_WIDTHS = [1280, 1366, 1440, 1536, 1600, 1920]
_VIEWPORT_HEIGHTS = [720, 768, 864, 900, 1024, 1080]

_CLIENT_HINT_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Sec-Ch-Ua": '"Not A(Brand";v="99", "Google Chrome";v="121", "Chromium";v="121"',
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"Windows"',
    "Upgrade-Insecure-Requests": "1",
}

STEALTH_SCRIPT = """
(() => {
    try {
        Object.defineProperty(Navigator.prototype, 'webdriver', {
            get: () => false,
            configurable: true,
        });
    } catch (e) {}

    try {
        if (!window.chrome) {
            Object.defineProperty(window, 'chrome', {
                writable: true,
                enumerable: true,
                configurable: false,
                value: {
                    runtime: {},
                    loadTimes: function () {},
                    csi: function () {},
                },
            });
        }
    } catch (e) {}

    try {
        if (!navigator.plugins || navigator.plugins.length === 0) {
            const fake = ['Chrome PDF Plugin', 'Chrome PDF Viewer', 'Native Client'].map(
                (name) => ({ name, description: name, filename: name + '.dll', length: 1 })
            );
            fake.item = function (i) { return this[i]; };
            fake.namedItem = function (n) { return this.find((p) => p.name === n); };
            fake.refresh = function () {};
            Object.defineProperty(Navigator.prototype, 'plugins', {
                get: () => fake,
                configurable: true,
            });
        }
    } catch (e) {}

    try {
        if (navigator.permissions && navigator.permissions.query) {
            const query = navigator.permissions.query.bind(navigator.permissions);
            navigator.permissions.query = (params) => (
                params && params.name === 'notifications'
                    ? Promise.resolve({ state: 'denied', onchange: null })
                    : query(params)
            );
        }
    } catch (e) {}

    try {
        const getParameter = WebGLRenderingContext.prototype.getParameter;
        WebGLRenderingContext.prototype.getParameter = function (parameter) {
            if (parameter === 37445) return 'Intel Inc.';
            if (parameter === 37446) return 'Intel Iris OpenGL Engine';
            return getParameter.apply(this, [parameter]);
        };
    } catch (e) {}

    window.__name = (f) => f;
})();
"""


def random_viewport(rng: random.Random | None = None) -> dict[str, int]:
    rng = rng or random
    return {
        "width": rng.choice(_VIEWPORT_WIDTHS) + rng.randrange(50),
        "height": rng.choice(_VIEWPORT_HEIGHTS) + rng.randrange(50),
    }


def random_context_options(rng: random.Random | None = None) -> dict[str, Any]:
    """Keyword arguments for ``Browser.new_context`` with a random fingerprint."""
    rng = rng or random
    return {
        "viewport": random_viewport(rng),
        "user_agent": rng.choice(USER_AGENTS),
        "locale": rng.choice(LOCALES),
        "timezone_id": rng.choice(TIMEZONES),
        "bypass_csp": True,
        "service_workers": "block",
        "permissions": [],
        "extra_http_headers": dict(_CLIENT_HINT_HEADERS),
    }


async def apply_stealth(context) -> None:
    """Register :data:`STEALTH_SCRIPT` to run before any page script."""
    await context.add_init_script(script=STEALTH_SCRIPT)
