"""Bot-wall (WAF challenge) detection for rendered pages.

Interstitials from Cloudflare, Sucuri and DDoS-Guard often return 200/503
and only reveal themselves in the rendered body.  Auto-clearing challenges
(Cloudflare's JS check) are given a chance to finish; anything still showing
a challenge afterwards is reported as blocked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_DETECT_JS = """() => {
    const bodyText = (document.body && document.body.innerText) || '';
    const html = (document.documentElement && document.documentElement.outerHTML) || '';
    return {
        sucuri: html.includes('sucuri.net') || bodyText.includes('Website Firewall'),
        cloudflare: html.includes('cf-browser-verification')
            || html.includes('cf_chl_opt')
            || bodyText.includes('Checking your browser'),
        ddosGuard: html.includes('ddos-guard') || bodyText.includes('DDoS protection'),
        captcha: html.includes('cf-turnstile')
            || html.includes('g-recaptcha')
            || html.includes('h-captcha')
            || html.includes('px-captcha')
            || bodyText.includes('Verify you are human'),
    };
}"""

_CLOUDFLARE_CLEARED_JS = """() => {
    const html = (document.documentElement && document.documentElement.outerHTML) || '';
    return !html.includes('cf-browser-verification') && !html.includes('cf_chl_opt');
}"""

@dataclass(frozen=True)
class ChallengeInfo:
    sucuri: bool = False
    cloudflare: bool = False
    ddos_guard: bool = False
    captcha: bool = False

    @property
    def detected(self) -> bool:
        return self.sucuri or self.cloudflare or self.ddos_guard or self.captcha

    @classmethod
    def from_evaluation(cls, raw) -> ChallengeInfo:
        if not isinstance(raw, dict):
            return cls()
        return cls(
            sucuri=bool(raw.get("sucuri")),
            cloudflare=bool(raw.get("cloudflare")),
            ddos_guard=bool(raw.get("ddosGuard")),
            captcha=bool(raw.get("captcha")),
        )


async def detect_challenge(page) -> ChallengeInfo:
    return ChallengeInfo.from_evaluation(await page.evaluate(_DETECT_JS))


async def settle_challenge(page, timeout_ms: int = 15000) -> bool:
    """Return ``True`` if *page* is (now) free of a bot-wall challenge.

    Only Cloudflare's self-clearing check is waited on; captchas and
    click-through walls are not interacted with.
    """
    info = await detect_challenge(page)
    if not info.detected:
        return True

    logger.info(
        "[WAF] Challenge detected: Sucuri=%s, CF=%s, DDoSGuard=%s, Captcha=%s",
        info.sucuri,
        info.cloudflare,
        info.ddos_guard,
        info.captcha,
    )
    if not info.cloudflare or info.captcha:
        return False

    try:
        await page.wait_for_function(_CLOUDFLARE_CLEARED_JS, timeout=timeout_ms)
    except Exception as exc:
        logger.warning("[WAF] Cloudflare challenge did not clear: %s", exc)
        return False
    return True
